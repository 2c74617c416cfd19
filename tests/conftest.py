import os
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path

import httpx
import pytest

from tct.config.settings import FaultConfig, RateConfig
from tct.metrics.receiver import ReceiverMetrics
from tct.metrics.sender import SenderMetrics
from tct.receiver.core.state import OutageState

REPO_ROOT = Path(__file__).resolve().parents[1]


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _wait_for_http_ready(url: str, proc: subprocess.Popen, log_path: Path, timeout_s: float = 15.0) -> None:
    """
    Wait for the process to answer at url. If it exits first, surface its log.
    """
    deadline = time.time() + timeout_s

    while time.time() < deadline:
        if proc.poll() is not None:
            raise RuntimeError(
                f"tct exited early (code={proc.returncode}).\n"
                f"--- tct output ---\n{log_path.read_text()}"
            )
        try:
            r = httpx.get(url, timeout=1.0)
            if r.status_code == 200:
                return
        except httpx.HTTPError:
            pass
        time.sleep(0.1)

    raise RuntimeError(
        f"tct did not become ready at {url} within {timeout_s}s.\n"
        f"--- tct output ---\n{log_path.read_text()}"
    )


class LiveProcess:
    def __init__(self, proc: subprocess.Popen, base_url: str, log_path: Path):
        self.proc = proc
        self.base_url = base_url
        self.log_path = log_path

    def stop(self, timeout_s: float = 10.0) -> int:
        if self.proc.poll() is None:
            self.proc.send_signal(signal.SIGTERM)
            try:
                self.proc.wait(timeout=timeout_s)
            except subprocess.TimeoutExpired:
                self.proc.kill()
                self.proc.wait()
        return self.proc.returncode


@pytest.fixture
def spawn_receiver(tmp_path):
    """
    Start `python -m tct` in receiver mode on a free port with extra TCT_* env.
    Every process started is terminated after the test.
    """
    started: list[LiveProcess] = []

    def _spawn(**env_overrides: str) -> LiveProcess:
        port = _free_port()
        env = os.environ.copy()
        env.update({
            "TCT_MODE": "receiver",
            "TCT_RECEIVER_PORT": str(port),
            "TCT_LOG_LEVEL": "debug",
        })
        env.update(env_overrides)

        log_path = tmp_path / f"receiver-{port}.log"
        log_file = open(log_path, "w")
        proc = subprocess.Popen(
            [sys.executable, "-m", "tct"],
            cwd=str(REPO_ROOT),
            env=env,
            stdout=log_file,
            stderr=subprocess.STDOUT,
        )
        log_file.close()

        live = LiveProcess(proc, f"http://127.0.0.1:{port}", log_path)
        started.append(live)
        _wait_for_http_ready(f"{live.base_url}/healthz", proc, log_path)
        return live

    try:
        yield _spawn
    finally:
        for live in started:
            live.stop()


@pytest.fixture
def free_port():
    return _free_port()


@pytest.fixture
def faults():
    return FaultConfig()


@pytest.fixture
def outage_state():
    return OutageState()


@pytest.fixture
def receiver_metrics():
    return ReceiverMetrics()


@pytest.fixture
def sender_metrics():
    return SenderMetrics()


@pytest.fixture
def fast_rate():
    return RateConfig(requests_per_second=20.0, request_timeout_s=1.0)
