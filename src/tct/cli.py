from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from tct.api.client import InboxClient
from tct.config.settings import ConfigError, Settings, get_settings
from tct.metrics.receiver import ReceiverMetrics
from tct.metrics.sender import SenderMetrics
from tct.receiver.main import create_app as create_receiver_app
from tct.sender.generator import Generator
from tct.sender.main import create_app as create_sender_app
from tct.server.http import HttpServer
from tct.utils.log import configure_logging, get_logger
from tct.version import VERSION

log = get_logger("tct")


async def run_sender(settings: Settings, stop: asyncio.Event) -> None:
    """Observability server plus request generator; returns once both are done."""
    metrics = SenderMetrics()
    server = HttpServer(create_sender_app(metrics), settings.sender_port, log_level=settings.log_level)

    async with InboxClient(settings.receiver_url, timeout_s=settings.rate.request_timeout_s) as client:
        generator = Generator(settings.rate, client, metrics)
        serving = asyncio.create_task(server.run(stop), name="sender-http")
        generating = asyncio.create_task(generator.run(stop), name="generator")
        try:
            done, _ = await asyncio.wait({serving, generating}, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                task.result()
        finally:
            # whichever side failed, take the other one down with it
            stop.set()
            await asyncio.gather(serving, generating, return_exceptions=True)


async def run_receiver(settings: Settings, stop: asyncio.Event) -> None:
    app = create_receiver_app(settings.faults, ReceiverMetrics())
    await HttpServer(app, settings.receiver_port, log_level=settings.log_level).run(stop)


async def _run(settings: Settings) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    if settings.mode == "sender":
        await run_sender(settings, stop)
    else:
        await run_receiver(settings, stop)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tct",
        description="Traffic chaos tool: generate load (sender) or inject faults (receiver). "
        "Configured through TCT_* environment variables.",
    )
    parser.add_argument("--version", action="store_true", help="print the version and exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.version:
        print("tct", VERSION)
        return 0

    try:
        settings = get_settings()
    except ConfigError as e:
        print(f"initialization failed: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    log.info("starting tct", version=VERSION, mode=settings.mode)

    try:
        asyncio.run(_run(settings))
    except Exception as e:
        log.error("runtime error", error=str(e))
        return 1

    log.info("shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
