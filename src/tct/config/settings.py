from __future__ import annotations

from dataclasses import dataclass
import os

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tct.config.duration import parse_duration

MODES = ("sender", "receiver")
LOG_LEVELS = ("debug", "info", "warn", "error")

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigError(ValueError):
    """Configuration is missing or invalid. Fatal at startup."""


class RateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    requests_per_second: float = Field(1.0, gt=0, allow_inf_nan=False)
    start_delay_s: float = Field(0.0, ge=0, allow_inf_nan=False)
    # 0 disables the timeout
    request_timeout_s: float = Field(2.0, ge=0, allow_inf_nan=False)

    @property
    def interval_s(self) -> float:
        return 1.0 / self.requests_per_second


class FaultConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    response_delay_s: float = Field(0.0, ge=0, allow_inf_nan=False)
    response_jitter_s: float = Field(0.0, ge=0, allow_inf_nan=False)
    hang_rate: float = Field(0.0, ge=0.0, le=1.0, allow_inf_nan=False)
    error_rate: float = Field(0.0, ge=0.0, le=1.0, allow_inf_nan=False)
    outage_after_s: float = Field(0.0, ge=0, allow_inf_nan=False)
    outage_for_s: float = Field(0.0, ge=0, allow_inf_nan=False)
    outage_repeat: bool = False

    @property
    def outage_enabled(self) -> bool:
        return self.outage_after_s > 0 and self.outage_for_s > 0


class _Common(BaseModel):
    receiver_port: int = Field(8080, ge=1, le=65535)
    sender_port: int = Field(8081, ge=1, le=65535)
    receiver_host: str = Field("localhost", min_length=1)


# model field -> environment variable, used for error messages
_ENV_NAMES = {
    "receiver_port": "TCT_RECEIVER_PORT",
    "sender_port": "TCT_SENDER_PORT",
    "receiver_host": "TCT_RECEIVER_HOST",
    "requests_per_second": "TCT_RPS",
    "start_delay_s": "TCT_START_DELAY",
    "request_timeout_s": "TCT_REQUEST_TIMEOUT",
    "response_delay_s": "TCT_RESPONSE_DELAY",
    "response_jitter_s": "TCT_RESPONSE_JITTER",
    "hang_rate": "TCT_HANG_RATE",
    "error_rate": "TCT_ERROR_RATE",
    "outage_after_s": "TCT_OUTAGE_AFTER",
    "outage_for_s": "TCT_OUTAGE_FOR",
    "outage_repeat": "TCT_OUTAGE_REPEAT",
}


@dataclass(frozen=True)
class Settings:
    mode: str
    log_level: str
    receiver_host: str
    receiver_port: int
    sender_port: int
    rate: RateConfig
    faults: FaultConfig

    @property
    def receiver_url(self) -> str:
        return f"http://{self.receiver_host}:{self.receiver_port}"


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _duration(name: str, default: str) -> float:
    raw = _env(name, default)
    try:
        return parse_duration(raw)
    except ValueError as e:
        raise ConfigError(f"{name}: invalid duration {raw!r}") from e


def _float(name: str, default: str) -> float:
    raw = _env(name, default)
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name}: invalid float {raw!r}") from e


def _int(name: str, default: str) -> int:
    raw = _env(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name}: invalid integer {raw!r}") from e


def _bool(name: str, default: str) -> bool:
    raw = _env(name, default)
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"{name}: invalid boolean {raw!r}")


def _validated(model: type[BaseModel], **values):
    try:
        return model(**values)
    except ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err["loc"] else ""
        name = _ENV_NAMES.get(field, field)
        raise ConfigError(f"{name}: {err['msg']}, got {err.get('input')!r}") from e


def get_settings() -> Settings:
    """
    Load and validate the whole configuration from TCT_* environment variables.
    Raises ConfigError naming the offending variable; nothing network-facing
    should start before this returns.
    """
    mode = os.getenv("TCT_MODE")
    if not mode:
        raise ConfigError("TCT_MODE is required")
    if mode not in MODES:
        raise ConfigError(f"invalid mode {mode!r} (must be 'sender' or 'receiver')")

    log_level = _env("TCT_LOG_LEVEL", "info").lower()
    if log_level not in LOG_LEVELS:
        raise ConfigError(
            f"invalid log level {log_level!r} (must be debug, info, warn, or error)"
        )

    common = _validated(
        _Common,
        receiver_port=_int("TCT_RECEIVER_PORT", "8080"),
        sender_port=_int("TCT_SENDER_PORT", "8081"),
        receiver_host=_env("TCT_RECEIVER_HOST", "localhost"),
    )
    rate = _validated(
        RateConfig,
        requests_per_second=_float("TCT_RPS", "1.0"),
        start_delay_s=_duration("TCT_START_DELAY", "0s"),
        request_timeout_s=_duration("TCT_REQUEST_TIMEOUT", "2s"),
    )
    faults = _validated(
        FaultConfig,
        response_delay_s=_duration("TCT_RESPONSE_DELAY", "0s"),
        response_jitter_s=_duration("TCT_RESPONSE_JITTER", "0s"),
        hang_rate=_float("TCT_HANG_RATE", "0"),
        error_rate=_float("TCT_ERROR_RATE", "0"),
        outage_after_s=_duration("TCT_OUTAGE_AFTER", "0s"),
        outage_for_s=_duration("TCT_OUTAGE_FOR", "0s"),
        outage_repeat=_bool("TCT_OUTAGE_REPEAT", "false"),
    )

    return Settings(
        mode=mode,
        log_level=log_level,
        receiver_host=common.receiver_host,
        receiver_port=common.receiver_port,
        sender_port=common.sender_port,
        rate=rate,
        faults=faults,
    )
