from __future__ import annotations

from importlib import metadata
import os

DIST_NAME = "tct"


def _resolve() -> str:
    """
    Best available version string:
    TCT_VERSION set by the release build, then installed package metadata,
    then "dev".
    """
    explicit = os.getenv("TCT_VERSION", "")
    if explicit and explicit != "dev":
        return explicit
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return "dev"


VERSION = _resolve()
