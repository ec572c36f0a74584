# astrochart/version.py
from __future__ import annotations

import os
from importlib.metadata import PackageNotFoundError, version as _dist_version


def _installed_version() -> str:
    try:
        return _dist_version("astrochart-backend")
    except PackageNotFoundError:
        return "0.1.0"


# ASTRO_VERSION wins so CI/preview deploys can stamp their own label
VERSION = os.getenv("ASTRO_VERSION") or _installed_version()
