from __future__ import annotations

import os

DEFAULT_VERSION = "0.3.0"


def resolve_app_version() -> str:
    for key in ("APP_VERSION", "GIT_SHA", "RENDER_GIT_COMMIT"):
        value = os.getenv(key)
        if value:
            return value.strip()
    return DEFAULT_VERSION
