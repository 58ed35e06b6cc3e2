"""Serve the proxy with uvicorn on the configured ``PORT``."""

from __future__ import annotations

import uvicorn

from webflow_proxy.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "webflow_proxy.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
