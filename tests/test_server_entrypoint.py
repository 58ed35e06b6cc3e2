from __future__ import annotations

import pytest
import uvicorn

from webflow_proxy import __main__ as entrypoint
from webflow_proxy.core.config import AppSettings


def test_main_serves_app_on_configured_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8123")
    monkeypatch.delenv("APP_LOG_LEVEL", raising=False)
    monkeypatch.setattr(entrypoint, "get_settings", AppSettings)
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

    entrypoint.main()

    assert calls == [
        (
            ("webflow_proxy.main:app",),
            {"host": "0.0.0.0", "port": 8123, "log_level": "info"},
        )
    ]


def test_port_defaults_to_3004(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PORT", raising=False)

    assert AppSettings().port == 3004
