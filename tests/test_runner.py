import uvicorn

from insider_monitor import __main__ as runner


def test_run_serves_the_app_on_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr(runner.settings, "HOST", "127.0.0.1")
    monkeypatch.setattr(runner.settings, "PORT", 9100)

    runner.run()

    assert calls == [(("insider_monitor.main:app",), {"host": "127.0.0.1", "port": 9100, "log_config": None})]
