"""API launcher tests"""
import run


def test_launches_step_gate_app(monkeypatch):
    calls = {}
    monkeypatch.setattr(run.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))
    monkeypatch.setattr("sys.argv", ["run.py", "--port", "9001", "--workers", "3", "--log-level", "debug"])

    run.main()

    assert calls["app"] == "stepgate.main:app"
    assert calls["port"] == 9001
    assert calls["workers"] == 3
    assert calls["log_level"] == "debug"
    assert calls["reload_dirs"] is None


def test_reload_forces_one_worker(monkeypatch):
    calls = {}
    monkeypatch.setattr(run.uvicorn, "run", lambda app, **kwargs: calls.update(kwargs))
    monkeypatch.setattr("sys.argv", ["run.py", "--reload", "--workers", "4"])

    run.main()

    assert calls["workers"] == 1
    assert calls["reload_dirs"] == ["stepgate"]
