import importlib
import importlib.util
import pathlib

import pytest


def load_app_module():
    app_path = pathlib.Path(__file__).resolve().parents[1] / "app.py"
    spec = importlib.util.spec_from_file_location("app_main", app_path)
    app_module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    spec.loader.exec_module(app_module)
    return app_module


def test_create_app_with_temp_db(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.setenv("ADMIN_PASSWORD", "test-admin-password")
    from cbt.core import config as config_module
    importlib.reload(config_module)

    app_module = load_app_module()
    flask_app = app_module.create_app(config_module.Config)

    assert flask_app is not None
    assert flask_app.config.get("DATABASE_URL") == f"sqlite:///{db_path}"
    assert flask_app.secret_key
    assert flask_app.exam_sessions == {}
    assert flask_app.config["EXAM_TIMERS"] == {
        "tick_seconds": 1, "autosave_seconds": 60, "low_time_seconds": 60,
    }


def test_timer_settings_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("AUTOSAVE_INTERVAL_SECONDS", "30")
    monkeypatch.setenv("DEFAULT_DURATION_MINUTES", "45")
    from cbt.core import config as config_module
    importlib.reload(config_module)

    assert config_module.Config.get_timer_config()["autosave_seconds"] == 30
    assert config_module.Config.DEFAULT_DURATION_MINUTES == 45
    assert config_module.Config.get_db_config() == {
        "DATABASE_TYPE": "sqlite", "DATABASE": str(tmp_path / "test.db"),
    }


def test_missing_secret_key_is_rejected_in_production(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.setenv("ADMIN_PASSWORD", "test-admin-password")
    from cbt.core import config as config_module
    importlib.reload(config_module)
    app_module = load_app_module()

    monkeypatch.delenv("SECRET_KEY")
    monkeypatch.setenv("DEBUG", "false")
    importlib.reload(config_module)
    with pytest.raises(ValueError):
        app_module.create_app(config_module.Config)
