import json
import uuid

from qsolog.config import config_path, ensure_owner_id, load_settings, save_settings


def test_default_settings(isolated_config):
    """Defaults are used when no config file exists."""
    assert config_path() == isolated_config
    settings = load_settings()
    assert settings["owner_id"] is None
    assert settings["page_size"] == 20
    assert settings["log_level"] == "WARNING"


def test_custom_settings(isolated_config):
    owner = uuid.uuid4()
    isolated_config.write_text(
        json.dumps({"owner_id": str(owner), "page_size": 50, "log_level": "debug"}),
        encoding="utf-8",
    )
    settings = load_settings()
    assert settings["owner_id"] == owner
    assert settings["page_size"] == 50
    assert settings["log_level"] == "DEBUG"


def test_invalid_values_ignored(isolated_config):
    isolated_config.write_text(
        json.dumps({"owner_id": "not-a-uuid", "page_size": -3}), encoding="utf-8"
    )
    settings = load_settings()
    assert settings["owner_id"] is None
    assert settings["page_size"] == 20


def test_malformed_config_fallback(isolated_config):
    """Malformed config files fall back to defaults."""
    isolated_config.write_text("{ invalid json }", encoding="utf-8")
    assert load_settings()["page_size"] == 20


def test_env_overrides_file(isolated_config, monkeypatch):
    save_settings({"owner_id": uuid.uuid4(), "log_level": "INFO"})
    env_owner = uuid.uuid4()
    monkeypatch.setenv("QSOLOG_OWNER", str(env_owner))
    monkeypatch.setenv("QSOLOG_LOG_LEVEL", "error")
    settings = load_settings()
    assert settings["owner_id"] == env_owner
    assert settings["log_level"] == "ERROR"


def test_ensure_owner_id_persists(isolated_config):
    first = ensure_owner_id()
    assert isinstance(first, uuid.UUID)
    assert ensure_owner_id() == first
    saved = json.loads(isolated_config.read_text(encoding="utf-8"))
    assert saved["owner_id"] == str(first)
