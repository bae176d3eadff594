"""
Tests for infrastructure/config.py - navtree.toml loading.
"""
import pytest

from infrastructure.config import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH, AppConfig, load_config


def write_toml(tmp_path, text):
    path = tmp_path / "navtree.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_all_sections(tmp_path):
    path = write_toml(tmp_path, """
[storage]
path = "/var/lib/navtree/graph.db"

[server]
host = "0.0.0.0"
port = 9100
workers = 2

[logging]
level = "DEBUG"

[display]
max_label_length = 60
""")

    config = load_config(path)

    assert config.storage.path == "/var/lib/navtree/graph.db"
    assert (config.server.host, config.server.port, config.server.workers) == ("0.0.0.0", 9100, 2)
    assert config.logging.level == "DEBUG"
    assert config.display.max_label_length == 60


def test_missing_sections_use_defaults(tmp_path):
    config = load_config(write_toml(tmp_path, '[server]\nport = 9000\n'))

    assert config.server.port == 9000
    assert config.server.host == "127.0.0.1"
    assert config.storage.path == "data/navtree.db"
    assert config.display.max_label_length == 80


def test_missing_file_warns_and_uses_defaults(tmp_path):
    with pytest.warns(UserWarning, match="Failed to load config"):
        config = load_config(tmp_path / "absent.toml")

    assert config == AppConfig()


def test_malformed_toml_warns(tmp_path):
    with pytest.warns(UserWarning):
        config = load_config(write_toml(tmp_path, "[server\nport = "))

    assert config == AppConfig()


def test_wrong_types_warn_and_use_defaults(tmp_path):
    with pytest.warns(UserWarning, match="Invalid configuration"):
        config = load_config(write_toml(tmp_path, '[server]\nport = "eighty"\n'))

    assert config.server.port == 8000


def test_environment_variable_selects_file(tmp_path, monkeypatch):
    path = write_toml(tmp_path, '[logging]\nlevel = "WARNING"\n')
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert load_config().logging.level == "WARNING"


def test_bundled_config_is_valid(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

    config = load_config(DEFAULT_CONFIG_PATH)

    assert config.server.port == 8000
    assert config.storage.path == "data/navtree.db"
