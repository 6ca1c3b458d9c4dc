import pytest

from shopreg import config as config_module
from shopreg.config import load_config, reload_config


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setenv("SHOPREG_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    for name in (
        "SHOPREG_HOST",
        "SHOPREG_USER_PORT",
        "SHOPREG_ORDER_PORT",
        "SHOPREG_ORACLE_MODE",
        "SHOPREG_USER_SERVICE_URL",
        "SHOPREG_ORACLE_TIMEOUT_SECONDS",
        "SHOPREG_ORACLE_RETRIES",
        "SHOPREG_ORACLE_FAIL_OPEN",
        "SHOPREG_USER_LOG",
        "SHOPREG_ORDER_LOG",
    ):
        monkeypatch.delenv(name, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def test_defaults_without_file():
    config = load_config()

    assert config == config_module.DEFAULT_CONFIG
    assert config is not config_module.DEFAULT_CONFIG


def test_yaml_file_is_deep_merged(monkeypatch: pytest.MonkeyPatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  order_port: 9999\noracle:\n  fail_open: true\n", encoding="utf-8")
    monkeypatch.setenv("SHOPREG_CONFIG_FILE", str(path))

    config = reload_config()

    assert config["server"]["order_port"] == 9999
    assert config["server"]["user_port"] == 8081
    assert config["oracle"]["fail_open"] is True
    assert config["oracle"]["mode"] == "remote"


def test_env_overrides_win_over_file(monkeypatch: pytest.MonkeyPatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("oracle:\n  user_service_url: http://from-file:1\n", encoding="utf-8")
    monkeypatch.setenv("SHOPREG_CONFIG_FILE", str(path))
    monkeypatch.setenv("SHOPREG_USER_SERVICE_URL", "http://users.internal:8081")
    monkeypatch.setenv("SHOPREG_ORACLE_TIMEOUT_SECONDS", "0.5")
    monkeypatch.setenv("SHOPREG_ORACLE_RETRIES", "0")
    monkeypatch.setenv("SHOPREG_ORACLE_FAIL_OPEN", "yes")
    monkeypatch.setenv("SHOPREG_USER_PORT", "7001")
    monkeypatch.setenv("SHOPREG_ORDER_LOG", "")

    config = reload_config()

    assert config["oracle"]["user_service_url"] == "http://users.internal:8081"
    assert config["oracle"]["timeout_seconds"] == 0.5
    assert config["oracle"]["retries"] == 0
    assert config["oracle"]["fail_open"] is True
    assert config["server"]["user_port"] == 7001
    assert config["logging"]["order_log"] == ""


def test_load_config_is_cached():
    assert load_config() is load_config()


def test_invalid_yaml_root_raises(monkeypatch: pytest.MonkeyPatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- not\n- a mapping\n", encoding="utf-8")
    monkeypatch.setenv("SHOPREG_CONFIG_FILE", str(path))

    with pytest.raises(ValueError, match="expected mapping"):
        reload_config()


def test_invalid_oracle_mode_raises(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SHOPREG_ORACLE_MODE", "carrier-pigeon")

    with pytest.raises(ValueError, match="oracle.mode"):
        reload_config()
