"""Unit tests for server configuration and admin token policy"""
import pytest

from sensorboard.core.config import (
    ServerConfig, admin_token_path, apply_env_defaults, load_config_from, resolve_admin_token,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("INFLUX_URL", "INFLUX_TOKEN", "INFLUX_ORG"):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the working directory out of the picture
    monkeypatch.setattr("sensorboard.core.config.load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


class TestLoadConfig:

    def test_yaml_values(self, tmp_path, clean_env):
        path = tmp_path / "config.yaml"
        path.write_text(
            "port: 4000\n"
            "mock_data_fallback: true\n"
            "influx:\n"
            "  url: http://influx:8086\n"
            "  token: yaml-token\n"
        )

        config = load_config_from(str(path))

        assert config.port == 4000
        assert config.mock_data_fallback is True
        assert config.influx.url == "http://influx:8086"
        assert config.influx.token == "yaml-token"

    def test_defaults(self, tmp_path, clean_env):
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = load_config_from(str(path))

        assert config.default_measurement == "home_pt"
        assert config.value_field == "value"
        assert config.reserved_bucket_prefix == "_"
        assert config.mock_data_fallback is False

    def test_env_fills_blank_credentials(self, clean_env):
        clean_env.setenv("INFLUX_URL", "http://env:8086")
        clean_env.setenv("INFLUX_TOKEN", "env-token")

        config = apply_env_defaults(ServerConfig())

        assert config.influx.url == "http://env:8086"
        assert config.influx.token == "env-token"
        assert config.influx.org == ""

    def test_yaml_wins_over_env(self, clean_env):
        clean_env.setenv("INFLUX_TOKEN", "env-token")

        config = apply_env_defaults(ServerConfig(influx={"token": "yaml-token"}))

        assert config.influx.token == "yaml-token"


class TestAdminToken:
    """auth_dir/admin_token policy"""

    def test_token_read_from_file(self, tmp_path):
        config = ServerConfig(auth_dir=str(tmp_path))
        admin_token_path(config).write_text("secret-admin\n")

        assert resolve_admin_token(config) == "secret-admin"

    def test_missing_token_fails_in_production(self, tmp_path):
        with pytest.raises(RuntimeError):
            resolve_admin_token(ServerConfig(auth_dir=str(tmp_path), test_mode=False))

    def test_missing_token_generated_in_test_mode(self, tmp_path):
        token = resolve_admin_token(ServerConfig(auth_dir=str(tmp_path), test_mode=True))

        assert len(token) >= 24
