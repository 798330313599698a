"""
Config system (config.py)

Tests ConduitConfig validation and ConfigLoader layering:
defaults < YAML file < .env < environment < overrides.
"""

import pytest

from conduit.config import ConduitConfig, ConfigLoader
from conduit.faults import ConfigurationFault


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test in an empty directory so no stray conduit.yaml or .env is read."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ============================================================================
# ConduitConfig
# ============================================================================

class TestConduitConfig:

    def test_defaults(self):
        config = ConduitConfig()
        assert config.mode == "production"
        assert config.max_forward_depth == 10
        assert config.request_timeout is None
        assert config.routes_file is None
        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.log_level == "INFO"

    def test_validate_normalizes_log_level(self):
        assert ConduitConfig(log_level="debug").validate().log_level == "DEBUG"

    @pytest.mark.parametrize("kwargs", [
        {"mode": "staging"},
        {"max_forward_depth": -1},
        {"request_timeout": 0},
        {"port": 0},
        {"port": 70000},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationFault):
            ConduitConfig(**kwargs).validate()

    def test_to_dict(self):
        assert ConduitConfig().to_dict()["port"] == 8000


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_defaults_only(self):
        config = ConfigLoader.load(environ={})
        assert config == ConduitConfig()

    def test_yaml_file(self, isolated_cwd):
        path = isolated_cwd / "settings.yaml"
        path.write_text("mode: development\nport: 9000\nrequest_timeout: 2.5\n")

        config = ConfigLoader.load(path=str(path), environ={})

        assert config.mode == "development"
        assert config.port == 9000
        assert config.request_timeout == 2.5

    def test_default_yaml_file_picked_up(self, isolated_cwd):
        (isolated_cwd / "conduit.yaml").write_text("max_forward_depth: 4\n")
        assert ConfigLoader.load(environ={}).max_forward_depth == 4

    def test_explicit_missing_file(self):
        with pytest.raises(ConfigurationFault):
            ConfigLoader.load(path="missing.yaml", environ={})

    def test_invalid_yaml(self, isolated_cwd):
        path = isolated_cwd / "bad.yaml"
        path.write_text("mode: [unclosed")
        with pytest.raises(ConfigurationFault):
            ConfigLoader.load(path=str(path), environ={})

    def test_yaml_must_be_mapping(self, isolated_cwd):
        path = isolated_cwd / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationFault):
            ConfigLoader.load(path=str(path), environ={})

    def test_unknown_key(self, isolated_cwd):
        path = isolated_cwd / "extra.yaml"
        path.write_text("workers: 4\n")
        with pytest.raises(ConfigurationFault) as exc_info:
            ConfigLoader.load(path=str(path), environ={})
        assert exc_info.value.metadata == {"keys": ["workers"]}

    def test_unknown_override_key(self):
        with pytest.raises(ConfigurationFault):
            ConfigLoader.load(environ={}, overrides={"workers": 4})

    def test_unrelated_prefixed_variables_ignored(self, isolated_cwd):
        (isolated_cwd / ".env").write_text("CONDUIT_SECRET=s3cret\nCONDUIT_PORT=7100\n")
        config = ConfigLoader.load(environ={"CONDUIT_API_KEY": "abc", "CONDUIT_MODE": "development"})

        assert config.port == 7100
        assert config.mode == "development"
        assert "api_key" not in config.to_dict()

    def test_env_file(self, isolated_cwd):
        (isolated_cwd / ".env").write_text(
            "CONDUIT_PORT=7000\nCONDUIT_MODE=development\nOTHER_SETTING=ignored\n"
        )
        config = ConfigLoader.load(environ={})
        assert config.port == 7000
        assert config.mode == "development"

    def test_environment_variables(self):
        config = ConfigLoader.load(environ={
            "CONDUIT_MAX_FORWARD_DEPTH": "3",
            "CONDUIT_REQUEST_TIMEOUT": "1.5",
            "CONDUIT_ROUTES_FILE": "routes.yaml",
            "UNRELATED": "x",
        })
        assert config.max_forward_depth == 3
        assert config.request_timeout == 1.5
        assert config.routes_file == "routes.yaml"

    def test_environment_none_value(self):
        config = ConfigLoader.load(environ={"CONDUIT_REQUEST_TIMEOUT": "none"})
        assert config.request_timeout is None

    def test_integer_timeout_becomes_float(self):
        config = ConfigLoader.load(environ={"CONDUIT_REQUEST_TIMEOUT": "5"})
        assert config.request_timeout == 5.0
        assert isinstance(config.request_timeout, float)

    def test_non_numeric_port(self):
        with pytest.raises(ConfigurationFault):
            ConfigLoader.load(environ={"CONDUIT_PORT": "http"})

    def test_precedence(self, isolated_cwd):
        (isolated_cwd / "conduit.yaml").write_text("port: 1000\nhost: 0.0.0.0\nmode: development\n")
        (isolated_cwd / ".env").write_text("CONDUIT_PORT=2000\nCONDUIT_HOST=10.0.0.1\n")

        config = ConfigLoader.load(
            environ={"CONDUIT_PORT": "3000"},
            overrides={"port": 4000, "host": None},
        )

        assert config.mode == "development"  # yaml
        assert config.host == "10.0.0.1"     # .env, None override skipped
        assert config.port == 4000           # override

    def test_env_beats_env_file(self, isolated_cwd):
        (isolated_cwd / ".env").write_text("CONDUIT_PORT=2000\n")
        assert ConfigLoader.load(environ={"CONDUIT_PORT": "3000"}).port == 3000

    def test_custom_prefix(self):
        config = ConfigLoader.load(env_prefix="APP_", environ={"APP_PORT": "5000", "CONDUIT_PORT": "1"})
        assert config.port == 5000
