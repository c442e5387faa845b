from pathlib import Path

import pytest

from ortty.config import ConfigurationError, RPCConfig, load_rpc_config


def test_load_rpc_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        rpc:
          user: file_user
          password: file_pass
          host: filehost
          port: 1111
          use_https: false
        """
    )

    env_map = {
        "BITCOIN_USER": "env_user",
        "BITCOIN_PASS": "env_pass",
        "BITCOIN_HOST": "https://envhost:3333",
    }

    config = load_rpc_config(config_path=config_path, env=env_map)

    assert isinstance(config, RPCConfig)
    assert config.user == "env_user"
    assert config.password == "env_pass"
    assert config.host == "envhost"
    assert config.port == 3333
    assert config.use_https is True
    assert config.base_url == "https://envhost:3333"


def test_environment_host_and_port_beat_yaml_endpoint(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        rpc:
          endpoint: http://filehost:1111
          user: file_user
          password: file_pass
        """
    )

    config = load_rpc_config(
        config_path=config_path,
        env={"BITCOIN_HOST": "envhost", "BITCOIN_PORT": "2222"},
    )

    assert config.host == "envhost"
    assert config.port == 2222
    assert config.base_url == "http://envhost:2222"
    assert config.user == "file_user"


def test_yaml_endpoint_used_when_environment_is_silent(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        rpc:
          endpoint: https://filehost:1111
          host: ignored
          user: file_user
          password: file_pass
        """
    )

    config = load_rpc_config(config_path=config_path, env={})

    assert config.host == "filehost"
    assert config.port == 1111
    assert config.use_https is True


def test_load_rpc_config_reads_yaml_when_env_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / ".ortty.yaml"
    monkeypatch.setattr("ortty.config.DEFAULT_CONFIG_PATH", config_path)

    config_path.write_text(
        """
        rpc:
          user: yaml_user
          password: yaml_pass
          host: yamlhost
          port: 4545
          use_https: false
        """
    )

    config = load_rpc_config(env={})

    assert config.user == "yaml_user"
    assert config.password == "yaml_pass"
    assert config.host == "yamlhost"
    assert config.port == 4545
    assert config.use_https is False
    assert config.auth() == ("yaml_user", "yaml_pass")


def test_load_rpc_config_overrides_win(tmp_path: Path) -> None:
    env_map = {"BITCOIN_USER": "env_user", "BITCOIN_PASS": "env_pass", "BITCOIN_PORT": "18443"}

    config = load_rpc_config(
        env=env_map,
        config_path=_empty_config(tmp_path),
        overrides={"host": "node.local", "port": None, "user": "cli_user"},
    )

    assert config.host == "node.local"
    assert config.port == 18443
    assert config.user == "cli_user"
    assert config.password == "env_pass"


def test_cookie_file_supplies_credentials(tmp_path: Path) -> None:
    cookie = tmp_path / ".cookie"
    cookie.write_text("__cookie__:s3cret\n")

    config = load_rpc_config(config_path=_empty_config(tmp_path), env={"BITCOIN_COOKIE": str(cookie)})

    assert config.cookie_file == cookie
    assert config.auth() == ("__cookie__", "s3cret")


def test_unreadable_cookie_file_is_a_configuration_error(tmp_path: Path) -> None:
    config = RPCConfig(cookie_file=tmp_path / "missing.cookie")

    with pytest.raises(ConfigurationError):
        config.auth()


def test_load_rpc_config_requires_credentials(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("rpc: {}\n")

    with pytest.raises(ConfigurationError):
        load_rpc_config(config_path=config_path, env={})


def test_load_rpc_config_rejects_bad_port(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_rpc_config(
            config_path=_empty_config(tmp_path),
            env={"BITCOIN_USER": "u", "BITCOIN_PASS": "p", "BITCOIN_PORT": "eighty"},
        )


def test_explicit_missing_config_path_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_rpc_config(config_path=tmp_path / "nope.yaml", env={"BITCOIN_USER": "u", "BITCOIN_PASS": "p"})


def _empty_config(tmp_path: Path) -> Path:
    path = tmp_path / "empty.yaml"
    path.write_text("")
    return path
