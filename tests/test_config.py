"""Tests for configuration loading."""

import pytest

from alert2snow.core.config import build_settings, load_config

REQUIRED_ENV = {
    "SERVICENOW_BASE_URL": "https://snow.example.com/",
    "SERVICENOW_USERNAME": "user",
    "SERVICENOW_PASSWORD": "secret",
}


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_from_environment_only(tmp_path):
    # point CONFIG_FILE at an empty file so a local config.yaml is never read
    environ = dict(REQUIRED_ENV, CONFIG_FILE=_write(tmp_path, ""))

    _, settings = load_config(environ)

    snow = settings.servicenow
    assert snow.base_url == "https://snow.example.com"
    assert snow.endpoint_path == "/api/now/table/incident"
    assert snow.category == "software"
    assert snow.subcategory == "openshift"
    assert snow.root_cause == "Environmental"
    assert (snow.impact, snow.urgency) == ("3", "3")
    assert snow.assignment_group == ""
    assert snow.timeout == 30
    assert (snow.retry.max_attempts, snow.retry.base_delay, snow.retry.max_delay) == (3, 1, 10)
    assert settings.server.port == 8080
    assert settings.labels.cluster_key == "cluster"
    assert settings.labels.environment_key == "environment"


def test_yaml_values_and_env_overrides(tmp_path):
    path = _write(
        tmp_path,
        """
servicenow:
  base_url: https://file.example.com
  username: file-user
  password: file-pass
  category: infrastructure
  retry:
    max_attempts: 5
server:
  port: 9090
labels:
  cluster_key: k8s_cluster
logging:
  log_dir: ""
  level: DEBUG
""",
    )
    environ = {"CONFIG_FILE": path, "SERVICENOW_PASSWORD": "env-pass", "HTTP_PORT": "8081"}

    raw, settings = load_config(environ)

    assert raw["servicenow"]["category"] == "infrastructure"
    assert settings.servicenow.base_url == "https://file.example.com"
    assert settings.servicenow.password == "env-pass"
    assert settings.servicenow.retry.max_attempts == 5
    assert settings.server.port == 8081
    assert settings.labels.cluster_key == "k8s_cluster"
    assert settings.logging.log_dir == ""
    assert settings.logging.level == "DEBUG"


def test_missing_required_values(tmp_path):
    environ = {"CONFIG_FILE": _write(tmp_path, ""), "SERVICENOW_BASE_URL": "https://x"}

    with pytest.raises(ValueError) as exc_info:
        load_config(environ)

    assert "SERVICENOW_USERNAME" in str(exc_info.value)
    assert "SERVICENOW_PASSWORD" in str(exc_info.value)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config({"CONFIG_FILE": str(tmp_path / "absent.yaml")})


@pytest.mark.parametrize(
    "retry",
    [{"max_attempts": 0}, {"base_delay_seconds": -1}, {"max_delay_seconds": "soon"}],
)
def test_invalid_retry_values(retry):
    raw = {
        "servicenow": {
            "base_url": "https://x",
            "username": "u",
            "password": "p",
            "retry": retry,
        }
    }
    with pytest.raises(ValueError):
        build_settings(raw)
