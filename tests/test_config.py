"""
Tests for configuration loading.
"""

import os

import pytest

from specgen_orchestrator.config import OrchestratorConfig, load_config
from specgen_orchestrator.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("SPECGEN_") or name.upper() == "USE_MOCK_SERVICES":
            monkeypatch.delenv(name)


def set_environment(monkeypatch, environ):
    for name, value in environ.items():
        monkeypatch.setenv(name, value)


def write_config(tmp_path, text):
    path = tmp_path / "specgen.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    config = load_config()

    assert config == OrchestratorConfig()
    assert config.generation.provider == "fake"
    assert config.storage.status_store == "memory"
    assert config.workflow.max_attempts == 3
    assert config.workflow.cancel_siblings_on_failure is False
    assert config.max_input_chars == 20000


def test_yaml_file_and_environment(tmp_path, monkeypatch):
    """Environment variables override the file key by key within a section."""
    path = write_config(tmp_path, """
generation:
  provider: http
  endpoint: https://generation.example.com/v1/converse
  temperature: 0.2
workflow:
  max_attempts: 5
  jitter: false
logging:
  level: debug
""")
    set_environment(monkeypatch, {
        "SPECGEN_WORKFLOW__MAX_ATTEMPTS": "2",
        "SPECGEN_MAX_INPUT_CHARS": "500",
        "SPECGEN_STORAGE__BLOB_ROOT": ""
    })

    config = load_config(path)

    assert config.generation.provider == "http"
    assert config.generation.temperature == 0.2
    assert config.workflow.max_attempts == 2
    assert config.workflow.jitter is False
    assert config.max_input_chars == 500
    assert config.logging.level == "DEBUG"
    assert config.storage.blob_root == "./artifacts"


def test_use_mock_services_forces_fake_engine(tmp_path, monkeypatch):
    path = write_config(tmp_path, "generation:\n  provider: http\n  endpoint: https://generation.example.com\n")
    set_environment(monkeypatch, {"USE_MOCK_SERVICES": "true", "SPECGEN_GENERATION__PROVIDER": "http"})

    config = load_config(path)

    assert config.generation.provider == "fake"


@pytest.mark.parametrize("environ, key", [
    ({"SPECGEN_WORKFLOW__MAX_ATTEMPTS": "zero"}, "workflow.max_attempts"),
    ({"SPECGEN_GENERATION__PROVIDER": "bedrock"}, "generation.provider"),
    ({"SPECGEN_LOGGING__LEVEL": "chatty"}, "logging.level"),
    ({"SPECGEN_GENERATION__PROVIDER": "http"}, "generation.endpoint"),
    ({"SPECGEN_STORAGE__STATUS_STORE": "postgres"}, "storage.database_url"),
])
def test_invalid_settings(monkeypatch, environ, key):
    set_environment(monkeypatch, environ)

    with pytest.raises(ConfigurationError) as exc_info:
        load_config()
    assert exc_info.value.details["config_key"] == key


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize("text", ["generation: [unclosed", "- just\n- a list\n"])
def test_malformed_file(tmp_path, text):
    with pytest.raises(ConfigurationError):
        load_config(write_config(tmp_path, text))


def test_empty_file_uses_defaults(tmp_path):
    assert load_config(write_config(tmp_path, "")) == OrchestratorConfig()
