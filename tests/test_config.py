#!/usr/bin/env python3
"""Tests for settings loading and validation."""

import pytest

from aulasync.api.exceptions import AulaSyncConfigError
from aulasync.config import (
	get_app_config,
	load_settings,
	merge_settings,
	validate_backend_settings,
	validate_professor_name,
)
from aulasync.const import DEFAULT_FIREBASE_BASE_PATH, DEFAULT_STATE_FILE
from aulasync.models import Settings


def test_load_settings_from_mapping_with_defaults():
	settings = load_settings(environ={
		"AULASYNC_PROFESSOR_NAME": "  Juan Gómez ",
		"AULASYNC_API_URL": "https://host/sync.php",
		"AULASYNC_API_KEY": "k",
		"AULASYNC_OAUTH_REDIRECT_PORT": "8765",
		"AULASYNC_API_EXTRA": "ignored",
	})
	assert settings.professor_name == "Juan Gómez"
	assert settings.oauth_redirect_port == 8765
	assert settings.oauth_redirect_host == "localhost"
	assert settings.firebase_base_path == DEFAULT_FIREBASE_BASE_PATH
	assert settings.google_client_id == ""


def test_load_settings_from_dotenv_file(tmp_path, monkeypatch):
	monkeypatch.delenv("AULASYNC_PROFESSOR_NAME", raising=False)
	env_file = tmp_path / ".env"
	env_file.write_text("AULASYNC_PROFESSOR_NAME=Eva Ruiz\n", encoding="utf-8")
	assert load_settings(str(env_file)).professor_name == "Eva Ruiz"


def test_invalid_port_is_a_config_error():
	with pytest.raises(AulaSyncConfigError):
		load_settings(environ={"AULASYNC_OAUTH_REDIRECT_PORT": "abc"})


def test_environment_wins_over_stored_settings():
	primary = Settings(professor_name="Env", api_key="")
	stored = Settings(professor_name="Stored", api_key="stored-key", oauth_redirect_port=9000)
	merged = merge_settings(primary, stored)
	assert merged.professor_name == "Env"
	assert merged.api_key == "stored-key"
	assert merged.oauth_redirect_port == 9000


def test_stored_firebase_settings_replace_schema_defaults():
	primary = load_settings(environ={"AULASYNC_PROFESSOR_NAME": "Env"})
	assert primary.firebase_base_path == DEFAULT_FIREBASE_BASE_PATH
	stored = Settings(firebase_project_id="otro-planificador", firebase_base_path="escuelas/norte")
	merged = merge_settings(primary, stored)
	assert merged.professor_name == "Env"
	assert merged.firebase_project_id == "otro-planificador"
	assert merged.firebase_base_path == "escuelas/norte"


def test_professor_name_validation():
	with pytest.raises(AulaSyncConfigError) as excinfo:
		validate_professor_name(Settings(professor_name="Nombre del Profesor"))
	assert str(excinfo.value) == "Escribe tu nombre en Configuración."
	assert validate_professor_name(Settings(professor_name=" Juan ")) == "Juan"


def test_backend_settings_validation():
	complete = Settings(professor_name="Juan", api_url="https://h/s.php", api_key="k")
	assert validate_backend_settings(complete) == "Juan"
	for missing in ("professor_name", "api_url", "api_key"):
		values = {"professor_name": "Juan", "api_url": "https://h/s.php", "api_key": "k", missing: ""}
		with pytest.raises(AulaSyncConfigError):
			validate_backend_settings(Settings(**values))


def test_app_config():
	assert get_app_config({}).state_file == DEFAULT_STATE_FILE
	config = get_app_config({"LOG_LEVEL": "debug", "AULASYNC_STATE_FILE": "/tmp/s.json"})
	assert config.log_level == "DEBUG"
	assert config.state_file == "/tmp/s.json"
	assert get_app_config({"LOG_LEVEL": "loud"}).log_level == "INFO"
