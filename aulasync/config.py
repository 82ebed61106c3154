"""Settings loading and validation."""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import voluptuous as vol
from dotenv import load_dotenv

from .api.exceptions import AulaSyncConfigError
from .const import (
	CONF_API_KEY,
	CONF_API_URL,
	CONF_FIREBASE_API_KEY,
	CONF_FIREBASE_BASE_PATH,
	CONF_FIREBASE_PROJECT_ID,
	CONF_GOOGLE_CLIENT_ID,
	CONF_GOOGLE_CLIENT_SECRET,
	CONF_LOG_LEVEL,
	CONF_OAUTH_REDIRECT_HOST,
	CONF_OAUTH_REDIRECT_PORT,
	CONF_PROFESSOR_NAME,
	CONF_STATE_FILE,
	DEFAULT_FIREBASE_BASE_PATH,
	DEFAULT_FIREBASE_PROJECT_ID,
	DEFAULT_OAUTH_REDIRECT_HOST,
	DEFAULT_OAUTH_REDIRECT_PORT,
	DEFAULT_PROFESSOR_NAME,
	DEFAULT_STATE_FILE,
	MSG_CONFIGURE_BACKEND,
	MSG_CONFIGURE_PROFESSOR,
)
from .models import Settings

_LOGGER = logging.getLogger(__name__)

# Environment key -> Settings attribute
SETTINGS_KEYS = {
	CONF_PROFESSOR_NAME: "professor_name",
	CONF_API_URL: "api_url",
	CONF_API_KEY: "api_key",
	CONF_GOOGLE_CLIENT_ID: "google_client_id",
	CONF_GOOGLE_CLIENT_SECRET: "google_client_secret",
	CONF_OAUTH_REDIRECT_HOST: "oauth_redirect_host",
	CONF_OAUTH_REDIRECT_PORT: "oauth_redirect_port",
	CONF_FIREBASE_PROJECT_ID: "firebase_project_id",
	CONF_FIREBASE_API_KEY: "firebase_api_key",
	CONF_FIREBASE_BASE_PATH: "firebase_base_path",
}

_text = vol.All(vol.Coerce(str), vol.Strip)

SETTINGS_SCHEMA = vol.Schema(
	{
		vol.Optional(CONF_PROFESSOR_NAME, default=""): _text,
		vol.Optional(CONF_API_URL, default=""): _text,
		vol.Optional(CONF_API_KEY, default=""): _text,
		vol.Optional(CONF_GOOGLE_CLIENT_ID, default=""): _text,
		vol.Optional(CONF_GOOGLE_CLIENT_SECRET, default=""): _text,
		vol.Optional(CONF_OAUTH_REDIRECT_HOST, default=DEFAULT_OAUTH_REDIRECT_HOST): _text,
		vol.Optional(CONF_OAUTH_REDIRECT_PORT, default=DEFAULT_OAUTH_REDIRECT_PORT): vol.All(
			vol.Coerce(int), vol.Range(min=0, max=65535)
		),
		vol.Optional(CONF_FIREBASE_PROJECT_ID, default=DEFAULT_FIREBASE_PROJECT_ID): _text,
		vol.Optional(CONF_FIREBASE_API_KEY, default=""): _text,
		vol.Optional(CONF_FIREBASE_BASE_PATH, default=DEFAULT_FIREBASE_BASE_PATH): _text,
	},
	extra=vol.REMOVE_EXTRA,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AppConfig:
	"""Process-level options of the command line tool."""
	state_file: str = DEFAULT_STATE_FILE
	log_level: str = "INFO"


def _environment_values(environ: Mapping[str, str]) -> Dict[str, Any]:
	# Empty variables count as unset so defaults and stored values apply
	return {key: environ[key] for key in SETTINGS_KEYS if environ.get(key, "").strip()}


def settings_from_mapping(values: Mapping[str, Any]) -> Settings:
	"""Validate raw key/value pairs and build Settings.

	Raises:
		AulaSyncConfigError: When a value has the wrong shape
	"""
	try:
		validated = SETTINGS_SCHEMA(dict(values))
	except vol.Invalid as e:
		raise AulaSyncConfigError(f"Invalid configuration: {e}") from e
	return Settings(**{SETTINGS_KEYS[key]: value for key, value in validated.items()})


def load_settings(env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
	"""Load settings from the environment, reading a .env file first.

	Args:
		env_file: Path of a dotenv file; the default search applies when None
		environ: Mapping to read instead of os.environ

	Returns:
		Validated settings
	"""
	if environ is None:
		load_dotenv(env_file)
		environ = os.environ
	settings = settings_from_mapping(_environment_values(environ))
	_LOGGER.debug(f"Loaded settings for professor {settings.professor_name!r}")
	return settings


def merge_settings(primary: Settings, stored: Settings) -> Settings:
	"""Fill the empty or defaulted fields of ``primary`` from ``stored``."""
	defaults = settings_from_mapping({})
	updates = {}
	for item in fields(Settings):
		value = getattr(primary, item.name)
		if value in ("", None) or value == getattr(defaults, item.name):
			stored_value = getattr(stored, item.name)
			if stored_value not in ("", None):
				updates[item.name] = stored_value
	return replace(primary, **updates)


def get_app_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
	"""Read state file location and log level."""
	environ = os.environ if environ is None else environ
	level = environ.get(CONF_LOG_LEVEL, "INFO").strip().upper() or "INFO"
	if level not in LOG_LEVELS:
		_LOGGER.warning(f"Unknown log level {level!r}, using INFO")
		level = "INFO"
	return AppConfig(
		state_file=environ.get(CONF_STATE_FILE, "").strip() or DEFAULT_STATE_FILE,
		log_level=level,
	)


def validate_professor_name(settings: Settings) -> str:
	"""Return the configured professor name or raise with the user message."""
	name = (settings.professor_name or "").strip()
	if not name or name == DEFAULT_PROFESSOR_NAME:
		raise AulaSyncConfigError(MSG_CONFIGURE_PROFESSOR)
	return name


def validate_backend_settings(settings: Settings) -> str:
	"""Check endpoint, key and professor name before any backend request.

	Returns:
		The professor name
	"""
	name = (settings.professor_name or "").strip()
	if not settings.api_url or not settings.api_key or not name or name == DEFAULT_PROFESSOR_NAME:
		raise AulaSyncConfigError(MSG_CONFIGURE_BACKEND)
	return name
