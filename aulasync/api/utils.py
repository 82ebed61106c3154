"""Helpers shared by the aulasync clients and reconciliation code."""

import logging
import unicodedata
from datetime import date
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from ..const import SCRIPT_EXTENSIONS
from .exceptions import AulaSyncConfigError

_LOGGER = logging.getLogger(__name__)


def normalize_for_match(text: Optional[str]) -> str:
	"""Normalise a free-text name into a comparison key.

	Lowercases, strips diacritics and collapses whitespace, so that
	"  ANA MARÍA " and "ana maria" produce the same key.
	"""
	if not text:
		return ""
	decomposed = unicodedata.normalize("NFD", str(text))
	stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
	return " ".join(stripped.lower().split())


def names_match(left: Optional[str], right: Optional[str]) -> bool:
	"""Exact match on normalised names; empty names never match."""
	left_key = normalize_for_match(left)
	return bool(left_key) and left_key == normalize_for_match(right)


def names_overlap(left: Optional[str], right: Optional[str]) -> bool:
	"""Containment in either direction on normalised names."""
	left_key = normalize_for_match(left)
	right_key = normalize_for_match(right)
	if not left_key or not right_key:
		return False
	return left_key in right_key or right_key in left_key


def sanitize_api_url(api_url: str) -> str:
	"""Drop path segments saved after the backend script.

	"https://host/api/sync.php/extra/bits" becomes "https://host/api/sync.php".
	URLs without a script segment are returned unchanged.
	"""
	if not api_url or not api_url.strip():
		raise AulaSyncConfigError("API URL is empty")

	parts = urlsplit(api_url.strip())
	if parts.scheme not in ("http", "https") or not parts.netloc:
		raise AulaSyncConfigError(f"Invalid API URL: {api_url!r}")

	segments = parts.path.split("/")
	for index, segment in enumerate(segments):
		if segment.lower().endswith(SCRIPT_EXTENSIONS):
			path = "/".join(segments[:index + 1])
			if path != parts.path:
				_LOGGER.debug(f"Truncated API path {parts.path!r} to {path!r}")
			return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))

	return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def format_date(value: date) -> str:
	"""Format a date the way attendance keys store it (YYYY-MM-DD)."""
	return value.strftime("%Y-%m-%d")
