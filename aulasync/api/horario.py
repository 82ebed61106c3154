"""Client for the Firestore-backed schedule planner."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..const import (
	COLLECTION_GROUPS,
	COLLECTION_SCHEDULE,
	COLLECTION_SUBJECTS,
	COLLECTION_TEACHERS,
	DEFAULT_FIREBASE_BASE_PATH,
	FIRESTORE_BASE_URL,
	FIRESTORE_PAGE_SIZE,
	REQUEST_TIMEOUT,
	UNKNOWN_GROUP,
	UNKNOWN_SUBJECT,
)
from .exceptions import AulaSyncAPIError, AulaSyncConfigError, AulaSyncConnectionError, AulaSyncDataError
from .models import ScheduleEntry

_LOGGER = logging.getLogger(__name__)


def decode_value(value: Dict[str, Any]) -> Any:
	"""Convert a Firestore REST typed value into a plain Python value."""
	if "stringValue" in value:
		return value["stringValue"]
	if "integerValue" in value:
		return int(value["integerValue"])
	if "doubleValue" in value:
		return float(value["doubleValue"])
	if "booleanValue" in value:
		return bool(value["booleanValue"])
	if "nullValue" in value:
		return None
	if "timestampValue" in value:
		return value["timestampValue"]
	if "referenceValue" in value:
		return value["referenceValue"]
	if "mapValue" in value:
		return decode_fields(value["mapValue"].get("fields", {}))
	if "arrayValue" in value:
		return [decode_value(item) for item in value["arrayValue"].get("values", [])]
	_LOGGER.debug(f"Unsupported Firestore value: {value}")
	return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
	return {name: decode_value(value) for name, value in fields.items()}


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
	"""Flatten a Firestore document into its fields plus an ``id`` key."""
	try:
		name = document["name"]
	except KeyError as e:
		raise AulaSyncDataError("Firestore document without a name") from e
	data = decode_fields(document.get("fields", {}))
	data["id"] = name.rsplit("/", 1)[-1]
	return data


def _as_int(value: Any) -> Optional[int]:
	try:
		return int(value) if value is not None else None
	except (TypeError, ValueError):
		_LOGGER.warning(f"Ignoring non-numeric schedule value: {value!r}")
		return None


class ScheduleClient:
	"""Reads teachers, classes, subjects and groups from the planner database."""

	def __init__(self, project_id: str, api_key: str, base_path: str = DEFAULT_FIREBASE_BASE_PATH,
				session: Optional[aiohttp.ClientSession] = None, base_url: str = FIRESTORE_BASE_URL):
		"""Initialise schedule client.

		Args:
			project_id: Firebase project id of the planner
			api_key: Public web API key of the planner
			base_path: Document path holding the planner collections
			session: Optional aiohttp session. If None, one is created on entry.
			base_url: Firestore REST root, overridable for tests
		"""
		if not project_id or not api_key:
			raise AulaSyncConfigError("Firebase project id and API key are required")
		self.project_id = project_id
		self._api_key = api_key
		self.base_path = base_path.strip("/")
		self._session = session
		self._own_session = session is None
		self.documents_url = f"{base_url.rstrip('/')}/projects/{project_id}/databases/(default)/documents"

	async def __aenter__(self):
		"""Async context manager entry."""
		if self._own_session:
			self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT))
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		"""Async context manager exit."""
		if self._own_session and self._session:
			await self._session.close()
			self._session = None

	async def _request(self, method: str, url: str, params: Dict[str, Any], body: Any = None) -> Any:
		if self._session is None:
			raise AulaSyncConnectionError("Client not properly initialised")

		query = dict(params)
		query["key"] = self._api_key
		try:
			async with self._session.request(method, url, params=query, json=body) as resp:
				if resp.status != 200:
					text = await resp.text()
					_LOGGER.error(f"Firestore error HTTP {resp.status}: {text[:200]}")
					raise AulaSyncAPIError(f"Firestore request failed: HTTP {resp.status}", status=resp.status)
				try:
					return await resp.json()
				except (aiohttp.ContentTypeError, ValueError) as e:
					raise AulaSyncDataError("Invalid JSON response from Firestore") from e
		except aiohttp.ClientError as e:
			raise AulaSyncConnectionError(f"Connection error: {e}") from e
		except asyncio.TimeoutError as e:
			raise AulaSyncConnectionError("Firestore request timed out") from e

	async def query_equal(self, collection: str, field_path: str, value: Any) -> List[Dict[str, Any]]:
		"""Documents of a collection whose field equals a value."""
		if isinstance(value, bool):
			typed = {"booleanValue": value}
		elif isinstance(value, int):
			typed = {"integerValue": str(value)}
		else:
			typed = {"stringValue": str(value)}

		body = {
			"structuredQuery": {
				"from": [{"collectionId": collection}],
				"where": {
					"fieldFilter": {
						"field": {"fieldPath": field_path},
						"op": "EQUAL",
						"value": typed,
					}
				},
			}
		}
		data = await self._request("POST", f"{self.documents_url}/{self.base_path}:runQuery", {}, body)
		if not isinstance(data, list):
			raise AulaSyncDataError("Unexpected runQuery response")
		# Result rows without a document only carry the read time
		return [decode_document(row["document"]) for row in data if isinstance(row, dict) and "document" in row]

	async def list_collection(self, collection: str) -> List[Dict[str, Any]]:
		"""Every document of a collection, following page tokens."""
		url = f"{self.documents_url}/{self.base_path}/{collection}"
		params: Dict[str, Any] = {"pageSize": FIRESTORE_PAGE_SIZE}
		documents: List[Dict[str, Any]] = []
		while True:
			data = await self._request("GET", url, params)
			if not isinstance(data, dict):
				raise AulaSyncDataError(f"Unexpected listing of {collection}")
			documents.extend(decode_document(document) for document in data.get("documents", []))
			token = data.get("nextPageToken")
			if not token:
				return documents
			params["pageToken"] = token

	async def find_teacher_id(self, professor_name: str) -> str:
		"""Resolve a teacher id by short name, falling back to full name."""
		teachers = await self.query_equal(COLLECTION_TEACHERS, "name", professor_name)
		if not teachers:
			_LOGGER.debug(f"No teacher named {professor_name!r}, trying fullName")
			teachers = await self.query_equal(COLLECTION_TEACHERS, "fullName", professor_name)
		if not teachers:
			raise AulaSyncDataError(f'No se encontró al profesor "{professor_name}" en Firebase.')
		return teachers[0]["id"]

	async def get_full_schedule(self, professor_name: str) -> List[ScheduleEntry]:
		"""Get a teacher's classes joined with subject and group names.

		Returns:
			Schedule entries; empty when the teacher has no classes
		"""
		teacher_id = await self.find_teacher_id(professor_name)
		classes = await self.query_equal(COLLECTION_SCHEDULE, "teacherId", teacher_id)
		if not classes:
			_LOGGER.info(f"Teacher {professor_name!r} has no scheduled classes")
			return []

		subjects = {doc["id"]: doc.get("name") for doc in await self.list_collection(COLLECTION_SUBJECTS)}
		groups = {doc["id"]: doc.get("name") for doc in await self.list_collection(COLLECTION_GROUPS)}

		entries = []
		for item in classes:
			entries.append(ScheduleEntry(
				id=item["id"],
				day=str(item.get("day") or ""),
				start_time=_as_int(item.get("startTime")),
				duration=_as_int(item.get("duration")),
				subject_name=subjects.get(item.get("subjectId")) or UNKNOWN_SUBJECT,
				group_name=groups.get(item.get("groupId")) or UNKNOWN_GROUP,
			))
		_LOGGER.info(f"Loaded {len(entries)} scheduled classes for {professor_name!r}")
		return entries
