"""Client for the custom attendance/grades backend."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from ..const import (
	ACTION_GET_ATTENDANCE,
	ACTION_GET_TUTORSHIP,
	ACTION_SYNC_GRADES,
	ACTION_SYNC_TUTORSHIP,
	API_KEY_HEADER,
	REQUEST_TIMEOUT,
)
from .exceptions import AulaSyncAPIError, AulaSyncConfigError, AulaSyncConnectionError, AulaSyncDataError
from .models import AttendanceUpload, GradeUpload, RemoteAttendance, RemoteTutorship, TutorshipUpload, parse_records
from .utils import sanitize_api_url

_LOGGER = logging.getLogger(__name__)


class BackendClient:
	"""Client for the single-endpoint, POST-only sync backend."""

	def __init__(self, api_url: str, api_key: str, session: Optional[aiohttp.ClientSession] = None):
		"""Initialise backend client.

		Args:
			api_url: Endpoint URL as saved in the settings; extra path
				segments after the script name are dropped.
			api_key: Static key sent in the X-API-KEY header.
			session: Optional aiohttp session. If None, one is created on entry.
		"""
		if not api_key:
			raise AulaSyncConfigError("API key is empty")
		self.url = sanitize_api_url(api_url)
		self._api_key = api_key
		self._session = session
		self._own_session = session is None

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

	@property
	def headers(self) -> Dict[str, str]:
		return {
			"Content-Type": "application/json",
			API_KEY_HEADER: self._api_key,
		}

	async def _post(self, body: Any, allow_not_found: bool = False) -> Tuple[int, Any]:
		"""POST a JSON body and decode the JSON answer.

		Args:
			body: JSON-serialisable request body
			allow_not_found: Treat HTTP 404 as an empty answer

		Returns:
			HTTP status and decoded body (None when the body is empty)
		"""
		if self._session is None:
			raise AulaSyncConnectionError("Client not properly initialised")

		try:
			async with self._session.post(self.url, headers=self.headers, data=json.dumps(body)) as resp:
				status = resp.status
				text = await resp.text()
				if allow_not_found and status == 404:
					_LOGGER.debug("Backend answered 404, treating as no records")
					return status, None
				if status < 200 or status >= 300:
					_LOGGER.error(f"Backend error HTTP {status}: {text[:200]}")
					raise AulaSyncAPIError(f"Servidor respondió con error {status}", status=status)
		except aiohttp.ClientError as e:
			raise AulaSyncConnectionError(f"Connection error: {e}") from e
		except asyncio.TimeoutError as e:
			raise AulaSyncConnectionError("Backend request timed out") from e

		if not text.strip():
			return status, None
		try:
			return status, json.loads(text)
		except json.JSONDecodeError as e:
			_LOGGER.error(f"Backend answered non-JSON: {text[:200]}...")
			raise AulaSyncDataError(f"Invalid JSON response from backend: {e}") from e

	async def get_attendance(self, professor_name: str) -> List[RemoteAttendance]:
		"""Get every attendance row stored for a professor.

		Returns:
			List of remote attendance rows; empty when the backend has none
		"""
		_, data = await self._post(
			{"action": ACTION_GET_ATTENDANCE, "profesor_nombre": professor_name},
			allow_not_found=True,
		)
		if isinstance(data, dict):
			data = data.get("data", [])
		rows = parse_records(RemoteAttendance, data, "attendance row")
		_LOGGER.debug(f"Backend holds {len(rows)} attendance rows for {professor_name!r}")
		return rows

	async def push_attendance(self, records: List[AttendanceUpload]) -> None:
		"""Write attendance rows in one request (raw JSON array body)."""
		_LOGGER.info(f"Pushing {len(records)} attendance records")
		await self._post([record.as_payload() for record in records])

	async def push_grades(self, records: List[GradeUpload]) -> None:
		"""Write grades in one request."""
		_LOGGER.info(f"Pushing {len(records)} grades")
		await self._post({
			"action": ACTION_SYNC_GRADES,
			"data": [record.as_payload() for record in records],
		})

	async def get_tutorship(self, professor_name: str) -> Tuple[List[RemoteTutorship], Dict[str, str]]:
		"""Get the tutorship notes and group tutors visible to a professor.

		Returns:
			Notes and a mapping of remote group name to tutor name
		"""
		_, data = await self._post(
			{"action": ACTION_GET_TUTORSHIP, "profesor_nombre": professor_name},
			allow_not_found=True,
		)
		if data is None:
			return [], {}
		if not isinstance(data, dict):
			raise AulaSyncDataError(f"Unexpected tutorship response: {type(data).__name__}")

		rows = parse_records(RemoteTutorship, data.get("tutorshipData") or [], "tutorship row")
		tutors = data.get("groupTutors") or {}
		if not isinstance(tutors, dict):
			raise AulaSyncDataError("groupTutors must be an object")
		return rows, {str(name): str(tutor) for name, tutor in tutors.items() if tutor}

	async def push_tutorship(self, records: List[TutorshipUpload], group_tutors: Dict[str, str],
							professor_name: str) -> None:
		"""Write tutorship notes in one request."""
		_LOGGER.info(f"Pushing {len(records)} tutorship notes")
		await self._post({
			"action": ACTION_SYNC_TUTORSHIP,
			"data": [record.as_payload() for record in records],
			"groupTutors": group_tutors,
			"profesor_nombre": professor_name,
		})
