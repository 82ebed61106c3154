"""Client for the Google Classroom REST API."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..const import CLASSROOM_BASE_URL, REQUEST_TIMEOUT
from .exceptions import AulaSyncAPIError, AulaSyncAuthError, AulaSyncConnectionError, AulaSyncDataError
from .models import (
	ClassroomCourse,
	ClassroomCourseWork,
	ClassroomStudentProfile,
	ClassroomSubmission,
	parse_records,
)

_LOGGER = logging.getLogger(__name__)


class ClassroomClient:
	"""Read-only access to courses, course work, submissions and rosters."""

	def __init__(self, access_token: str, session: Optional[aiohttp.ClientSession] = None,
				base_url: str = CLASSROOM_BASE_URL):
		"""Initialise Classroom client.

		Args:
			access_token: OAuth bearer token
			session: Optional aiohttp session. If None, one is created on entry.
			base_url: API root, overridable for tests
		"""
		self._token = access_token
		self._session = session
		self._own_session = session is None
		self.base_url = base_url.rstrip("/")

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

	async def _get_json(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
		if self._session is None:
			raise AulaSyncConnectionError("Client not properly initialised")

		url = f"{self.base_url}/{path}"
		headers = {"Authorization": f"Bearer {self._token}", "Accept": "application/json"}
		try:
			async with self._session.get(url, headers=headers, params=dict(params)) as resp:
				if resp.status in (401, 403):
					raise AulaSyncAuthError(f"Classroom rejected the access token: HTTP {resp.status}")
				if resp.status != 200:
					text = await resp.text()
					_LOGGER.error(f"Classroom error HTTP {resp.status} for {path}: {text[:200]}")
					raise AulaSyncAPIError(f"Classroom request failed: HTTP {resp.status}", status=resp.status)
				try:
					data = await resp.json()
				except (aiohttp.ContentTypeError, ValueError) as e:
					raise AulaSyncDataError(f"Invalid JSON response from {path}") from e
		except aiohttp.ClientError as e:
			raise AulaSyncConnectionError(f"Connection error: {e}") from e
		except asyncio.TimeoutError as e:
			raise AulaSyncConnectionError(f"Classroom request timed out: {path}") from e

		if not isinstance(data, dict):
			raise AulaSyncDataError(f"Unexpected response from {path}")
		return data

	async def _get_paged(self, path: str, key: str, params: Optional[Dict[str, str]] = None) -> List[Any]:
		"""Collect a list resource across pages, one request at a time."""
		items: List[Any] = []
		query = dict(params or {})
		while True:
			data = await self._get_json(path, query)
			page = data.get(key) or []
			if not isinstance(page, list):
				raise AulaSyncDataError(f"Expected a list under {key!r} in {path}")
			items.extend(page)

			token = data.get("nextPageToken")
			if not token:
				return items
			query["pageToken"] = token

	async def list_courses(self) -> List[ClassroomCourse]:
		"""Courses the token's owner teaches."""
		items = await self._get_paged("courses", "courses", {"teacherId": "me"})
		courses = parse_records(ClassroomCourse, items, "course")
		_LOGGER.debug(f"Found {len(courses)} Classroom courses")
		return courses

	async def list_course_work(self, course_id: str) -> List[ClassroomCourseWork]:
		"""Assignments of a course."""
		items = await self._get_paged(f"courses/{course_id}/courseWork", "courseWork")
		return parse_records(ClassroomCourseWork, items, "course work")

	async def list_submissions(self, course_id: str, course_work_id: str) -> List[ClassroomSubmission]:
		"""Student submissions of one assignment."""
		items = await self._get_paged(
			f"courses/{course_id}/courseWork/{course_work_id}/studentSubmissions",
			"studentSubmissions",
		)
		return parse_records(ClassroomSubmission, items, "submission")

	async def list_students(self, course_id: str) -> List[ClassroomStudentProfile]:
		"""Roster of a course."""
		items = await self._get_paged(f"courses/{course_id}/students", "students")
		return parse_records(ClassroomStudentProfile, items, "student profile")
