"""Sync routines between the local store and the remote services."""

import logging
from datetime import date
from typing import Callable, Optional, Tuple

import aiohttp

from .api.backend import BackendClient
from .api.exceptions import AulaSyncConfigError, AulaSyncError
from .api.horario import ScheduleClient
from .config import validate_backend_settings, validate_professor_name
from .const import (
	MSG_ATTENDANCE_FAILED,
	MSG_ATTENDANCE_SYNCED,
	MSG_ATTENDANCE_SYNCING,
	MSG_ATTENDANCE_UP_TO_DATE,
	MSG_GRADES_EMPTY,
	MSG_GRADES_FAILED,
	MSG_GRADES_SYNCED,
	MSG_SCHEDULE_EMPTY,
	MSG_SCHEDULE_FAILED,
	MSG_SCHEDULE_UPDATED,
	MSG_TUTORSHIP_FAILED,
	MSG_TUTORSHIP_SYNCED,
	MSG_TUTORSHIP_SYNCING,
	REQUEST_TIMEOUT,
	SCOPE_TODAY,
	SYNC_SCOPES,
)
from .models import Settings
from .reconcile import (
	build_attendance_index,
	build_grade_uploads,
	build_tutorship_uploads,
	diff_attendance,
	merge_tutorship,
	plan_schedule_import,
)
from .store import (
	SetGroupTutorsBulk,
	SetTeacherSchedule,
	SetTutorshipBulk,
	Store,
	notify_error,
	notify_info,
	notify_success,
)

_LOGGER = logging.getLogger(__name__)

BackendFactory = Callable[[Settings, aiohttp.ClientSession], BackendClient]
ScheduleFactory = Callable[[Settings, aiohttp.ClientSession], ScheduleClient]


def _default_backend(settings: Settings, session: aiohttp.ClientSession) -> BackendClient:
	return BackendClient(settings.api_url, settings.api_key, session=session)


def _default_schedule(settings: Settings, session: aiohttp.ClientSession) -> ScheduleClient:
	kwargs = {}
	if settings.firebase_base_path:
		kwargs["base_path"] = settings.firebase_base_path
	return ScheduleClient(settings.firebase_project_id, settings.firebase_api_key, session=session, **kwargs)


class SyncCoordinator:
	"""Runs the attendance, grade, tutorship and schedule routines.

	Each routine reads the store, talks to one remote service and reports its
	outcome through toast actions. Errors never escape a routine.
	"""

	def __init__(
		self,
		store: Store,
		session: Optional[aiohttp.ClientSession] = None,
		today: Callable[[], date] = date.today,
		backend_factory: BackendFactory = _default_backend,
		schedule_factory: ScheduleFactory = _default_schedule,
	) -> None:
		"""Initialise coordinator.

		Args:
			store: Store whose state is synced
			session: Optional aiohttp session. If None, one is created on demand
				and closed by async_close.
			today: Clock used by the ``today`` attendance scope
			backend_factory: Builds the backend client from settings
			schedule_factory: Builds the schedule client from settings
		"""
		self.store = store
		self._session = session
		self._own_session = session is None
		self._today = today
		self._backend_factory = backend_factory
		self._schedule_factory = schedule_factory

	async def __aenter__(self):
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		await self.async_close()

	@property
	def settings(self) -> Settings:
		return self.store.state.settings

	def _get_session(self) -> aiohttp.ClientSession:
		if self._session is None:
			self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT))
		return self._session

	async def async_close(self) -> None:
		"""Close the session if this coordinator created it."""
		if self._own_session and self._session is not None:
			await self._session.close()
			self._session = None

	def _backend(self) -> BackendClient:
		return self._backend_factory(self.settings, self._get_session())

	async def async_sync_attendance(self, scope: str = SCOPE_TODAY) -> Optional[int]:
		"""Push local attendance the backend is missing or holds differently.

		Args:
			scope: ``today`` for today's records only, ``all`` for every date

		Returns:
			Number of records pushed, or None when the routine failed
		"""
		if scope not in SYNC_SCOPES:
			raise ValueError(f"Unknown attendance scope: {scope}")

		try:
			professor = validate_backend_settings(self.settings)
		except AulaSyncConfigError as e:
			self.store.dispatch(notify_error(str(e)))
			return None

		self.store.dispatch(notify_info(MSG_ATTENDANCE_SYNCING))
		state = self.store.state
		try:
			backend = self._backend()
			remote = build_attendance_index(await backend.get_attendance(professor))
			candidates = diff_attendance(
				state.groups, state.attendance, remote, scope, self._today(), professor,
			)
			_LOGGER.info(f"Attendance diff ({scope}): {len(candidates)} records to push")

			if not candidates:
				self.store.dispatch(notify_success(MSG_ATTENDANCE_UP_TO_DATE))
				return 0

			await backend.push_attendance(candidates)
		except AulaSyncError as e:
			_LOGGER.error(f"Attendance sync failed: {e}")
			self.store.dispatch(notify_error(MSG_ATTENDANCE_FAILED))
			return None

		self.store.dispatch(notify_success(MSG_ATTENDANCE_SYNCED.format(count=len(candidates))))
		return len(candidates)

	async def async_sync_grades(self) -> Optional[int]:
		"""Send every recorded grade.

		The full grade set is re-sent on every call; the backend upserts.

		Returns:
			Number of grades sent, or None when the routine failed
		"""
		try:
			professor = validate_backend_settings(self.settings)
		except AulaSyncConfigError as e:
			self.store.dispatch(notify_error(str(e)))
			return None

		state = self.store.state
		uploads = build_grade_uploads(state.groups, state.evaluations, state.grades, professor)
		if not uploads:
			self.store.dispatch(notify_info(MSG_GRADES_EMPTY))
			return 0

		try:
			await self._backend().push_grades(uploads)
		except AulaSyncError as e:
			_LOGGER.error(f"Grade sync failed: {e}")
			self.store.dispatch(notify_error(MSG_GRADES_FAILED))
			return None

		self.store.dispatch(notify_success(MSG_GRADES_SYNCED))
		return len(uploads)

	async def async_sync_tutorship(self, silent: bool = False) -> Optional[int]:
		"""Pull tutorship notes and tutors, then push the professor's own notes.

		Args:
			silent: Suppress toasts, for background triggers

		Returns:
			Number of notes pushed, or None when the routine failed
		"""
		def toast(action):
			if not silent:
				self.store.dispatch(action)

		try:
			professor = validate_backend_settings(self.settings)
		except AulaSyncConfigError as e:
			toast(notify_error(str(e)))
			return None

		toast(notify_info(MSG_TUTORSHIP_SYNCING))
		try:
			backend = self._backend()
			# Local notes are taken before the pull so edits are not replaced by older server copies
			local_notes = dict(self.store.state.tutorship)
			rows, server_tutors = await backend.get_tutorship(professor)
			merged = merge_tutorship(self.store.state.groups, rows, server_tutors)
			self.store.dispatch_all([action for action in merged if isinstance(action, SetGroupTutorsBulk)])

			state = self.store.state
			uploads = build_tutorship_uploads(state.groups, local_notes, state.group_tutors, professor)
			pushed_ids = {upload.student_id for upload in uploads}
			for action in merged:
				if isinstance(action, SetTutorshipBulk):
					entries = {sid: entry for sid, entry in action.entries.items() if sid not in pushed_ids}
					if entries:
						self.store.dispatch(SetTutorshipBulk(entries))

			if uploads:
				await backend.push_tutorship(uploads, dict(state.group_tutors), professor)
			else:
				_LOGGER.debug("No tutorship notes to push")
		except AulaSyncError as e:
			_LOGGER.error(f"Tutorship sync failed: {e}")
			toast(notify_error(MSG_TUTORSHIP_FAILED))
			return None

		toast(notify_success(MSG_TUTORSHIP_SYNCED))
		return len(uploads)

	async def async_import_schedule(self) -> Optional[Tuple[int, int]]:
		"""Create or update groups from the teacher's schedule.

		Returns:
			Created and updated group counts, or None when the routine failed
		"""
		try:
			professor = validate_professor_name(self.settings)
		except AulaSyncConfigError as e:
			self.store.dispatch(notify_error(str(e)))
			return None

		try:
			entries = await self._schedule_factory(self.settings, self._get_session()).get_full_schedule(professor)
		except AulaSyncError as e:
			_LOGGER.error(f"Schedule import failed: {e}")
			self.store.dispatch(notify_error(f"{MSG_SCHEDULE_FAILED} {e}"))
			return None

		self.store.dispatch(SetTeacherSchedule(entries))
		if not entries:
			self.store.dispatch(notify_info(MSG_SCHEDULE_EMPTY))
			return 0, 0

		plan = plan_schedule_import(self.store.state.groups, entries)
		self.store.dispatch_all(plan.actions)
		_LOGGER.info(f"Schedule import: {plan.created} groups created, {plan.updated} updated")
		self.store.dispatch(notify_success(MSG_SCHEDULE_UPDATED.format(created=plan.created, updated=plan.updated)))
		return plan.created, plan.updated
