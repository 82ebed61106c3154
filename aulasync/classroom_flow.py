"""Google Classroom grade import wizard.

The wizard is an explicit state machine. Each step checks that it is legal in
the current state, performs its remote calls and either moves the flow forward
or leaves it where it was with an error toast.
"""

import logging
import uuid
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import aiohttp

from .api.auth import ClassroomAuth
from .api.classroom import ClassroomClient
from .api.exceptions import AulaSyncDataError, AulaSyncEnvironmentError, AulaSyncError
from .api.models import ClassroomCourse, ClassroomCourseWork
from .const import (
	DEFAULT_MAX_SCORE,
	LOG_ASSIGNMENT_DONE,
	LOG_COURSE_DONE,
	LOG_COURSEWORK_FAILED,
	LOG_EVALUATION_CREATED,
	LOG_EVALUATION_REUSED,
	LOG_FETCHING_PROFILES,
	LOG_LOGIN_DONE,
	LOG_LOGIN_FAILED,
	LOG_STUDENT_UNMATCHED,
	LOG_SYNC_DONE,
	LOG_SYNC_FAILED,
	LOG_SYNC_STARTED,
	LOG_SYNCING_ASSIGNMENT,
	MSG_CLASSROOM_CONNECT_FAILED,
	MSG_CLASSROOM_COURSEWORK_FAILED,
	MSG_CLASSROOM_SYNCED,
	MSG_CLASSROOM_UNCONFIGURED,
	REQUEST_TIMEOUT,
)
from .models import Evaluation, Group
from .reconcile import find_evaluation_by_title, match_course, match_submissions
from .store import SaveEvaluation, Store, UpdateGrade, notify_error, notify_success

_LOGGER = logging.getLogger(__name__)


class WizardState(Enum):
	UNCONFIGURED = "unconfigured"
	AWAITING_LOGIN = "awaiting_login"
	COURSE_SELECTION = "course_selection"
	ASSIGNMENT_SELECTION = "assignment_selection"
	SYNCING = "syncing"
	DONE = "done"


ALLOWED_TRANSITIONS: Dict[WizardState, Tuple[WizardState, ...]] = {
	WizardState.UNCONFIGURED: (),
	WizardState.AWAITING_LOGIN: (WizardState.COURSE_SELECTION,),
	WizardState.COURSE_SELECTION: (WizardState.ASSIGNMENT_SELECTION,),
	WizardState.ASSIGNMENT_SELECTION: (WizardState.SYNCING, WizardState.COURSE_SELECTION),
	WizardState.SYNCING: (WizardState.DONE,),
	WizardState.DONE: (),
}


class InvalidTransition(AulaSyncError):
	"""A wizard step was requested from a state that does not allow it."""


ClientFactory = Callable[[str, Optional[aiohttp.ClientSession]], ClassroomClient]


def _new_id() -> str:
	return str(uuid.uuid4())


class ClassroomImportFlow:
	"""Imports graded Classroom assignments into one local group."""

	def __init__(
		self,
		store: Store,
		group_id: str,
		auth: ClassroomAuth,
		session: Optional[aiohttp.ClientSession] = None,
		client_factory: ClientFactory = ClassroomClient,
		id_factory: Callable[[], str] = _new_id,
	) -> None:
		"""Initialise the wizard.

		Args:
			store: Store receiving evaluations and grades
			group_id: Local group the grades are imported into
			auth: OAuth helper; decides whether the flow can start
			session: Optional aiohttp session. If None, one is created at login
				and closed by async_close.
			client_factory: Builds a Classroom client from a token and session
			id_factory: Produces ids for new evaluations
		"""
		if store.state.find_group(group_id) is None:
			raise ValueError(f"Unknown group: {group_id}")

		self.store = store
		self.group_id = group_id
		self.auth = auth
		self._session = session
		self._own_session = session is None
		self._client_factory = client_factory
		self._id_factory = id_factory
		self._client: Optional[ClassroomClient] = None

		self.courses: List[ClassroomCourse] = []
		self.selected_course_id: Optional[str] = None
		self.assignments: List[ClassroomCourseWork] = []
		self.selected_assignment_ids: List[str] = []
		self.log: List[str] = []

		if auth.is_configured:
			self.state = WizardState.AWAITING_LOGIN
		else:
			self.state = WizardState.UNCONFIGURED
			self.log.append(MSG_CLASSROOM_UNCONFIGURED)

	async def __aenter__(self):
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		await self.async_close()

	async def async_close(self) -> None:
		if self._own_session and self._session is not None:
			await self._session.close()
			self._session = None

	@property
	def group(self) -> Group:
		return self.store.state.find_group(self.group_id)

	def _require(self, *states: WizardState) -> None:
		if self.state not in states:
			raise InvalidTransition(f"Step not allowed in state {self.state.value}")

	def _transition(self, target: WizardState) -> None:
		if target not in ALLOWED_TRANSITIONS[self.state]:
			raise InvalidTransition(f"Cannot go from {self.state.value} to {target.value}")
		_LOGGER.debug(f"Classroom wizard: {self.state.value} -> {target.value}")
		self.state = target

	async def async_step_login(self) -> bool:
		"""Sign in, list the teacher's courses and preselect a matching one."""
		self._require(WizardState.AWAITING_LOGIN)
		try:
			token = await self.auth.get_access_token()
			if self._session is None:
				self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT))
			self._client = self._client_factory(token, self._session)
			courses = await self._client.list_courses()
		except AulaSyncEnvironmentError as e:
			self.log.append(str(e))
			self.store.dispatch(notify_error(str(e)))
			return False
		except AulaSyncError as e:
			_LOGGER.error(f"Classroom login failed: {e}")
			self.log.append(LOG_LOGIN_FAILED.format(error=e))
			self.store.dispatch(notify_error(MSG_CLASSROOM_CONNECT_FAILED))
			return False

		self.courses = courses
		self.log.append(LOG_LOGIN_DONE.format(count=len(courses)))
		matched = match_course(courses, self.group.name)
		self.selected_course_id = matched.id if matched else None
		if matched:
			_LOGGER.info(f"Preselected Classroom course {matched.name!r} for {self.group.name!r}")
		self._transition(WizardState.COURSE_SELECTION)
		return True

	def select_course(self, course_id: str) -> None:
		self._require(WizardState.COURSE_SELECTION)
		if not any(course.id == course_id for course in self.courses):
			raise ValueError(f"Unknown course: {course_id}")
		self.selected_course_id = course_id

	async def async_step_course(self) -> bool:
		"""List the assignments of the selected course."""
		self._require(WizardState.COURSE_SELECTION)
		if not self.selected_course_id:
			raise InvalidTransition("No course selected")

		try:
			assignments = await self._client.list_course_work(self.selected_course_id)
		except AulaSyncError as e:
			_LOGGER.error(f"Fetching course work failed: {e}")
			self.log.append(LOG_COURSEWORK_FAILED.format(error=e))
			self.store.dispatch(notify_error(MSG_CLASSROOM_COURSEWORK_FAILED))
			return False

		self.assignments = assignments
		self.log.append(LOG_COURSE_DONE.format(count=len(assignments)))
		self.selected_assignment_ids = []
		self._transition(WizardState.ASSIGNMENT_SELECTION)
		return True

	def toggle_assignment(self, assignment_id: str) -> None:
		self._require(WizardState.ASSIGNMENT_SELECTION)
		if assignment_id in self.selected_assignment_ids:
			self.selected_assignment_ids.remove(assignment_id)
		elif any(work.id == assignment_id for work in self.assignments):
			self.selected_assignment_ids.append(assignment_id)
		else:
			raise ValueError(f"Unknown assignment: {assignment_id}")

	def select_all_assignments(self) -> None:
		self._require(WizardState.ASSIGNMENT_SELECTION)
		self.selected_assignment_ids = [work.id for work in self.assignments]

	def go_back(self) -> None:
		"""Return from assignment selection to course selection."""
		self._require(WizardState.ASSIGNMENT_SELECTION)
		self._transition(WizardState.COURSE_SELECTION)

	def _resolve_evaluation(self, work: ClassroomCourseWork) -> Evaluation:
		existing = find_evaluation_by_title(self.store.state.group_evaluations(self.group_id), work.title)
		if existing is not None:
			self.log.append(LOG_EVALUATION_REUSED.format(title=work.title))
			return existing

		types = self.group.evaluation_types.for_partial(1)
		if not types:
			raise AulaSyncDataError(f"Group {self.group.name!r} has no evaluation type for partial 1")
		evaluation = Evaluation(
			id=self._id_factory(),
			name=work.title,
			max_score=work.max_points or DEFAULT_MAX_SCORE,
			partial=1,
			type_id=types[0].id,
		)
		self.store.dispatch(SaveEvaluation(self.group_id, evaluation))
		self.log.append(LOG_EVALUATION_CREATED.format(title=work.title, max_score=evaluation.max_score))
		return evaluation

	async def async_step_sync(self) -> bool:
		"""Import the grades of every selected assignment.

		On failure the flow stays in SYNCING; grades written before the
		failure are kept.
		"""
		self._require(WizardState.ASSIGNMENT_SELECTION)
		self._transition(WizardState.SYNCING)
		self.log.append(LOG_SYNC_STARTED)

		works = {work.id: work for work in self.assignments}
		try:
			self.log.append(LOG_FETCHING_PROFILES)
			profiles = await self._client.list_students(self.selected_course_id)

			for assignment_id in self.selected_assignment_ids:
				work = works[assignment_id]
				self.log.append(LOG_SYNCING_ASSIGNMENT.format(title=work.title))
				evaluation = self._resolve_evaluation(work)

				submissions = await self._client.list_submissions(self.selected_course_id, assignment_id)
				matches, unmatched = match_submissions(submissions, profiles, self.group.students)
				for name in unmatched:
					_LOGGER.info(f"No local student named {name!r} in {self.group.name!r}")
					self.log.append(LOG_STUDENT_UNMATCHED.format(name=name))
				for match in matches:
					self.store.dispatch(UpdateGrade(self.group_id, match.student.id, evaluation.id, match.score))

				self.log.append(LOG_ASSIGNMENT_DONE.format(count=len(matches), title=work.title))
		except AulaSyncError as e:
			_LOGGER.error(f"Classroom import failed: {e}")
			self.log.append(LOG_SYNC_FAILED.format(error=e))
			self.store.dispatch(notify_error(LOG_SYNC_FAILED.format(error=e)))
			return False

		self.log.append(LOG_SYNC_DONE)
		self._transition(WizardState.DONE)
		self.store.dispatch(notify_success(MSG_CLASSROOM_SYNCED))
		return True
