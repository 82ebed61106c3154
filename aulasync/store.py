"""Application state and the single point through which it changes.

Sync routines never modify ``AppState`` directly. They produce action values
which are applied by ``Store.dispatch``; every applied action is kept in
``Store.history`` and forwarded to subscribers.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Union

from .api.models import ScheduleEntry
from .const import GROUP_COLORS, LEVEL_ERROR, LEVEL_INFO, LEVEL_SUCCESS
from .models import AttendanceStatus, Evaluation, Group, Settings, TutorshipEntry

_LOGGER = logging.getLogger(__name__)

# group_id -> student_id -> date -> status
AttendanceMap = Dict[str, Dict[str, Dict[str, AttendanceStatus]]]
# group_id -> student_id -> evaluation_id -> score
GradeMap = Dict[str, Dict[str, Dict[str, Optional[float]]]]


@dataclass
class Toast:
	"""A user-facing notification."""
	message: str
	level: str = LEVEL_INFO


@dataclass
class AppState:
	"""Everything the sync routines read."""
	groups: List[Group] = field(default_factory=list)
	attendance: AttendanceMap = field(default_factory=dict)
	evaluations: Dict[str, List[Evaluation]] = field(default_factory=dict)
	grades: GradeMap = field(default_factory=dict)
	tutorship: Dict[str, TutorshipEntry] = field(default_factory=dict)
	group_tutors: Dict[str, str] = field(default_factory=dict)
	teacher_schedule: List[ScheduleEntry] = field(default_factory=list)
	settings: Settings = field(default_factory=Settings)
	toasts: List[Toast] = field(default_factory=list)

	def find_group(self, group_id: str) -> Optional[Group]:
		for group in self.groups:
			if group.id == group_id:
				return group
		return None

	def group_evaluations(self, group_id: str) -> List[Evaluation]:
		return self.evaluations.get(group_id, [])


@dataclass(frozen=True)
class SaveGroup:
	group: Group


@dataclass(frozen=True)
class SaveEvaluation:
	group_id: str
	evaluation: Evaluation


@dataclass(frozen=True)
class UpdateGrade:
	group_id: str
	student_id: str
	evaluation_id: str
	score: Optional[float]


@dataclass(frozen=True)
class UpdateAttendance:
	group_id: str
	student_id: str
	date: str
	status: AttendanceStatus


@dataclass(frozen=True)
class SetTutorshipBulk:
	entries: Dict[str, TutorshipEntry]


@dataclass(frozen=True)
class SetGroupTutorsBulk:
	tutors: Dict[str, str]


@dataclass(frozen=True)
class SetTeacherSchedule:
	entries: List[ScheduleEntry]


@dataclass(frozen=True)
class AddToast:
	message: str
	level: str = LEVEL_INFO


Action = Union[
	SaveGroup, SaveEvaluation, UpdateGrade, UpdateAttendance,
	SetTutorshipBulk, SetGroupTutorsBulk, SetTeacherSchedule, AddToast,
]


def notify_info(message: str) -> AddToast:
	return AddToast(message, LEVEL_INFO)


def notify_success(message: str) -> AddToast:
	return AddToast(message, LEVEL_SUCCESS)


def notify_error(message: str) -> AddToast:
	return AddToast(message, LEVEL_ERROR)


class Store:
	"""Holds the application state and applies actions to it."""

	def __init__(self, state: Optional[AppState] = None) -> None:
		self.state = state or AppState()
		self.history: List[Action] = []
		self._listeners: List[Callable[[Action], None]] = []
		self._handlers = {
			SaveGroup: self._save_group,
			SaveEvaluation: self._save_evaluation,
			UpdateGrade: self._update_grade,
			UpdateAttendance: self._update_attendance,
			SetTutorshipBulk: self._set_tutorship_bulk,
			SetGroupTutorsBulk: self._set_group_tutors_bulk,
			SetTeacherSchedule: self._set_teacher_schedule,
			AddToast: self._add_toast,
		}

	def subscribe(self, listener: Callable[[Action], None]) -> Callable[[], None]:
		"""Register a listener; returns a callable that removes it."""
		self._listeners.append(listener)
		return lambda: self._listeners.remove(listener)

	def dispatch(self, action: Action) -> None:
		"""Apply one action to the state."""
		handler = self._handlers.get(type(action))
		if handler is None:
			raise TypeError(f"Unknown action: {action!r}")

		handler(action)
		self.history.append(action)
		for listener in list(self._listeners):
			listener(action)

	def dispatch_all(self, actions: List[Action]) -> None:
		for action in actions:
			self.dispatch(action)

	def _save_group(self, action: SaveGroup) -> None:
		groups = self.state.groups
		for index, group in enumerate(groups):
			if group.id == action.group.id:
				groups[index] = action.group
				_LOGGER.debug(f"Updated group {action.group.name!r}")
				return

		group = action.group
		if not group.color:
			group = replace(group, color=GROUP_COLORS[len(groups) % len(GROUP_COLORS)])
		groups.append(group)
		_LOGGER.debug(f"Added group {group.name!r}")

	def _save_evaluation(self, action: SaveEvaluation) -> None:
		evaluations = self.state.evaluations.setdefault(action.group_id, [])
		for index, evaluation in enumerate(evaluations):
			if evaluation.id == action.evaluation.id:
				evaluations[index] = action.evaluation
				return
		evaluations.append(action.evaluation)

	def _update_grade(self, action: UpdateGrade) -> None:
		group_grades = self.state.grades.setdefault(action.group_id, {})
		group_grades.setdefault(action.student_id, {})[action.evaluation_id] = action.score

	def _update_attendance(self, action: UpdateAttendance) -> None:
		group_attendance = self.state.attendance.setdefault(action.group_id, {})
		group_attendance.setdefault(action.student_id, {})[action.date] = action.status

	def _set_tutorship_bulk(self, action: SetTutorshipBulk) -> None:
		self.state.tutorship.update(action.entries)

	def _set_group_tutors_bulk(self, action: SetGroupTutorsBulk) -> None:
		self.state.group_tutors.update(action.tutors)

	def _set_teacher_schedule(self, action: SetTeacherSchedule) -> None:
		self.state.teacher_schedule = list(action.entries)

	def _add_toast(self, action: AddToast) -> None:
		self.state.toasts.append(Toast(action.message, action.level))
		log = _LOGGER.error if action.level == LEVEL_ERROR else _LOGGER.info
		log(f"[{action.level}] {action.message}")
