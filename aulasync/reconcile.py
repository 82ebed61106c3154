"""Pure reconciliation helpers.

Nothing here performs I/O or touches the store: functions take plain state
and remote records and return either upload records or action values.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .api.models import (
	AttendanceUpload,
	ClassroomCourse,
	ClassroomStudentProfile,
	ClassroomSubmission,
	GradeUpload,
	RemoteAttendance,
	RemoteTutorship,
	ScheduleEntry,
	TutorshipUpload,
)
from .api.utils import format_date, names_match, names_overlap, normalize_for_match
from .const import DEFAULT_EVALUATION_TYPE, GROUP_COLORS, SCOPE_TODAY
from .models import (
	AttendanceStatus,
	Evaluation,
	EvaluationType,
	EvaluationTypes,
	Group,
	Student,
	TutorshipEntry,
)
from .store import Action, AttendanceMap, GradeMap, SaveGroup, SetGroupTutorsBulk, SetTutorshipBulk

_LOGGER = logging.getLogger(__name__)

AttendanceIndex = Dict[Tuple[str, str], str]


def _new_id() -> str:
	return str(uuid.uuid4())


def build_attendance_index(rows: Iterable[RemoteAttendance]) -> AttendanceIndex:
	"""Index remote attendance rows by (student id, date)."""
	return {(row.student_id, row.date): row.status for row in rows}


def diff_attendance(
	groups: List[Group],
	attendance: AttendanceMap,
	remote: AttendanceIndex,
	scope: str,
	today: date,
	professor_name: str,
) -> List[AttendanceUpload]:
	"""Return the local attendance records the backend is missing or holds differently.

	Pending records are never returned. With the ``today`` scope only records
	dated ``today`` are considered.
	"""
	today_str = format_date(today)
	groups_by_id = {group.id: group for group in groups}
	candidates: List[AttendanceUpload] = []

	for group_id, students in attendance.items():
		group = groups_by_id.get(group_id)
		if group is None:
			_LOGGER.debug(f"Skipping attendance of unknown group {group_id}")
			continue

		for student_id, days in students.items():
			student = group.find_student(student_id)
			if student is None:
				_LOGGER.debug(f"Skipping attendance of unknown student {student_id} in {group.name!r}")
				continue

			for day, status in days.items():
				local_status = AttendanceStatus(status)
				if local_status is AttendanceStatus.PENDING:
					continue
				if scope == SCOPE_TODAY and day != today_str:
					continue
				if remote.get((student_id, day)) == local_status.value:
					continue

				candidates.append(AttendanceUpload(
					professor_name=professor_name,
					subject_name=group.subject,
					group_id=group.id,
					group_name=group.name,
					student_id=student.id,
					student_name=student.name,
					date=day,
					status=local_status.value,
				))

	return candidates


def build_grade_uploads(
	groups: List[Group],
	evaluations: Dict[str, List[Evaluation]],
	grades: GradeMap,
	professor_name: str,
) -> List[GradeUpload]:
	"""Flatten every recorded grade into upload records.

	Grades of students or evaluations that no longer exist are skipped.
	"""
	uploads: List[GradeUpload] = []

	for group in groups:
		group_evaluations = {evaluation.id: evaluation for evaluation in evaluations.get(group.id, [])}
		for student_id, scores in grades.get(group.id, {}).items():
			student = group.find_student(student_id)
			if student is None:
				continue

			for evaluation_id, score in scores.items():
				if score is None:
					continue
				evaluation = group_evaluations.get(evaluation_id)
				if evaluation is None:
					_LOGGER.debug(f"Skipping grade for missing evaluation {evaluation_id} in {group.name!r}")
					continue

				uploads.append(GradeUpload(
					professor_name=professor_name,
					group_id=group.id,
					group_name=group.name,
					subject_name=group.subject,
					student_id=student.id,
					student_name=student.name,
					student_matricula=student.matricula or "",
					evaluation_id=evaluation.id,
					evaluation_name=evaluation.name,
					partial=evaluation.partial,
					score=score,
					max_score=evaluation.max_score,
				))

	return uploads


@dataclass
class ScheduledGroup:
	"""Class days collected for one group/subject combination."""
	name: str
	subject: str
	days: List[str] = field(default_factory=list)


def schedule_group_name(entry: ScheduleEntry) -> str:
	return f"{entry.group_name} - {entry.subject_name}"


def group_schedule_entries(entries: Iterable[ScheduleEntry]) -> List[ScheduledGroup]:
	"""Merge schedule entries by group and subject, keeping distinct days in order."""
	grouped: Dict[str, ScheduledGroup] = {}
	for entry in entries:
		name = schedule_group_name(entry)
		scheduled = grouped.get(name)
		if scheduled is None:
			scheduled = grouped[name] = ScheduledGroup(name=name, subject=entry.subject_name)
		if entry.day not in scheduled.days:
			scheduled.days.append(entry.day)
	return list(grouped.values())


def new_group(name: str, subject: str, class_days: List[str], color: str,
			id_factory: Callable[[], str] = _new_id) -> Group:
	"""Create an empty group with a single 100% bucket per partial."""
	return Group(
		id=id_factory(),
		name=name,
		subject=subject,
		students=[],
		class_days=list(class_days),
		evaluation_types=EvaluationTypes(
			partial1=[EvaluationType(id=id_factory(), name=DEFAULT_EVALUATION_TYPE, weight=100)],
			partial2=[EvaluationType(id=id_factory(), name=DEFAULT_EVALUATION_TYPE, weight=100)],
		),
		color=color,
	)


@dataclass
class ScheduleImportPlan:
	actions: List[Action]
	created: int = 0
	updated: int = 0


def plan_schedule_import(
	groups: List[Group],
	entries: Iterable[ScheduleEntry],
	id_factory: Callable[[], str] = _new_id,
) -> ScheduleImportPlan:
	"""Decide which groups the schedule creates and which it updates."""
	plan = ScheduleImportPlan(actions=[])

	for scheduled in group_schedule_entries(entries):
		existing = next((group for group in groups if names_match(group.name, scheduled.name)), None)
		if existing is not None:
			plan.actions.append(SaveGroup(replace(existing, class_days=list(scheduled.days))))
			plan.updated += 1
			continue

		color = GROUP_COLORS[(len(groups) + plan.created) % len(GROUP_COLORS)]
		plan.actions.append(SaveGroup(new_group(scheduled.name, scheduled.subject, scheduled.days, color, id_factory)))
		plan.created += 1

	return plan


def merge_tutorship(
	groups: List[Group],
	rows: Iterable[RemoteTutorship],
	server_tutors: Dict[str, str],
) -> List[Action]:
	"""Map downloaded tutorship notes and tutors onto local ids.

	A student listed in several groups receives the note under each local id.
	"""
	ids_by_name: Dict[str, List[str]] = {}
	for group in groups:
		for student in group.students:
			ids_by_name.setdefault(normalize_for_match(student.name), []).append(student.id)

	entries: Dict[str, TutorshipEntry] = {}
	for row in rows:
		student_ids = ids_by_name.get(normalize_for_match(row.student_name))
		if not student_ids:
			_LOGGER.debug(f"No local student for tutorship note of {row.student_name!r}")
			continue
		for student_id in student_ids:
			entries[student_id] = TutorshipEntry(
				strengths=row.strengths,
				opportunities=row.opportunities,
				summary=row.summary,
				author=row.author or "Docente Externo",
			)

	tutors: Dict[str, str] = {}
	for server_group_name, tutor in server_tutors.items():
		group = next((group for group in groups if names_match(group.name, server_group_name)), None)
		if group is not None:
			tutors[group.id] = tutor

	actions: List[Action] = []
	if entries:
		actions.append(SetTutorshipBulk(entries))
	if tutors:
		actions.append(SetGroupTutorsBulk(tutors))
	return actions


def is_group_tutor(group_tutors: Dict[str, str], group_id: str, professor_name: str) -> bool:
	"""True when the group has no tutor yet or the tutor is the professor."""
	tutor = group_tutors.get(group_id)
	return not tutor or names_match(tutor, professor_name)


def build_tutorship_uploads(
	groups: List[Group],
	tutorship: Dict[str, TutorshipEntry],
	group_tutors: Dict[str, str],
	professor_name: str,
) -> List[TutorshipUpload]:
	"""Collect the non-empty notes of the groups the professor tutors."""
	uploads: List[TutorshipUpload] = []
	for group in groups:
		if not is_group_tutor(group_tutors, group.id, professor_name):
			_LOGGER.debug(f"Not the tutor of {group.name!r}, notes stay read-only")
			continue

		for student in group.students:
			entry = tutorship.get(student.id)
			if entry is None or entry.is_empty:
				continue
			uploads.append(TutorshipUpload(
				professor_name=professor_name,
				group_id=group.id,
				group_name=group.name,
				student_id=student.id,
				student_name=student.name,
				strengths=entry.strengths,
				opportunities=entry.opportunities,
				summary=entry.summary,
			))
	return uploads


def match_course(courses: Iterable[ClassroomCourse], group_name: str) -> Optional[ClassroomCourse]:
	"""First course whose name contains, or is contained by, the group name."""
	for course in courses:
		if names_overlap(course.name, group_name):
			return course
	return None


def find_evaluation_by_title(evaluations: Iterable[Evaluation], title: str) -> Optional[Evaluation]:
	for evaluation in evaluations:
		if evaluation.name == title:
			return evaluation
	return None


@dataclass
class SubmissionMatch:
	student: Student
	score: float


def match_submissions(
	submissions: Iterable[ClassroomSubmission],
	profiles: Iterable[ClassroomStudentProfile],
	students: List[Student],
) -> Tuple[List[SubmissionMatch], List[str]]:
	"""Pair graded submissions with local students by normalised full name.

	Returns the matches and the names that found no local student.
	"""
	names_by_user = {profile.user_id: profile.full_name for profile in profiles}
	students_by_name = {}
	for student in students:
		students_by_name.setdefault(normalize_for_match(student.name), student)

	matches: List[SubmissionMatch] = []
	unmatched: List[str] = []
	for submission in submissions:
		if submission.assigned_grade is None:
			continue
		full_name = names_by_user.get(submission.user_id)
		if full_name is None:
			_LOGGER.debug(f"No roster profile for Classroom user {submission.user_id}")
			continue
		student = students_by_name.get(normalize_for_match(full_name))
		if student is None:
			unmatched.append(full_name)
			continue
		matches.append(SubmissionMatch(student=student, score=submission.assigned_grade))

	return matches, unmatched
