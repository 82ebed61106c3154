"""Records exchanged with the external services.

Every inbound record is built through ``from_api`` which validates the raw
payload; nothing shaped like a remote payload is handed past this module.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, TypeVar

import voluptuous as vol

from .exceptions import AulaSyncDataError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_TEXT = vol.Any(None, vol.Coerce(str))
_NUMBER = vol.Any(None, vol.Coerce(float))

REMOTE_ATTENDANCE_SCHEMA = vol.Schema(
	{
		vol.Required("alumno_id"): vol.Coerce(str),
		vol.Required("fecha"): vol.Coerce(str),
		vol.Required("status"): vol.Coerce(str),
	},
	extra=vol.ALLOW_EXTRA,
)

REMOTE_TUTORSHIP_SCHEMA = vol.Schema(
	{
		vol.Required("alumno_nombre"): vol.Coerce(str),
		vol.Optional("fortalezas"): _TEXT,
		vol.Optional("oportunidades"): _TEXT,
		vol.Optional("resumen"): _TEXT,
		vol.Optional("profesor_nombre"): _TEXT,
	},
	extra=vol.ALLOW_EXTRA,
)

COURSE_SCHEMA = vol.Schema(
	{
		vol.Required("id"): vol.Coerce(str),
		vol.Required("name"): vol.Coerce(str),
		vol.Optional("section"): _TEXT,
	},
	extra=vol.ALLOW_EXTRA,
)

COURSE_WORK_SCHEMA = vol.Schema(
	{
		vol.Required("id"): vol.Coerce(str),
		vol.Required("title"): vol.Coerce(str),
		vol.Optional("maxPoints"): _NUMBER,
	},
	extra=vol.ALLOW_EXTRA,
)

SUBMISSION_SCHEMA = vol.Schema(
	{
		vol.Required("id"): vol.Coerce(str),
		vol.Required("userId"): vol.Coerce(str),
		vol.Optional("assignedGrade"): _NUMBER,
	},
	extra=vol.ALLOW_EXTRA,
)

STUDENT_PROFILE_SCHEMA = vol.Schema(
	{
		vol.Required("userId"): vol.Coerce(str),
		vol.Required("profile"): vol.Schema(
			{
				vol.Required("name"): vol.Schema(
					{vol.Required("fullName"): vol.Coerce(str)},
					extra=vol.ALLOW_EXTRA,
				),
			},
			extra=vol.ALLOW_EXTRA,
		),
	},
	extra=vol.ALLOW_EXTRA,
)


def _validate(schema: vol.Schema, data: Any, label: str) -> Dict[str, Any]:
	try:
		return schema(data)
	except vol.Invalid as err:
		raise AulaSyncDataError(f"Invalid {label}: {err}") from err


def parse_records(cls: Type[T], items: Any, label: str) -> List[T]:
	"""Build records from a list payload, skipping items that fail validation."""
	if items is None:
		return []
	if not isinstance(items, list):
		raise AulaSyncDataError(f"Expected a list of {label}, got {type(items).__name__}")

	records = []
	for item in items:
		try:
			records.append(cls.from_api(item))
		except AulaSyncDataError as e:
			_LOGGER.warning(f"Skipping {label}: {e}")
			continue
	return records


@dataclass(frozen=True)
class RemoteAttendance:
	"""An attendance row held by the custom backend."""
	student_id: str
	date: str
	status: str

	@classmethod
	def from_api(cls, data: Any) -> "RemoteAttendance":
		row = _validate(REMOTE_ATTENDANCE_SCHEMA, data, "attendance row")
		# DATETIME columns come back with a time part
		return cls(student_id=row["alumno_id"], date=row["fecha"][:10], status=row["status"])


@dataclass(frozen=True)
class RemoteTutorship:
	"""A tutorship note held by the custom backend."""
	student_name: str
	strengths: str = ""
	opportunities: str = ""
	summary: str = ""
	author: Optional[str] = None

	@classmethod
	def from_api(cls, data: Any) -> "RemoteTutorship":
		row = _validate(REMOTE_TUTORSHIP_SCHEMA, data, "tutorship row")
		return cls(
			student_name=row["alumno_nombre"],
			strengths=row.get("fortalezas") or "",
			opportunities=row.get("oportunidades") or "",
			summary=row.get("resumen") or "",
			author=row.get("profesor_nombre") or None,
		)


@dataclass(frozen=True)
class ClassroomCourse:
	"""A Google Classroom course taught by the signed-in user."""
	id: str
	name: str
	section: Optional[str] = None

	@classmethod
	def from_api(cls, data: Any) -> "ClassroomCourse":
		course = _validate(COURSE_SCHEMA, data, "course")
		return cls(id=course["id"], name=course["name"], section=course.get("section"))

	def __str__(self) -> str:
		return f"{self.name} ({self.section})" if self.section else self.name


@dataclass(frozen=True)
class ClassroomCourseWork:
	"""An assignment of a Classroom course."""
	id: str
	title: str
	max_points: Optional[float] = None

	@classmethod
	def from_api(cls, data: Any) -> "ClassroomCourseWork":
		work = _validate(COURSE_WORK_SCHEMA, data, "course work")
		return cls(id=work["id"], title=work["title"], max_points=work.get("maxPoints"))


@dataclass(frozen=True)
class ClassroomSubmission:
	"""A student's submission for an assignment."""
	id: str
	user_id: str
	assigned_grade: Optional[float] = None

	@classmethod
	def from_api(cls, data: Any) -> "ClassroomSubmission":
		submission = _validate(SUBMISSION_SCHEMA, data, "submission")
		return cls(
			id=submission["id"],
			user_id=submission["userId"],
			assigned_grade=submission.get("assignedGrade"),
		)


@dataclass(frozen=True)
class ClassroomStudentProfile:
	"""A student enrolled in a Classroom course."""
	user_id: str
	full_name: str

	@classmethod
	def from_api(cls, data: Any) -> "ClassroomStudentProfile":
		student = _validate(STUDENT_PROFILE_SCHEMA, data, "student profile")
		return cls(user_id=student["userId"], full_name=student["profile"]["name"]["fullName"])


@dataclass(frozen=True)
class ScheduleEntry:
	"""A class slot from the schedule planner, joined with its names."""
	id: str
	day: str
	start_time: Optional[int]
	duration: Optional[int]
	subject_name: str
	group_name: str

	def __str__(self) -> str:
		return f"{self.day} {self.start_time}:00 {self.group_name} - {self.subject_name}"


@dataclass(frozen=True)
class AttendanceUpload:
	"""One attendance row to write to the custom backend."""
	professor_name: str
	subject_name: str
	group_id: str
	group_name: str
	student_id: str
	student_name: str
	date: str
	status: str

	def as_payload(self) -> Dict[str, Any]:
		return {
			"profesor_nombre": self.professor_name,
			"materia_nombre": self.subject_name,
			"grupo_id": self.group_id,
			"grupo_nombre": self.group_name,
			"alumno_id": self.student_id,
			"alumno_nombre": self.student_name,
			"fecha": self.date,
			"status": self.status,
		}


@dataclass(frozen=True)
class GradeUpload:
	"""One grade to write to the custom backend."""
	professor_name: str
	group_id: str
	group_name: str
	subject_name: str
	student_id: str
	student_name: str
	student_matricula: str
	evaluation_id: str
	evaluation_name: str
	partial: int
	score: float
	max_score: float

	def as_payload(self) -> Dict[str, Any]:
		return {
			"profesor_nombre": self.professor_name,
			"grupo_id": self.group_id,
			"grupo_nombre": self.group_name,
			"materia_nombre": self.subject_name,
			"alumno_id": self.student_id,
			"alumno_nombre": self.student_name,
			"alumno_matricula": self.student_matricula,
			"evaluacion_id": self.evaluation_id,
			"evaluacion_nombre": self.evaluation_name,
			"parcial": self.partial,
			"calificacion": self.score,
			"max_score": self.max_score,
		}


@dataclass(frozen=True)
class TutorshipUpload:
	"""One student's tutorship note to write to the custom backend."""
	professor_name: str
	group_id: str
	group_name: str
	student_id: str
	student_name: str
	strengths: str
	opportunities: str
	summary: str

	def as_payload(self) -> Dict[str, Any]:
		return {
			"profesor_nombre": self.professor_name,
			"grupo_id": self.group_id,
			"grupo_nombre": self.group_name,
			"alumno_id": self.student_id,
			"alumno_nombre": self.student_name,
			"fortalezas": self.strengths,
			"oportunidades": self.opportunities,
			"resumen": self.summary,
		}
