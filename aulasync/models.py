"""Local data model held by the aulasync store."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AttendanceStatus(str, Enum):
	"""Attendance status of a student on a class day."""
	PENDING = "Pendiente"
	PRESENT = "Presente"
	ABSENT = "Ausente"
	LATE = "Retardo"
	JUSTIFIED = "Justificado"
	EXCHANGE = "Intercambio"

	def __str__(self) -> str:
		return self.value


@dataclass
class Student:
	"""A student enrolled in one group."""
	id: str
	name: str
	matricula: Optional[str] = None
	is_repeating: bool = False


@dataclass
class EvaluationType:
	"""A weighted evaluation bucket of a grading partial."""
	id: str
	name: str
	weight: float
	is_attendance: bool = False


@dataclass
class EvaluationTypes:
	"""Evaluation buckets for the two grading partials."""
	partial1: List[EvaluationType] = field(default_factory=list)
	partial2: List[EvaluationType] = field(default_factory=list)

	def for_partial(self, partial: int) -> List[EvaluationType]:
		return self.partial1 if partial == 1 else self.partial2


@dataclass
class Group:
	"""A class group: one subject taught to one roster."""
	id: str
	name: str
	subject: str
	students: List[Student] = field(default_factory=list)
	class_days: List[str] = field(default_factory=list)
	evaluation_types: EvaluationTypes = field(default_factory=EvaluationTypes)
	color: str = ""
	quarter: Optional[str] = None

	def find_student(self, student_id: str) -> Optional[Student]:
		for student in self.students:
			if student.id == student_id:
				return student
		return None

	def __str__(self) -> str:
		return f"{self.name} ({len(self.students)} alumnos)"


@dataclass
class Evaluation:
	"""A graded activity of a group."""
	id: str
	name: str
	max_score: float
	partial: int
	type_id: str


@dataclass
class TutorshipEntry:
	"""Current tutorship note of a student."""
	strengths: str = ""
	opportunities: str = ""
	summary: str = ""
	author: Optional[str] = None

	@property
	def is_empty(self) -> bool:
		return not (self.strengths or self.opportunities or self.summary)


@dataclass
class Settings:
	"""User settings needed by the sync routines."""
	professor_name: str = ""
	api_url: str = ""
	api_key: str = ""
	google_client_id: str = ""
	google_client_secret: str = ""
	oauth_redirect_host: str = "localhost"
	oauth_redirect_port: int = 0
	firebase_project_id: str = ""
	firebase_api_key: str = ""
	firebase_base_path: str = ""
