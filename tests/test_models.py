#!/usr/bin/env python3
"""Tests for boundary validation of remote records."""

import pytest

from aulasync.api.exceptions import AulaSyncDataError
from aulasync.api.models import (
	ClassroomCourseWork,
	ClassroomStudentProfile,
	ClassroomSubmission,
	GradeUpload,
	RemoteAttendance,
	RemoteTutorship,
	parse_records,
)


def test_remote_attendance_trims_time_part():
	row = RemoteAttendance.from_api({"alumno_id": 7, "fecha": "2024-03-05 00:00:00", "status": "Presente"})
	assert row == RemoteAttendance(student_id="7", date="2024-03-05", status="Presente")


def test_parse_records_skips_invalid_items():
	rows = parse_records(
		RemoteAttendance,
		[
			{"alumno_id": "s1", "fecha": "2024-03-05", "status": "Ausente"},
			{"fecha": "2024-03-05"},
			"garbage",
		],
		"attendance row",
	)
	assert [row.student_id for row in rows] == ["s1"]


def test_parse_records_none_is_empty_and_non_list_fails():
	assert parse_records(RemoteAttendance, None, "attendance row") == []
	with pytest.raises(AulaSyncDataError):
		parse_records(RemoteAttendance, {"alumno_id": "s1"}, "attendance row")


def test_tutorship_defaults():
	row = RemoteTutorship.from_api({"alumno_nombre": "Luis", "fortalezas": None})
	assert row.strengths == ""
	assert row.author is None


def test_classroom_records():
	work = ClassroomCourseWork.from_api({"id": "w1", "title": "Tarea 1"})
	assert work.max_points is None
	submission = ClassroomSubmission.from_api({"id": "x", "userId": "u1", "assignedGrade": "8.5"})
	assert submission.assigned_grade == 8.5
	profile = ClassroomStudentProfile.from_api({"userId": "u1", "profile": {"name": {"fullName": "Ana"}}})
	assert profile.full_name == "Ana"

	with pytest.raises(AulaSyncDataError):
		ClassroomStudentProfile.from_api({"userId": "u1", "profile": {}})


def test_grade_payload_uses_backend_keys():
	upload = GradeUpload(
		professor_name="P", group_id="g", group_name="G", subject_name="S",
		student_id="s", student_name="N", student_matricula="M",
		evaluation_id="e", evaluation_name="E", partial=1, score=9.0, max_score=10,
	)
	payload = upload.as_payload()
	assert payload["calificacion"] == 9.0
	assert payload["parcial"] == 1
	assert payload["alumno_matricula"] == "M"
	assert payload["max_score"] == 10
