#!/usr/bin/env python3
"""Tests for the sync routines of SyncCoordinator."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from aulasync.api.exceptions import AulaSyncAPIError, AulaSyncDataError
from aulasync.api.models import RemoteAttendance, RemoteTutorship, ScheduleEntry
from aulasync.const import LEVEL_ERROR, LEVEL_SUCCESS, SCOPE_ALL
from aulasync.coordinator import SyncCoordinator
from aulasync.models import AttendanceStatus, Evaluation, TutorshipEntry
from aulasync.store import AppState, SetGroupTutorsBulk, SetTeacherSchedule, Store

from fakes import make_group, make_settings


def _store(**settings):
	state = AppState(groups=[make_group()], settings=make_settings(**settings))
	state.attendance = {"g1": {"s1": {
		"2024-03-05": AttendanceStatus.PRESENT,
		"2024-03-04": AttendanceStatus.ABSENT,
	}}}
	return Store(state)


def _coordinator(store, backend=None, schedule=None):
	return SyncCoordinator(
		store,
		session=MagicMock(),
		today=lambda: date(2024, 3, 5),
		backend_factory=lambda settings, session: backend,
		schedule_factory=lambda settings, session: schedule,
	)


def _last_toast(store):
	return store.state.toasts[-1]


def test_attendance_pushes_only_the_difference():
	store = _store()
	backend = MagicMock()
	backend.get_attendance = AsyncMock(return_value=[
		RemoteAttendance(student_id="s1", date="2024-03-04", status="Ausente"),
	])
	backend.push_attendance = AsyncMock()

	pushed = asyncio.run(_coordinator(store, backend).async_sync_attendance(SCOPE_ALL))

	assert pushed == 1
	backend.get_attendance.assert_awaited_once_with("Juan Gómez")
	records = backend.push_attendance.await_args.args[0]
	assert [(r.student_id, r.date, r.status) for r in records] == [("s1", "2024-03-05", "Presente")]
	assert _last_toast(store).message == "Sincronizado correctamente: 1 registros."
	assert _last_toast(store).level == LEVEL_SUCCESS


def test_attendance_up_to_date_makes_no_write():
	store = _store()
	backend = MagicMock()
	backend.get_attendance = AsyncMock(return_value=[
		RemoteAttendance(student_id="s1", date="2024-03-05", status="Presente"),
	])
	backend.push_attendance = AsyncMock()

	assert asyncio.run(_coordinator(store, backend).async_sync_attendance()) == 0
	backend.push_attendance.assert_not_awaited()
	assert _last_toast(store).message == "Asistencia al día."


def test_placeholder_professor_blocks_network_calls():
	store = _store(professor_name="Nombre del Profesor")
	backend = MagicMock()
	backend.get_attendance = AsyncMock()

	assert asyncio.run(_coordinator(store, backend).async_sync_attendance()) is None
	backend.get_attendance.assert_not_awaited()
	assert _last_toast(store).level == LEVEL_ERROR
	assert _last_toast(store).message == "Configura la URL, API Key y tu nombre de profesor."


def test_attendance_failure_becomes_error_toast():
	store = _store()
	backend = MagicMock()
	backend.get_attendance = AsyncMock(side_effect=AulaSyncAPIError("Servidor respondió con error 500", status=500))

	assert asyncio.run(_coordinator(store, backend).async_sync_attendance()) is None
	assert _last_toast(store).message == "Error al sincronizar con la nube."


def test_grades_resend_full_set():
	store = _store()
	store.state.evaluations = {"g1": [Evaluation(id="e1", name="Examen", max_score=10, partial=1, type_id="g1-t1")]}
	store.state.grades = {"g1": {"s1": {"e1": 9}, "s2": {"e1": 7}}}
	backend = MagicMock()
	backend.push_grades = AsyncMock()
	coordinator = _coordinator(store, backend)

	assert asyncio.run(coordinator.async_sync_grades()) == 2
	assert asyncio.run(coordinator.async_sync_grades()) == 2
	assert backend.push_grades.await_count == 2
	assert _last_toast(store).message == "Calificaciones actualizadas."


def test_no_grades_means_no_request():
	store = _store()
	backend = MagicMock()
	backend.push_grades = AsyncMock()
	assert asyncio.run(_coordinator(store, backend).async_sync_grades()) == 0
	backend.push_grades.assert_not_awaited()
	assert _last_toast(store).message == "No hay calificaciones para sincronizar."


def test_tutorship_pulls_then_pushes_own_notes():
	store = _store()
	store.state.tutorship = {"s2": TutorshipEntry(summary="Mejora")}
	backend = MagicMock()
	backend.get_tutorship = AsyncMock(return_value=(
		[RemoteTutorship(student_name="ana maria lopez", strengths="Lee", author="Otra")],
		{"1A - Matemáticas": "juan gomez"},
	))
	backend.push_tutorship = AsyncMock()

	pushed = asyncio.run(_coordinator(store, backend).async_sync_tutorship())

	assert pushed == 1
	assert store.state.tutorship["s1"].strengths == "Lee"
	assert store.state.group_tutors == {"g1": "juan gomez"}
	records, tutors, professor = backend.push_tutorship.await_args.args
	assert {r.student_id for r in records} == {"s2"}
	assert tutors == {"g1": "juan gomez"}
	assert professor == "Juan Gómez"


def test_tutorship_local_edit_survives_older_server_copy():
	store = _store()
	store.state.tutorship = {"s1": TutorshipEntry(strengths="NUEVO local")}
	backend = MagicMock()
	backend.get_tutorship = AsyncMock(return_value=(
		[RemoteTutorship(student_name="Ana María López", strengths="viejo servidor")],
		{},
	))
	backend.push_tutorship = AsyncMock()

	assert asyncio.run(_coordinator(store, backend).async_sync_tutorship()) == 1
	records = backend.push_tutorship.await_args.args[0]
	assert [(r.student_id, r.strengths) for r in records] == [("s1", "NUEVO local")]
	assert store.state.tutorship["s1"].strengths == "NUEVO local"


def test_tutorship_of_another_tutor_is_read_only_and_silent():
	store = _store()
	backend = MagicMock()
	backend.get_tutorship = AsyncMock(return_value=(
		[RemoteTutorship(student_name="Luis Pérez", summary="Bien")],
		{"1A - Matemáticas": "Otra Profe"},
	))
	backend.push_tutorship = AsyncMock()

	assert asyncio.run(_coordinator(store, backend).async_sync_tutorship(silent=True)) == 0
	backend.push_tutorship.assert_not_awaited()
	assert store.state.toasts == []
	assert any(isinstance(action, SetGroupTutorsBulk) for action in store.history)


def test_schedule_import_creates_and_updates_groups():
	store = _store()
	schedule = MagicMock()
	schedule.get_full_schedule = AsyncMock(return_value=[
		ScheduleEntry("c1", "Martes", 8, 1, "Matemáticas", "1A"),
		ScheduleEntry("c2", "Jueves", 9, 1, "Física", "2B"),
	])

	assert asyncio.run(_coordinator(store, schedule=schedule).async_import_schedule()) == (1, 1)
	assert isinstance(store.history[0], SetTeacherSchedule)
	assert [group.name for group in store.state.groups] == ["1A - Matemáticas", "2B - Física"]
	assert store.state.groups[0].class_days == ["Martes"]
	assert _last_toast(store).message == "Horario actualizado: 1 grupos creados, 1 actualizados."


def test_schedule_import_reports_unknown_teacher():
	store = _store()
	schedule = MagicMock()
	schedule.get_full_schedule = AsyncMock(side_effect=AulaSyncDataError('No se encontró al profesor "Juan Gómez" en Firebase.'))

	assert asyncio.run(_coordinator(store, schedule=schedule).async_import_schedule()) is None
	assert len(store.state.groups) == 1
	assert "No se encontró al profesor" in _last_toast(store).message


def test_empty_schedule_changes_no_groups():
	store = _store()
	schedule = MagicMock()
	schedule.get_full_schedule = AsyncMock(return_value=[])
	assert asyncio.run(_coordinator(store, schedule=schedule).async_import_schedule()) == (0, 0)
	assert _last_toast(store).message == "No se encontraron clases en el horario."


def test_injected_session_is_not_closed():
	session = MagicMock()
	session.close = AsyncMock()

	async def run():
		async with SyncCoordinator(Store(), session=session):
			pass

	asyncio.run(run())
	session.close.assert_not_awaited()
