#!/usr/bin/env python3
"""Tests for the Classroom import wizard state machine."""

import asyncio
from itertools import count
from unittest.mock import AsyncMock, MagicMock

import pytest

from aulasync.api.auth import ClassroomAuth
from aulasync.api.exceptions import AulaSyncAPIError, AulaSyncEnvironmentError
from aulasync.api.models import (
	ClassroomCourse,
	ClassroomCourseWork,
	ClassroomStudentProfile,
	ClassroomSubmission,
)
from aulasync.classroom_flow import ClassroomImportFlow, InvalidTransition, WizardState
from aulasync.const import LEVEL_ERROR, LEVEL_SUCCESS
from aulasync.models import Evaluation
from aulasync.store import AppState, SaveEvaluation, Store

from fakes import make_group

CLIENT_ID = "1234.apps.googleusercontent.com"


def _classroom_client():
	client = MagicMock()
	client.list_courses = AsyncMock(return_value=[
		ClassroomCourse("c0", "Historia"),
		ClassroomCourse("c1", "1A Matemáticas"),
	])
	client.list_course_work = AsyncMock(return_value=[
		ClassroomCourseWork("w1", "Tarea 1", 20.0),
		ClassroomCourseWork("w2", "Tarea 2", None),
	])
	client.list_students = AsyncMock(return_value=[
		ClassroomStudentProfile("u1", "ANA MARÍA LÓPEZ"),
		ClassroomStudentProfile("u2", "Alumno Externo"),
	])
	client.list_submissions = AsyncMock(return_value=[
		ClassroomSubmission("x1", "u1", 18.0),
		ClassroomSubmission("x2", "u2", 15.0),
		ClassroomSubmission("x3", "u1", None),
	])
	return client


def _flow(client=None, store=None, auth=None):
	store = store or Store(AppState(groups=[make_group(name="1A Matemáticas")]))
	client = client or _classroom_client()
	auth = auth or ClassroomAuth(CLIENT_ID, token_provider=AsyncMock(return_value="tok"))
	ids = count(1)
	flow = ClassroomImportFlow(
		store, "g1", auth,
		session=MagicMock(),
		client_factory=lambda token, session: client,
		id_factory=lambda: f"e{next(ids)}",
	)
	return flow, store, client


async def _to_assignments(flow):
	assert await flow.async_step_login()
	assert await flow.async_step_course()


def test_unconfigured_client_id_blocks_the_flow():
	flow, _, _ = _flow(auth=ClassroomAuth(""))
	assert flow.state is WizardState.UNCONFIGURED
	with pytest.raises(InvalidTransition):
		asyncio.run(flow.async_step_login())


def test_login_preselects_matching_course():
	flow, _, client = _flow()
	assert asyncio.run(flow.async_step_login())
	assert flow.state is WizardState.COURSE_SELECTION
	assert flow.selected_course_id == "c1"
	client.list_courses.assert_awaited_once()
	assert flow.log == ["Conectado a Google: 2 cursos encontrados."]


def test_environment_error_keeps_login_state():
	auth = ClassroomAuth(CLIENT_ID, token_provider=AsyncMock(side_effect=AulaSyncEnvironmentError("usa localhost")))
	flow, store, _ = _flow(auth=auth)
	assert not asyncio.run(flow.async_step_login())
	assert flow.state is WizardState.AWAITING_LOGIN
	assert store.state.toasts[-1].message == "usa localhost"


def test_login_failure_is_logged_and_keeps_login_state():
	client = _classroom_client()
	client.list_courses = AsyncMock(side_effect=AulaSyncAPIError("boom", status=500))
	flow, store, _ = _flow(client)
	assert not asyncio.run(flow.async_step_login())
	assert flow.state is WizardState.AWAITING_LOGIN
	assert flow.log == ["❌ Error al conectar con Google: boom"]
	assert store.state.toasts[-1].message == "Error al conectar con Google."


def test_course_work_failure_stays_in_course_selection():
	client = _classroom_client()
	client.list_course_work = AsyncMock(side_effect=AulaSyncAPIError("boom", status=500))
	flow, store, _ = _flow(client)

	async def run():
		await flow.async_step_login()
		return await flow.async_step_course()

	assert not asyncio.run(run())
	assert flow.state is WizardState.COURSE_SELECTION
	assert store.state.toasts[-1].message == "Error al obtener tareas."
	assert flow.log[-1] == "❌ Error al obtener tareas: boom"


def test_illegal_steps_raise():
	flow, _, _ = _flow()
	with pytest.raises(InvalidTransition):
		flow.toggle_assignment("w1")
	with pytest.raises(InvalidTransition):
		asyncio.run(flow.async_step_sync())
	with pytest.raises(InvalidTransition):
		flow.go_back()


def test_back_navigation_and_selection():
	flow, _, _ = _flow()
	asyncio.run(_to_assignments(flow))
	flow.toggle_assignment("w1")
	flow.toggle_assignment("w2")
	flow.toggle_assignment("w1")
	assert flow.selected_assignment_ids == ["w2"]
	flow.select_all_assignments()
	assert flow.selected_assignment_ids == ["w1", "w2"]

	flow.go_back()
	assert flow.state is WizardState.COURSE_SELECTION
	flow.select_course("c0")
	assert flow.selected_course_id == "c0"
	with pytest.raises(ValueError):
		flow.select_course("missing")


def test_sync_creates_evaluations_and_imports_matched_grades():
	flow, store, client = _flow()

	async def run():
		await _to_assignments(flow)
		flow.select_all_assignments()
		return await flow.async_step_sync()

	assert asyncio.run(run())
	assert flow.state is WizardState.DONE
	client.list_students.assert_awaited_once_with("c1")
	assert flow.log[:2] == ["Conectado a Google: 2 cursos encontrados.", "2 tareas encontradas."]

	evaluations = store.state.group_evaluations("g1")
	assert [(e.name, e.max_score, e.partial, e.type_id) for e in evaluations] == [
		("Tarea 1", 20.0, 1, "g1-t1"),
		("Tarea 2", 10, 1, "g1-t1"),
	]
	assert store.state.grades["g1"] == {"s1": {"e1": 18.0, "e2": 18.0}}
	assert "Sin coincidencia para el alumno: Alumno Externo" in flow.log
	assert '✓ 1 calificaciones actualizadas para "Tarea 1"' in flow.log
	assert flow.log[-1] == "Sincronización completada con éxito."
	assert store.state.toasts[-1].level == LEVEL_SUCCESS


def test_reimport_reuses_existing_evaluation():
	store = Store(AppState(groups=[make_group(name="1A Matemáticas")]))
	store.dispatch(SaveEvaluation("g1", Evaluation(id="old", name="Tarea 1", max_score=20, partial=2, type_id="g1-t2")))
	flow, _, _ = _flow(store=store)

	async def run():
		await _to_assignments(flow)
		flow.toggle_assignment("w1")
		return await flow.async_step_sync()

	assert asyncio.run(run())
	assert [e.id for e in store.state.group_evaluations("g1")] == ["old"]
	assert store.state.grades["g1"]["s1"] == {"old": 18.0}


def test_unmatched_roster_changes_no_grades():
	client = _classroom_client()
	client.list_students = AsyncMock(return_value=[ClassroomStudentProfile("u1", "Otra Persona")])
	flow, store, _ = _flow(client)

	async def run():
		await _to_assignments(flow)
		flow.toggle_assignment("w1")
		return await flow.async_step_sync()

	assert asyncio.run(run())
	assert store.state.grades == {}
	assert '✓ 0 calificaciones actualizadas para "Tarea 1"' in flow.log


def test_failure_during_sync_stays_in_syncing_and_keeps_partial_work():
	client = _classroom_client()
	client.list_submissions = AsyncMock(side_effect=[
		[ClassroomSubmission("x1", "u1", 18.0)],
		AulaSyncAPIError("boom", status=500),
	])
	flow, store, _ = _flow(client)

	async def run():
		await _to_assignments(flow)
		flow.select_all_assignments()
		return await flow.async_step_sync()

	assert not asyncio.run(run())
	assert flow.state is WizardState.SYNCING
	assert store.state.grades["g1"]["s1"] == {"e1": 18.0}
	assert flow.log[-1].startswith("❌ Error fatal durante la sincronización")
	assert store.state.toasts[-1].level == LEVEL_ERROR
