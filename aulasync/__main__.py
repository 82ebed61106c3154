"""Command line entry point: ``python -m aulasync <command>``."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .api.auth import ClassroomAuth
from .api.exceptions import AulaSyncError
from .classroom_flow import ClassroomImportFlow, WizardState
from .config import get_app_config, load_settings, merge_settings
from .const import DOMAIN, LEVEL_ERROR, MSG_CLASSROOM_NO_COURSES, MSG_INVALID_OPTION, SCOPE_ALL, SCOPE_TODAY
from .coordinator import SyncCoordinator
from .storage import StateFile, pending_toasts
from .store import Store

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog=DOMAIN, description="Sincroniza el registro de clase con servicios remotos.")
	parser.add_argument("--env-file", help="Archivo .env con la configuración")
	parser.add_argument("--state-file", help="Archivo JSON con el estado local")
	commands = parser.add_subparsers(dest="command", required=True)

	attendance = commands.add_parser("attendance", help="Sube asistencias pendientes")
	attendance.add_argument("--scope", choices=(SCOPE_TODAY, SCOPE_ALL), default=SCOPE_TODAY)
	commands.add_parser("grades", help="Sube todas las calificaciones")
	commands.add_parser("tutorship", help="Sincroniza fichas de tutoría")
	commands.add_parser("schedule", help="Importa grupos desde el horario")

	classroom = commands.add_parser("classroom", help="Importa calificaciones de Google Classroom")
	classroom.add_argument("--group", required=True, help="Id del grupo local")
	return parser


def _ask(prompt: str) -> str:
	return input(prompt).strip()


def parse_selection(text: str, count: int) -> List[int]:
	"""Turn a comma separated list of 1-based menu numbers into indexes.

	Args:
		text: User input such as ``"1, 3"``
		count: Number of menu entries

	Returns:
		Zero-based indexes in input order, without repeats

	Raises:
		ValueError: When an item is not a number or is out of range
	"""
	indexes: List[int] = []
	for item in text.split(","):
		number = int(item.strip())
		if not 1 <= number <= count:
			raise ValueError(f"Option out of range: {number}")
		if number - 1 not in indexes:
			indexes.append(number - 1)
	return indexes


async def _ask_selection(prompt: str, count: int, single: bool = False) -> Optional[List[int]]:
	"""Prompt until the answer is empty or a valid selection."""
	while True:
		answer = await asyncio.to_thread(_ask, prompt)
		if not answer:
			return None
		try:
			indexes = parse_selection(answer, count)
		except ValueError as e:
			_LOGGER.debug(f"Rejected menu answer {answer!r}: {e}")
			print(MSG_INVALID_OPTION)
			continue
		if single and len(indexes) != 1:
			print(MSG_INVALID_OPTION)
			continue
		return indexes


async def _run_classroom(store: Store, group_id: str) -> None:
	settings = store.state.settings
	auth = ClassroomAuth(
		settings.google_client_id,
		settings.google_client_secret,
		redirect_host=settings.oauth_redirect_host,
		redirect_port=settings.oauth_redirect_port,
	)
	async with ClassroomImportFlow(store, group_id, auth) as flow:
		if flow.state is WizardState.UNCONFIGURED:
			print(flow.log[-1])
			return
		if not await flow.async_step_login():
			return

		if not flow.courses:
			print(MSG_CLASSROOM_NO_COURSES)
			return
		for index, course in enumerate(flow.courses, 1):
			marker = "*" if course.id == flow.selected_course_id else " "
			print(f"{marker} {index}. {course.name}")
		choice = await _ask_selection("Curso (Enter para el marcado): ", len(flow.courses), single=True)
		while choice is None and flow.selected_course_id is None:
			print(MSG_INVALID_OPTION)
			choice = await _ask_selection("Curso: ", len(flow.courses), single=True)
		if choice:
			flow.select_course(flow.courses[choice[0]].id)
		if not await flow.async_step_course():
			return

		for index, work in enumerate(flow.assignments, 1):
			print(f"  {index}. {work.title} ({work.max_points or '-'} pts)")
		choice = await _ask_selection("Tareas separadas por comas (Enter para todas): ", len(flow.assignments))
		if choice:
			for index in choice:
				flow.toggle_assignment(flow.assignments[index].id)
		else:
			flow.select_all_assignments()

		await flow.async_step_sync()
		for line in flow.log:
			print(line)


async def _run(args: argparse.Namespace, state_path: str) -> int:
	state_file = StateFile(state_path)
	state = await state_file.async_load()
	stored_settings = state.settings
	state.settings = merge_settings(load_settings(args.env_file), stored_settings)
	store = Store(state)

	if args.command == "classroom":
		await _run_classroom(store, args.group)
	else:
		async with SyncCoordinator(store) as coordinator:
			if args.command == "attendance":
				await coordinator.async_sync_attendance(args.scope)
			elif args.command == "grades":
				await coordinator.async_sync_grades()
			elif args.command == "tutorship":
				await coordinator.async_sync_tutorship()
			elif args.command == "schedule":
				await coordinator.async_import_schedule()

	toasts = pending_toasts(state)
	for toast in toasts:
		print(f"[{toast.level}] {toast.message}")

	# Values taken from the environment are not written back
	state.settings = stored_settings
	await state_file.async_save(state)
	return 1 if any(toast.level == LEVEL_ERROR for toast in toasts) else 0


def main(argv: Optional[List[str]] = None) -> int:
	args = build_parser().parse_args(argv)
	load_dotenv(args.env_file)
	app_config = get_app_config()
	logging.basicConfig(
		level=getattr(logging, app_config.log_level),
		format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
	)

	try:
		return asyncio.run(_run(args, args.state_file or app_config.state_file))
	except KeyboardInterrupt:
		_LOGGER.info("Stopped by user")
		return 130
	except AulaSyncError as e:
		_LOGGER.error(f"An error occurred: {e}", exc_info=True)
		return 1


if __name__ == "__main__":
	sys.exit(main())
