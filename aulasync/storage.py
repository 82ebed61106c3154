"""JSON persistence of the application state."""

import asyncio
import json
import logging
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .api.exceptions import AulaSyncDataError
from .api.models import ScheduleEntry
from .models import (
	AttendanceStatus,
	Evaluation,
	EvaluationType,
	EvaluationTypes,
	Group,
	Settings,
	Student,
	TutorshipEntry,
)
from .store import AppState, Toast

_LOGGER = logging.getLogger(__name__)

STORAGE_VERSION = 1


def _serialize_dataclass(obj: Any) -> Any:
	"""Recursively serialize dataclass objects to dicts with enum conversion."""
	if is_dataclass(obj) and not isinstance(obj, type):
		return _serialize_dataclass(asdict(obj))
	elif isinstance(obj, Enum):
		return obj.value
	elif isinstance(obj, (list, tuple)):
		return [_serialize_dataclass(item) for item in obj]
	elif isinstance(obj, dict):
		return {key: _serialize_dataclass(value) for key, value in obj.items()}
	else:
		return obj


def _group_from_dict(data: Dict[str, Any]) -> Group:
	types = data.get("evaluation_types") or {}
	return Group(
		id=data["id"],
		name=data["name"],
		subject=data.get("subject", ""),
		students=[Student(**student) for student in data.get("students", [])],
		class_days=list(data.get("class_days", [])),
		evaluation_types=EvaluationTypes(
			partial1=[EvaluationType(**item) for item in types.get("partial1", [])],
			partial2=[EvaluationType(**item) for item in types.get("partial2", [])],
		),
		color=data.get("color", ""),
		quarter=data.get("quarter"),
	)


def state_to_dict(state: AppState) -> Dict[str, Any]:
	"""Serialise the state; toasts are transient and not kept."""
	data = _serialize_dataclass(state)
	data.pop("toasts", None)
	data["version"] = STORAGE_VERSION
	return data


def state_from_dict(data: Dict[str, Any]) -> AppState:
	"""Rebuild the state from its serialised form.

	Raises:
		AulaSyncDataError: When the data does not describe a state
	"""
	try:
		attendance = {
			group_id: {
				student_id: {day: AttendanceStatus(status) for day, status in days.items()}
				for student_id, days in students.items()
			}
			for group_id, students in data.get("attendance", {}).items()
		}
		return AppState(
			groups=[_group_from_dict(group) for group in data.get("groups", [])],
			attendance=attendance,
			evaluations={
				group_id: [Evaluation(**item) for item in items]
				for group_id, items in data.get("evaluations", {}).items()
			},
			grades=data.get("grades", {}),
			tutorship={
				student_id: TutorshipEntry(**entry)
				for student_id, entry in data.get("tutorship", {}).items()
			},
			group_tutors=dict(data.get("group_tutors", {})),
			teacher_schedule=[ScheduleEntry(**entry) for entry in data.get("teacher_schedule", [])],
			settings=Settings(**data.get("settings", {})),
		)
	except (KeyError, TypeError, ValueError, AttributeError) as e:
		raise AulaSyncDataError(f"Invalid state data: {e}") from e


class StateFile:
	"""Loads and saves the state as a JSON file."""

	def __init__(self, path: str) -> None:
		self.path = Path(path)

	def _read(self) -> Optional[Dict[str, Any]]:
		if not self.path.exists():
			return None
		with self.path.open(encoding="utf-8") as handle:
			return json.load(handle)

	def _write(self, data: Dict[str, Any]) -> None:
		tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
		with tmp_path.open("w", encoding="utf-8") as handle:
			json.dump(data, handle, ensure_ascii=False, indent=2)
		tmp_path.replace(self.path)

	async def async_load(self) -> AppState:
		"""Load the state, or an empty one when the file does not exist."""
		try:
			data = await asyncio.to_thread(self._read)
		except json.JSONDecodeError as e:
			raise AulaSyncDataError(f"State file {self.path} is not valid JSON") from e
		if data is None:
			_LOGGER.info(f"No state file at {self.path}, starting empty")
			return AppState()

		version = data.get("version", STORAGE_VERSION)
		if version != STORAGE_VERSION:
			_LOGGER.warning(f"State file version {version} differs from {STORAGE_VERSION}")
		state = state_from_dict(data)
		_LOGGER.debug(f"Loaded {len(state.groups)} groups from {self.path}")
		return state

	async def async_save(self, state: AppState) -> None:
		await asyncio.to_thread(self._write, state_to_dict(state))
		_LOGGER.debug(f"Saved state to {self.path}")


def pending_toasts(state: AppState) -> List[Toast]:
	"""Take the queued toasts, leaving the queue empty."""
	toasts = list(state.toasts)
	state.toasts.clear()
	return toasts
