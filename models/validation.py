"""
Input checks applied before entities are written to the database
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable

from models.data_models import Role


@dataclass(eq=False)
class ValidationError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


def _require_text(values: Dict[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        if key in values and not str(values[key] or "").strip():
            raise ValidationError(f"Field '{key}' must not be empty")


def _require_int_range(values: Dict[str, Any], key: str, low: int, high: int = None) -> None:
    if key not in values:
        return
    value = values[key]
    # bool is an int subclass; a checkbox value is never a valid count
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"Field '{key}' must be an integer")
    if value < low or (high is not None and value > high):
        bound = f"{low}..{high}" if high is not None else f">= {low}"
        raise ValidationError(f"Field '{key}' must be in range {bound}, got {value}")


def validate_user(values: Dict[str, Any]) -> None:
    _require_text(values, ("first_name", "last_name", "middle_name", "login"))
    if "role" in values and values["role"] not in {r.value for r in Role}:
        raise ValidationError(f"Unknown role: {values['role']}")


def validate_group(values: Dict[str, Any]) -> None:
    _require_text(values, ("name",))
    _require_int_range(values, "year", 2000, 2100)
    _require_int_range(values, "course", 1, 6)
    _require_int_range(values, "student_count", 0)


def validate_subject(values: Dict[str, Any]) -> None:
    _require_text(values, ("name", "short_name"))
    _require_int_range(values, "default_duration_minutes", 1)


def validate_audience(values: Dict[str, Any]) -> None:
    _require_text(values, ("name",))
    _require_int_range(values, "capacity", 1)
    if "resources" in values and not isinstance(values["resources"], dict):
        raise ValidationError("Field 'resources' must be a mapping")


def validate_lesson_template(values: Dict[str, Any]) -> None:
    _require_text(values, ("subject_id", "group_id", "teacher_id"))
    _require_int_range(values, "weekly_frequency", 1, 10)
    for key in ("preferred_days", "preferred_times"):
        if key in values and not isinstance(values[key], list):
            raise ValidationError(f"Field '{key}' must be a list")


def validate_lesson(values: Dict[str, Any]) -> None:
    _require_text(values, ("subject_id", "group_id", "teacher_id", "audience_id"))
    start_at = values.get("start_at")
    end_at = values.get("end_at")
    if isinstance(start_at, datetime) and isinstance(end_at, datetime) and end_at <= start_at:
        raise ValidationError("Lesson must end after it starts")
