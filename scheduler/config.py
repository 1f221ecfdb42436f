"""
Scheduling parameters and application settings
"""
import os
from dataclasses import dataclass, field
from datetime import time
from typing import Tuple


@dataclass(frozen=True)
class SchedulerConfig:
    working_days: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
    day_start: time = time(8, 0)
    day_end: time = time(20, 0)
    lesson_minutes: int = 85
    break_minutes: int = 10

    # Soft constraint: penalise idle windows in a teacher's day
    gap_threshold_minutes: int = 120
    gap_penalty: int = 10

    def __post_init__(self):
        if not self.working_days:
            raise ValueError("At least one working day is required")
        if self.lesson_minutes <= 0:
            raise ValueError(f"Lesson duration must be positive, got {self.lesson_minutes}")
        if self.break_minutes < 0:
            raise ValueError(f"Break duration must not be negative, got {self.break_minutes}")
        if self.day_end_min <= self.day_start_min:
            raise ValueError("Working day must end after it starts")

    @property
    def day_start_min(self) -> int:
        return self.day_start.hour * 60 + self.day_start.minute

    @property
    def day_end_min(self) -> int:
        return self.day_end.hour * 60 + self.day_end.minute


DEFAULT_CONFIG = SchedulerConfig()


@dataclass(frozen=True)
class AppConfig:
    db_file: str = "timetable.db"
    log_level: str = "INFO"
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            db_file=os.environ.get("TIMETABLE_DB", cls.db_file),
            log_level=os.environ.get("TIMETABLE_LOG_LEVEL", cls.log_level).upper(),
        )
