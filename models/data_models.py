"""
Data models for the timetable scheduling system
"""
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class GenerationStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class GenerationStage(str, Enum):
    """Progress of a single generation run"""
    NOT_STARTED = "NOT_STARTED"
    EXPANDING = "EXPANDING"
    PLACING = "PLACING"
    PERSISTING = "PERSISTING"
    SCORING = "SCORING"
    RECORDED = "RECORDED"


@dataclass
class User:
    id: str
    role: str
    first_name: str
    last_name: str
    middle_name: str
    login: str
    password_hash: str
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name} {self.middle_name}".strip()


@dataclass
class Teacher:
    id: str
    user_id: str


@dataclass
class Student:
    id: str
    user_id: str
    group_id: str


@dataclass
class Group:
    id: str
    name: str
    year: int
    course: int
    student_count: int = 0


@dataclass
class Subject:
    id: str
    name: str
    short_name: str
    default_duration_minutes: int = 85


@dataclass
class Audience:
    id: str
    name: str
    capacity: int
    resources: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LessonTemplate:
    id: str
    subject_id: str
    group_id: str
    teacher_id: str
    weekly_frequency: int = 1
    # Stored for the admin screens, not consulted by the generator
    preferred_days: List[str] = field(default_factory=list)
    preferred_times: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimeSlot:
    day: str
    start_min: int
    end_min: int

    @property
    def start_time(self) -> time:
        return time(self.start_min // 60, self.start_min % 60)

    @property
    def end_time(self) -> time:
        return time(self.end_min // 60, self.end_min % 60)

    @property
    def length_min(self) -> int:
        return self.end_min - self.start_min

    @property
    def label(self) -> str:
        return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"


@dataclass(frozen=True)
class LessonInstance:
    template_id: str
    subject_id: str
    group_id: str
    teacher_id: str


@dataclass(frozen=True)
class ScheduleAssignment:
    template_id: str
    subject_id: str
    group_id: str
    teacher_id: str
    audience_id: str
    slot: TimeSlot


@dataclass
class Lesson:
    id: str
    subject_id: str
    group_id: str
    teacher_id: str
    audience_id: str
    start_at: datetime
    end_at: datetime
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class LessonView:
    """A lesson together with the rows it references"""
    lesson: Lesson
    subject: Optional[Subject]
    group: Optional[Group]
    teacher: Optional[Teacher]
    teacher_name: str
    audience: Optional[Audience]


@dataclass
class ScheduleGenerationRun:
    id: str
    status: str
    conflict_count: int
    summary: Dict[str, Any]
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class GenerationResult:
    success: bool
    run_id: Optional[str] = None
    total_lessons: Optional[int] = None
    placed_lessons: Optional[int] = None
    unplaced_lessons: Optional[int] = None
    conflicts: Optional[List[str]] = None
    duration_seconds: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the result in the shape handed to callers, skipping unset keys"""
        keys = {
            "success": self.success,
            "runId": self.run_id,
            "totalLessons": self.total_lessons,
            "placedLessons": self.placed_lessons,
            "unplacedLessons": self.unplaced_lessons,
            "conflicts": self.conflicts,
            "durationSeconds": self.duration_seconds,
            "error": self.error,
        }
        return {k: v for k, v in keys.items() if v is not None}
