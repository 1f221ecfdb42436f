"""Data models package"""
from .data_models import (
    Role, GenerationStatus, GenerationStage,
    User, Teacher, Student, Group, Subject, Audience, LessonTemplate,
    TimeSlot, LessonInstance, ScheduleAssignment, Lesson, LessonView,
    ScheduleGenerationRun, GenerationResult
)
from .validation import ValidationError

__all__ = [
    'Role', 'GenerationStatus', 'GenerationStage',
    'User', 'Teacher', 'Student', 'Group', 'Subject', 'Audience', 'LessonTemplate',
    'TimeSlot', 'LessonInstance', 'ScheduleAssignment', 'Lesson', 'LessonView',
    'ScheduleGenerationRun', 'GenerationResult', 'ValidationError'
]
