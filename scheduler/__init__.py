"""Schedule generation package"""
from .config import SchedulerConfig, AppConfig, DEFAULT_CONFIG
from .time_grid import build_time_slots
from .conflicts import slots_overlap, has_conflict, find_conflicts
from .quality import compute_quality_score
from .generator import ScheduleGenerator, monday_of_week, expand_templates
from .week import week_bounds, arrange_lessons

__all__ = [
    'SchedulerConfig', 'AppConfig', 'DEFAULT_CONFIG',
    'build_time_slots', 'slots_overlap', 'has_conflict', 'find_conflicts',
    'compute_quality_score', 'ScheduleGenerator', 'monday_of_week', 'expand_templates',
    'week_bounds', 'arrange_lessons'
]
