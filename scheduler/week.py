"""
Helpers for laying persisted lessons out on the weekly grid
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Tuple

from models.data_models import LessonView
from scheduler.config import SchedulerConfig


def week_bounds(monday: date) -> Tuple[datetime, datetime]:
    """Half-open [Monday 00:00, next Monday 00:00) range for lesson queries"""
    start = datetime.combine(monday, datetime.min.time())
    return start, start + timedelta(days=7)


def arrange_lessons(lessons: List[LessonView], config: SchedulerConfig) -> Dict[Tuple[str, str], List[LessonView]]:
    """Key lessons by (day name, 'HH:MM - HH:MM') to match the viewer grid"""
    grid = {}
    for view in lessons:
        start, end = view.lesson.start_at, view.lesson.end_at
        day_index = start.weekday()
        if day_index >= len(config.working_days):
            continue
        label = f"{start:%H:%M} - {end:%H:%M}"
        key = (config.working_days[day_index], label)
        if key not in grid:
            grid[key] = []
        grid[key].append(view)
    return grid
