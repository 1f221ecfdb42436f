"""
Weekly time slot grid
"""
from typing import List

from models.data_models import TimeSlot
from scheduler.config import SchedulerConfig, DEFAULT_CONFIG


def build_time_slots(config: SchedulerConfig = DEFAULT_CONFIG) -> List[TimeSlot]:
    """Enumerate every lesson slot of a standard week.

    Slots are grouped by day in ``config.working_days`` order and are
    chronological within a day. A slot may end exactly at closing time.
    The generator walks this list front to back, so the order is also the
    placement priority.
    """
    slots = []
    step = config.lesson_minutes + config.break_minutes

    for day in config.working_days:
        cursor = config.day_start_min
        while cursor + config.lesson_minutes <= config.day_end_min:
            slots.append(TimeSlot(day=day, start_min=cursor, end_min=cursor + config.lesson_minutes))
            cursor += step

    return slots
