"""
Hard constraint checks for lesson placements
"""
from typing import Iterable, List, Tuple

from models.data_models import ScheduleAssignment, TimeSlot


def slots_overlap(a: TimeSlot, b: TimeSlot) -> bool:
    """Same day and intersecting [start, end) intervals; touching slots do not overlap"""
    if a.day != b.day:
        return False
    return a.start_min < b.end_min and b.start_min < a.end_min


def is_hard_conflict(a: ScheduleAssignment, b: ScheduleAssignment) -> bool:
    """Check if two assignments double-book a group, teacher or room"""
    if not slots_overlap(a.slot, b.slot):
        return False

    if a.group_id == b.group_id:
        return True

    if a.teacher_id == b.teacher_id:
        return True

    if a.audience_id == b.audience_id:
        return True

    return False


def has_conflict(candidate: ScheduleAssignment, placed: Iterable[ScheduleAssignment]) -> bool:
    return any(is_hard_conflict(candidate, other) for other in placed)


def find_conflicts(assignments: List[ScheduleAssignment]) -> List[Tuple[ScheduleAssignment, ScheduleAssignment]]:
    """Return every conflicting pair in a complete placement set"""
    pairs = []
    for i, a in enumerate(assignments):
        for b in assignments[i + 1:]:
            if is_hard_conflict(a, b):
                pairs.append((a, b))
    return pairs
