"""
Soft constraint scoring of a finished placement set
"""
import logging
from typing import Dict, List, Tuple

from models.data_models import ScheduleAssignment
from scheduler.config import SchedulerConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def _bucket(assignments: List[ScheduleAssignment], attr: str) -> Dict[Tuple[str, str], List[ScheduleAssignment]]:
    buckets = {}
    for a in assignments:
        key = (a.slot.day, getattr(a, attr))
        if key not in buckets:
            buckets[key] = []
        buckets[key].append(a)
    for items in buckets.values():
        items.sort(key=lambda a: a.slot.start_min)
    return buckets


def _large_gaps(buckets: Dict[Tuple[str, str], List[ScheduleAssignment]], threshold: int) -> int:
    count = 0
    for items in buckets.values():
        for prev, nxt in zip(items, items[1:]):
            if nxt.slot.start_min - prev.slot.end_min > threshold:
                count += 1
    return count


def compute_quality_score(assignments: List[ScheduleAssignment],
                          config: SchedulerConfig = DEFAULT_CONFIG) -> int:
    """Score schedule compactness; 0 is perfect and every long teacher gap costs a penalty.

    Only the per-teacher buckets are scored. Per-group gaps are counted for
    the debug log and do not change the score.
    """
    by_teacher = _bucket(assignments, "teacher_id")
    by_group = _bucket(assignments, "group_id")

    teacher_gaps = _large_gaps(by_teacher, config.gap_threshold_minutes)
    group_gaps = _large_gaps(by_group, config.gap_threshold_minutes)
    logger.debug("Large gaps: %d teacher-day, %d group-day (unscored)", teacher_gaps, group_gaps)

    return -config.gap_penalty * teacher_gaps
