"""
Automatic weekly schedule generation
"""
import logging
import threading
import time
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from models.data_models import (
    GenerationResult, GenerationStage, GenerationStatus,
    LessonInstance, LessonTemplate, ScheduleAssignment, TimeSlot
)
from scheduler.config import SchedulerConfig, DEFAULT_CONFIG
from scheduler.conflicts import has_conflict
from scheduler.quality import compute_quality_score
from scheduler.time_grid import build_time_slots

logger = logging.getLogger(__name__)

NO_TEMPLATES_ERROR = "No lesson templates to generate a schedule from"
IN_PROGRESS_ERROR = "Schedule generation is already in progress"

# Runs delete every lesson before writing new ones; two at once would interleave.
_generation_lock = threading.Lock()


def monday_of_week(today: date) -> date:
    """Monday of the week containing ``today``; Sunday belongs to the week that started six days earlier"""
    return today - timedelta(days=today.weekday())


def expand_templates(templates: List[LessonTemplate]) -> List[LessonInstance]:
    """One instance per required weekly occurrence, in template-then-repetition order"""
    instances = []
    for t in templates:
        for _ in range(t.weekly_frequency):
            instances.append(LessonInstance(
                template_id=t.id,
                subject_id=t.subject_id,
                group_id=t.group_id,
                teacher_id=t.teacher_id
            ))
    return instances


class ScheduleGenerator:
    """Greedy first-fit placement of lesson templates into a week.

    Each instance takes the first (slot, room) pair that does not conflict
    with anything already placed in the same run. There is no backtracking,
    so an instance can stay unplaced even when another order would fit it.
    """

    def __init__(self, db_manager, config: SchedulerConfig = DEFAULT_CONFIG,
                 clock: Callable[[], datetime] = datetime.now,
                 priority: Optional[Callable[[LessonInstance], object]] = None):
        self.db = db_manager
        self.config = config
        self.clock = clock
        self.priority = priority
        self.stage = GenerationStage.NOT_STARTED

    def _enter(self, stage: GenerationStage):
        self.stage = stage
        logger.debug("Generation stage: %s", stage.value)

    def place(self, instances: List[LessonInstance], slots: List[TimeSlot],
              audience_ids: List[str]):
        """Place instances first-fit; returns (assignments, conflict messages)"""
        assignments: List[ScheduleAssignment] = []
        conflicts: List[str] = []

        for inst in instances:
            placed = None
            for slot in slots:
                for audience_id in audience_ids:
                    candidate = ScheduleAssignment(
                        template_id=inst.template_id,
                        subject_id=inst.subject_id,
                        group_id=inst.group_id,
                        teacher_id=inst.teacher_id,
                        audience_id=audience_id,
                        slot=slot
                    )
                    if not has_conflict(candidate, assignments):
                        placed = candidate
                        break
                if placed:
                    break

            if placed:
                assignments.append(placed)
            else:
                message = f"Could not place lesson: template {inst.template_id}, group {inst.group_id}"
                logger.warning(message)
                conflicts.append(message)

        return assignments, conflicts

    def _persist(self, assignments: List[ScheduleAssignment], initiator_id: str):
        self.db.delete_all_lessons()

        monday = datetime.combine(monday_of_week(self.clock().date()), datetime.min.time())
        day_index = {day: i for i, day in enumerate(self.config.working_days)}

        for a in assignments:
            day_start = monday + timedelta(days=day_index[a.slot.day])
            self.db.create_lesson(
                subject_id=a.subject_id,
                group_id=a.group_id,
                teacher_id=a.teacher_id,
                audience_id=a.audience_id,
                start_at=day_start + timedelta(minutes=a.slot.start_min),
                end_at=day_start + timedelta(minutes=a.slot.end_min),
                created_by=initiator_id
            )

    def generate_schedule(self, initiator_id: str) -> GenerationResult:
        """Rebuild the current week's lessons from the lesson templates"""
        if not _generation_lock.acquire(blocking=False):
            logger.warning("Generation requested by %s while another run is active", initiator_id)
            return GenerationResult(success=False, error=IN_PROGRESS_ERROR)
        try:
            return self._generate(initiator_id)
        finally:
            _generation_lock.release()

    def _generate(self, initiator_id: str) -> GenerationResult:
        self.stage = GenerationStage.NOT_STARTED
        start_time = time.monotonic()

        try:
            templates = self.db.get_lesson_templates()
            if not templates:
                # Precondition failure: reported as data, no run record
                logger.info("No lesson templates found, nothing to generate")
                return GenerationResult(success=False, error=NO_TEMPLATES_ERROR)

            logger.info("Starting schedule generation for %d templates (initiator %s)",
                        len(templates), initiator_id)
            audiences = self.db.get_audiences()
            groups = self.db.get_groups()
            subjects = self.db.get_subjects()
            logger.debug("Loaded %d audiences, %d groups, %d subjects",
                         len(audiences), len(groups), len(subjects))

            self._enter(GenerationStage.EXPANDING)
            instances = expand_templates(templates)
            if self.priority is not None:
                instances = sorted(instances, key=self.priority)

            self._enter(GenerationStage.PLACING)
            slots = build_time_slots(self.config)
            assignments, conflicts = self.place(instances, slots, [a.id for a in audiences])

            self._enter(GenerationStage.PERSISTING)
            self._persist(assignments, initiator_id)

            self._enter(GenerationStage.SCORING)
            quality = compute_quality_score(assignments, self.config)

            duration_ms = int((time.monotonic() - start_time) * 1000)
            total = len(instances)
            placed = len(assignments)
            run = self.db.create_generation_run(
                status=GenerationStatus.SUCCESS.value,
                conflict_count=len(conflicts),
                summary={
                    "totalTemplates": len(templates),
                    "totalLessonsToPlace": total,
                    "placedLessons": placed,
                    "unplacedLessons": total - placed,
                    "conflicts": conflicts,
                    "durationMs": duration_ms,
                    "quality": quality,
                },
                created_by=initiator_id
            )
            self._enter(GenerationStage.RECORDED)

            logger.info("Generation run %s finished: %d/%d placed, quality %d, %d ms",
                        run.id, placed, total, quality, duration_ms)
            return GenerationResult(
                success=True,
                run_id=run.id,
                total_lessons=total,
                placed_lessons=placed,
                unplaced_lessons=total - placed,
                conflicts=conflicts,
                duration_seconds=f"{duration_ms / 1000:.2f}"
            )

        except Exception as e:
            logger.exception("Schedule generation failed during %s", self.stage.value)
            duration_ms = int((time.monotonic() - start_time) * 1000)
            try:
                self.db.create_generation_run(
                    status=GenerationStatus.FAILED.value,
                    conflict_count=0,
                    summary={"error": str(e), "durationMs": duration_ms},
                    created_by=initiator_id
                )
                self._enter(GenerationStage.RECORDED)
            except Exception:
                logger.exception("Could not record the failed generation run")
            raise
