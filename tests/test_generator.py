"""Unit tests for the schedule generator

Covers scheduler/generator.py against an in-memory database
"""

import unittest
import sys
from datetime import date, datetime
from pathlib import Path

# Add the project root to the path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from database.database_manager import DatabaseManager
from database.errors import RepositoryError
from database.seed import seed_demo_data
from models.data_models import GenerationStage, LessonInstance, Role
from scheduler import generator as generator_module
from scheduler.config import DEFAULT_CONFIG
from scheduler.conflicts import find_conflicts
from scheduler.generator import (
    ScheduleGenerator, monday_of_week, expand_templates,
    NO_TEMPLATES_ERROR, IN_PROGRESS_ERROR
)
from scheduler.time_grid import build_time_slots

WEDNESDAY = datetime(2026, 10, 14, 10, 30)


def fixed_clock():
    return WEDNESDAY


class FailingDatabaseManager(DatabaseManager):
    """Breaks while writing lessons"""

    def create_lesson(self, *args, **kwargs):
        raise RepositoryError("disk I/O error")


class ClosingDatabaseManager(DatabaseManager):
    """Loses its connection right after the week is cleared"""

    def delete_all_lessons(self):
        deleted = super().delete_all_lessons()
        self.close()
        return deleted


class GeneratorTestCase(unittest.TestCase):
    db_class = DatabaseManager

    def setUp(self):
        self.db = self.db_class(":memory:")
        self.admin = self.db.create_user(Role.ADMIN.value, "Ivan", "Ivanov", "Ivanovich", "admin", "x")
        self.teachers = []
        for i in range(3):
            user = self.db.create_user(Role.TEACHER.value, f"T{i}", "Teacher", "M", f"teacher{i}", "x")
            self.teachers.append(self.db.create_teacher(user.id))
        self.groups = [self.db.create_group(f"G-{i}", 2024, 1) for i in range(3)]
        self.subjects = [self.db.create_subject(f"Subject {i}", f"S{i}") for i in range(3)]
        self.generator = ScheduleGenerator(self.db, DEFAULT_CONFIG, clock=fixed_clock)

    def tearDown(self):
        self.db.close()

    def add_rooms(self, count):
        return [self.db.create_audience(f"Room {i}", 30) for i in range(count)]

    def add_template(self, group=0, teacher=0, subject=0, frequency=1):
        return self.db.create_lesson_template(self.subjects[subject].id, self.groups[group].id,
                                              self.teachers[teacher].id, frequency)

    def assert_no_double_booking(self):
        lessons = [v.lesson for v in self.db.get_lessons()]
        for i, a in enumerate(lessons):
            for b in lessons[i + 1:]:
                if a.start_at < b.end_at and b.start_at < a.end_at:
                    self.assertNotEqual(a.group_id, b.group_id)
                    self.assertNotEqual(a.teacher_id, b.teacher_id)
                    self.assertNotEqual(a.audience_id, b.audience_id)


class TestMondayOfWeek(unittest.TestCase):
    """Tests for monday_of_week"""

    def test_every_day_of_week(self):
        for day in range(12, 19):
            self.assertEqual(monday_of_week(date(2026, 10, day)), date(2026, 10, 12))

    def test_sunday_belongs_to_previous_monday(self):
        self.assertEqual(monday_of_week(date(2026, 10, 18)), date(2026, 10, 12))

    def test_across_month_boundary(self):
        self.assertEqual(monday_of_week(date(2026, 11, 1)), date(2026, 10, 26))


class TestExpandTemplates(GeneratorTestCase):
    """Tests for expand_templates"""

    def test_template_then_repetition_order(self):
        t1 = self.add_template(group=0, frequency=2)
        t2 = self.add_template(group=1, frequency=1)
        instances = expand_templates(self.db.get_lesson_templates())
        self.assertEqual([i.template_id for i in instances], [t1.id, t1.id, t2.id])
        self.assertEqual(instances[2].group_id, self.groups[1].id)


class TestPreconditions(GeneratorTestCase):
    """Failures reported as data"""

    def test_no_templates(self):
        self.add_rooms(2)
        result = self.generator.generate_schedule(self.admin.id)
        self.assertFalse(result.success)
        self.assertEqual(result.error, NO_TEMPLATES_ERROR)
        self.assertEqual(self.db.get_generation_runs(), [])
        self.assertEqual(result.to_dict(), {"success": False, "error": NO_TEMPLATES_ERROR})

    def test_run_already_in_progress(self):
        self.add_rooms(1)
        self.add_template()
        generator_module._generation_lock.acquire()
        try:
            result = self.generator.generate_schedule(self.admin.id)
        finally:
            generator_module._generation_lock.release()
        self.assertFalse(result.success)
        self.assertEqual(result.error, IN_PROGRESS_ERROR)
        self.assertEqual(self.db.get_generation_runs(), [])
        self.assertEqual(self.db.get_lessons(), [])

    def test_lock_released_after_run(self):
        self.add_rooms(1)
        self.add_template()
        self.generator.generate_schedule(self.admin.id)
        self.assertTrue(self.generator.generate_schedule(self.admin.id).success)


class TestPlacement(GeneratorTestCase):
    """First-fit placement"""

    def test_all_instances_placed_with_enough_capacity(self):
        self.add_rooms(3)
        self.add_template(group=0, teacher=0, frequency=4)
        self.add_template(group=1, teacher=1, frequency=3)
        self.add_template(group=2, teacher=2, frequency=5)
        self.add_template(group=0, teacher=1, subject=1, frequency=2)

        result = self.generator.generate_schedule(self.admin.id)

        self.assertTrue(result.success)
        self.assertEqual(result.total_lessons, 14)
        self.assertEqual(result.placed_lessons, 14)
        self.assertEqual(result.unplaced_lessons, 0)
        self.assertEqual(result.conflicts, [])
        self.assertEqual(len(self.db.get_lessons()), 14)
        self.assert_no_double_booking()

    def test_first_slot_then_next_room(self):
        rooms = self.add_rooms(2)
        self.add_template(group=0, teacher=0)
        self.add_template(group=1, teacher=1)

        self.generator.generate_schedule(self.admin.id)
        lessons = [v.lesson for v in self.db.get_lessons()]

        self.assertEqual(len(lessons), 2)
        for lesson in lessons:
            self.assertEqual(lesson.start_at, datetime(2026, 10, 12, 8, 0))
            self.assertEqual(lesson.end_at, datetime(2026, 10, 12, 9, 25))
        by_group = {l.group_id: l.audience_id for l in lessons}
        self.assertEqual(by_group[self.groups[0].id], rooms[0].id)
        self.assertEqual(by_group[self.groups[1].id], rooms[1].id)

    def test_repetitions_fill_the_day_in_order(self):
        self.add_rooms(1)
        self.add_template(frequency=3)

        self.generator.generate_schedule(self.admin.id)
        starts = [v.lesson.start_at for v in self.db.get_lessons()]

        self.assertEqual(starts, [
            datetime(2026, 10, 12, 8, 0),
            datetime(2026, 10, 12, 9, 35),
            datetime(2026, 10, 12, 11, 10),
        ])

    def test_week_spills_into_next_day(self):
        self.add_rooms(1)
        self.add_template(frequency=8)

        self.generator.generate_schedule(self.admin.id)
        last = self.db.get_lessons()[-1].lesson

        self.assertEqual(last.start_at, datetime(2026, 10, 13, 8, 0))

    def test_overflow_leaves_instances_unplaced(self):
        self.add_rooms(2)
        templates = [self.add_template(group=0, teacher=i % 3, subject=i % 3, frequency=10)
                     for i in range(4)]

        result = self.generator.generate_schedule(self.admin.id)

        # One group can attend at most one lesson per slot: 35 per week
        self.assertTrue(result.success)
        self.assertEqual(result.total_lessons, 40)
        self.assertEqual(result.placed_lessons, 35)
        self.assertEqual(result.unplaced_lessons, 5)
        self.assertEqual(result.placed_lessons + result.unplaced_lessons, result.total_lessons)
        self.assertEqual(len(result.conflicts), 5)
        for message in result.conflicts:
            self.assertIn(templates[3].id, message)
            self.assertIn(self.groups[0].id, message)
        self.assert_no_double_booking()

    def test_no_rooms_places_nothing(self):
        self.add_template(frequency=2)
        result = self.generator.generate_schedule(self.admin.id)
        self.assertTrue(result.success)
        self.assertEqual(result.placed_lessons, 0)
        self.assertEqual(result.unplaced_lessons, 2)

    def test_place_result_is_conflict_free(self):
        instances = [LessonInstance(f"tpl{i}", "s", f"g{i % 4}", f"t{i % 5}") for i in range(60)]
        assignments, conflicts = self.generator.place(instances, build_time_slots(DEFAULT_CONFIG), ["r1", "r2"])
        self.assertEqual(len(assignments) + len(conflicts), 60)
        self.assertEqual(find_conflicts(assignments), [])

    def test_priority_hook_reorders_instances(self):
        self.add_rooms(1)
        self.add_template(group=0, teacher=0)
        second = self.add_template(group=1, teacher=1)

        generator = ScheduleGenerator(self.db, DEFAULT_CONFIG, clock=fixed_clock,
                                      priority=lambda inst: inst.template_id != second.id)
        generator.generate_schedule(self.admin.id)

        first_lesson = self.db.get_lessons()[0].lesson
        self.assertEqual(first_lesson.group_id, self.groups[1].id)


class TestPersistence(GeneratorTestCase):
    """Lessons and run records written by a run"""

    def test_run_record(self):
        self.add_rooms(1)
        self.add_template(frequency=2)

        result = self.generator.generate_schedule(self.admin.id)
        run = self.db.get_generation_run(result.run_id)

        self.assertEqual(run.status, "SUCCESS")
        self.assertEqual(run.conflict_count, 0)
        self.assertEqual(run.created_by, self.admin.id)
        self.assertEqual(run.summary["totalTemplates"], 1)
        self.assertEqual(run.summary["totalLessonsToPlace"], 2)
        self.assertEqual(run.summary["placedLessons"], 2)
        self.assertEqual(run.summary["unplacedLessons"], 0)
        self.assertEqual(run.summary["conflicts"], [])
        self.assertEqual(run.summary["quality"], 0)
        self.assertIn("durationMs", run.summary)
        self.assertEqual(self.generator.stage, GenerationStage.RECORDED)

    def test_result_dict_shape(self):
        self.add_rooms(1)
        self.add_template()
        data = self.generator.generate_schedule(self.admin.id).to_dict()
        self.assertEqual(set(data), {"success", "runId", "totalLessons", "placedLessons",
                                     "unplacedLessons", "conflicts", "durationSeconds"})
        self.assertRegex(data["durationSeconds"], r"^\d+\.\d{2}$")

    def test_lessons_carry_initiator(self):
        self.add_rooms(1)
        self.add_template()
        self.generator.generate_schedule(self.admin.id)
        self.assertEqual(self.db.get_lessons()[0].lesson.created_by, self.admin.id)

    def test_regeneration_replaces_lessons(self):
        self.add_rooms(2)
        self.add_template(group=0, teacher=0, frequency=3)
        self.add_template(group=1, teacher=0, frequency=2)

        first = self.generator.generate_schedule(self.admin.id)
        second = self.generator.generate_schedule(self.admin.id)

        self.assertEqual(first.placed_lessons, second.placed_lessons)
        self.assertEqual(first.unplaced_lessons, second.unplaced_lessons)
        self.assertEqual(len(self.db.get_lessons()), second.placed_lessons)
        self.assertEqual(len(self.db.get_generation_runs()), 2)

    def test_seeded_database_is_fully_placed(self):
        db = DatabaseManager(":memory:")
        try:
            seed_demo_data(db)
            admin = db.get_user_by_login("admin")
            result = ScheduleGenerator(db, clock=fixed_clock).generate_schedule(admin.id)
            self.assertTrue(result.success)
            self.assertEqual(result.total_lessons, 20)
            self.assertEqual(result.unplaced_lessons, 0)
        finally:
            db.close()


class TestUnexpectedFailure(GeneratorTestCase):
    """Repository errors are recorded and re-raised"""
    db_class = FailingDatabaseManager

    def test_failed_run_recorded_and_raised(self):
        self.add_rooms(1)
        self.add_template()

        with self.assertRaises(RepositoryError):
            self.generator.generate_schedule(self.admin.id)

        runs = self.db.get_generation_runs()
        self.assertEqual(len(runs), 1)
        self.assertEqual(runs[0].status, "FAILED")
        self.assertEqual(runs[0].conflict_count, 0)
        self.assertEqual(runs[0].summary["error"], "disk I/O error")
        self.assertIn("durationMs", runs[0].summary)

    def test_lock_released_after_failure(self):
        self.add_rooms(1)
        self.add_template()
        with self.assertRaises(RepositoryError):
            self.generator.generate_schedule(self.admin.id)
        self.assertFalse(generator_module._generation_lock.locked())


class TestConnectionClosedMidRun(GeneratorTestCase):
    """A connection closed under a running generation"""
    db_class = ClosingDatabaseManager

    def test_raises_repository_error(self):
        self.add_rooms(1)
        self.add_template()
        with self.assertRaises(RepositoryError):
            self.generator.generate_schedule(self.admin.id)
        self.assertEqual(self.generator.stage, GenerationStage.PERSISTING)
        self.assertFalse(generator_module._generation_lock.locked())


if __name__ == "__main__":
    unittest.main()
