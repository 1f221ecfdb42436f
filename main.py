"""
Main entry point for the Timetable Scheduler application
"""
import argparse
import json
import logging
import sys

from database.database_manager import DatabaseManager
from database.errors import RepositoryError
from database.seed import seed_demo_data
from models.data_models import Role
from scheduler.config import AppConfig
from scheduler.generator import ScheduleGenerator

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    defaults = AppConfig.from_env()

    p = argparse.ArgumentParser(description="University timetable scheduler")
    p.add_argument("--db", default=defaults.db_file, help="SQLite database file")
    p.add_argument("--log-level", default=defaults.log_level, help="DEBUG, INFO, WARNING, ...")

    sub = p.add_subparsers(dest="command")
    sub.add_parser("gui", help="Open the desktop application (default)")
    sub.add_parser("seed", help="Fill an empty database with demo data")

    gen = sub.add_parser("generate", help="Generate this week's schedule")
    gen.add_argument("--user", required=True, help="Login or id of the administrator running generation")

    sub.add_parser("runs", help="List generation runs, newest first")

    show = sub.add_parser("show-run", help="Print one generation run")
    show.add_argument("run_id")

    sched = sub.add_parser("schedule", help="Print persisted lessons")
    sched.add_argument("--group", help="Group id")
    sched.add_argument("--teacher", help="Teacher id")

    return p.parse_args(argv)


def resolve_admin(db: DatabaseManager, user_ref: str):
    """Find an active administrator by id or login"""
    user = db.get_user(user_ref) or db.get_user_by_login(user_ref)
    if not user or not user.active or user.role != Role.ADMIN.value:
        return None
    return user


def run_gui(db_file: str, config: AppConfig) -> int:
    from PyQt6.QtWidgets import QApplication
    from gui.main_window import MainWindow

    app = QApplication(sys.argv)
    app.setApplicationName("Timetable Scheduler")

    window = MainWindow(db_file, config.scheduler)
    window.show()

    return app.exec()


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )
    config = AppConfig(db_file=args.db, log_level=args.log_level)

    if args.command in (None, "gui"):
        return run_gui(args.db, config)

    try:
        db = DatabaseManager(args.db)
    except RepositoryError as e:
        print(f"[ERROR] {e}")
        return 1

    if args.command == "seed":
        created = seed_demo_data(db)
        print("[RESULT] Demo data created" if created else "[RESULT] Database is not empty, nothing seeded")
        return 0

    if args.command == "generate":
        admin = resolve_admin(db, args.user)
        if not admin:
            print(f"[ERROR] {args.user} is not an active administrator")
            return 1
        try:
            result = ScheduleGenerator(db, config.scheduler).generate_schedule(admin.id)
        except Exception:
            # Details are in the log and in the FAILED run record
            print("[ERROR] Schedule generation failed")
            return 1
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0 if result.success else 2

    if args.command == "runs":
        for run in db.get_generation_runs():
            s = run.summary
            print(f"{run.id}  {run.created_at:%Y-%m-%d %H:%M:%S}  {run.status:<7}  "
                  f"placed={s.get('placedLessons', '-')} unplaced={s.get('unplacedLessons', '-')} "
                  f"quality={s.get('quality', '-')}")
        return 0

    if args.command == "show-run":
        run = db.get_generation_run(args.run_id)
        if not run:
            print(f"[ERROR] Generation run not found: {args.run_id}")
            return 1
        print(json.dumps({
            "id": run.id,
            "status": run.status,
            "conflictCount": run.conflict_count,
            "summary": run.summary,
            "createdBy": run.created_by,
            "createdAt": run.created_at.isoformat() if run.created_at else None,
        }, indent=2, ensure_ascii=False))
        return 0

    if args.command == "schedule":
        for view in db.get_lessons(group_id=args.group, teacher_id=args.teacher):
            lesson = view.lesson
            print(f"{lesson.start_at:%a %d.%m %H:%M}-{lesson.end_at:%H:%M}  "
                  f"{view.group.name if view.group else lesson.group_id:<8}  "
                  f"{view.subject.name if view.subject else lesson.subject_id:<20}  "
                  f"{view.teacher_name:<30}  {view.audience.name if view.audience else lesson.audience_id}")
        return 0

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
