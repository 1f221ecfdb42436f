"""
Database manager for accessing SQLite database
"""
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from database.errors import RepositoryError
from models.data_models import (
    User, Teacher, Student, Group, Subject, Audience, LessonTemplate,
    Lesson, LessonView, ScheduleGenerationRun
)
from models import validation

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    role TEXT NOT NULL,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    middle_name TEXT NOT NULL,
    login TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS teachers (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS student_groups (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    year INTEGER NOT NULL,
    course INTEGER NOT NULL,
    student_count INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS students (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    group_id TEXT NOT NULL REFERENCES student_groups(id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS subjects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    short_name TEXT NOT NULL,
    default_duration_minutes INTEGER NOT NULL DEFAULT 85
);
CREATE TABLE IF NOT EXISTS audiences (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    capacity INTEGER NOT NULL,
    resources TEXT NOT NULL DEFAULT '{}'
);
CREATE TABLE IF NOT EXISTS lesson_templates (
    id TEXT PRIMARY KEY,
    subject_id TEXT NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    group_id TEXT NOT NULL REFERENCES student_groups(id) ON DELETE CASCADE,
    teacher_id TEXT NOT NULL REFERENCES teachers(id) ON DELETE CASCADE,
    weekly_frequency INTEGER NOT NULL DEFAULT 1,
    preferred_days TEXT NOT NULL DEFAULT '[]',
    preferred_times TEXT NOT NULL DEFAULT '[]'
);
CREATE TABLE IF NOT EXISTS lessons (
    id TEXT PRIMARY KEY,
    subject_id TEXT NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    group_id TEXT NOT NULL REFERENCES student_groups(id) ON DELETE CASCADE,
    teacher_id TEXT NOT NULL REFERENCES teachers(id) ON DELETE CASCADE,
    audience_id TEXT NOT NULL REFERENCES audiences(id) ON DELETE CASCADE,
    start_at TEXT NOT NULL,
    end_at TEXT NOT NULL,
    created_by TEXT REFERENCES users(id),
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS schedule_generation_runs (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'PENDING',
    summary TEXT NOT NULL DEFAULT '{}',
    conflict_count INTEGER NOT NULL DEFAULT 0,
    created_by TEXT REFERENCES users(id),
    created_at TEXT NOT NULL
);
"""

# Columns that update_* calls may touch, per table
UPDATABLE = {
    "users": ("role", "first_name", "last_name", "middle_name", "login", "password_hash", "active"),
    "students": ("user_id", "group_id"),
    "student_groups": ("name", "year", "course", "student_count"),
    "subjects": ("name", "short_name", "default_duration_minutes"),
    "audiences": ("name", "capacity", "resources"),
    "lesson_templates": ("subject_id", "group_id", "teacher_id", "weekly_frequency",
                         "preferred_days", "preferred_times"),
    "lessons": ("subject_id", "group_id", "teacher_id", "audience_id", "start_at", "end_at"),
}
JSON_COLUMNS = {"resources", "preferred_days", "preferred_times", "summary"}


def _new_id() -> str:
    return str(uuid.uuid4())


def _to_db(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS:
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DatabaseManager:
    def __init__(self, db_file: str):
        self.db_file = db_file
        self.connection = None
        try:
            # The GUI runs generation on a worker thread
            self.connection = sqlite3.connect(db_file, check_same_thread=False)
            self.connection.row_factory = sqlite3.Row
            self.connection.execute("PRAGMA foreign_keys = ON")
            self.connection.executescript(SCHEMA)
            self.connection.commit()
        except sqlite3.Error as e:
            logger.error("Database error while opening %s: %s", db_file, e)
            raise RepositoryError(f"Cannot open database {db_file}: {e}") from e

    def close(self):
        if self.connection:
            self.connection.close()
            self.connection = None

    def __del__(self):
        if self.connection:
            self.connection.close()

    # -- low level helpers -------------------------------------------------

    def _cursor(self) -> sqlite3.Cursor:
        if self.connection is None:
            raise RepositoryError(f"Database {self.db_file} is closed")
        return self.connection.cursor()

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        cursor = self._cursor()
        try:
            cursor.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error("Error while running query: %s", e)
            raise RepositoryError(str(e)) from e

    def _execute(self, sql: str, params: tuple = ()) -> int:
        cursor = self._cursor()
        try:
            cursor.execute(sql, params)
            self.connection.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            self.connection.rollback()
            logger.error("Error while writing to database: %s", e)
            raise RepositoryError(str(e)) from e

    def _insert(self, table: str, values: Dict[str, Any]) -> str:
        values = dict(values, id=_new_id())
        columns = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        self._execute(
            f"INSERT INTO {table} ({columns}) VALUES ({marks});",
            tuple(_to_db(k, v) for k, v in values.items())
        )
        return values["id"]

    def _update(self, table: str, row_id: str, values: Dict[str, Any],
                stamp: Optional[Dict[str, Any]] = None) -> bool:
        unknown = set(values) - set(UPDATABLE[table])
        if unknown:
            raise ValueError(f"Cannot update {table} columns: {sorted(unknown)}")
        if not values:
            return bool(self._query(f"SELECT 1 FROM {table} WHERE id = ?;", (row_id,)))
        values = dict(values, **(stamp or {}))
        assignments = ", ".join(f"{k} = ?" for k in values)
        params = tuple(_to_db(k, v) for k, v in values.items()) + (row_id,)
        return self._execute(f"UPDATE {table} SET {assignments} WHERE id = ?;", params) > 0

    def _delete(self, table: str, row_id: str) -> bool:
        return self._execute(f"DELETE FROM {table} WHERE id = ?;", (row_id,)) > 0

    def _get_one(self, table: str, row_id: str, convert):
        rows = self._query(f"SELECT * FROM {table} WHERE id = ?;", (row_id,))
        return convert(rows[0]) if rows else None

    # -- row converters ----------------------------------------------------

    @staticmethod
    def _row_to_user(row) -> User:
        return User(
            id=row["id"],
            role=row["role"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            middle_name=row["middle_name"],
            login=row["login"],
            password_hash=row["password_hash"],
            active=bool(row["active"]),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"])
        )

    @staticmethod
    def _row_to_teacher(row) -> Teacher:
        return Teacher(id=row["id"], user_id=row["user_id"])

    @staticmethod
    def _row_to_student(row) -> Student:
        return Student(id=row["id"], user_id=row["user_id"], group_id=row["group_id"])

    @staticmethod
    def _row_to_group(row) -> Group:
        return Group(
            id=row["id"],
            name=row["name"],
            year=row["year"],
            course=row["course"],
            student_count=row["student_count"]
        )

    @staticmethod
    def _row_to_subject(row) -> Subject:
        return Subject(
            id=row["id"],
            name=row["name"],
            short_name=row["short_name"],
            default_duration_minutes=row["default_duration_minutes"]
        )

    @staticmethod
    def _row_to_audience(row) -> Audience:
        return Audience(
            id=row["id"],
            name=row["name"],
            capacity=row["capacity"],
            resources=json.loads(row["resources"] or "{}")
        )

    @staticmethod
    def _row_to_template(row) -> LessonTemplate:
        return LessonTemplate(
            id=row["id"],
            subject_id=row["subject_id"],
            group_id=row["group_id"],
            teacher_id=row["teacher_id"],
            weekly_frequency=row["weekly_frequency"],
            preferred_days=json.loads(row["preferred_days"] or "[]"),
            preferred_times=json.loads(row["preferred_times"] or "[]")
        )

    @staticmethod
    def _row_to_lesson(row) -> Lesson:
        return Lesson(
            id=row["id"],
            subject_id=row["subject_id"],
            group_id=row["group_id"],
            teacher_id=row["teacher_id"],
            audience_id=row["audience_id"],
            start_at=_parse_dt(row["start_at"]),
            end_at=_parse_dt(row["end_at"]),
            created_by=row["created_by"],
            created_at=_parse_dt(row["created_at"])
        )

    @staticmethod
    def _row_to_run(row) -> ScheduleGenerationRun:
        return ScheduleGenerationRun(
            id=row["id"],
            status=row["status"],
            conflict_count=row["conflict_count"],
            summary=json.loads(row["summary"] or "{}"),
            created_by=row["created_by"],
            created_at=_parse_dt(row["created_at"])
        )

    # -- users -------------------------------------------------------------

    def create_user(self, role: str, first_name: str, last_name: str, middle_name: str,
                    login: str, password_hash: str, active: bool = True) -> User:
        values = dict(role=role, first_name=first_name, last_name=last_name,
                      middle_name=middle_name, login=login, password_hash=password_hash,
                      active=active)
        validation.validate_user(values)
        now = datetime.now()
        user_id = self._insert("users", dict(values, created_at=now, updated_at=now))
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get_one("users", user_id, self._row_to_user)

    def get_user_by_login(self, login: str) -> Optional[User]:
        rows = self._query("SELECT * FROM users WHERE login = ?;", (login,))
        return self._row_to_user(rows[0]) if rows else None

    def get_users(self, role: Optional[str] = None) -> List[User]:
        if role:
            rows = self._query("SELECT * FROM users WHERE role = ? ORDER BY last_name, first_name;", (role,))
        else:
            rows = self._query("SELECT * FROM users ORDER BY last_name, first_name;")
        return [self._row_to_user(r) for r in rows]

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        validation.validate_user(fields)
        if not self._update("users", user_id, fields, stamp={"updated_at": datetime.now()}):
            return None
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> bool:
        return self._delete("users", user_id)

    # -- teachers & students -----------------------------------------------

    def create_teacher(self, user_id: str) -> Teacher:
        return self.get_teacher(self._insert("teachers", {"user_id": user_id}))

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self._get_one("teachers", teacher_id, self._row_to_teacher)

    def get_teachers(self) -> List[Teacher]:
        return [self._row_to_teacher(r) for r in self._query("SELECT * FROM teachers;")]

    def get_teacher_name(self, teacher_id: str) -> str:
        rows = self._query("""
            SELECT U.last_name, U.first_name, U.middle_name
            FROM teachers T
            INNER JOIN users U ON U.id = T.user_id
            WHERE T.id = ?;
        """, (teacher_id,))
        if not rows:
            return ""
        return " ".join(part for part in rows[0] if part)

    def create_student(self, user_id: str, group_id: str) -> Student:
        return self.get_student(self._insert("students", {"user_id": user_id, "group_id": group_id}))

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._get_one("students", student_id, self._row_to_student)

    def get_students(self) -> List[Student]:
        return [self._row_to_student(r) for r in self._query("SELECT * FROM students;")]

    def update_student(self, student_id: str, **fields) -> Optional[Student]:
        if not self._update("students", student_id, fields):
            return None
        return self.get_student(student_id)

    # -- groups ------------------------------------------------------------

    def create_group(self, name: str, year: int, course: int, student_count: int = 0) -> Group:
        values = dict(name=name, year=year, course=course, student_count=student_count)
        validation.validate_group(values)
        return self.get_group(self._insert("student_groups", values))

    def get_group(self, group_id: str) -> Optional[Group]:
        return self._get_one("student_groups", group_id, self._row_to_group)

    def get_groups(self) -> List[Group]:
        return [self._row_to_group(r) for r in self._query("SELECT * FROM student_groups ORDER BY name;")]

    def update_group(self, group_id: str, **fields) -> Optional[Group]:
        validation.validate_group(fields)
        if not self._update("student_groups", group_id, fields):
            return None
        return self.get_group(group_id)

    def delete_group(self, group_id: str) -> bool:
        return self._delete("student_groups", group_id)

    # -- subjects ----------------------------------------------------------

    def create_subject(self, name: str, short_name: str, default_duration_minutes: int = 85) -> Subject:
        values = dict(name=name, short_name=short_name, default_duration_minutes=default_duration_minutes)
        validation.validate_subject(values)
        return self.get_subject(self._insert("subjects", values))

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self._get_one("subjects", subject_id, self._row_to_subject)

    def get_subjects(self) -> List[Subject]:
        return [self._row_to_subject(r) for r in self._query("SELECT * FROM subjects ORDER BY name;")]

    def update_subject(self, subject_id: str, **fields) -> Optional[Subject]:
        validation.validate_subject(fields)
        if not self._update("subjects", subject_id, fields):
            return None
        return self.get_subject(subject_id)

    def delete_subject(self, subject_id: str) -> bool:
        return self._delete("subjects", subject_id)

    # -- audiences ---------------------------------------------------------

    def create_audience(self, name: str, capacity: int, resources: Optional[Dict[str, Any]] = None) -> Audience:
        values = dict(name=name, capacity=capacity, resources=resources or {})
        validation.validate_audience(values)
        return self.get_audience(self._insert("audiences", values))

    def get_audience(self, audience_id: str) -> Optional[Audience]:
        return self._get_one("audiences", audience_id, self._row_to_audience)

    def get_audiences(self) -> List[Audience]:
        # Insertion order is the order the generator tries rooms in
        return [self._row_to_audience(r) for r in self._query("SELECT * FROM audiences ORDER BY rowid;")]

    def update_audience(self, audience_id: str, **fields) -> Optional[Audience]:
        validation.validate_audience(fields)
        if not self._update("audiences", audience_id, fields):
            return None
        return self.get_audience(audience_id)

    def delete_audience(self, audience_id: str) -> bool:
        return self._delete("audiences", audience_id)

    # -- lesson templates --------------------------------------------------

    def create_lesson_template(self, subject_id: str, group_id: str, teacher_id: str,
                               weekly_frequency: int = 1,
                               preferred_days: Optional[List[str]] = None,
                               preferred_times: Optional[List[str]] = None) -> LessonTemplate:
        values = dict(subject_id=subject_id, group_id=group_id, teacher_id=teacher_id,
                      weekly_frequency=weekly_frequency,
                      preferred_days=preferred_days or [],
                      preferred_times=preferred_times or [])
        validation.validate_lesson_template(values)
        return self.get_lesson_template(self._insert("lesson_templates", values))

    def get_lesson_template(self, template_id: str) -> Optional[LessonTemplate]:
        return self._get_one("lesson_templates", template_id, self._row_to_template)

    def get_lesson_templates(self) -> List[LessonTemplate]:
        rows = self._query("SELECT * FROM lesson_templates ORDER BY rowid;")
        return [self._row_to_template(r) for r in rows]

    def update_lesson_template(self, template_id: str, **fields) -> Optional[LessonTemplate]:
        validation.validate_lesson_template(fields)
        if not self._update("lesson_templates", template_id, fields):
            return None
        return self.get_lesson_template(template_id)

    def delete_lesson_template(self, template_id: str) -> bool:
        return self._delete("lesson_templates", template_id)

    # -- lessons -----------------------------------------------------------

    def create_lesson(self, subject_id: str, group_id: str, teacher_id: str, audience_id: str,
                      start_at: datetime, end_at: datetime, created_by: Optional[str] = None) -> Lesson:
        values = dict(subject_id=subject_id, group_id=group_id, teacher_id=teacher_id,
                      audience_id=audience_id, start_at=start_at, end_at=end_at)
        validation.validate_lesson(values)
        lesson_id = self._insert("lessons", dict(values, created_by=created_by, created_at=datetime.now()))
        return self.get_lesson(lesson_id)

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        return self._get_one("lessons", lesson_id, self._row_to_lesson)

    def update_lesson(self, lesson_id: str, **fields) -> Optional[Lesson]:
        validation.validate_lesson(fields)
        if not self._update("lessons", lesson_id, fields):
            return None
        return self.get_lesson(lesson_id)

    def delete_lesson(self, lesson_id: str) -> bool:
        return self._delete("lessons", lesson_id)

    def delete_all_lessons(self) -> int:
        return self._execute("DELETE FROM lessons;")

    def get_lessons(self, group_id: Optional[str] = None, teacher_id: Optional[str] = None,
                    start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[LessonView]:
        """Lessons matching every given filter, each with its related rows resolved"""
        conditions = []
        params = []
        if group_id:
            conditions.append("group_id = ?")
            params.append(group_id)
        if teacher_id:
            conditions.append("teacher_id = ?")
            params.append(teacher_id)
        if start:
            conditions.append("start_at >= ?")
            params.append(start.isoformat())
        if end:
            conditions.append("end_at <= ?")
            params.append(end.isoformat())

        sql = "SELECT * FROM lessons"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY start_at;"

        views = []
        for row in self._query(sql, tuple(params)):
            lesson = self._row_to_lesson(row)
            views.append(LessonView(
                lesson=lesson,
                subject=self.get_subject(lesson.subject_id),
                group=self.get_group(lesson.group_id),
                teacher=self.get_teacher(lesson.teacher_id),
                teacher_name=self.get_teacher_name(lesson.teacher_id),
                audience=self.get_audience(lesson.audience_id)
            ))
        return views

    # -- generation runs ---------------------------------------------------

    def create_generation_run(self, status: str, conflict_count: int, summary: Dict[str, Any],
                              created_by: Optional[str] = None) -> ScheduleGenerationRun:
        run_id = self._insert("schedule_generation_runs", dict(
            status=status, conflict_count=conflict_count, summary=summary,
            created_by=created_by, created_at=datetime.now()
        ))
        return self.get_generation_run(run_id)

    def get_generation_run(self, run_id: str) -> Optional[ScheduleGenerationRun]:
        return self._get_one("schedule_generation_runs", run_id, self._row_to_run)

    def get_generation_runs(self) -> List[ScheduleGenerationRun]:
        rows = self._query("SELECT * FROM schedule_generation_runs ORDER BY created_at DESC, rowid DESC;")
        return [self._row_to_run(r) for r in rows]
