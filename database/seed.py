"""
Demo data for a fresh database
"""
import hashlib
import logging
import os

from models.data_models import Role

logger = logging.getLogger(__name__)


def hash_password(password: str, iterations: int = 100_000) -> str:
    """PBKDF2-SHA256 hash in ``pbkdf2_sha256$iterations$salt$hash`` form"""
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"pbkdf2_sha256${iterations}${salt.hex()}${digest.hex()}"


def seed_demo_data(db) -> bool:
    """Fill an empty database with a small faculty; returns False if users already exist"""
    if db.get_users():
        logger.info("Database already has users, skipping seed")
        return False

    admin = db.create_user(Role.ADMIN.value, "Ivan", "Ivanov", "Ivanovich",
                           "admin", hash_password("admin123"))
    logger.info("Created administrator: %s", admin.login)

    groups = [
        db.create_group("BIO-21", 2021, 2, 25),
        db.create_group("INF-22", 2022, 1, 28),
        db.create_group("MAT-20", 2020, 3, 22),
    ]

    teachers = []
    for first, last, middle, login in [
        ("Anna", "Petrova", "Sergeevna", "petrova"),
        ("Petr", "Sidorov", "Ivanovich", "sidorov"),
        ("Vladimir", "Kozlov", "Vasilyevich", "kozlov"),
        ("Maria", "Smirnova", "Dmitrievna", "smirnova"),
    ]:
        user = db.create_user(Role.TEACHER.value, first, last, middle, login, hash_password("teacher123"))
        teachers.append(db.create_teacher(user.id))

    for i in range(1, 4):
        user = db.create_user(Role.STUDENT.value, f"Student{i}", "Testov", "Petrovich",
                              f"student{i}", hash_password("student123"))
        db.create_student(user.id, groups[0].id)

    subjects = [
        db.create_subject("Calculus", "CALC"),
        db.create_subject("Programming", "PROG"),
        db.create_subject("Databases", "DB"),
        db.create_subject("English", "ENG"),
        db.create_subject("Physics", "PHYS"),
    ]

    db.create_audience("101", 30, {"projector": True})
    db.create_audience("102", 30, {"projector": False})
    db.create_audience("201", 60, {"projector": True, "computers": 0})
    db.create_audience("Lab 1", 20, {"computers": 20})

    plan = [
        (0, 0, 0, 3), (0, 4, 3, 2), (0, 3, 3, 2),
        (1, 1, 1, 3), (1, 2, 1, 2), (1, 0, 0, 2),
        (2, 0, 0, 2), (2, 4, 2, 3), (2, 3, 3, 1),
    ]
    for group_idx, subject_idx, teacher_idx, frequency in plan:
        db.create_lesson_template(subjects[subject_idx].id, groups[group_idx].id,
                                  teachers[teacher_idx].id, frequency)

    logger.info("Seeded %d groups, %d teachers, %d subjects, %d templates",
                len(groups), len(teachers), len(subjects), len(plan))
    return True
