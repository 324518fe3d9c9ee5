from __future__ import annotations

from datetime import time

from .enrollment import create_group
from .extensions import db
from .models import Student, User
from .roles import Role
from .structure import build_training


def seed_data() -> None:
    if User.query.count():
        return

    admin = User(first_name="Amira", last_name="Ben Salah", email="admin@example.com", role=Role.ADMIN.value)
    manager = User(first_name="Karim", last_name="Trabelsi", email="manager@example.com", role=Role.MANAGER.value)
    trainers = [
        User(first_name="Sami", last_name="Haddad", email="sami@example.com", role=Role.TRAINER.value),
        User(first_name="Leila", last_name="Mansour", email="leila@example.com", role=Role.TRAINER.value),
    ]
    db.session.add_all([admin, manager, *trainers])

    robotics = build_training("Robotique junior", "Initiation à la robotique en 4 niveaux")
    coding = build_training("Programmation Scratch", "Premiers pas en programmation visuelle")

    students = [
        Student(first_name="Yassine", last_name="Jaziri"),
        Student(first_name="Nour", last_name="Gharbi"),
        Student(first_name="Omar", last_name="Zouari"),
        Student(first_name="Ines", last_name="Chaabane"),
    ]
    db.session.add_all(students)
    db.session.commit()

    create_group(
        "Robotique - Samedi matin",
        robotics.id,
        day_of_week=5,
        start_time=time(9, 0),
        end_time=time(10, 30),
        trainer_id=trainers[0].id,
        student_ids=[student.id for student in students[:3]],
    )
    create_group(
        "Scratch - Mercredi",
        coding.id,
        day_of_week=2,
        start_time=time(14, 0),
        end_time=time(15, 30),
        trainer_id=trainers[1].id,
        student_ids=[students[3].id],
    )
