from __future__ import annotations

import unittest
from datetime import date, datetime, time
from typing import Optional

from planning import create_app
from planning.config import TestConfig
from planning.extensions import db
from planning.models import Group, Seance, SeanceStatus, Student, Training, User
from planning.roles import Role
from planning.structure import build_training, resolve_session


class FrozenClock:
    """Settable clock handed to the scheduler and the app config."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.clock = FrozenClock(datetime(2025, 3, 10, 8, 0))
        self.app.config["PLANNING_CLOCK"] = self.clock
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    # Factories ------------------------------------------------------
    def make_user(self, role: Role = Role.TRAINER, name: str = "Sami", **extra) -> User:
        user = User(
            first_name=name,
            last_name="Test",
            email=f"{name.lower()}.{role.value.lower()}@example.com",
            role=role.value,
            **extra,
        )
        db.session.add(user)
        db.session.commit()
        return user

    def make_training(self, title: str = "Robotique", levels=None) -> Training:
        training = build_training(title, None, levels)
        db.session.commit()
        return training

    def make_student(self, first_name: str = "Nour", last_name: str = "Gharbi") -> Student:
        student = Student(first_name=first_name, last_name=last_name)
        db.session.add(student)
        db.session.commit()
        return student

    def make_group(
        self,
        training: Training,
        trainer: Optional[User] = None,
        students: tuple[Student, ...] = (),
        name: str = "Groupe A",
    ) -> Group:
        group = Group(name=name, training=training, trainer=trainer, students=list(students))
        db.session.add(group)
        db.session.commit()
        return group

    def make_seance(
        self,
        group: Group,
        trainer: User,
        day: date = date(2025, 3, 10),
        start: time = time(9, 0),
        end: time = time(10, 30),
        level_number: int = 1,
        session_number: int = 1,
        status: SeanceStatus = SeanceStatus.PLANNED,
    ) -> Seance:
        """Insert a seance directly, bypassing the scheduler checks."""

        slot = resolve_session(group.training, level_number, session_number)
        seance = Seance(
            training=group.training,
            group=group,
            trainer=trainer,
            session_id=slot.session_id,
            date=day,
            start_time=start,
            end_time=end,
            level_number=level_number,
            session_number=session_number,
            title=f"Séance {level_number}.{session_number}",
            status=status.value,
        )
        db.session.add(seance)
        db.session.commit()
        return seance
