from __future__ import annotations

from typing import Optional, TypeVar

from .errors import NotFound
from .extensions import db
from .models import User


T = TypeVar("T")


def get_or_raise(model: type[T], identifier: Optional[int], label: str) -> T:
    instance = db.session.get(model, identifier) if identifier is not None else None
    if instance is None:
        raise NotFound.for_entity(label, identifier)
    return instance


def get_trainer(user_id: Optional[int], *, for_update: bool = False) -> User:
    """Return an active trainer, optionally row-locked for the scheduling write."""

    if for_update and user_id is not None:
        user = db.session.execute(
            db.select(User).where(User.id == user_id).with_for_update()
        ).scalar_one_or_none()
    else:
        user = db.session.get(User, user_id) if user_id is not None else None
    if user is None or not user.is_trainer or not user.active:
        raise NotFound.for_entity("Formateur", user_id)
    return user
