from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .errors import PermissionDenied

if TYPE_CHECKING:  # pragma: no cover
    from .models import Seance, User


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TRAINER = "TRAINER"

    @property
    def can_manage(self) -> bool:
        """Plan, edit, cancel and delete seances; manage trainings and groups."""
        return self in (Role.ADMIN, Role.MANAGER)

    @property
    def can_mark(self) -> bool:
        """Mark attendance and drive seance status."""
        return self in (Role.ADMIN, Role.MANAGER, Role.TRAINER)

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    Role.ADMIN: "Administrateur",
    Role.MANAGER: "Responsable",
    Role.TRAINER: "Formateur",
}


def require_manager(actor: "User") -> None:
    if not actor.role_kind.can_manage:
        raise PermissionDenied("Action réservée aux responsables et administrateurs")


def require_seance_actor(actor: "User", seance: "Seance") -> None:
    """Managers may act on any seance, trainers only on their own."""

    role = actor.role_kind
    if role.can_manage:
        return
    if role.can_mark and seance.trainer_id == actor.id:
        return
    raise PermissionDenied("Vous n'êtes pas assigné à cette séance")
