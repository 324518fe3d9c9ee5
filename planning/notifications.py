"""In-app notifications for scheduling and report events.

The dispatcher only adds rows to the current SQLAlchemy session; the caller
commits them together with the change that triggered them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import NotFound
from .extensions import db
from .models import Notification, NotificationType, Seance, User
from .roles import Role


logger = logging.getLogger(__name__)

DEFAULT_LINK = "/dashboard"


@dataclass(frozen=True)
class SchedulingEvent:
    type: NotificationType
    seance: Seance
    reason: Optional[str] = None
    previous_trainer_id: Optional[int] = None


def _seance_label(seance: Seance) -> str:
    return f"\"{seance.title}\" le {seance.date.strftime('%d/%m/%Y')} de {seance.start_time.strftime('%H:%M')} à {seance.end_time.strftime('%H:%M')}"


class NotificationDispatcher:
    def notify_user(
        self,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType,
        link: str = DEFAULT_LINK,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            link=link,
            type=type.value,
        )
        db.session.add(notification)
        logger.debug("Notification queued for user %s (%s)", user_id, type.value)
        return notification

    def notify_role(
        self,
        role: Role,
        title: str,
        message: str,
        type: NotificationType,
        link: str = DEFAULT_LINK,
    ) -> list[Notification]:
        users = User.query.filter_by(role=role.value, active=True).order_by(User.id).all()
        return [self.notify_user(user.id, title, message, type, link) for user in users]

    def notify(self, event: SchedulingEvent) -> list[Notification]:
        seance = event.seance
        label = _seance_label(seance)
        if event.type is NotificationType.SEANCE_ASSIGNED:
            return [
                self.notify_user(
                    seance.trainer_id,
                    "Nouvelle séance assignée",
                    f"Vous avez été assigné à la séance {label}",
                    event.type,
                )
            ]
        if event.type is NotificationType.SEANCE_UPDATED:
            sent = [
                self.notify_user(
                    seance.trainer_id,
                    "Séance modifiée",
                    f"La séance {label} a été modifiée",
                    event.type,
                )
            ]
            if event.previous_trainer_id and event.previous_trainer_id != seance.trainer_id:
                sent.append(
                    self.notify_user(
                        event.previous_trainer_id,
                        "Séance réassignée",
                        f"La séance \"{seance.title}\" a été confiée à un autre formateur",
                        event.type,
                    )
                )
            return sent
        if event.type is NotificationType.SEANCE_CANCELLED:
            return [
                self.notify_user(
                    seance.trainer_id,
                    "Séance annulée",
                    f"La séance {label} a été annulée",
                    event.type,
                )
            ]
        if event.type is NotificationType.SEANCE_REPORTED:
            trainer = seance.trainer
            trainer_name = trainer.full_name if trainer is not None else "Formateur"
            message = f"{trainer_name} a reporté la séance \"{seance.title}\" : {event.reason}"
            sent = []
            for role in (Role.ADMIN, Role.MANAGER):
                sent.extend(self.notify_role(role, "Séance reportée", message, event.type))
            return sent
        raise ValueError(f"Unsupported notification type: {event.type}")

    # Read side -------------------------------------------------------
    def for_user(self, user_id: int, *, unread_only: bool = False) -> list[Notification]:
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def unread_count(self, user_id: int) -> int:
        return Notification.query.filter_by(user_id=user_id, read=False).count()

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = db.session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFound.for_entity("Notification", notification_id)
        notification.read = True
        db.session.commit()
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            Notification.query.filter_by(user_id=user_id, read=False)
            .update({Notification.read: True}, synchronize_session=False)
        )
        db.session.commit()
        return updated
