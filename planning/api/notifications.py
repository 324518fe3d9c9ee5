"""In-app notifications of the calling user."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource

from ..models import Notification
from ..notifications import NotificationDispatcher
from .common import current_actor, format_datetime


ns = Namespace("notifications", description="Notifications of the calling user")


def serialize_notification(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "link": notification.link,
        "type": notification.type,
        "read": notification.read,
        "createdAt": format_datetime(notification.created_at),
    }


@ns.route("")
class NotificationList(Resource):
    @ns.param("unread", "Only unread notifications when 'true'")
    def get(self) -> list[dict[str, Any]]:
        actor = current_actor()
        unread_only = request.args.get("unread", "false").lower() == "true"
        notifications = NotificationDispatcher().for_user(actor.id, unread_only=unread_only)
        return [serialize_notification(notification) for notification in notifications]


@ns.route("/unread-count")
class UnreadCount(Resource):
    def get(self) -> dict[str, int]:
        return {"count": NotificationDispatcher().unread_count(current_actor().id)}


@ns.route("/<int:notification_id>/read")
@ns.param("notification_id", "Notification unique identifier")
class NotificationRead(Resource):
    def post(self, notification_id: int) -> dict[str, Any]:
        notification = NotificationDispatcher().mark_read(notification_id, current_actor().id)
        return serialize_notification(notification)


@ns.route("/read-all")
class NotificationReadAll(Resource):
    def post(self) -> dict[str, int]:
        return {"updated": NotificationDispatcher().mark_all_read(current_actor().id)}
