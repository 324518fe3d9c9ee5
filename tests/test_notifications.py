import unittest

from planning.errors import NotFound
from planning.extensions import db
from planning.models import NotificationType
from planning.notifications import NotificationDispatcher, SchedulingEvent
from planning.roles import Role

from support import DatabaseTestCase


class NotificationDispatcherTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = self.make_user(Role.ADMIN, "Amira")
        self.manager = self.make_user(Role.MANAGER, "Karim")
        self.inactive_manager = self.make_user(Role.MANAGER, "Hedi", active=False)
        self.trainer = self.make_user(Role.TRAINER, "Sami")
        self.group = self.make_group(self.make_training(), self.trainer)
        self.seance = self.make_seance(self.group, self.trainer)
        self.dispatcher = NotificationDispatcher()

    def test_assignment_goes_to_the_trainer(self) -> None:
        sent = self.dispatcher.notify(SchedulingEvent(NotificationType.SEANCE_ASSIGNED, self.seance))
        db.session.commit()
        self.assertEqual([n.user_id for n in sent], [self.trainer.id])
        self.assertIn("10/03/2025", sent[0].message)

    def test_report_goes_to_active_admins_and_managers(self) -> None:
        sent = self.dispatcher.notify(
            SchedulingEvent(NotificationType.SEANCE_REPORTED, self.seance, reason="Grève")
        )
        db.session.commit()
        self.assertEqual(sorted(n.user_id for n in sent), sorted([self.admin.id, self.manager.id]))
        self.assertTrue(all("Grève" in n.message for n in sent))

    def test_unread_count_and_mark_read(self) -> None:
        first = self.dispatcher.notify_user(
            self.trainer.id, "Info", "Premier message", NotificationType.SEANCE_UPDATED
        )
        self.dispatcher.notify_user(
            self.trainer.id, "Info", "Second message", NotificationType.SEANCE_UPDATED
        )
        db.session.commit()
        self.assertEqual(self.dispatcher.unread_count(self.trainer.id), 2)

        self.dispatcher.mark_read(first.id, self.trainer.id)
        self.assertEqual(self.dispatcher.unread_count(self.trainer.id), 1)
        self.assertEqual(len(self.dispatcher.for_user(self.trainer.id, unread_only=True)), 1)

        self.assertEqual(self.dispatcher.mark_all_read(self.trainer.id), 1)
        self.assertEqual(self.dispatcher.unread_count(self.trainer.id), 0)
        self.assertEqual(len(self.dispatcher.for_user(self.trainer.id)), 2)

    def test_cannot_read_someone_elses_notification(self) -> None:
        notification = self.dispatcher.notify_user(
            self.trainer.id, "Info", "Message", NotificationType.SEANCE_UPDATED
        )
        db.session.commit()
        with self.assertRaises(NotFound):
            self.dispatcher.mark_read(notification.id, self.manager.id)


if __name__ == "__main__":
    unittest.main()
