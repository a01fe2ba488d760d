from django.test import TestCase

from social.exceptions import NotFoundError
from social.graph import follow_user
from social.models import Notification
from social.notifications import (
    create_notification, list_notifications, mark_all_as_read, mark_as_read,
    remove_notification,
)

from .helpers import make_post, make_user


class NotificationTestCase(TestCase):

    def setUp(self):
        self.alice = make_user('alice')
        self.bob = make_user('bob')

    def test_self_notification_is_noop(self):
        result = create_notification(self.alice.id, self.alice.id, Notification.Type.LIKE)

        self.assertIsNone(result)
        self.assertFalse(Notification.objects.exists())

    def test_new_post_fans_out_to_every_follower(self):
        followers = [make_user(f'fan{i}') for i in range(4)]
        for fan in followers:
            follow_user(fan, self.alice.id)

        post = make_post(self.alice)

        recipients = set(
            Notification.objects
            .filter(type=Notification.Type.NEW_POST, post=post)
            .values_list('recipient_id', flat=True)
        )
        self.assertEqual(recipients, {fan.id for fan in followers})

    def test_listing_and_unread_count(self):
        first = create_notification(self.alice.id, self.bob.id, Notification.Type.FOLLOW)
        create_notification(self.alice.id, self.bob.id, Notification.Type.LIKE)
        mark_as_read(first.id, self.alice)

        page, unread_count = list_notifications(self.alice)
        unread_page, _ = list_notifications(self.alice, unread=True)

        self.assertEqual(page.total, 2)
        self.assertEqual(unread_count, 1)
        self.assertEqual([n.type for n in unread_page.items], [Notification.Type.LIKE])

    def test_foreign_notification_is_not_found(self):
        notification = create_notification(self.alice.id, self.bob.id, Notification.Type.FOLLOW)

        with self.assertRaises(NotFoundError):
            mark_as_read(notification.id, self.bob)
        with self.assertRaises(NotFoundError):
            remove_notification(notification.id, self.bob)

        notification.refresh_from_db()
        self.assertFalse(notification.is_read)

    def test_mark_all_as_read(self):
        for _ in range(3):
            create_notification(self.alice.id, self.bob.id, Notification.Type.LIKE)
        create_notification(self.bob.id, self.alice.id, Notification.Type.LIKE)

        self.assertEqual(mark_all_as_read(self.alice), 3)
        self.assertEqual(Notification.objects.filter(is_read=False).count(), 1)

    def test_remove(self):
        notification = create_notification(self.alice.id, self.bob.id, Notification.Type.FOLLOW)

        remove_notification(notification.id, self.alice)

        self.assertFalse(Notification.objects.exists())
