"""
Notification Fan-out
====================

Records cross-user events (new_post, follow, like, comment, rating) and
their read state.

RULES:
------
- Self-actions are silent: create_notification() with recipient == sender
  is a no-op that returns None.
- Every read/update/delete is scoped to the recipient. A notification that
  belongs to somebody else is reported as NotFound, never Forbidden, so its
  existence is not revealed.

FAILURE POLICY:
---------------
Notifications are a side effect of a ledger write that has already
succeeded. emit() logs a failure instead of raising it, the same way a lost
counter delta is logged: the triggering follow/like/comment still succeeds.
"""
import logging
from typing import Optional

from django.conf import settings
from django.db import DatabaseError

from .exceptions import NotFoundError
from .models import Follow, Notification
from .pagination import Page, paginate

logger = logging.getLogger(__name__)


def create_notification(
    recipient_id: int,
    sender_id: int,
    notification_type: str,
    message: str = '',
    post=None,
    comment=None,
    rating=None,
) -> Optional[Notification]:
    if recipient_id == sender_id:
        return None
    return Notification.objects.create(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=notification_type,
        message=message,
        post=post,
        comment=comment,
        rating=rating,
        is_read=False,
    )


def emit(recipient_id: int, sender_id: int, notification_type: str, message: str = '', **refs) -> Optional[Notification]:
    """create_notification() for callers whose primary write already happened."""
    try:
        return create_notification(recipient_id, sender_id, notification_type, message, **refs)
    except DatabaseError:
        logger.exception(
            "Failed to record %s notification for user %s from %s",
            notification_type, recipient_id, sender_id
        )
        return None


def notify_followers(sender, post) -> int:
    """
    Fan out a new_post notification to every follower of sender.

    Queries: 2 (follower ids, one bulk INSERT)
    """
    follower_ids = list(
        Follow.objects
        .filter(followee_id=sender.id)
        .exclude(follower_id=sender.id)
        .values_list('follower_id', flat=True)
    )
    if not follower_ids:
        return 0

    message = f"{sender.username} shared a new outfit"
    try:
        Notification.objects.bulk_create([
            Notification(
                recipient_id=follower_id,
                sender_id=sender.id,
                type=Notification.Type.NEW_POST,
                message=message,
                post=post,
            )
            for follower_id in follower_ids
        ])
    except DatabaseError:
        logger.exception("new_post fan-out failed for post %s", post.id)
        return 0

    logger.info("Post %s fanned out to %d followers", post.id, len(follower_ids))
    return len(follower_ids)


def list_notifications(recipient, unread: Optional[bool] = None, page=1, limit=None) -> tuple[Page, int]:
    """
    Recipient's notifications, newest first, with sender preloaded.

    Returns (page, unread_count).
    """
    queryset = (
        Notification.objects
        .filter(recipient_id=recipient.id)
        .select_related('sender', 'sender__profile')
        .order_by('-created_at', '-id')
    )
    if unread is True:
        queryset = queryset.filter(is_read=False)
    elif unread is False:
        queryset = queryset.filter(is_read=True)

    result = paginate(queryset, page, limit, settings.CLOSETFEED['NOTIFICATION_PAGE_SIZE'])
    unread_count = Notification.objects.filter(recipient_id=recipient.id, is_read=False).count()
    return result, unread_count


def _owned(notification_id: int, recipient):
    return Notification.objects.filter(id=notification_id, recipient_id=recipient.id)


def mark_as_read(notification_id: int, recipient) -> Notification:
    if not _owned(notification_id, recipient).update(is_read=True):
        raise NotFoundError('Notification not found')
    return Notification.objects.get(id=notification_id)


def mark_all_as_read(recipient) -> int:
    return Notification.objects.filter(recipient_id=recipient.id, is_read=False).update(is_read=True)


def remove_notification(notification_id: int, recipient) -> None:
    deleted, _ = _owned(notification_id, recipient).delete()
    if not deleted:
        raise NotFoundError('Notification not found')
