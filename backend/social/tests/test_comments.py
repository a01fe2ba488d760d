"""
Tests for the comment tree

CRITICAL: one level of nesting, and no N+1 when listing.
"""
from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext

from social.comments import create_comment, delete_comment, list_comments
from social.exceptions import ForbiddenError, NotFoundError, ValidationError
from social.models import Comment, Notification

from .helpers import fresh, make_post, make_user


class CommentTreeTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.user = make_user('user')
        self.post = make_post(self.author)

    def test_comment_and_reply(self):
        top = create_comment(self.user, self.post.id, 'Love it')
        reply = create_comment(self.author, self.post.id, 'Thanks!', parent_id=top.id)

        self.assertIsNone(top.parent_id)
        self.assertEqual(reply.parent_id, top.id)
        self.assertEqual(fresh(self.post).comments_count, 2)

    def test_reply_to_reply_rejected(self):
        top = create_comment(self.user, self.post.id, 'Love it')
        reply = create_comment(self.author, self.post.id, 'Thanks!', parent_id=top.id)

        with self.assertRaises(ValidationError):
            create_comment(self.user, self.post.id, 'Welcome', parent_id=reply.id)
        self.assertEqual(fresh(self.post).comments_count, 2)

    def test_parent_on_other_post_rejected(self):
        other_post = make_post(self.author)
        top = create_comment(self.user, other_post.id, 'Nice')

        with self.assertRaises(ValidationError):
            create_comment(self.user, self.post.id, 'Wrong thread', parent_id=top.id)

    def test_missing_parent(self):
        with self.assertRaises(NotFoundError):
            create_comment(self.user, self.post.id, 'Hello', parent_id=999999)

    def test_missing_post(self):
        with self.assertRaises(NotFoundError):
            create_comment(self.user, 999999, 'Hello')

    def test_comment_notifies_owner(self):
        create_comment(self.user, self.post.id, 'Love it')
        create_comment(self.author, self.post.id, 'My own note')

        notifications = Notification.objects.filter(type=Notification.Type.COMMENT)
        self.assertEqual(notifications.count(), 1)
        self.assertEqual(notifications.get().recipient_id, self.author.id)

    def test_deleting_top_level_removes_replies(self):
        top = create_comment(self.user, self.post.id, 'Love it')
        for i in range(3):
            create_comment(self.author, self.post.id, f'Reply {i}', parent_id=top.id)
        keep = create_comment(self.author, self.post.id, 'Unrelated')

        with CaptureQueriesContext(connection) as context:
            removed = delete_comment(top.id, self.user)

        post_updates = [
            q['sql'] for q in context.captured_queries
            if q['sql'].startswith('UPDATE "social_post"')
        ]
        self.assertEqual(len(post_updates), 1, post_updates)
        self.assertEqual(removed, 4)
        self.assertEqual(list(Comment.objects.values_list('id', flat=True)), [keep.id])
        self.assertEqual(fresh(self.post).comments_count, 1)

    def test_deleting_reply_only(self):
        top = create_comment(self.user, self.post.id, 'Love it')
        reply = create_comment(self.author, self.post.id, 'Thanks!', parent_id=top.id)

        self.assertEqual(delete_comment(reply.id, self.author), 1)
        self.assertEqual(fresh(self.post).comments_count, 1)

    def test_only_author_can_delete(self):
        top = create_comment(self.user, self.post.id, 'Love it')

        with self.assertRaises(ForbiddenError):
            delete_comment(top.id, self.author)

    def test_delete_scoped_to_post(self):
        top = create_comment(self.user, self.post.id, 'Love it')
        other_post = make_post(self.author)

        with self.assertRaises(NotFoundError):
            delete_comment(top.id, self.user, post_id=other_post.id)

    def test_listing_newest_first_with_replies_oldest_first(self):
        first = create_comment(self.user, self.post.id, 'First')
        second = create_comment(self.user, self.post.id, 'Second')
        r1 = create_comment(self.author, self.post.id, 'r1', parent_id=first.id)
        r2 = create_comment(self.author, self.post.id, 'r2', parent_id=first.id)

        page = list_comments(self.post.id)

        self.assertEqual(page.total, 2)
        self.assertEqual([c.id for c in page.items], [second.id, first.id])
        self.assertEqual([r.id for r in page.items[1].reply_list], [r1.id, r2.id])
        self.assertEqual(page.items[0].reply_list, [])

    def test_no_n_plus_one_queries(self):
        """
        Listing 10 threads with 4 replies each must NOT cost a query per
        thread.
        """
        for i in range(10):
            top = create_comment(self.user, self.post.id, f'Comment {i}')
            for j in range(4):
                create_comment(self.author, self.post.id, f'Reply {i}.{j}', parent_id=top.id)

        with CaptureQueriesContext(connection) as context:
            page = list_comments(self.post.id)
            replies = sum(len(c.reply_list) for c in page.items)
            authors = {r.author.profile.user_id for c in page.items for r in c.reply_list}

        self.assertLessEqual(len(context), 4,
            f"Expected <=4 queries, got {len(context)}")
        self.assertEqual(replies, 40)
        self.assertEqual(authors, {self.author.id})
