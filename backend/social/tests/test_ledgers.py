"""
Tests for the interaction ledgers (likes, ratings, collection saves)

Focus areas:
1. Counter accuracy: every insert/delete moves its counter exactly once
2. Duplicates are Conflicts, missing rows are NotFound
3. Rating average is recomputed from the whole ledger
"""
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from social.bookmarks import create_collection, delete_collection, get_collection, list_collections
from social.counters import apply_delta, round_rating
from social.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from social.models import CollectionItem, Notification, Post, PostLike, Rating
from social.services import (
    add_post_to_collection, delete_rating, get_user_rating, like_post,
    remove_post_from_collection, unlike_post, upsert_rating,
)

from .helpers import fresh, make_post, make_user


class LikeTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.user = make_user('user')
        self.post = make_post(self.author)

    def test_like_then_unlike(self):
        result = like_post(self.user, self.post.id)
        self.assertTrue(result.liked)
        self.assertEqual(result.likes_count, 1)

        result = unlike_post(self.user, self.post.id)
        self.assertFalse(result.liked)
        self.assertEqual(result.likes_count, 0)
        self.assertFalse(PostLike.objects.exists())

    def test_cannot_like_twice(self):
        like_post(self.user, self.post.id)

        with self.assertRaises(ConflictError):
            like_post(self.user, self.post.id)

        self.assertEqual(PostLike.objects.count(), 1)
        self.assertEqual(fresh(self.post).likes_count, 1)

    def test_racing_like_does_not_double_count(self):
        like_post(self.user, self.post.id)

        with patch('django.db.models.query.QuerySet.exists', return_value=False):
            with self.assertRaises(ConflictError):
                like_post(self.user, self.post.id)

        self.assertEqual(fresh(self.post).likes_count, 1)

    def test_unlike_without_like(self):
        with self.assertRaises(NotFoundError):
            unlike_post(self.user, self.post.id)
        self.assertEqual(fresh(self.post).likes_count, 0)

    def test_like_missing_post(self):
        with self.assertRaises(NotFoundError):
            like_post(self.user, 999999)

    def test_like_notifies_owner_but_not_self(self):
        like_post(self.user, self.post.id)
        like_post(self.author, self.post.id)

        likes = Notification.objects.filter(type=Notification.Type.LIKE)
        self.assertEqual(likes.count(), 1)
        self.assertEqual(likes.get().recipient_id, self.author.id)

    def test_like_unlike_like(self):
        like_post(self.user, self.post.id)
        unlike_post(self.user, self.post.id)
        result = like_post(self.user, self.post.id)

        self.assertEqual(result.likes_count, 1)


class CounterProtocolTestCase(TestCase):

    def setUp(self):
        self.post = make_post(make_user('author'))

    def test_counter_never_goes_negative(self):
        apply_delta(Post, self.post.id, likes_count=-5)
        self.assertEqual(fresh(self.post).likes_count, 0)

    def test_failed_delta_is_logged_not_raised(self):
        with patch.object(Post.objects, 'filter', side_effect=DatabaseError('connection lost')):
            with self.assertLogs('social.counters', level='ERROR'):
                touched = apply_delta(Post, self.post.id, likes_count=1)
        self.assertEqual(touched, 0)

    def test_rounding_is_half_up(self):
        self.assertEqual(round_rating(9, 4), 2.3)
        self.assertEqual(round_rating(14, 3), 4.7)
        self.assertEqual(round_rating(1, 3), 0.3)
        self.assertEqual(round_rating(0, 0), 0.0)


class RatingTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.post = make_post(self.author)
        self.raters = [make_user(f'rater{i}') for i in range(3)]

    def test_average_recomputed_on_every_change(self):
        upsert_rating(self.raters[0], self.post.id, 4)
        upsert_rating(self.raters[1], self.post.id, 5)
        result = upsert_rating(self.raters[2], self.post.id, 5)

        self.assertEqual(result.rating_count, 3)
        self.assertEqual(result.rating_avg, 4.7)

        result = delete_rating(self.raters[2], self.post.id)
        self.assertEqual(result.rating_count, 2)
        self.assertEqual(result.rating_avg, 4.5)

        post = fresh(self.post)
        self.assertEqual(post.rating_count, 2)
        self.assertEqual(post.rating_avg, 4.5)

    def test_rerating_updates_in_place(self):
        upsert_rating(self.raters[0], self.post.id, 2)
        result = upsert_rating(self.raters[0], self.post.id, 5)

        self.assertEqual(Rating.objects.count(), 1)
        self.assertEqual(result.score, 5)
        self.assertEqual(result.rating_avg, 5.0)
        self.assertEqual(get_user_rating(self.raters[0], self.post.id), 5)

    def test_only_first_rating_notifies(self):
        upsert_rating(self.raters[0], self.post.id, 2)
        upsert_rating(self.raters[0], self.post.id, 3)

        self.assertEqual(Notification.objects.filter(type=Notification.Type.RATING).count(), 1)

    def test_score_out_of_range(self):
        for score in (0, 6, 2.5, 'abc', None):
            with self.assertRaises(ValidationError):
                upsert_rating(self.raters[0], self.post.id, score)
        self.assertFalse(Rating.objects.exists())

    def test_missing_post_wins_over_bad_score(self):
        with self.assertRaises(NotFoundError):
            upsert_rating(self.raters[0], 999999, 9)

    def test_delete_missing_rating(self):
        with self.assertRaises(NotFoundError):
            delete_rating(self.raters[0], self.post.id)

    def test_last_rating_removed_resets_average(self):
        upsert_rating(self.raters[0], self.post.id, 3)
        result = delete_rating(self.raters[0], self.post.id)

        self.assertEqual(result.rating_avg, 0.0)
        self.assertEqual(result.rating_count, 0)


class CollectionTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.owner = make_user('owner')
        self.other = make_user('other')
        self.post = make_post(self.author)
        self.board = create_collection(self.owner, {'title': 'Summer'})

    def test_save_and_unsave(self):
        result = add_post_to_collection(self.owner, self.board.id, self.post.id)
        self.assertTrue(result.saved)
        self.assertEqual(result.items_count, 1)
        self.assertEqual(result.saved_count, 1)

        result = remove_post_from_collection(self.owner, self.board.id, self.post.id)
        self.assertFalse(result.saved)
        self.assertEqual(result.items_count, 0)
        self.assertEqual(result.saved_count, 0)

    def test_duplicate_save_is_conflict(self):
        add_post_to_collection(self.owner, self.board.id, self.post.id)

        with self.assertRaises(ConflictError):
            add_post_to_collection(self.owner, self.board.id, self.post.id)

        self.assertEqual(fresh(self.post).saved_count, 1)

    def test_remove_missing_item(self):
        with self.assertRaises(NotFoundError):
            remove_post_from_collection(self.owner, self.board.id, self.post.id)

    def test_only_owner_can_save(self):
        with self.assertRaises(ForbiddenError):
            add_post_to_collection(self.other, self.board.id, self.post.id)

    def test_delete_collection_releases_saves(self):
        second = create_collection(self.owner, {'title': 'Work'})
        other_post = make_post(self.author)
        add_post_to_collection(self.owner, self.board.id, self.post.id)
        add_post_to_collection(self.owner, self.board.id, other_post.id)
        add_post_to_collection(self.owner, second.id, self.post.id)

        delete_collection(self.board.id, self.owner)

        self.assertEqual(fresh(self.post).saved_count, 1)
        self.assertEqual(fresh(other_post).saved_count, 0)
        self.assertEqual(CollectionItem.objects.count(), 1)

    def test_private_collection_hidden_from_others(self):
        private = create_collection(self.owner, {'title': 'Secret', 'is_public': False})

        with self.assertRaises(ForbiddenError):
            get_collection(private.id, self.other)
        with self.assertRaises(ForbiddenError):
            get_collection(private.id)

        detail = get_collection(private.id, self.owner)
        self.assertEqual(detail.items_count, 0)

    def test_list_collections_counts_items(self):
        add_post_to_collection(self.owner, self.board.id, self.post.id)
        create_collection(self.owner, {'title': 'Empty'})

        counts = {c.title: c.items_count for c in list_collections(self.owner)}

        self.assertEqual(counts, {'Summer': 1, 'Empty': 0})
