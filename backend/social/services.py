"""
Interaction Ledgers: likes, ratings, collection saves
=====================================================

Three independent (subject, actor) ledgers, each mirrored by a counter on
the post.

CONCURRENCY STRATEGY:
---------------------
Problem: two identical "like" requests at the exact same moment.
Naive: check if exists -> create if not -> RACE CONDITION, both pass.

Solution: Unique Constraint + IntegrityError (optimistic)
    - Check first so the ordinary duplicate gets a clean Conflict
    - Insert inside its own savepoint
    - The store rejects the racing duplicate, IntegrityError -> Conflict
    - Only after a row was really inserted/deleted is the counter moved

Unlike the ledger row, the counter delta is NOT in the same transaction:
a crash in between leaves the counter one behind until reconcile_counters
runs. apply_delta() logs such a failure and the request still succeeds.

RATINGS:
--------
rating_avg/rating_count are recomputed from the whole ledger after every
mutation (see counters.recompute_rating); re-rating updates the score in
place instead of appending.
"""
import logging
from typing import Optional

from django.db import IntegrityError, transaction

from .bookmarks import get_owned_collection
from .counters import apply_delta, read_counter, recompute_rating
from .exceptions import ConflictError, NotFoundError, ValidationError
from .models import CollectionItem, Notification, Post, PostLike, Rating
from .notifications import emit

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5


class LikeResult:
    """Result of a like operation."""
    def __init__(self, liked: bool, likes_count: int):
        self.liked = liked
        self.likes_count = likes_count


class RatingResult:
    """Caller's score (None after deletion) plus the post's recomputed stats."""
    def __init__(self, score: Optional[int], rating_avg: float, rating_count: int):
        self.score = score
        self.rating_avg = rating_avg
        self.rating_count = rating_count


class SaveResult:
    def __init__(self, saved: bool, items_count: int, saved_count: int):
        self.saved = saved
        self.items_count = items_count
        self.saved_count = saved_count


def _require_post(post_id: int) -> Post:
    post = Post.objects.select_related('owner').filter(id=post_id).first()
    if post is None:
        raise NotFoundError('Post not found')
    return post


# ============================================================================
# LIKES
# ============================================================================

def like_post(actor, post_id: int) -> LikeResult:
    """
    Like a post.

    OPERATION:
    1. Get post (verify exists)
    2. Reject an existing like as Conflict (not an idempotent no-op)
    3. Insert the like; the unique constraint settles races
    4. likes_count += 1, notify the owner

    RETURNS:
    - LikeResult with the fresh likes_count
    """
    post = _require_post(post_id)

    if PostLike.objects.filter(post_id=post.id, user_id=actor.id).exists():
        raise ConflictError('Post already liked')

    try:
        with transaction.atomic():
            PostLike.objects.create(post_id=post.id, user_id=actor.id)
    except IntegrityError:
        logger.warning("Concurrent duplicate like by %s on post %s rejected", actor.id, post.id)
        raise ConflictError('Post already liked')

    apply_delta(Post, post.id, likes_count=1)
    emit(
        post.owner_id, actor.id, Notification.Type.LIKE,
        f"{actor.username} liked your post", post=post
    )

    return LikeResult(liked=True, likes_count=read_counter(Post, post.id, 'likes_count'))


def unlike_post(actor, post_id: int) -> LikeResult:
    deleted, _ = PostLike.objects.filter(post_id=post_id, user_id=actor.id).delete()
    if not deleted:
        raise NotFoundError('Post not liked')

    apply_delta(Post, post_id, likes_count=-1)
    return LikeResult(liked=False, likes_count=read_counter(Post, post_id, 'likes_count'))


# ============================================================================
# RATINGS
# ============================================================================

def _validate_score(score) -> int:
    try:
        value = int(score)
    except (TypeError, ValueError):
        raise ValidationError('Score must be an integer between 1 and 5')
    if isinstance(score, bool) or value != score or not MIN_SCORE <= value <= MAX_SCORE:
        raise ValidationError('Score must be an integer between 1 and 5')
    return value


def upsert_rating(actor, post_id: int, score) -> RatingResult:
    """
    Rate a post, or change the caller's existing score in place.

    The owner is notified on the first rating only.
    """
    post = _require_post(post_id)
    score = _validate_score(score)

    # update_or_create retries its get() when a concurrent insert wins
    rating, created = Rating.objects.update_or_create(
        post_id=post.id,
        user_id=actor.id,
        defaults={'score': score},
    )

    rating_avg, rating_count = recompute_rating(post.id)

    if created:
        emit(
            post.owner_id, actor.id, Notification.Type.RATING,
            f"{actor.username} rated your post {score}/5", post=post, rating=rating
        )

    return RatingResult(score=rating.score, rating_avg=rating_avg, rating_count=rating_count)


def delete_rating(actor, post_id: int) -> RatingResult:
    deleted, _ = Rating.objects.filter(post_id=post_id, user_id=actor.id).delete()
    if not deleted:
        raise NotFoundError('Rating not found')

    rating_avg, rating_count = recompute_rating(post_id)
    return RatingResult(score=None, rating_avg=rating_avg, rating_count=rating_count)


def get_user_rating(actor, post_id: int) -> Optional[int]:
    return (
        Rating.objects
        .filter(post_id=post_id, user_id=actor.id)
        .values_list('score', flat=True)
        .first()
    )


# ============================================================================
# COLLECTION SAVES
# ============================================================================

def add_post_to_collection(actor, collection_id: int, post_id: int) -> SaveResult:
    """
    Save a post into one of the actor's collections.

    FAILS:
    - NotFoundError:  collection or post missing
    - ForbiddenError: collection owned by somebody else
    - ConflictError:  post already in the collection
    """
    collection = get_owned_collection(collection_id, actor)
    post = _require_post(post_id)

    if CollectionItem.objects.filter(collection_id=collection.id, post_id=post.id).exists():
        raise ConflictError('Post already in collection')

    try:
        with transaction.atomic():
            CollectionItem.objects.create(collection_id=collection.id, post_id=post.id)
    except IntegrityError:
        raise ConflictError('Post already in collection')

    apply_delta(Post, post.id, saved_count=1)

    return SaveResult(
        saved=True,
        items_count=CollectionItem.objects.filter(collection_id=collection.id).count(),
        saved_count=read_counter(Post, post.id, 'saved_count'),
    )


def remove_post_from_collection(actor, collection_id: int, post_id: int) -> SaveResult:
    collection = get_owned_collection(collection_id, actor)

    deleted, _ = CollectionItem.objects.filter(collection_id=collection.id, post_id=post_id).delete()
    if not deleted:
        raise NotFoundError('Post not found in collection')

    apply_delta(Post, post_id, saved_count=-1)

    return SaveResult(
        saved=False,
        items_count=CollectionItem.objects.filter(collection_id=collection.id).count(),
        saved_count=read_counter(Post, post_id, 'saved_count'),
    )
