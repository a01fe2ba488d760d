"""
Social Graph: follow edges and blocks
=====================================

CONCURRENCY STRATEGY:
---------------------
Problem: the same follow request arrives twice at the same moment.
Naive: check edge exists -> insert -> both requests pass the check -> the
counters are incremented twice for one edge.

We check up front (so the common duplicate gets a clean Conflict without
touching the store's error path) AND insert inside its own savepoint, letting
the (follower, followee) UNIQUE constraint reject the loser of a race. The
IntegrityError is reported as the same Conflict.

Counters follow the edge, never the request: a delta is only applied after
the edge row was actually inserted or actually deleted.

BLOCKS:
-------
A block is stored one-way but enforced both ways. Creating one removes the
follow edges in both directions. Whether that removal also applies the usual
unfollow accounting is a deployment switch
(CLOSETFEED['BLOCK_ADJUSTS_FOLLOW_COUNTERS'], on by default); with it off,
edges disappear while the counters keep counting them until the next
reconcile_counters run.
"""
import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q

from .counters import apply_delta, read_counter
from .exceptions import ConflictError, NotFoundError, ValidationError
from .models import Block, Follow, Notification, Profile
from .notifications import emit
from .pagination import Page, paginate

logger = logging.getLogger(__name__)

User = get_user_model()


class FollowResult:
    """Result of a follow/unfollow with the target's fresh follower count."""
    def __init__(self, is_following: bool, followers_count: int):
        self.is_following = is_following
        self.followers_count = followers_count


class Relation:
    """How an authenticated viewer relates to another user."""
    def __init__(self, is_following: bool, is_blocked: bool):
        self.is_following = is_following
        self.is_blocked = is_blocked


class UserProfile:
    """
    A user with its profile and counters.

    relation is None for anonymous viewers and for users looking at
    themselves.
    """
    def __init__(self, user, relation: Optional[Relation] = None):
        self.user = user
        self.relation = relation


def _require_user(user_id: int):
    user = User.objects.select_related('profile').filter(id=user_id).first()
    if user is None:
        raise NotFoundError('User not found')
    return user


def is_blocked_pair(user_a_id: int, user_b_id: int) -> bool:
    """True when a block exists between the two users in either direction."""
    return Block.objects.filter(
        Q(blocker_id=user_a_id, blocked_id=user_b_id) |
        Q(blocker_id=user_b_id, blocked_id=user_a_id)
    ).exists()


def blocked_user_ids(user_id: int) -> set[int]:
    """Ids of everyone user_id blocked or was blocked by. Query: 1"""
    pairs = Block.objects.filter(
        Q(blocker_id=user_id) | Q(blocked_id=user_id)
    ).values_list('blocker_id', 'blocked_id')
    return {blocked if blocker == user_id else blocker for blocker, blocked in pairs}


def followee_ids(viewer) -> list[int]:
    return list(
        Follow.objects.filter(follower_id=viewer.id).values_list('followee_id', flat=True)
    )


def follow_user(actor, target_id: int) -> FollowResult:
    """
    actor starts following target.

    FAILS:
    - ValidationError: self-follow, or a block exists in either direction
    - NotFoundError:   target does not exist
    - ConflictError:   edge already exists (including a lost race)

    On success both counters move by exactly one and the target is notified.
    """
    if actor.id == target_id:
        raise ValidationError('You cannot follow yourself')

    target = _require_user(target_id)

    if is_blocked_pair(actor.id, target.id):
        raise ValidationError('Cannot follow this user')

    if Follow.objects.filter(follower_id=actor.id, followee_id=target.id).exists():
        raise ConflictError('You are already following this user')

    try:
        with transaction.atomic():
            Follow.objects.create(follower_id=actor.id, followee_id=target.id)
    except IntegrityError:
        logger.warning("Concurrent duplicate follow %s -> %s rejected", actor.id, target.id)
        raise ConflictError('You are already following this user')

    apply_delta(Profile, actor.id, following_count=1)
    apply_delta(Profile, target.id, followers_count=1)

    emit(
        target.id, actor.id, Notification.Type.FOLLOW,
        f"{actor.username} started following you"
    )
    logger.info("User %s followed %s", actor.id, target.id)

    return FollowResult(
        is_following=True,
        followers_count=read_counter(Profile, target.id, 'followers_count')
    )


def unfollow_user(actor, target_id: int) -> FollowResult:
    deleted, _ = Follow.objects.filter(follower_id=actor.id, followee_id=target_id).delete()
    if not deleted:
        raise NotFoundError('You are not following this user')

    apply_delta(Profile, actor.id, following_count=-1)
    apply_delta(Profile, target_id, followers_count=-1)
    logger.info("User %s unfollowed %s", actor.id, target_id)

    return FollowResult(
        is_following=False,
        followers_count=read_counter(Profile, target_id, 'followers_count')
    )


def _remove_edges_for_block(actor_id: int, target_id: int) -> int:
    adjust = settings.CLOSETFEED['BLOCK_ADJUSTS_FOLLOW_COUNTERS']
    removed = 0
    for follower_id, followee_id in ((actor_id, target_id), (target_id, actor_id)):
        deleted, _ = Follow.objects.filter(follower_id=follower_id, followee_id=followee_id).delete()
        if not deleted:
            continue
        removed += 1
        if adjust:
            apply_delta(Profile, follower_id, following_count=-1)
            apply_delta(Profile, followee_id, followers_count=-1)
        else:
            logger.warning(
                "Block removed follow %s -> %s without adjusting counters",
                follower_id, followee_id
            )
    return removed


def block_user(actor, target_id: int) -> Block:
    """
    actor blocks target and any follow edge between them is removed.

    FAILS:
    - ValidationError: self-block
    - NotFoundError:   target does not exist
    - ConflictError:   actor already blocked target
    """
    if actor.id == target_id:
        raise ValidationError('You cannot block yourself')

    target = _require_user(target_id)

    if Block.objects.filter(blocker_id=actor.id, blocked_id=target.id).exists():
        raise ConflictError('User is already blocked')

    try:
        with transaction.atomic():
            block = Block.objects.create(blocker_id=actor.id, blocked_id=target.id)
    except IntegrityError:
        raise ConflictError('User is already blocked')

    removed = _remove_edges_for_block(actor.id, target.id)
    logger.info("User %s blocked %s (%d follow edges removed)", actor.id, target.id, removed)
    return block


def unblock_user(actor, target_id: int) -> None:
    deleted, _ = Block.objects.filter(blocker_id=actor.id, blocked_id=target_id).delete()
    if not deleted:
        raise NotFoundError('User is not blocked')
    logger.info("User %s unblocked %s", actor.id, target_id)


def get_user_profile(user_id: int, viewer=None) -> UserProfile:
    user = _require_user(user_id)
    if viewer is None or viewer.id == user.id:
        return UserProfile(user)
    return UserProfile(user, _relation(viewer, user))


def _relation(viewer, user) -> Relation:
    is_following = Follow.objects.filter(follower_id=viewer.id, followee_id=user.id).exists()
    is_blocked = Block.objects.filter(blocker_id=viewer.id, blocked_id=user.id).exists()
    return Relation(is_following=is_following, is_blocked=is_blocked)


def list_followers(user_id: int, page=1, limit=None) -> Page:
    """Users following user_id, newest edge first."""
    _require_user(user_id)
    edges = (
        Follow.objects
        .filter(followee_id=user_id)
        .select_related('follower', 'follower__profile')
        .order_by('-created_at', '-id')
    )
    result = paginate(edges, page, limit, settings.CLOSETFEED['FOLLOW_PAGE_SIZE'])
    result.items = [edge.follower for edge in result.items]
    return result


def list_following(user_id: int, page=1, limit=None) -> Page:
    """Users user_id follows, newest edge first."""
    _require_user(user_id)
    edges = (
        Follow.objects
        .filter(follower_id=user_id)
        .select_related('followee', 'followee__profile')
        .order_by('-created_at', '-id')
    )
    result = paginate(edges, page, limit, settings.CLOSETFEED['FOLLOW_PAGE_SIZE'])
    result.items = [edge.followee for edge in result.items]
    return result
