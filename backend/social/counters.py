"""
Counter-update protocol.

Every ledger insert/delete is followed by exactly one compensating delta on
the aggregate that counts it. Deltas are applied by the store:

    UPDATE social_post SET likes_count = GREATEST(likes_count + 1, 0) WHERE id = %s

never as read-modify-write in Python, so two concurrent likes on the same
post both land. GREATEST(.., 0) keeps a counter from going negative when a
previous compensation was lost.

There is no cross-entity transaction: if the delta fails after the ledger
write succeeded, the failure is logged and the request still succeeds. The
drift is repaired by reconcile_counters() (management command of the same
name), which recomputes everything from ledger cardinality.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import DatabaseError
from django.db.models import Count, F, IntegerField, OuterRef, Subquery, Sum, Value
from django.db.models.functions import Coalesce, Greatest

from .models import CollectionItem, Comment, Follow, Post, PostLike, Profile, Rating

logger = logging.getLogger(__name__)


def _delta_expressions(deltas: dict) -> dict:
    return {
        field: Greatest(F(field) + delta, Value(0), output_field=IntegerField())
        for field, delta in deltas.items()
    }


def apply_delta(model, pk, **deltas) -> int:
    """
    Atomically add each delta to its field on the row with primary key pk.

    Returns the number of rows touched (0 when the row is gone or the
    update failed; failures are logged, not raised).
    """
    if not deltas:
        return 0
    try:
        return model.objects.filter(pk=pk).update(**_delta_expressions(deltas))
    except DatabaseError:
        logger.exception(
            "Counter update failed for %s %s %s; left for reconciliation",
            model.__name__, pk, deltas
        )
        return 0


def apply_delta_many(model, pks, **deltas) -> int:
    """apply_delta() over several rows in one UPDATE."""
    if not deltas or not pks:
        return 0
    try:
        return model.objects.filter(pk__in=list(pks)).update(**_delta_expressions(deltas))
    except DatabaseError:
        logger.exception(
            "Counter update failed for %s %s %s; left for reconciliation",
            model.__name__, list(pks), deltas
        )
        return 0


def read_counter(model, pk, field: str) -> int:
    """Fresh read of a single counter after a delta. 0 if the row is gone."""
    value = model.objects.filter(pk=pk).values_list(field, flat=True).first()
    return value or 0


def round_rating(total: int, count: int) -> float:
    """sum/count rounded half-up to one decimal place; 0 for an empty ledger."""
    if not count:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def recompute_rating(post_id: int) -> tuple[float, int]:
    """
    Recompute (rating_avg, rating_count) from the full Rating ledger and
    persist both on the post.

    An average cannot be maintained with deltas without accumulating float
    error, so this is the one counter that is always recomputed.
    """
    stats = Rating.objects.filter(post_id=post_id).aggregate(
        total=Coalesce(Sum('score'), Value(0), output_field=IntegerField()),
        count=Count('id'),
    )
    rating_avg = round_rating(stats['total'], stats['count'])
    rating_count = stats['count']
    Post.objects.filter(id=post_id).update(rating_avg=rating_avg, rating_count=rating_count)
    return rating_avg, rating_count


def _count_of(model, group_field: str, outer: str = 'pk'):
    """Correlated subquery counting ledger rows for the outer row."""
    return Coalesce(
        Subquery(
            model.objects
            .filter(**{group_field: OuterRef(outer)})
            .order_by()
            .values(group_field)
            .annotate(c=Count('pk'))
            .values('c')[:1]
        ),
        Value(0),
        output_field=IntegerField()
    )


def reconcile_counters(dry_run: bool = False) -> dict:
    """
    Recompute every denormalized counter from ledger cardinality.

    This is the periodic sweep that closes the consistency gap left by a
    crash between a ledger write and its compensating delta. Only rows whose
    stored value differs are reported (and written, unless dry_run).

    Returns {'posts': {post_id: {field: (stored, actual)}},
             'profiles': {user_id: {field: (stored, actual)}}}
    """
    drift = {'posts': {}, 'profiles': {}}

    posts = Post.objects.annotate(
        actual_likes=_count_of(PostLike, 'post'),
        actual_comments=_count_of(Comment, 'post'),
        actual_saved=_count_of(CollectionItem, 'post'),
        actual_ratings=_count_of(Rating, 'post'),
    ).order_by('id')

    for post in posts:
        expected = {
            'likes_count': post.actual_likes,
            'comments_count': post.actual_comments,
            'saved_count': post.actual_saved,
            'rating_count': post.actual_ratings,
        }
        changed = {
            field: (getattr(post, field), actual)
            for field, actual in expected.items()
            if getattr(post, field) != actual
        }
        if post.actual_ratings:
            total = Rating.objects.filter(post_id=post.id).aggregate(total=Sum('score'))['total']
            expected_avg = round_rating(total, post.actual_ratings)
        else:
            expected_avg = 0.0
        if abs(post.rating_avg - expected_avg) > 1e-9:
            changed['rating_avg'] = (post.rating_avg, expected_avg)
        if changed:
            drift['posts'][post.id] = changed
            if not dry_run:
                Post.objects.filter(id=post.id).update(
                    **{field: actual for field, (_, actual) in changed.items()}
                )

    profiles = Profile.objects.annotate(
        actual_followers=_count_of(Follow, 'followee', outer='user_id'),
        actual_following=_count_of(Follow, 'follower', outer='user_id'),
        actual_posts=_count_of(Post, 'owner', outer='user_id'),
    ).order_by('user_id')

    for profile in profiles:
        expected = {
            'followers_count': profile.actual_followers,
            'following_count': profile.actual_following,
            'posts_count': profile.actual_posts,
        }
        changed = {
            field: (getattr(profile, field), actual)
            for field, actual in expected.items()
            if getattr(profile, field) != actual
        }
        if changed:
            drift['profiles'][profile.user_id] = changed
            if not dry_run:
                Profile.objects.filter(user_id=profile.user_id).update(
                    **{field: actual for field, (_, actual) in changed.items()}
                )

    logger.info(
        "Counter reconciliation%s: %d posts, %d profiles drifted",
        ' (dry run)' if dry_run else '',
        len(drift['posts']), len(drift['profiles'])
    )
    return drift


def collection_item_counts(collection_ids) -> dict:
    """{collection_id: items_count} in one aggregate query."""
    rows = (
        CollectionItem.objects
        .filter(collection_id__in=collection_ids)
        .values('collection_id')
        .annotate(n=Count('id'))
    )
    return {row['collection_id']: row['n'] for row in rows}
