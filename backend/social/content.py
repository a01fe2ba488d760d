"""
Content Store: post create / update / delete
============================================

Posts own their tags (PostTag rows) and their embedded cloth items (JSON);
both are always written together with the post, inside one transaction.

Everything that merely references a post (likes, ratings, collection items,
comments, notifications) is a separate ledger with its own counter. The post
never learns about those writes except through counter deltas.

DELETION ORDER:
---------------
There is no transaction spanning the post and its ledgers, so deletion is an
ordered list of compensating actions that can be re-run from the top after a
crash:

    1. purge likes
    2. purge ratings
    3. purge collection items
    4. purge comments (replies go with their parents)
    5. delete the post row
    6. posts_count(owner) -= 1, only if step 5 actually removed a row

Ledger rows go first so a half-finished delete never leaves a live post with
missing ledger rows behind its counters. The post counters need no recount:
they disappear with the post.
"""
import logging

from django.db import transaction

from .counters import apply_delta
from .exceptions import ForbiddenError, NotFoundError
from .models import CollectionItem, Comment, Post, PostLike, PostTag, Profile, Rating
from .notifications import notify_followers

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'description', 'occasion', 'style', 'location', 'cloth_items', 'status', 'is_public',
)


def normalize_tags(tags) -> list[str]:
    """Trim, drop empties and duplicates, keep first-seen order."""
    names = []
    for raw in tags or []:
        name = str(raw).strip()
        if name and name not in names:
            names.append(name)
    return names


def _replace_tags(post: Post, tags) -> None:
    PostTag.objects.filter(post=post).delete()
    PostTag.objects.bulk_create([
        PostTag(post=post, name=name, position=position)
        for position, name in enumerate(normalize_tags(tags))
    ])


def get_owned_post(post_id: int, actor, action: str = 'modify') -> Post:
    """
    Fetch a post the actor is about to mutate.

    NotFound when absent, Forbidden when the actor is not the owner.
    """
    post = Post.objects.filter(id=post_id).first()
    if post is None:
        raise NotFoundError('Post not found')
    if post.owner_id != actor.id:
        raise ForbiddenError(f'You can only {action} your own posts')
    return post


def _with_relations(post_id: int) -> Post:
    return (
        Post.objects
        .select_related('owner', 'owner__profile')
        .prefetch_related('tags')
        .get(id=post_id)
    )


def create_post(owner, data: dict) -> Post:
    """
    Create a post stamped with owner.

    data keys: image_url, description, and optionally tags, occasion, style,
    location, cloth_items, status, is_public.
    """
    with transaction.atomic():
        post = Post.objects.create(
            owner=owner,
            image_url=data['image_url'],
            description=data['description'],
            occasion=data.get('occasion') or '',
            style=data.get('style') or '',
            location=data.get('location') or '',
            cloth_items=list(data.get('cloth_items') or []),
            status=data.get('status') or Post.Status.PUBLISHED,
            is_public=data.get('is_public', True),
        )
        _replace_tags(post, data.get('tags'))

    apply_delta(Profile, owner.id, posts_count=1)
    logger.info("User %s created post %s (%s)", owner.id, post.id, post.status)

    if post.status == Post.Status.PUBLISHED:
        notify_followers(owner, post)

    return _with_relations(post.id)


def update_post(post_id: int, actor, data: dict) -> Post:
    """
    Owner-only partial update. Only keys present in data are replaced;
    tags, when present, replace the whole tag set.

    A draft becoming published notifies followers as if it had just been
    created.
    """
    post = get_owned_post(post_id, actor, 'update')
    was_published = post.status == Post.Status.PUBLISHED

    changed = [field for field in EDITABLE_FIELDS if field in data]
    for field in changed:
        setattr(post, field, data[field])

    with transaction.atomic():
        if changed:
            post.save(update_fields=changed + ['updated_at'])
        if 'tags' in data:
            _replace_tags(post, data['tags'])

    if not was_published and post.status == Post.Status.PUBLISHED:
        notify_followers(actor, post)

    return _with_relations(post.id)


def delete_post(post_id: int, actor) -> bool:
    """
    Owner-only delete in the fixed order described in the module docstring.

    Returns True when this call removed the post row.
    """
    post = get_owned_post(post_id, actor, 'delete')

    likes, _ = PostLike.objects.filter(post_id=post.id).delete()
    ratings, _ = Rating.objects.filter(post_id=post.id).delete()
    saves, _ = CollectionItem.objects.filter(post_id=post.id).delete()
    comments, _ = Comment.objects.filter(post_id=post.id).delete()

    _, per_model = Post.objects.filter(id=post.id).delete()
    removed = per_model.get(Post._meta.label, 0) > 0

    if removed:
        apply_delta(Profile, post.owner_id, posts_count=-1)

    logger.info(
        "Post %s deleted by %s (likes=%d ratings=%d saves=%d comments=%d)",
        post.id, actor.id, likes, ratings, saves, comments
    )
    return removed
