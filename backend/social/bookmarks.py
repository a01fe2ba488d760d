"""
Collections: a user's boards of saved posts.

Membership itself (add/remove a post) is a ledger and lives in services.py
next to likes and ratings. This module is the CRUD around the boards.
items_count is never stored; it is derived with one aggregate query per
listing.
"""
import logging

from .counters import apply_delta_many, collection_item_counts
from .exceptions import ForbiddenError, NotFoundError
from .models import Collection, CollectionItem, Post

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'cover_image_url', 'is_public')


class CollectionDetail:
    """A collection with its derived count and its saved posts, newest save first."""
    def __init__(self, collection: Collection, items: list, items_count: int):
        self.collection = collection
        self.items = items
        self.items_count = items_count


def get_owned_collection(collection_id: int, actor, action: str = 'modify') -> Collection:
    collection = Collection.objects.filter(id=collection_id).first()
    if collection is None:
        raise NotFoundError('Collection not found')
    if collection.owner_id != actor.id:
        raise ForbiddenError(f'You can only {action} your own collections')
    return collection


def create_collection(owner, data: dict) -> Collection:
    collection = Collection.objects.create(
        owner=owner,
        title=data['title'],
        description=data.get('description') or '',
        cover_image_url=data.get('cover_image_url') or '',
        is_public=data.get('is_public', True),
    )
    collection.items_count = 0
    return collection


def list_collections(owner) -> list[Collection]:
    """
    Owner's collections, newest first, each with items_count.

    Queries: 2 (collections, one GROUP BY over items)
    """
    collections = list(Collection.objects.filter(owner_id=owner.id).order_by('-created_at', '-id'))
    counts = collection_item_counts([c.id for c in collections])
    for collection in collections:
        collection.items_count = counts.get(collection.id, 0)
    return collections


def get_collection(collection_id: int, viewer=None) -> CollectionDetail:
    """
    Private collections are visible to their owner only; anyone else gets
    Forbidden.
    """
    collection = Collection.objects.select_related('owner').filter(id=collection_id).first()
    if collection is None:
        raise NotFoundError('Collection not found')
    if not collection.is_public and (viewer is None or viewer.id != collection.owner_id):
        raise ForbiddenError('This collection is private')

    items = list(
        CollectionItem.objects
        .filter(collection_id=collection.id)
        .select_related('post', 'post__owner', 'post__owner__profile')
        .prefetch_related('post__tags')
        .order_by('-saved_at', '-id')
    )
    collection.items_count = len(items)
    return CollectionDetail(collection, [item.post for item in items], len(items))


def update_collection(collection_id: int, actor, data: dict) -> Collection:
    collection = get_owned_collection(collection_id, actor, 'update')
    changed = [field for field in EDITABLE_FIELDS if field in data]
    for field in changed:
        setattr(collection, field, data[field])
    if changed:
        collection.save(update_fields=changed + ['updated_at'])
    collection.items_count = CollectionItem.objects.filter(collection_id=collection.id).count()
    return collection


def delete_collection(collection_id: int, actor) -> None:
    """
    Remove a collection and give back every save it held.

    Items are purged first, then every contained post's saved_count is
    decremented in a single UPDATE, then the collection row goes.
    """
    collection = get_owned_collection(collection_id, actor, 'delete')

    post_ids = list(
        CollectionItem.objects
        .filter(collection_id=collection.id)
        .values_list('post_id', flat=True)
    )
    CollectionItem.objects.filter(collection_id=collection.id).delete()

    if post_ids:
        # (collection, post) is unique, so every post loses exactly one save
        apply_delta_many(Post, post_ids, saved_count=-1)

    collection.delete()
    logger.info(
        "Collection %s deleted by %s (%d saves released)",
        collection.id, actor.id, len(post_ids)
    )

