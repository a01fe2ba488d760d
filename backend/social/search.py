"""
Search and suggestions.

Matching is plain case-insensitive substring/prefix matching in the store;
the predicate vocabulary (occasion, style, tags) is the feed's.
"""
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, Exists, OuterRef, Q

from .graph import blocked_user_ids
from .models import Post, PostTag
from .queries import FeedEntry, base_queryset, compose_entries, parse_tags, with_tags

User = get_user_model()


def search_posts(
    q: Optional[str] = None,
    occasion: Optional[str] = None,
    style: Optional[str] = None,
    tags=None,
    viewer=None,
) -> list[FeedEntry]:
    """Published posts whose description or tags contain q, newest first."""
    queryset = base_queryset().filter(status=Post.Status.PUBLISHED)

    q = (q or '').strip()
    if q:
        tag_match = PostTag.objects.filter(post=OuterRef('pk'), name__icontains=q)
        queryset = queryset.filter(Q(description__icontains=q) | Q(Exists(tag_match)))
    if occasion:
        queryset = queryset.filter(occasion=occasion)
    if style:
        queryset = queryset.filter(style=style)
    queryset = with_tags(queryset, parse_tags(tags))

    limit = settings.CLOSETFEED['SEARCH_POST_LIMIT']
    posts = list(queryset.order_by('-created_at', '-id')[:limit])
    return compose_entries(viewer, posts)


def search_users(q: Optional[str] = None, style: Optional[str] = None, viewer=None) -> list:
    """
    Users matching q in username, first or last name.

    Anyone in a block relation with the viewer (either direction) is left
    out.
    """
    queryset = User.objects.filter(is_active=True).select_related('profile')

    q = (q or '').strip()
    if q:
        queryset = queryset.filter(
            Q(username__icontains=q) |
            Q(first_name__icontains=q) |
            Q(last_name__icontains=q)
        )
    if style:
        queryset = queryset.filter(profile__style=style)
    if viewer is not None:
        hidden = blocked_user_ids(viewer.id)
        if hidden:
            queryset = queryset.exclude(id__in=hidden)

    limit = settings.CLOSETFEED['SEARCH_USER_LIMIT']
    return list(queryset.order_by('username')[:limit])


def get_suggestions(q: str) -> dict:
    """
    Autocomplete: usernames and the most used tags starting with q.

    Returns {'users': [User, ...], 'tags': [str, ...]}
    """
    q = (q or '').strip()
    limit = settings.CLOSETFEED['SUGGESTION_LIMIT']
    if not q:
        return {'users': [], 'tags': []}

    users = list(
        User.objects
        .filter(is_active=True, username__istartswith=q)
        .select_related('profile')
        .order_by('username')[:limit]
    )
    tag_rows = (
        PostTag.objects
        .filter(post__status=Post.Status.PUBLISHED, name__istartswith=q)
        .values('name')
        .annotate(uses=Count('id'))
        .order_by('-uses', 'name')[:limit]
    )
    return {'users': users, 'tags': [row['name'] for row in tag_rows]}
