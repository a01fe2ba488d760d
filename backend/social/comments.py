"""
Comment Tree
============

Comments nest exactly one level deep:

    post
     ├── comment            (parent = NULL)
     │    ├── reply         (parent = comment)
     │    └── reply
     └── comment

A reply to a reply, or a reply whose parent sits on another post, is
rejected at creation time.

LISTING:
--------
Top-level comments are paginated newest first. Their replies are NOT
paginated and come oldest first. Replies for the whole page are fetched in
ONE query and attached in Python:

    Query 1: COUNT(*) of top-level comments
    Query 2: page of top-level comments JOIN author
    Query 3: all replies WHERE parent_id IN (page ids) JOIN author

3 queries regardless of page size or reply count.
"""
import logging

from django.conf import settings
from django.db.models import Q

from .counters import apply_delta
from .exceptions import ForbiddenError, NotFoundError, ValidationError
from .models import Comment, Notification, Post
from .notifications import emit
from .pagination import Page, paginate

logger = logging.getLogger(__name__)


def create_comment(actor, post_id: int, text: str, parent_id=None) -> Comment:
    """
    FAILS:
    - NotFoundError:   post or parent missing
    - ValidationError: parent is itself a reply, or belongs to another post
    """
    post = Post.objects.filter(id=post_id).first()
    if post is None:
        raise NotFoundError('Post not found')

    if parent_id is not None:
        parent = Comment.objects.filter(id=parent_id).first()
        if parent is None:
            raise NotFoundError('Parent comment not found')
        if parent.parent_id is not None:
            raise ValidationError('Only one level of nesting is allowed')
        if parent.post_id != post.id:
            raise ValidationError('Parent comment does not belong to this post')

    comment = Comment.objects.create(
        post_id=post.id,
        author=actor,
        parent_id=parent_id,
        text=text,
    )
    apply_delta(Post, post.id, comments_count=1)

    emit(
        post.owner_id, actor.id, Notification.Type.COMMENT,
        f"{actor.username} commented on your post", post=post, comment=comment
    )

    return Comment.objects.select_related('author', 'author__profile').get(id=comment.id)


def attach_replies(comments: list[Comment]) -> list[Comment]:
    """
    Set comment.reply_list on every comment of the page.

    Query: 1
    """
    by_parent = {comment.id: [] for comment in comments}
    if by_parent:
        replies = (
            Comment.objects
            .filter(parent_id__in=list(by_parent))
            .select_related('author', 'author__profile')
            .order_by('created_at', 'id')
        )
        for reply in replies:
            by_parent[reply.parent_id].append(reply)
    for comment in comments:
        comment.reply_list = by_parent[comment.id]
    return comments


def list_comments(post_id: int, page=1, limit=None) -> Page:
    if not Post.objects.filter(id=post_id).exists():
        raise NotFoundError('Post not found')

    top_level = (
        Comment.objects
        .filter(post_id=post_id, parent__isnull=True)
        .select_related('author', 'author__profile')
        .order_by('-created_at', '-id')
    )
    result = paginate(top_level, page, limit, settings.CLOSETFEED['COMMENT_PAGE_SIZE'])
    attach_replies(result.items)
    return result


def delete_comment(comment_id: int, actor, post_id=None) -> int:
    """
    Author-only delete. A top-level comment takes its replies with it in the
    same DELETE, and comments_count drops by everything removed in a single
    UPDATE.

    Returns the number of comments removed.
    """
    lookup = {'id': comment_id}
    if post_id is not None:
        lookup['post_id'] = post_id
    comment = Comment.objects.filter(**lookup).first()
    if comment is None:
        raise NotFoundError('Comment not found')
    if comment.author_id != actor.id:
        raise ForbiddenError('You can only delete your own comments')

    _, per_model = Comment.objects.filter(Q(id=comment.id) | Q(parent_id=comment.id)).delete()
    removed = per_model.get(Comment._meta.label, 0)

    if removed:
        apply_delta(Post, comment.post_id, comments_count=-removed)

    logger.info("Comment %s deleted by %s (%d rows)", comment.id, actor.id, removed)
    return removed
