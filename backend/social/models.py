"""
Data Models for ClosetFeed
==========================

Design Philosophy:
------------------
1. Ledgers are separate tables, one per interaction (PostLike, Rating,
   CollectionItem, Follow, Block), each with a UNIQUE constraint on its
   natural (subject, actor) pair.
   - The constraint is the concurrency control: two identical requests racing
     each other cannot both insert, the loser gets an IntegrityError.

2. Counters are denormalized onto the aggregate (Profile, Post)
   - Updated only with atomic F() deltas (see counters.py)
   - Rating average/count are the exception: recomputed from the ledger
   - PositiveIntegerField makes the store reject a negative counter

3. Comments use an adjacency list limited to one level of nesting
   - A reply's parent must be a top-level comment of the same post

4. Users are Django's auth.User plus a one-to-one Profile
   - Profile carries the social counters and the refresh token hash

Indexes Strategy:
-----------------
- post (owner, -created_at): user timelines and the following feed
- post (status, -created_at): the public feed
- post (likes_count): popular sort
- post_tag (name): tag membership filter
- notification (recipient, is_read, -created_at): inbox listing
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


CLOTH_CATEGORIES = ['Tops', 'Bottoms', 'Outerwear', 'Dresses', 'Shoes', 'Accessories', 'Bags']


class Profile(models.Model):
    """
    Social identity attached to every auth user.

    The three counters are maintained exclusively by the counter protocol:
    follow/unfollow/block adjust followers/following, post create/delete
    adjusts posts_count. Nothing on the hot path recomputes them.
    """

    class Style(models.TextChoices):
        STREET = 'Street'
        MINIMALIST = 'Minimalist'
        FORMAL = 'Formal'
        BOHO = 'Boho'
        VINTAGE = 'Vintage'
        CASUAL = 'Casual'

    class Language(models.TextChoices):
        EN = 'en', 'English'
        ES = 'es', 'Spanish'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='profile'
    )
    avatar = models.CharField(max_length=500, blank=True, default='')
    bio = models.TextField(blank=True, default='')
    location = models.CharField(max_length=120, blank=True, default='')
    style = models.CharField(max_length=20, choices=Style.choices, default=Style.CASUAL)
    language = models.CharField(max_length=2, choices=Language.choices, default=Language.EN)
    is_private = models.BooleanField(default=False)
    is_verified = models.BooleanField(default=False)

    # Hash of the currently valid refresh token (never the token itself)
    refresh_token_hash = models.CharField(max_length=256, blank=True, default='')

    followers_count = models.PositiveIntegerField(default=0)
    following_count = models.PositiveIntegerField(default=0)
    posts_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile of {self.user.username}"


class Follow(models.Model):
    """
    Directed follow edge: follower -> followee.

    Existence of the row is what followers_count/following_count count.
    """
    follower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='following_edges'
    )
    followee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='follower_edges'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['follower', 'followee'],
                name='unique_follow_pair'
            )
        ]
        indexes = [
            models.Index(fields=['followee', '-created_at'], name='follow_followee_idx'),
            models.Index(fields=['follower', '-created_at'], name='follow_follower_idx'),
        ]

    def __str__(self):
        return f"{self.follower_id} follows {self.followee_id}"


class Block(models.Model):
    """
    Block record. Stored one-way, enforced both ways: either direction
    prevents following, and creating it removes follow edges in both
    directions.
    """
    blocker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blocks_made'
    )
    blocked = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blocks_received'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['blocker', 'blocked'],
                name='unique_block_pair'
            )
        ]

    def __str__(self):
        return f"{self.blocker_id} blocked {self.blocked_id}"


class Post(models.Model):
    """
    An outfit post: one image, metadata and an embedded list of cloth items.

    cloth_items is stored inline as an ordered JSON list of
    {id, name, shop?, image_url?, category?, price?}; it is only ever read and
    written together with its post.

    Engagement counters mirror the ledgers:
        likes_count    == |PostLike where post|
        comments_count == |Comment where post|
        saved_count    == |CollectionItem where post|
        rating_count   == |Rating where post|, rating_avg == mean(score)
    views_count has no ledger; every detail read bumps it.
    """

    class Status(models.TextChoices):
        PUBLISHED = 'published', 'Published'
        DRAFT = 'draft', 'Draft'

    class Occasion(models.TextChoices):
        PARTY = 'party'
        WORK = 'work'
        CASUAL = 'casual'
        TRAVEL = 'travel'
        SPORT = 'sport'
        NIGHT = 'night'
        FORMAL = 'formal'

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='posts'
    )
    image_url = models.CharField(max_length=500)
    description = models.TextField()
    occasion = models.CharField(max_length=20, choices=Occasion.choices, blank=True, default='')
    style = models.CharField(max_length=20, choices=Profile.Style.choices, blank=True, default='')
    location = models.CharField(max_length=120, blank=True, default='')
    cloth_items = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PUBLISHED
    )
    is_public = models.BooleanField(default=True)

    likes_count = models.PositiveIntegerField(default=0, db_index=True)
    comments_count = models.PositiveIntegerField(default=0)
    saved_count = models.PositiveIntegerField(default=0)
    views_count = models.PositiveIntegerField(default=0)
    rating_avg = models.FloatField(default=0)
    rating_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', '-created_at'], name='post_owner_created_idx'),
            models.Index(fields=['status', '-created_at'], name='post_status_created_idx'),
            models.Index(fields=['occasion', 'style'], name='post_occasion_style_idx'),
        ]

    def __str__(self):
        return f"Post {self.pk} by {self.owner_id}"

    @property
    def tag_names(self):
        # Uses the prefetch cache when the queryset was built with
        # prefetch_related('tags')
        return [tag.name for tag in self.tags.all()]


class PostTag(models.Model):
    """Free-form tag attached to a post. One row per (post, name)."""
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='tags')
    name = models.CharField(max_length=50, db_index=True)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['post', 'name'], name='unique_post_tag')
        ]

    def __str__(self):
        return self.name


class PostLike(models.Model):
    """
    Like ledger. (post, user) is unique.

    CONCURRENCY STRATEGY:
    - Insert first, let the constraint reject duplicates
    - IntegrityError becomes a Conflict for the caller
    """
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='likes')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='post_likes'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['post', 'user'],
                name='unique_like_per_user_per_post'
            )
        ]
        indexes = [
            models.Index(fields=['user', 'post'], name='postlike_user_post_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} liked post {self.post_id}"


class Rating(models.Model):
    """Rating ledger. Re-rating updates the score in place."""
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='ratings')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ratings'
    )
    score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['post', 'user'],
                name='unique_rating_per_user_per_post'
            )
        ]

    def __str__(self):
        return f"{self.user_id} rated post {self.post_id}: {self.score}"


class Collection(models.Model):
    """A user's board of saved posts. items_count is always derived."""
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='collections'
    )
    title = models.CharField(max_length=120)
    description = models.TextField(blank=True, default='')
    cover_image_url = models.CharField(max_length=500, blank=True, default='')
    is_public = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', '-created_at'], name='collection_owner_idx'),
        ]

    def __str__(self):
        return self.title


class CollectionItem(models.Model):
    """Save ledger. (collection, post) is unique."""
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name='items')
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='collection_items')
    saved_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['collection', 'post'],
                name='unique_collection_post'
            )
        ]

    def __str__(self):
        return f"post {self.post_id} in collection {self.collection_id}"


class Comment(models.Model):
    """
    Comment with at most one level of replies.

    parent is NULL for top-level comments. Depth is enforced on creation
    (comments.create_comment), not by the schema.
    """
    post = models.ForeignKey(Post, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='replies'
    )
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['post', '-created_at'], name='comment_post_created_idx'),
            models.Index(fields=['parent', 'created_at'], name='comment_parent_created_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.author_id} on {self.post_id}"


class Notification(models.Model):
    """
    Cross-user event record. Never created for self-actions.

    References are nullable and survive deletion of the target as NULL.
    """

    class Type(models.TextChoices):
        NEW_POST = 'new_post', 'New post'
        FOLLOW = 'follow', 'Follow'
        LIKE = 'like', 'Like'
        COMMENT = 'comment', 'Comment'
        RATING = 'rating', 'Rating'

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications_sent'
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    message = models.CharField(max_length=255, blank=True, default='')
    post = models.ForeignKey(Post, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    comment = models.ForeignKey(Comment, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    rating = models.ForeignKey(Rating, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read', '-created_at'], name='notif_recipient_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.recipient_id} from {self.sender_id}"
