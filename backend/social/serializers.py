"""
DRF Serializers
===============

Serializers handle:
1. Validation of incoming data (the *Input / *Write serializers)
2. Transformation of model instances and service results to JSON

DESIGN DECISIONS:
-----------------
1. Write serializers only validate; the service functions do the writing,
   so counters and notifications are never bypassed by serializer.save()
2. Interaction state (is_liked / is_saved / user_rating) comes from the
   FeedEntry built by queries.py, never from per-object queries here
3. Stored upload paths are turned into absolute URLs on the way out
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import CLOTH_CATEGORIES, Collection, Comment, Notification, Post, Profile
from .storage import KIND_DIRS, public_url

User = get_user_model()


# ============================================================================
# USERS
# ============================================================================

class UserSummarySerializer(serializers.ModelSerializer):
    """Minimal user representation for embedding in other objects."""
    avatar = serializers.SerializerMethodField()
    is_verified = serializers.BooleanField(source='profile.is_verified', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'avatar', 'is_verified']
        read_only_fields = fields

    def get_avatar(self, obj):
        return public_url(obj.profile.avatar) or None


class UserSerializer(UserSummarySerializer):
    """Full public profile with counters."""
    bio = serializers.CharField(source='profile.bio', read_only=True)
    location = serializers.CharField(source='profile.location', read_only=True)
    style = serializers.CharField(source='profile.style', read_only=True)
    language = serializers.CharField(source='profile.language', read_only=True)
    is_private = serializers.BooleanField(source='profile.is_private', read_only=True)
    followers_count = serializers.IntegerField(source='profile.followers_count', read_only=True)
    following_count = serializers.IntegerField(source='profile.following_count', read_only=True)
    posts_count = serializers.IntegerField(source='profile.posts_count', read_only=True)
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta(UserSummarySerializer.Meta):
        fields = UserSummarySerializer.Meta.fields + [
            'bio', 'location', 'style', 'language', 'is_private',
            'followers_count', 'following_count', 'posts_count', 'created_at',
        ]
        read_only_fields = fields


class MeSerializer(UserSerializer):
    """The authenticated user's own account, including the e-mail."""
    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['email']
        read_only_fields = fields


def serialize_user_profile(result, context=None) -> dict:
    """graph.UserProfile -> JSON; relation flags only when a relation exists."""
    data = UserSerializer(result.user, context=context).data
    if result.relation is not None:
        data['is_following'] = result.relation.is_following
        data['is_blocked'] = result.relation.is_blocked
    return data


class RegisterSerializer(serializers.Serializer):
    username = serializers.RegexField(r'^[\w.@+-]+$', min_length=3, max_length=30)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, max_length=128, write_only=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class ProfileUpdateSerializer(serializers.Serializer):
    username = serializers.RegexField(r'^[\w.@+-]+$', min_length=3, max_length=30, required=False)
    email = serializers.EmailField(required=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    avatar = serializers.CharField(max_length=500, required=False, allow_blank=True)
    bio = serializers.CharField(max_length=500, required=False, allow_blank=True)
    location = serializers.CharField(max_length=120, required=False, allow_blank=True)
    style = serializers.ChoiceField(choices=Profile.Style.choices, required=False)
    language = serializers.ChoiceField(choices=Profile.Language.choices, required=False)
    is_private = serializers.BooleanField(required=False)


def serialize_tokens(user, tokens, context=None) -> dict:
    return {
        'user': MeSerializer(user, context=context).data,
        'token': tokens.access,
        'refresh_token': tokens.refresh,
    }


# ============================================================================
# POSTS
# ============================================================================

class ClothItemSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=120)
    shop = serializers.CharField(max_length=120, required=False, allow_blank=True)
    image_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=CLOTH_CATEGORIES, required=False, allow_blank=True)
    price = serializers.FloatField(min_value=0, required=False, allow_null=True)


class PostWriteSerializer(serializers.Serializer):
    """
    Create (full) and update (partial=True) input for posts.

    image_url can only be set on creation.
    """
    image_url = serializers.CharField(max_length=500)
    description = serializers.CharField()
    tags = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False, max_length=30
    )
    occasion = serializers.ChoiceField(choices=Post.Occasion.choices, required=False, allow_blank=True)
    style = serializers.ChoiceField(choices=Profile.Style.choices, required=False, allow_blank=True)
    location = serializers.CharField(max_length=120, required=False, allow_blank=True)
    cloth_items = ClothItemSerializer(many=True, required=False)
    status = serializers.ChoiceField(choices=Post.Status.choices, required=False)
    is_public = serializers.BooleanField(required=False)

    def validate_description(self, value):
        if not value.strip():
            raise serializers.ValidationError("Description cannot be empty.")
        return value.strip()

    def validate_cloth_items(self, value):
        # A partial update passes partial=True down to the nested items;
        # every item still needs its id and name.
        items = ClothItemSerializer(data=value, many=True)
        if not items.is_valid():
            raise serializers.ValidationError(items.errors)
        return items.validated_data


class PostSerializer(serializers.ModelSerializer):
    """
    Post with owner and counters.

    Uses select_related('owner__profile') + prefetch_related('tags') from
    queries.base_queryset().
    """
    owner = UserSummarySerializer(read_only=True)
    image_url = serializers.SerializerMethodField()
    tags = serializers.ListField(source='tag_names', read_only=True)

    class Meta:
        model = Post
        fields = [
            'id', 'owner', 'image_url', 'description', 'tags', 'occasion', 'style',
            'location', 'cloth_items', 'status', 'is_public',
            'likes_count', 'comments_count', 'saved_count', 'views_count',
            'rating_avg', 'rating_count', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_image_url(self, obj):
        return public_url(obj.image_url)


class FeedEntrySerializer(serializers.Serializer):
    """queries.FeedEntry -> post fields plus the viewer's interaction flags."""

    def to_representation(self, entry):
        data = PostSerializer(entry.post, context=self.context).data
        data['is_liked'] = entry.interaction.is_liked
        data['is_saved'] = entry.interaction.is_saved
        data['user_rating'] = entry.interaction.user_rating
        return data


class RatingInputSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=1, max_value=5)


# ============================================================================
# COMMENTS
# ============================================================================

class CommentSerializer(serializers.ModelSerializer):
    """
    A single comment.

    NOTE: replies are added by CommentThreadSerializer from the batch that
    comments.attach_replies() fetched.
    """
    author = UserSummarySerializer(read_only=True)
    post = serializers.IntegerField(source='post_id', read_only=True)
    parent = serializers.IntegerField(source='parent_id', read_only=True, allow_null=True)

    class Meta:
        model = Comment
        fields = ['id', 'post', 'author', 'text', 'parent', 'created_at', 'updated_at']
        read_only_fields = fields


class CommentThreadSerializer(CommentSerializer):
    replies = serializers.SerializerMethodField()

    class Meta(CommentSerializer.Meta):
        fields = CommentSerializer.Meta.fields + ['replies']
        read_only_fields = fields

    def get_replies(self, obj):
        return CommentSerializer(getattr(obj, 'reply_list', []), many=True, context=self.context).data


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=1000)
    parent = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()


# ============================================================================
# COLLECTIONS
# ============================================================================

class CollectionSerializer(serializers.ModelSerializer):
    owner = serializers.IntegerField(source='owner_id', read_only=True)
    cover_image_url = serializers.SerializerMethodField()
    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Collection
        fields = [
            'id', 'owner', 'title', 'description', 'cover_image_url', 'is_public',
            'items_count', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_cover_image_url(self, obj):
        return public_url(obj.cover_image_url) or None

    def get_items_count(self, obj):
        return getattr(obj, 'items_count', 0)


class CollectionWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=120)
    description = serializers.CharField(required=False, allow_blank=True)
    cover_image_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    is_public = serializers.BooleanField(required=False)


class CollectionItemInputSerializer(serializers.Serializer):
    post_id = serializers.IntegerField(min_value=1)


# ============================================================================
# NOTIFICATIONS / UPLOADS
# ============================================================================

class NotificationSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    post = serializers.IntegerField(source='post_id', read_only=True, allow_null=True)
    comment = serializers.IntegerField(source='comment_id', read_only=True, allow_null=True)
    rating = serializers.IntegerField(source='rating_id', read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = ['id', 'type', 'message', 'sender', 'post', 'comment', 'rating', 'is_read', 'created_at']
        read_only_fields = fields


class UploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    type = serializers.ChoiceField(choices=list(KIND_DIRS), required=False, default='post')
