"""
Django Admin Configuration for Social Models

Counters are read-only here: they belong to the counter protocol and to
reconcile_counters, never to hand edits.
"""
from django.contrib import admin
from .models import (
    Block, Collection, CollectionItem, Comment, Follow, Notification,
    Post, PostLike, PostTag, Profile, Rating,
)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'style', 'followers_count', 'following_count', 'posts_count', 'is_verified']
    list_filter = ['style', 'is_verified', 'is_private']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['followers_count', 'following_count', 'posts_count', 'refresh_token_hash',
                       'created_at', 'updated_at']


class PostTagInline(admin.TabularInline):
    model = PostTag
    extra = 0


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['id', 'owner', 'status', 'occasion', 'style', 'likes_count', 'comments_count',
                    'rating_avg', 'created_at']
    list_filter = ['status', 'occasion', 'style', 'created_at']
    search_fields = ['description', 'owner__username', 'tags__name']
    readonly_fields = ['likes_count', 'comments_count', 'saved_count', 'views_count',
                       'rating_avg', 'rating_count', 'created_at', 'updated_at']
    inlines = [PostTagInline]


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'post', 'author', 'parent', 'created_at']
    list_filter = ['created_at']
    search_fields = ['text', 'author__username']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ['follower', 'followee', 'created_at']
    search_fields = ['follower__username', 'followee__username']


@admin.register(Block)
class BlockAdmin(admin.ModelAdmin):
    list_display = ['blocker', 'blocked', 'created_at']
    search_fields = ['blocker__username', 'blocked__username']


@admin.register(PostLike)
class PostLikeAdmin(admin.ModelAdmin):
    list_display = ['user', 'post', 'created_at']
    list_filter = ['created_at']
    search_fields = ['user__username']


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ['user', 'post', 'score', 'updated_at']
    list_filter = ['score']
    search_fields = ['user__username']


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'is_public', 'created_at']
    list_filter = ['is_public']
    search_fields = ['title', 'owner__username']


@admin.register(CollectionItem)
class CollectionItemAdmin(admin.ModelAdmin):
    list_display = ['collection', 'post', 'saved_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'sender', 'type', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'created_at']
    search_fields = ['recipient__username', 'sender__username']
    readonly_fields = ['recipient', 'sender', 'type', 'message', 'post', 'comment', 'rating',
                       'created_at']

    def has_add_permission(self, request):
        # Notifications are only created by the system
        return False
