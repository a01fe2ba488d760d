"""
Social App URL Configuration
"""
from django.urls import path
from . import views

urlpatterns = [
    # Auth
    path('auth/register/', views.RegisterView.as_view(), name='auth-register'),
    path('auth/login/', views.LoginView.as_view(), name='auth-login'),
    path('auth/refresh/', views.RefreshView.as_view(), name='auth-refresh'),
    path('auth/logout/', views.LogoutView.as_view(), name='auth-logout'),
    path('auth/me/', views.MeView.as_view(), name='auth-me'),

    # Users and the social graph
    path('users/search/', views.UserSearchView.as_view(), name='user-search'),
    path('users/<int:user_id>/', views.UserProfileView.as_view(), name='user-profile'),
    path('users/<int:user_id>/posts/', views.UserPostsView.as_view(), name='user-posts'),
    path('users/<int:user_id>/followers/', views.FollowersView.as_view(), name='user-followers'),
    path('users/<int:user_id>/following/', views.FollowingView.as_view(), name='user-following'),
    path('users/<int:user_id>/follow/', views.FollowView.as_view(), name='user-follow'),
    path('users/<int:user_id>/block/', views.BlockView.as_view(), name='user-block'),

    # Posts
    path('posts/', views.PostListCreateView.as_view(), name='post-list'),
    path('posts/<int:post_id>/', views.PostDetailView.as_view(), name='post-detail'),
    path('posts/<int:post_id>/like/', views.LikePostView.as_view(), name='post-like'),
    path('posts/<int:post_id>/rating/', views.RatingView.as_view(), name='post-rating'),
    path('posts/<int:post_id>/comments/', views.CommentListCreateView.as_view(), name='post-comments'),
    path(
        'posts/<int:post_id>/comments/<int:comment_id>/',
        views.CommentDetailView.as_view(),
        name='comment-detail'
    ),

    # Collections
    path('collections/', views.CollectionListCreateView.as_view(), name='collection-list'),
    path('collections/<int:collection_id>/', views.CollectionDetailView.as_view(), name='collection-detail'),
    path('collections/<int:collection_id>/items/', views.CollectionItemsView.as_view(), name='collection-items'),
    path(
        'collections/<int:collection_id>/items/<int:post_id>/',
        views.CollectionItemDetailView.as_view(),
        name='collection-item-detail'
    ),

    # Notifications
    path('notifications/', views.NotificationListView.as_view(), name='notification-list'),
    path('notifications/read-all/', views.NotificationReadAllView.as_view(), name='notification-read-all'),
    path(
        'notifications/<int:notification_id>/read/',
        views.NotificationReadView.as_view(),
        name='notification-read'
    ),
    path(
        'notifications/<int:notification_id>/',
        views.NotificationDetailView.as_view(),
        name='notification-detail'
    ),

    # Search
    path('search/posts/', views.SearchPostsView.as_view(), name='search-posts'),
    path('search/users/', views.UserSearchView.as_view(), name='search-users'),
    path('search/suggestions/', views.SearchSuggestionsView.as_view(), name='search-suggestions'),

    # Uploads
    path('uploads/image/', views.UploadImageView.as_view(), name='upload-image'),
    path('uploads/image/<str:filename>/', views.UploadedImageView.as_view(), name='uploaded-image'),
]
