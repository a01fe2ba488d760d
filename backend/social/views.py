"""
DRF Views
=========

API endpoints for the social app.

Views are thin: parse and validate input with a serializer, call one service
function, serialize the result. Errors raised by services are
exceptions.SocialError subclasses and are rendered by
custom_exception_handler, so no view translates errors by hand.

AUTHENTICATION NOTE:
--------------------
Bearer access tokens (authentication.BearerTokenAuthentication). Read
endpoints accept anonymous callers; they get the anonymous code path of the
feed composer (no interaction flags).
"""

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import bookmarks, comments, content, credentials, graph, notifications, search, services, storage
from .queries import FeedFilters, get_post, list_feed
from .serializers import (
    CollectionItemInputSerializer,
    CollectionSerializer,
    CollectionWriteSerializer,
    CommentCreateSerializer,
    CommentThreadSerializer,
    FeedEntrySerializer,
    LoginSerializer,
    MeSerializer,
    NotificationSerializer,
    PostSerializer,
    PostWriteSerializer,
    ProfileUpdateSerializer,
    RatingInputSerializer,
    RefreshSerializer,
    RegisterSerializer,
    UploadSerializer,
    UserSerializer,
    UserSummarySerializer,
    serialize_tokens,
    serialize_user_profile,
)


def viewer_of(request):
    """The authenticated user, or None for anonymous callers."""
    return request.user if request.user and request.user.is_authenticated else None


def page_params(request):
    """(page, limit) from the query string; junk falls back to defaults."""
    def _int(name):
        try:
            return int(request.query_params.get(name))
        except (TypeError, ValueError):
            return None
    return _int('page') or 1, _int('limit')


def paginated(page, data):
    return {'data': data, **page.meta()}


def feed_filters(request, **overrides) -> FeedFilters:
    params = request.query_params
    user_id = params.get('user_id')
    try:
        user_id = int(user_id) if user_id else None
    except ValueError:
        user_id = None
    values = {
        'scope': params.get('filter'),
        'user_id': user_id,
        'occasion': params.get('occasion'),
        'style': params.get('style'),
        'tags': params.get('tags'),
        'status': params.get('status'),
        'sort': params.get('sort'),
    }
    values.update(overrides)
    return FeedFilters(**values)


def feed_response(request, filters: FeedFilters):
    page, limit = page_params(request)
    result = list_feed(viewer_of(request), filters, page, limit)
    data = FeedEntrySerializer(result.entries, many=True, context={'request': request}).data
    return Response(paginated(result, data))


# ============================================================================
# AUTH
# ============================================================================

class RegisterView(APIView):
    """POST /api/auth/register/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user, tokens = credentials.register(serializer.validated_data)
        return Response(serialize_tokens(user, tokens), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """POST /api/auth/login/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user, tokens = credentials.login(
            serializer.validated_data['email'],
            serializer.validated_data['password']
        )
        return Response(serialize_tokens(user, tokens))


class RefreshView(APIView):
    """POST /api/auth/refresh/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = credentials.refresh(serializer.validated_data['refresh_token'])
        return Response({'token': tokens.access, 'refresh_token': tokens.refresh})


class LogoutView(APIView):
    """POST /api/auth/logout/ - forgets the stored refresh token."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        credentials.logout(request.user)
        return Response({'logged_out': True})


class MeView(APIView):
    """
    GET   /api/auth/me/
    PATCH /api/auth/me/
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = credentials.update_profile(request.user, serializer.validated_data)
        return Response(MeSerializer(user).data)


# ============================================================================
# USERS / SOCIAL GRAPH
# ============================================================================

class UserSearchView(APIView):
    """GET /api/users/search/?q=&style="""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        users = search.search_users(
            request.query_params.get('q'),
            request.query_params.get('style'),
            viewer_of(request)
        )
        return Response(UserSerializer(users, many=True).data)


class UserProfileView(APIView):
    """GET /api/users/<user_id>/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        result = graph.get_user_profile(user_id, viewer_of(request))
        return Response(serialize_user_profile(result))


class UserPostsView(APIView):
    """GET /api/users/<user_id>/posts/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        graph.get_user_profile(user_id)
        return feed_response(request, feed_filters(request, user_id=user_id))


class FollowersView(APIView):
    """GET /api/users/<user_id>/followers/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        page, limit = page_params(request)
        result = graph.list_followers(user_id, page, limit)
        return Response(paginated(result, UserSummarySerializer(result.items, many=True).data))


class FollowingView(APIView):
    """GET /api/users/<user_id>/following/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        page, limit = page_params(request)
        result = graph.list_following(user_id, page, limit)
        return Response(paginated(result, UserSummarySerializer(result.items, many=True).data))


class FollowView(APIView):
    """
    POST   /api/users/<user_id>/follow/
    DELETE /api/users/<user_id>/follow/

    Returns the target's fresh followers_count.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, user_id):
        result = graph.follow_user(request.user, user_id)
        return Response({
            'is_following': result.is_following,
            'followers_count': result.followers_count,
        }, status=status.HTTP_201_CREATED)

    def delete(self, request, user_id):
        result = graph.unfollow_user(request.user, user_id)
        return Response({
            'is_following': result.is_following,
            'followers_count': result.followers_count,
        })


class BlockView(APIView):
    """
    POST   /api/users/<user_id>/block/
    DELETE /api/users/<user_id>/block/
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, user_id):
        graph.block_user(request.user, user_id)
        return Response({'blocked': True}, status=status.HTTP_201_CREATED)

    def delete(self, request, user_id):
        graph.unblock_user(request.user, user_id)
        return Response({'blocked': False})


# ============================================================================
# POSTS
# ============================================================================

class PostListCreateView(APIView):
    """
    GET  /api/posts/?filter=following&user_id=&occasion=&style=&tags=a,b&status=&sort=popular&page=&limit=
    POST /api/posts/

    QUERY COUNT (GET): 3 anonymous, 6 with a viewer, for any page size.
    """

    def get(self, request):
        return feed_response(request, feed_filters(request))

    def post(self, request):
        serializer = PostWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        post = content.create_post(request.user, serializer.validated_data)
        return Response(PostSerializer(post).data, status=status.HTTP_201_CREATED)


class PostDetailView(APIView):
    """
    GET    /api/posts/<post_id>/   (every read counts as a view)
    PATCH  /api/posts/<post_id>/
    DELETE /api/posts/<post_id>/
    """

    def get(self, request, post_id):
        entry = get_post(post_id, viewer_of(request))
        return Response(FeedEntrySerializer(entry).data)

    def patch(self, request, post_id):
        serializer = PostWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        post = content.update_post(post_id, request.user, serializer.validated_data)
        return Response(PostSerializer(post).data)

    def delete(self, request, post_id):
        content.delete_post(post_id, request.user)
        return Response({'deleted': True})


class LikePostView(APIView):
    """
    POST   /api/posts/<post_id>/like/
    DELETE /api/posts/<post_id>/like/

    CONCURRENCY:
    - Unique constraint prevents duplicates
    - A duplicate (sequential or racing) is 409, never a double count
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, post_id):
        result = services.like_post(request.user, post_id)
        return Response(
            {'liked': result.liked, 'likes_count': result.likes_count},
            status=status.HTTP_201_CREATED
        )

    def delete(self, request, post_id):
        result = services.unlike_post(request.user, post_id)
        return Response({'liked': result.liked, 'likes_count': result.likes_count})


class RatingView(APIView):
    """
    GET    /api/posts/<post_id>/rating/   caller's own score
    POST   /api/posts/<post_id>/rating/   {"score": 1..5}, insert or update
    DELETE /api/posts/<post_id>/rating/
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, post_id):
        return Response({'score': services.get_user_rating(request.user, post_id)})

    def post(self, request, post_id):
        serializer = RatingInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.upsert_rating(request.user, post_id, serializer.validated_data['score'])
        return Response({
            'score': result.score,
            'rating_avg': result.rating_avg,
            'rating_count': result.rating_count,
        }, status=status.HTTP_201_CREATED)

    def delete(self, request, post_id):
        result = services.delete_rating(request.user, post_id)
        return Response({
            'deleted': True,
            'rating_avg': result.rating_avg,
            'rating_count': result.rating_count,
        })


class CommentListCreateView(APIView):
    """
    GET  /api/posts/<post_id>/comments/
    POST /api/posts/<post_id>/comments/   {"text": "...", "parent": 123?}

    QUERY COUNT (GET): 4 (post check, count, page, all replies of the page)
    """

    def get(self, request, post_id):
        page, limit = page_params(request)
        result = comments.list_comments(post_id, page, limit)
        data = CommentThreadSerializer(result.items, many=True).data
        return Response(paginated(result, data))

    def post(self, request, post_id):
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = comments.create_comment(
            request.user,
            post_id,
            serializer.validated_data['text'],
            serializer.validated_data.get('parent')
        )
        return Response(CommentThreadSerializer(comment).data, status=status.HTTP_201_CREATED)


class CommentDetailView(APIView):
    """DELETE /api/posts/<post_id>/comments/<comment_id>/"""
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, post_id, comment_id):
        removed = comments.delete_comment(comment_id, request.user, post_id=post_id)
        return Response({'deleted': True, 'removed': removed})


# ============================================================================
# COLLECTIONS
# ============================================================================

class CollectionListCreateView(APIView):
    """
    GET  /api/collections/   the caller's collections
    POST /api/collections/
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        collections = bookmarks.list_collections(request.user)
        return Response(CollectionSerializer(collections, many=True).data)

    def post(self, request):
        serializer = CollectionWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        collection = bookmarks.create_collection(request.user, serializer.validated_data)
        return Response(CollectionSerializer(collection).data, status=status.HTTP_201_CREATED)


class CollectionDetailView(APIView):
    """
    GET    /api/collections/<collection_id>/
    PATCH  /api/collections/<collection_id>/
    DELETE /api/collections/<collection_id>/
    """

    def get(self, request, collection_id):
        viewer = viewer_of(request)
        detail = bookmarks.get_collection(collection_id, viewer)
        data = CollectionSerializer(detail.collection).data
        data['posts'] = PostSerializer(detail.items, many=True).data
        return Response(data)

    def patch(self, request, collection_id):
        serializer = CollectionWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        collection = bookmarks.update_collection(collection_id, request.user, serializer.validated_data)
        return Response(CollectionSerializer(collection).data)

    def delete(self, request, collection_id):
        bookmarks.delete_collection(collection_id, request.user)
        return Response({'deleted': True})


class CollectionItemsView(APIView):
    """POST /api/collections/<collection_id>/items/   {"post_id": 123}"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, collection_id):
        serializer = CollectionItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.add_post_to_collection(
            request.user, collection_id, serializer.validated_data['post_id']
        )
        return Response({
            'saved': result.saved,
            'items_count': result.items_count,
            'saved_count': result.saved_count,
        }, status=status.HTTP_201_CREATED)


class CollectionItemDetailView(APIView):
    """DELETE /api/collections/<collection_id>/items/<post_id>/"""
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, collection_id, post_id):
        result = services.remove_post_from_collection(request.user, collection_id, post_id)
        return Response({
            'saved': result.saved,
            'items_count': result.items_count,
            'saved_count': result.saved_count,
        })


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationListView(APIView):
    """GET /api/notifications/?unread=true|false&page=&limit="""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        unread = request.query_params.get('unread')
        unread = {'true': True, 'false': False}.get((unread or '').lower())
        page, limit = page_params(request)
        result, unread_count = notifications.list_notifications(request.user, unread, page, limit)
        data = paginated(result, NotificationSerializer(result.items, many=True).data)
        data['unread_count'] = unread_count
        return Response(data)


class NotificationReadAllView(APIView):
    """POST /api/notifications/read-all/"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        return Response({'updated': notifications.mark_all_as_read(request.user)})


class NotificationReadView(APIView):
    """POST /api/notifications/<notification_id>/read/"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, notification_id):
        notification = notifications.mark_as_read(notification_id, request.user)
        return Response(NotificationSerializer(notification).data)


class NotificationDetailView(APIView):
    """DELETE /api/notifications/<notification_id>/"""
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, notification_id):
        notifications.remove_notification(notification_id, request.user)
        return Response({'deleted': True})


# ============================================================================
# SEARCH / UPLOADS
# ============================================================================

class SearchPostsView(APIView):
    """GET /api/search/posts/?q=&occasion=&style=&tags="""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        params = request.query_params
        entries = search.search_posts(
            params.get('q'), params.get('occasion'), params.get('style'), params.get('tags'),
            viewer=viewer_of(request)
        )
        return Response(FeedEntrySerializer(entries, many=True).data)


class SearchSuggestionsView(APIView):
    """GET /api/search/suggestions/?q="""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        suggestions = search.get_suggestions(request.query_params.get('q', ''))
        return Response({
            'users': UserSummarySerializer(suggestions['users'], many=True).data,
            'tags': suggestions['tags'],
        })


class UploadImageView(APIView):
    """POST /api/uploads/image/   multipart: file, type=post|avatar|cloth"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = UploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stored = storage.save_image(
            serializer.validated_data['file'],
            serializer.validated_data['type']
        )
        return Response({
            'url': stored.url,
            'public_url': storage.public_url(stored.url),
            'filename': stored.filename,
            'size': stored.size,
        }, status=status.HTTP_201_CREATED)


class UploadedImageView(APIView):
    """DELETE /api/uploads/image/<filename>/"""
    permission_classes = [permissions.IsAuthenticated]

    def delete(self, request, filename):
        storage.delete_image(filename)
        return Response({'deleted': True})
