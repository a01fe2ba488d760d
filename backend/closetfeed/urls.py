"""
ClosetFeed URL Configuration
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'ClosetFeed API Server',
        'version': '1.0',
        'endpoints': {
            'auth': '/api/auth/',
            'users': '/api/users/',
            'posts': '/api/posts/',
            'collections': '/api/collections/',
            'notifications': '/api/notifications/',
            'search': '/api/search/',
            'uploads': '/api/uploads/image/',
        },
        'admin': '/admin/',
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/', include('social.urls')),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
