"""
Test settings: in-memory SQLite, fast hashing, throwaway upload directory.
"""
import tempfile

from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

MEDIA_ROOT = tempfile.mkdtemp(prefix='closetfeed-uploads-')

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

JWT_SECRET = 'test-access-secret-0123456789abcdef0123456789'
JWT_REFRESH_SECRET = 'test-refresh-secret-0123456789abcdef012345678'

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    'DEFAULT_THROTTLE_CLASSES': [],
}

LOGGING['loggers']['social']['level'] = 'CRITICAL'  # noqa: F405
