"""
WSGI config for closetfeed project.
"""
import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'closetfeed.settings')
application = get_wsgi_application()
