"""WSGI entry point for langquest."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "langquest.settings")

application = get_wsgi_application()
