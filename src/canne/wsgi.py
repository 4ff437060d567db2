"""WSGI config for the Cannè storefront."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "canne.settings.prod")

application = get_wsgi_application()
