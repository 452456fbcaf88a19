# WSGI configuration (plain HTTP only, no WebSocket)
#
# Gunicorn: gunicorn config.wsgi:application --bind 0.0.0.0:8000 --workers 3
# Live dashboard reloads need the ASGI entrypoint (config/asgi.py) instead.
# ==============================================================================

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
