# ASGI (Asynchronous Server Gateway Interface) configuration
#
# Required for the live-update WebSocket (ws/updates/)
#
# Run: daphne config.asgi:application --bind 0.0.0.0 --port 8000
# ==============================================================================

import os
from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.auth import AuthMiddlewareStack
from channels.security.websocket import AllowedHostsOriginValidator

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Initialize Django ASGI application early
# This ensures the AppRegistry is populated before importing code that may import ORM models
django_asgi_app = get_asgi_application()

# Import routing after Django setup
# This prevents "Apps aren't loaded yet" error
from apps.core.routing import websocket_urlpatterns  # noqa: E402


# ProtocolTypeRouter dispatches connections based on protocol type
# - 'http': Regular HTTP requests → Django views
# - 'websocket': WebSocket connections → Channels consumers
application = ProtocolTypeRouter({
    'http': django_asgi_app,

    # AuthMiddlewareStack gives access to scope['user'] in consumers
    'websocket': AllowedHostsOriginValidator(
        AuthMiddlewareStack(
            URLRouter(websocket_urlpatterns)
        )
    ),
})
