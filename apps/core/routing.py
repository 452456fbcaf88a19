from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    # Every dashboard page listens here and reloads on any message
    re_path(r"ws/updates/$", consumers.UpdatesConsumer.as_asgi()),
]
