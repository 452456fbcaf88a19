from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings


class UpdatesConsumer(AsyncJsonWebsocketConsumer):
    """
    Pushes change notifications to logged-in dashboards

    Client protocol:
        server → {"table": "leads", "action": "updated", "id": 42}
        client → {"type": "ping"}  (answered with {"type": "pong"})
    """

    group_name = getattr(settings, 'REALTIME_GROUP', 'crm_updates')

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            await self.close()
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    async def crm_update(self, event):
        # Handler for group messages with type 'crm.update'
        await self.send_json(event['payload'])
