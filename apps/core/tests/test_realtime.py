from unittest import mock

from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.core.consumers import UpdatesConsumer
from apps.core.realtime import broadcast_change
from apps.leads.models import Lead

User = get_user_model()


class BroadcastChangeTest(TestCase):

    def test_sent_after_commit(self):
        with mock.patch('apps.core.realtime._send') as send:
            with self.captureOnCommitCallbacks(execute=True):
                broadcast_change('leads', 'updated', 7)
                send.assert_not_called()

        send.assert_called_once_with({'table': 'leads', 'action': 'updated', 'id': 7})

    def test_lead_save_broadcasts(self):
        with mock.patch('apps.core.realtime._send') as send:
            with self.captureOnCommitCallbacks(execute=True):
                lead = Lead.objects.create(name='Rahul', phone='9876543210')

        send.assert_called_once_with({'table': 'leads', 'action': 'created', 'id': lead.pk})


class UpdatesConsumerTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='caller@test.com', password='x', full_name='Caller')

    async def _connect(self, user):
        communicator = WebsocketCommunicator(UpdatesConsumer.as_asgi(), '/ws/updates/')
        communicator.scope['user'] = user
        connected, _ = await communicator.connect()
        return communicator, connected

    async def test_anonymous_is_rejected(self):
        communicator, connected = await self._connect(AnonymousUser())
        self.assertFalse(connected)

    async def test_ping_pong(self):
        communicator, connected = await self._connect(self.user)
        self.assertTrue(connected)

        await communicator.send_json_to({'type': 'ping'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})
        await communicator.disconnect()

    async def test_group_message_is_forwarded(self):
        communicator, connected = await self._connect(self.user)
        self.assertTrue(connected)

        payload = {'table': 'attendance', 'action': 'updated', 'id': 3}
        await get_channel_layer().group_send('crm_updates', {'type': 'crm.update', 'payload': payload})

        self.assertEqual(await communicator.receive_json_from(), payload)
        await communicator.disconnect()
