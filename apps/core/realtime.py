"""
Live "something changed" notifications

Dashboards keep a WebSocket open on ws/updates/ and simply reload when a
message arrives; there is no incremental merge on the client.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


def _group_name():
    return getattr(settings, 'REALTIME_GROUP', 'crm_updates')


def _send(payload):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    try:
        async_to_sync(channel_layer.group_send)(
            _group_name(),
            {'type': 'crm.update', 'payload': payload},
        )
    except Exception as e:
        # Redis down must never break the write that triggered it
        logger.warning("Realtime broadcast failed for %s: %s", payload, e)


def broadcast_change(table, action, pk=None):
    """
    Tell every connected dashboard that a row changed

    Sent after the surrounding transaction commits, so clients that reload
    immediately see the new data.

    Args:
        table (str): e.g. 'leads', 'attendance'
        action (str): 'created' | 'updated' | 'deleted'
        pk: primary key of the changed row
    """
    payload = {'table': table, 'action': action, 'id': pk}
    transaction.on_commit(lambda: _send(payload))
