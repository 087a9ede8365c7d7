"""
Server-side fan-out of change events to websocket clients.

Events are fire-and-forget: a failed push is logged and the request that
produced it still succeeds.
"""
import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

BROADCAST_GROUP = 'broadcast'


def user_group(user_id):
    return f"user_{user_id}"


def role_group(role):
    return f"role_{role}"


def room_group(room):
    return f"room_{room}"


def _plain(data):
    # Channel layers only carry msgpack-able values, so UUIDs, datetimes and
    # Decimals are flattened the same way JsonResponse would render them.
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def send_event(group, event, data=None):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    message = {
        'type': 'realtime.event',
        'event': event,
        'data': _plain(data) if data is not None else None,
    }
    try:
        async_to_sync(channel_layer.group_send)(group, message)
    except Exception:
        logger.exception("Failed to push %s to %s", event, group)


def broadcast(event, data=None):
    send_event(BROADCAST_GROUP, event, data)


def send_to_user(user_id, event, data=None):
    send_event(user_group(user_id), event, data)


def send_to_role(role, event, data=None):
    send_event(role_group(role), event, data)
