import json
import logging
import re

from django.conf import settings
from django.utils import timezone
from channels.generic.websocket import AsyncWebsocketConsumer
import redis.asyncio as redis
from redis.exceptions import RedisError

from users.models import User

from .events import BROADCAST_GROUP, role_group, room_group, user_group

logger = logging.getLogger(__name__)

PRESENCE_PREFIX = "presence:"
CONNECTIONS_PREFIX = "connections:"
DEFAULT_ROOM = "general"
ROOM_NAME_RE = re.compile(r'^[\w.-]{1,64}$')

# Client message type -> (event rebroadcast to everyone, roles allowed to send it)
REBROADCAST_MESSAGES = {
    "bodyStatusUpdate": ("bodyUpdated", (User.ADMIN, User.STAFF)),
    "storageUpdate": ("storageUpdated", (User.ADMIN, User.STAFF)),
    "taskUpdate": ("taskUpdated", None),
    "autopsyUpdate": ("autopsyUpdated", None),
    "releaseUpdate": ("releaseUpdated", None),
    "emergencyAlert": ("emergencyAlert", (User.ADMIN,)),
    "systemMaintenance": ("systemMaintenance", (User.ADMIN,)),
}


def get_redis():
    """Presence store, on the same Redis the production channel layer uses."""
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


async def online_users():
    """Presence records of every user with a live connection."""
    r = get_redis()
    try:
        keys = await r.keys(f"{PRESENCE_PREFIX}*")
        if not keys:
            return []
        records = []
        for raw in await r.mget(keys):
            if not raw:
                continue
            try:
                records.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.warning("Dropping malformed presence record %r", raw)
        return records
    except RedisError as exc:
        logger.warning("Presence store unavailable: %s", exc)
        return []
    finally:
        await r.aclose()


class RealtimeConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        self.user = self.scope.get("user")
        if self.user is None or not self.user.is_authenticated:
            await self.close()
            return

        self.joined_groups = [
            BROADCAST_GROUP,
            user_group(self.user.pk),
            role_group(self.user.role),
            room_group(DEFAULT_ROOM),
        ]
        for group in self.joined_groups:
            await self.channel_layer.group_add(group, self.channel_name)
        await self.accept()

        await self.send_frame("authenticated", {
            "message": "Successfully connected to real-time updates",
            "userId": str(self.user.pk),
            "role": self.user.role,
        })
        await self._open_connection()
        await self._set_presence("online")
        await self._announce_presence("online")
        if self.user.role == User.ADMIN:
            await self.send_frame("presenceSnapshot", await online_users())

    async def disconnect(self, close_code):
        if not hasattr(self, "joined_groups"):
            return
        for group in self.joined_groups:
            await self.channel_layer.group_discard(group, self.channel_name)
        if await self._close_connection():
            await self._announce_presence("offline")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            message = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_frame("error", {"message": "Malformed message"})
            return
        if not isinstance(message, dict):
            await self.send_frame("error", {"message": "Malformed message"})
            return

        message_type = message.get("type")
        data = message.get("data")
        if not isinstance(data, dict):
            data = {}

        if message_type == "markNotificationRead":
            await self.group_event(user_group(self.user.pk), "notificationRead",
                                   {"id": data.get("id")}, exclude_self=True)
        elif message_type == "typing":
            await self._handle_typing(data)
        elif message_type == "joinRoom":
            await self._join_room(data.get("room"))
        elif message_type == "leaveRoom":
            await self._leave_room(data.get("room"))
        elif message_type == "updatePresence":
            status = str(data.get("status") or "online")
            await self._set_presence(status)
            await self._announce_presence(status)
        elif message_type in REBROADCAST_MESSAGES:
            await self._rebroadcast(message_type, data)
        else:
            await self.send_frame("error", {"message": f"Unknown message type: {message_type}"})

    async def realtime_event(self, event):
        if event.get("exclude_channel") == self.channel_name:
            return
        await self.send_frame(event["event"], event.get("data"))

    async def send_frame(self, event, data=None):
        await self.send(text_data=json.dumps({"type": event, "data": data}))

    async def group_event(self, group, event, data, exclude_self=False):
        message = {"type": "realtime.event", "event": event, "data": data}
        if exclude_self:
            message["exclude_channel"] = self.channel_name
        await self.channel_layer.group_send(group, message)

    async def _rebroadcast(self, message_type, data):
        event, roles = REBROADCAST_MESSAGES[message_type]
        if roles is not None and self.user.role not in roles:
            await self.send_frame("error", {"message": f"Not allowed to send {message_type}"})
            return
        if roles == (User.ADMIN,):
            data = {**data, "timestamp": timezone.now().isoformat(), "from": str(self.user.pk)}
        await self.group_event(BROADCAST_GROUP, event, data)

    async def _handle_typing(self, data):
        room = data.get("room") or DEFAULT_ROOM
        if not self._valid_room(room):
            await self.send_frame("error", {"message": "Invalid room name"})
            return
        await self.group_event(room_group(room), "userTyping", {
            "userId": str(self.user.pk),
            "isTyping": bool(data.get("isTyping")),
        }, exclude_self=True)

    async def _join_room(self, room):
        if not self._valid_room(room):
            await self.send_frame("error", {"message": "Invalid room name"})
            return
        group = room_group(room)
        if group not in self.joined_groups:
            await self.channel_layer.group_add(group, self.channel_name)
            self.joined_groups.append(group)
        await self.send_frame("roomJoined", {"room": room})

    async def _leave_room(self, room):
        if not self._valid_room(room):
            await self.send_frame("error", {"message": "Invalid room name"})
            return
        group = room_group(room)
        if group in self.joined_groups and room != DEFAULT_ROOM:
            await self.channel_layer.group_discard(group, self.channel_name)
            self.joined_groups.remove(group)

    @staticmethod
    def _valid_room(room):
        return isinstance(room, str) and bool(ROOM_NAME_RE.match(room))

    async def _announce_presence(self, status):
        await self.group_event(role_group(User.ADMIN), "userPresenceUpdate", {
            "userId": str(self.user.pk),
            "status": status,
            "timestamp": timezone.now().isoformat(),
        }, exclude_self=True)

    async def _set_presence(self, status):
        r = get_redis()
        try:
            await r.setex(f"{PRESENCE_PREFIX}{self.user.pk}", settings.PRESENCE_TTL, json.dumps({
                "userId": str(self.user.pk),
                "name": self.user.name,
                "role": self.user.role,
                "status": status,
                "since": timezone.now().isoformat(),
            }))
            await r.expire(f"{CONNECTIONS_PREFIX}{self.user.pk}", settings.PRESENCE_TTL)
        except RedisError as exc:
            logger.warning("Could not record presence for %s: %s", self.user.pk, exc)
        finally:
            await r.aclose()

    async def _open_connection(self):
        r = get_redis()
        key = f"{CONNECTIONS_PREFIX}{self.user.pk}"
        try:
            await r.incr(key)
            await r.expire(key, settings.PRESENCE_TTL)
        except RedisError as exc:
            logger.warning("Could not count connection for %s: %s", self.user.pk, exc)
        finally:
            await r.aclose()

    async def _close_connection(self):
        """Drop one connection; True when it was the user's last, which clears presence."""
        r = get_redis()
        key = f"{CONNECTIONS_PREFIX}{self.user.pk}"
        try:
            if await r.decr(key) > 0:
                return False
            await r.delete(f"{PRESENCE_PREFIX}{self.user.pk}", key)
        except RedisError as exc:
            logger.warning("Could not clear presence for %s: %s", self.user.pk, exc)
        finally:
            await r.aclose()
        return True
