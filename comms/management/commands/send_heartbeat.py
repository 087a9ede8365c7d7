from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand
from django.utils import timezone

from comms.consumers import online_users
from comms.events import broadcast


class Command(BaseCommand):
    help = 'Broadcasts a systemHeartbeat event with the number of connected users'

    def handle(self, *args, **options):
        connected = len(async_to_sync(online_users)())
        broadcast('systemHeartbeat', {
            'timestamp': timezone.now(),
            'connectedUsers': connected,
        })
        self.stdout.write(self.style.SUCCESS(f'Heartbeat sent ({connected} users online)'))
