import logging

from users.models import User

from .events import send_to_user
from .models import Notification

logger = logging.getLogger(__name__)


def notify(user, title, message, type=Notification.INFO, action_url=''):
    """Store a notification for one user and push it to their open sessions."""
    notification = Notification.objects.create(
        user=user,
        title=title,
        message=message,
        type=type,
        action_url=action_url,
    )
    send_to_user(user.pk, 'newNotification', notification.as_json())
    return notification


def notify_admins(title, message, type=Notification.INFO, action_url=''):
    """Fan a notification out to every active admin."""
    admins = User.objects.filter(role=User.ADMIN, is_active=True)
    notifications = [notify(admin, title, message, type, action_url) for admin in admins]
    if not notifications:
        logger.warning("No active admin to receive notification %r", title)
    return notifications
