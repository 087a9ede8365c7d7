import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods

from mms.api import query_bool, query_int, read_json, validation_error
from users.decorators import api_login_required, role_required
from users.models import User

from .events import send_to_user
from .forms import NotificationForm
from .models import Notification

logger = logging.getLogger(__name__)


@require_http_methods(["GET", "POST"])
@api_login_required
def notification_collection(request):
    if request.method == 'POST':
        return create_notification(request)

    notifications = Notification.objects.filter(user=request.user)
    is_read = query_bool(request, 'read')
    if is_read is not None:
        notifications = notifications.filter(is_read=is_read)
    notification_type = request.GET.get('type')
    if notification_type:
        notifications = notifications.filter(type=notification_type)

    limit = query_int(request, 'limit', 50, minimum=1, maximum=200)
    offset = query_int(request, 'offset', 0)
    total = notifications.count()
    page = notifications.order_by('-created_at')[offset:offset + limit]
    return JsonResponse({
        'notifications': [notification.as_json() for notification in page],
        'total': total,
        'limit': limit,
        'offset': offset,
    })


@role_required(User.ADMIN)
def create_notification(request):
    form = NotificationForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)
    notification = form.save()
    logger.info("Notification %r sent to %s by %s", notification.title, notification.user_id, request.user.email)
    send_to_user(notification.user_id, 'newNotification', notification.as_json())
    return JsonResponse(notification.as_json(), status=201)


@require_GET
@api_login_required
def unread_count(request):
    count = Notification.objects.filter(user=request.user, is_read=False).count()
    return JsonResponse({'count': count})


@require_http_methods(["PUT", "PATCH"])
@api_login_required
def mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read', 'updated_at'])
    send_to_user(request.user.pk, 'notificationRead', {'id': notification.pk})
    return JsonResponse(notification.as_json())


@require_http_methods(["PUT", "PATCH"])
@api_login_required
def mark_all_read(request):
    count = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    send_to_user(request.user.pk, 'allNotificationsRead', {'count': count})
    return JsonResponse({'message': 'All notifications marked as read', 'count': count})


@require_http_methods(["DELETE"])
@api_login_required
def notification_detail(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.delete()
    send_to_user(request.user.pk, 'notificationDeleted', {'id': pk})
    return JsonResponse({'message': 'Notification deleted successfully'})
