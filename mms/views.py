from django.http import HttpResponseNotFound, HttpResponseServerError, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from .middleware import is_api_request


@require_GET
def health(request):
    return JsonResponse({'status': 'OK', 'timestamp': timezone.now().isoformat()})


def handler404(request, exception=None):
    """Custom 404 error handler."""
    if is_api_request(request):
        return JsonResponse({'error': 'Not found'}, status=404)
    return HttpResponseNotFound('Not found')


def handler500(request):
    """Custom 500 error handler."""
    if is_api_request(request):
        return JsonResponse({'error': 'Internal Server Error'}, status=500)
    return HttpResponseServerError('Server error')
