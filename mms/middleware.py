import logging

from django.conf import settings
from django.core.exceptions import BadRequest, PermissionDenied, ValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError, RestrictedError
from django.http import Http404, JsonResponse

from .api import ApiError

logger = logging.getLogger(__name__)


def is_api_request(request):
    return request.path.startswith('/api/')


class ApiErrorMiddleware:
    """Render exceptions raised by /api/ views as JSON error bodies."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not is_api_request(request):
            return None

        if isinstance(exception, ApiError):
            logger.warning("%s %s -> %s: %s", request.method, request.path, exception.status, exception.message)
            return JsonResponse({'error': exception.message}, status=exception.status)

        if isinstance(exception, Http404):
            return JsonResponse({'error': str(exception) or 'Not found'}, status=404)

        if isinstance(exception, PermissionDenied):
            return JsonResponse({'error': str(exception) or 'Access denied'}, status=403)

        if isinstance(exception, BadRequest):
            return JsonResponse({'error': str(exception) or 'Bad request'}, status=400)

        if isinstance(exception, ValidationError):
            return JsonResponse({'error': 'Validation error', 'details': exception.messages}, status=400)

        if isinstance(exception, (ProtectedError, RestrictedError)):
            return JsonResponse({'error': 'Resource is still referenced by other records'}, status=409)

        if isinstance(exception, IntegrityError):
            logger.warning("Integrity error on %s %s: %s", request.method, request.path, exception)
            return JsonResponse({'error': 'Resource already exists'}, status=409)

        logger.exception("Unhandled error on %s %s", request.method, request.path)
        body = {'error': 'Internal Server Error'}
        if settings.DEBUG:
            body['detail'] = str(exception)
        return JsonResponse(body, status=500)
