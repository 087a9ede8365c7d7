"""Shared helpers for the JSON API views."""
import json

from django.core.exceptions import BadRequest
from django.forms.models import model_to_dict
from django.http import JsonResponse


class ApiError(Exception):
    """An error with an HTTP status, rendered as {"error": message}."""
    status = 400

    def __init__(self, message, status=None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class NotFound(ApiError):
    status = 404


class Conflict(ApiError):
    status = 409


def read_json(request):
    """Decode the request body as a JSON object."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequest('Malformed JSON body')
    if not isinstance(data, dict):
        raise BadRequest('JSON body must be an object')
    return data


def validation_error(form):
    return JsonResponse(
        {'error': 'Validation error', 'details': form.errors.get_json_data()},
        status=400,
    )


def bind_partial(form_class, instance, payload, **kwargs):
    """
    Bind a ModelForm for a partial update: the payload is laid over the
    instance's current values so omitted fields keep what they had.
    """
    form_fields = list(form_class.base_fields)
    data = model_to_dict(instance, fields=form_fields)
    for key, value in payload.items():
        if key in form_fields:
            data[key] = value
    return form_class(data, instance=instance, **kwargs)


def query_int(request, name, default, minimum=0, maximum=None):
    raw = request.GET.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f'{name} must be an integer')
    if value < minimum:
        raise BadRequest(f'{name} must be >= {minimum}')
    if maximum is not None:
        value = min(value, maximum)
    return value


def query_bool(request, name):
    raw = request.GET.get(name)
    if raw is None:
        return None
    return raw.lower() in ('true', '1', 'yes')
