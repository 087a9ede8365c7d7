from functools import wraps

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse


def api_login_required(view_func):
    """Like login_required, but answers 401 JSON instead of redirecting."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Authentication required'}, status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def role_required(*roles):
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({'error': 'Authentication required'}, status=401)
            if request.user.role not in roles:
                raise PermissionDenied('Insufficient permissions')
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def require_role(user, *roles):
    """Inline variant for views where only some methods are restricted."""
    if user.role not in roles:
        raise PermissionDenied('Insufficient permissions')
