import logging

from django.contrib.auth import login, logout, update_session_auth_hash
from django.db.models import Count, Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from comms.events import broadcast
from mms.api import bind_partial, read_json, validation_error, ApiError

from .decorators import api_login_required, require_role, role_required
from .forms import ChangePasswordForm, LoginForm, UserCreateForm, UserUpdateForm
from .models import User

logger = logging.getLogger(__name__)


# Auth

@require_POST
def login_view(request):
    form = LoginForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)

    email = form.cleaned_data['email']
    password = form.cleaned_data['password']
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        # Hash anyway so unknown emails cost the same as bad passwords
        User().set_password(password)
        return JsonResponse({'error': 'Invalid credentials'}, status=401)
    if not user.is_active:
        return JsonResponse({'error': 'Account is inactive'}, status=401)
    if not user.check_password(password):
        logger.warning("Failed login for %s", email)
        return JsonResponse({'error': 'Invalid credentials'}, status=401)

    login(request, user, backend='django.contrib.auth.backends.ModelBackend')
    logger.info("User %s logged in", user.email)
    return JsonResponse({'user': user.as_json()})


@require_POST
def logout_view(request):
    """View for logging out the user."""
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@require_GET
@ensure_csrf_cookie
def verify_view(request):
    if not request.user.is_authenticated or not request.user.is_active:
        return JsonResponse({'error': 'Invalid session'}, status=401)
    return JsonResponse({'user': request.user.as_json()})


@require_GET
@ensure_csrf_cookie
def csrf_view(request):
    return JsonResponse({'message': 'CSRF cookie set'})


@require_POST
@api_login_required
def change_password(request):
    form = ChangePasswordForm(request.user, read_json(request))
    if not form.is_valid():
        return validation_error(form)
    user = form.save()
    update_session_auth_hash(request, user)
    logger.info("User %s changed their password", user.email)
    return JsonResponse({'message': 'Password changed successfully'})


# Users

@require_http_methods(["GET", "POST"])
@role_required(User.ADMIN)
def user_collection(request):
    if request.method == 'GET':
        users = User.objects.order_by('-date_joined')
        role = request.GET.get('role')
        if role:
            users = users.filter(role=role)
        return JsonResponse([u.as_json() for u in users], safe=False)

    form = UserCreateForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)
    user = form.save()
    logger.info("User %s (%s) created by %s", user.email, user.role, request.user.email)
    broadcast('userCreated', user.as_json())
    return JsonResponse(user.as_json(), status=201)


@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
@api_login_required
def user_detail(request, pk):
    is_admin = request.user.is_admin
    if not is_admin and request.user.pk != pk:
        require_role(request.user, User.ADMIN)

    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return JsonResponse(user.as_json())

    if request.method == 'DELETE':
        require_role(request.user, User.ADMIN)
        if user.pk == request.user.pk:
            raise ApiError('Cannot delete your own account')
        user.delete()
        logger.info("User %s deleted by %s", pk, request.user.email)
        broadcast('userDeleted', {'id': pk})
        return JsonResponse({'message': 'User deleted successfully'})

    payload = read_json(request)
    if not payload:
        raise ApiError('No valid fields to update')
    form = bind_partial(UserUpdateForm, user, payload, allow_admin_fields=is_admin)
    if not form.is_valid():
        return validation_error(form)
    user = form.save()
    logger.info("User %s updated by %s", user.email, request.user.email)
    broadcast('userUpdated', user.as_json())
    return JsonResponse(user.as_json())


@require_GET
@role_required(User.ADMIN)
def user_stats(request):
    rows = (
        User.objects.values('role')
        .annotate(
            count=Count('id'),
            active_count=Count('id', filter=Q(is_active=True)),
            inactive_count=Count('id', filter=Q(is_active=False)),
        )
        .order_by('role')
    )
    return JsonResponse(list(rows), safe=False)
