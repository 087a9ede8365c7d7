import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Avg, Case, Count, IntegerField, Q, Value, When
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods

from comms.events import broadcast
from comms.models import Notification
from comms.utils import notify, notify_admins
from mms.api import ApiError, Conflict, bind_partial, query_int, read_json, validation_error
from users.decorators import api_login_required, require_role, role_required
from users.models import User

from .forms import (
    AutopsyForm, AutopsyUpdateForm, BodyForm, BodyReleaseForm, ReleaseStatusForm,
    StorageStatusForm, StorageUnitForm, TaskForm, TaskStatusForm,
)
from .models import Autopsy, Body, BodyRelease, StorageUnit, Task
from .utils import complete_release, move_body, register_body, release_storage, remove_body

logger = logging.getLogger(__name__)


def _changed_fields(payload):
    if not payload:
        raise ApiError('No valid fields to update')
    return payload


def own_counts(**owner):
    return {
        'count': Count('id'),
        'my_count': Count('id', filter=Q(**owner)),
    }


def _with_total(rows, total, **labels):
    rows = list(rows)
    total.update(labels)
    rows.append(total)
    return rows


# Bodies

def body_queryset():
    return Body.objects.select_related('storage', 'registered_by')


def body_stats_columns():
    return {
        'count': Count('id'),
        'male_count': Count('id', filter=Q(gender='male')),
        'female_count': Count('id', filter=Q(gender='female')),
        'other_count': Count('id', filter=Q(gender='other')),
        'average_age': Avg('age'),
    }


@require_http_methods(["GET", "POST"])
@api_login_required
def body_collection(request):
    if request.method == 'GET':
        bodies = body_queryset()
        status = request.GET.get('status')
        if status:
            bodies = bodies.filter(status=status)
        search = request.GET.get('search')
        if search:
            bodies = bodies.filter(Q(full_name__icontains=search) | Q(tag_id__icontains=search))

        limit = query_int(request, 'limit', 50, minimum=1, maximum=500)
        offset = query_int(request, 'offset', 0)
        total = bodies.count()
        page = bodies.order_by('-created_at')[offset:offset + limit]
        return JsonResponse({
            'bodies': [body.as_json() for body in page],
            'total': total,
            'limit': limit,
            'offset': offset,
        })

    form = BodyForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)

    body, unit = register_body(form, request.user)
    logger.info("Body %s registered by %s into %s", body.tag_id, request.user.email, unit)

    notify_admins(
        'New Body Registration',
        f"New body registered: {body.full_name} ({body.tag_id})",
        action_url='/bodies',
    )
    broadcast('bodyCreated', body.as_json())
    if unit is not None:
        broadcast('storageUpdated', unit.as_json())
    return JsonResponse(body.as_json(), status=201)


@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
@api_login_required
def body_detail(request, pk):
    body = get_object_or_404(body_queryset(), pk=pk)

    if request.method == 'GET':
        return JsonResponse(body.as_json())

    if request.method == 'DELETE':
        require_role(request.user, User.ADMIN)
        unit = remove_body(body)
        logger.info("Body %s deleted by %s", pk, request.user.email)
        broadcast('bodyDeleted', {'id': pk})
        if unit is not None:
            broadcast('storageUpdated', unit.as_json())
        return JsonResponse({'message': 'Body deleted successfully'})

    payload = _changed_fields(read_json(request))
    old_unit = body.storage
    form = bind_partial(BodyForm, body, payload)
    if not form.is_valid():
        return validation_error(form)
    body = form.save(commit=False)

    moved = body.storage_id != (old_unit.pk if old_unit else None)
    if moved and body.is_released and body.storage_id:
        raise Conflict('Released bodies cannot be assigned storage')

    freed = occupied = None
    if moved:
        freed, occupied = move_body(body, old_unit)
    else:
        body.save()
    logger.info("Body %s updated by %s", body.tag_id, request.user.email)

    broadcast('bodyUpdated', body.as_json())
    for unit in (freed, occupied):
        if unit is not None:
            broadcast('storageUpdated', unit.as_json())
    return JsonResponse(body.as_json())


@require_GET
@api_login_required
def body_stats(request):
    rows = Body.objects.values('status').annotate(**body_stats_columns()).order_by('status')
    total = Body.objects.aggregate(**body_stats_columns())
    return JsonResponse(_with_total(rows, total, status='total'), safe=False)


# Storage units

def storage_queryset():
    return StorageUnit.objects.select_related('assigned_body')


@require_http_methods(["GET", "POST"])
@api_login_required
def storage_collection(request):
    if request.method == 'GET':
        units = storage_queryset()
        status = request.GET.get('status')
        if status:
            units = units.filter(status=status)
        unit_type = request.GET.get('type')
        if unit_type:
            units = units.filter(type=unit_type)
        return JsonResponse([unit.as_json() for unit in units.order_by('name')], safe=False)

    require_role(request.user, User.ADMIN)
    form = StorageUnitForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)
    unit = form.save()
    logger.info("Storage unit %s created by %s", unit.name, request.user.email)
    broadcast('storageUpdated', unit.as_json())
    return JsonResponse(unit.as_json(), status=201)


@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
@api_login_required
def storage_detail(request, pk):
    unit = get_object_or_404(storage_queryset(), pk=pk)

    if request.method == 'GET':
        return JsonResponse(unit.as_json())

    require_role(request.user, User.ADMIN)

    if request.method == 'DELETE':
        if unit.status == StorageUnit.OCCUPIED:
            raise Conflict('Cannot delete an occupied storage unit')
        unit.delete()
        logger.info("Storage unit %s deleted by %s", pk, request.user.email)
        broadcast('storageDeleted', {'id': pk})
        return JsonResponse({'message': 'Storage unit deleted successfully'})

    form = bind_partial(StorageUnitForm, unit, _changed_fields(read_json(request)))
    if not form.is_valid():
        return validation_error(form)
    unit = form.save()
    broadcast('storageUpdated', unit.as_json())
    return JsonResponse(unit.as_json())


@require_http_methods(["PUT", "PATCH"])
@role_required(User.ADMIN, User.STAFF)
def storage_status(request, pk):
    unit = get_object_or_404(storage_queryset(), pk=pk)
    form = StorageStatusForm(read_json(request))
    if not form.is_valid():
        raise ApiError('Invalid status')

    status = form.cleaned_data['status']
    if status == StorageUnit.OCCUPIED:
        unit.status = status
        unit.save(update_fields=['status', 'updated_at'])
    else:
        release_storage(unit, status)
    logger.info("Storage unit %s set to %s by %s", unit.name, status, request.user.email)

    broadcast('storageUpdated', unit.as_json())
    return JsonResponse(unit.as_json())


def capacity_columns():
    return {
        'total_units': Count('id'),
        'occupied_units': Count('id', filter=Q(status=StorageUnit.OCCUPIED)),
        'available_units': Count('id', filter=Q(status=StorageUnit.AVAILABLE)),
        'maintenance_units': Count('id', filter=Q(status=StorageUnit.MAINTENANCE)),
    }


def with_capacity_percentage(row):
    total = row['total_units']
    row['capacity_percentage'] = round(row['occupied_units'] * 100 / total, 2) if total else 0
    return row


@require_GET
@api_login_required
def storage_stats(request):
    rows = StorageUnit.objects.values('type').annotate(**capacity_columns()).order_by('type')
    total = StorageUnit.objects.aggregate(**capacity_columns())
    rows = _with_total(rows, total, type='total')
    return JsonResponse([with_capacity_percentage(row) for row in rows], safe=False)


@require_GET
@api_login_required
def storage_available(request):
    units = StorageUnit.objects.filter(status=StorageUnit.AVAILABLE)
    unit_type = request.GET.get('type')
    if unit_type:
        units = units.filter(type=unit_type)
    fields = ('id', 'name', 'type', 'location', 'temperature')
    return JsonResponse(list(units.order_by('name').values(*fields)), safe=False)


# Autopsies

def autopsy_queryset():
    return Autopsy.objects.select_related('body', 'pathologist', 'assigned_by')


def check_autopsy_access(user, autopsy):
    if user.role == User.PATHOLOGIST and autopsy.pathologist_id != user.pk:
        raise PermissionDenied('Access denied')


@require_http_methods(["GET", "POST"])
@api_login_required
def autopsy_collection(request):
    if request.method == 'GET':
        autopsies = autopsy_queryset()
        if request.user.role == User.PATHOLOGIST:
            autopsies = autopsies.filter(pathologist=request.user)
        elif request.GET.get('pathologist_id'):
            autopsies = autopsies.filter(pathologist_id=request.GET['pathologist_id'])
        status = request.GET.get('status')
        if status:
            autopsies = autopsies.filter(status=status)
        autopsies = autopsies.order_by('-scheduled_date')
        return JsonResponse([autopsy.as_json() for autopsy in autopsies], safe=False)

    require_role(request.user, User.ADMIN)
    form = AutopsyForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)

    body = form.cleaned_data['body']
    if body.is_released:
        raise Conflict('Cannot schedule an autopsy for a released body')
    if body.autopsies.exclude(status=Autopsy.COMPLETED).exists():
        raise Conflict('Body already has an open autopsy')

    with transaction.atomic():
        autopsy = form.save(commit=False)
        autopsy.assigned_by = request.user
        autopsy.save()
        body.status = Body.AUTOPSY_SCHEDULED
        body.save(update_fields=['status', 'updated_at'])
    logger.info("Autopsy for %s scheduled with %s", body.tag_id, autopsy.pathologist.email)

    scheduled_on = timezone.localtime(autopsy.scheduled_date).strftime('%Y-%m-%d')
    notify(
        autopsy.pathologist,
        'Autopsy Scheduled',
        f"Autopsy scheduled for {body.full_name} on {scheduled_on}",
        action_url='/autopsies',
    )
    broadcast('autopsyCreated', autopsy.as_json())
    broadcast('bodyUpdated', {'id': body.pk, 'status': body.status})
    return JsonResponse(autopsy.as_json(), status=201)


@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
@api_login_required
def autopsy_detail(request, pk):
    autopsy = get_object_or_404(autopsy_queryset(), pk=pk)
    check_autopsy_access(request.user, autopsy)

    if request.method == 'GET':
        return JsonResponse(autopsy.as_json())

    if request.method == 'DELETE':
        require_role(request.user, User.ADMIN)
        body = autopsy.body
        with transaction.atomic():
            autopsy.delete()
            if not body.is_released and not body.autopsies.exists():
                body.status = Body.REGISTERED
                body.save(update_fields=['status', 'updated_at'])
        logger.info("Autopsy %s deleted by %s", pk, request.user.email)
        broadcast('autopsyDeleted', {'id': pk})
        broadcast('bodyUpdated', {'id': body.pk, 'status': body.status})
        return JsonResponse({'message': 'Autopsy deleted successfully'})

    require_role(request.user, User.ADMIN, User.PATHOLOGIST)
    payload = _changed_fields(read_json(request))
    previous_status = autopsy.status
    form = bind_partial(AutopsyUpdateForm, autopsy, payload, allow_reschedule=request.user.is_admin)
    if not form.is_valid():
        return validation_error(form)

    autopsy = form.save(commit=False)
    completed_now = autopsy.status == Autopsy.COMPLETED and previous_status != Autopsy.COMPLETED
    body = autopsy.body
    with transaction.atomic():
        if completed_now:
            autopsy.completed_date = timezone.now()
        autopsy.save()
        if completed_now and not body.is_released:
            body.status = Body.AUTOPSY_COMPLETED
            body.save(update_fields=['status', 'updated_at'])
    logger.info("Autopsy %s updated to %s by %s", autopsy.pk, autopsy.status, request.user.email)

    if completed_now:
        notify_admins(
            'Autopsy Completed',
            f"Autopsy for {body.full_name} has been completed",
            type=Notification.SUCCESS,
            action_url='/autopsies',
        )
        broadcast('bodyUpdated', {'id': body.pk, 'status': body.status})
    broadcast('autopsyUpdated', autopsy.as_json())
    return JsonResponse(autopsy.as_json())


@require_GET
@api_login_required
def autopsy_stats(request):
    owner = {'pathologist': request.user}
    rows = Autopsy.objects.values('status').annotate(**own_counts(**owner)).order_by('status')
    total = Autopsy.objects.aggregate(**own_counts(**owner))
    return JsonResponse(_with_total(rows, total, status='total'), safe=False)


# Tasks

PRIORITY_RANK = Case(
    When(priority='high', then=Value(1)),
    When(priority='medium', then=Value(2)),
    When(priority='low', then=Value(3)),
    default=Value(4),
    output_field=IntegerField(),
)


def task_queryset():
    return Task.objects.select_related('assigned_to', 'assigned_by', 'body')


def check_task_access(user, task):
    if not user.is_admin and task.assigned_to_id != user.pk:
        raise PermissionDenied('Access denied')


@require_http_methods(["GET", "POST"])
@api_login_required
def task_collection(request):
    if request.method == 'GET':
        tasks = task_queryset()
        if not request.user.is_admin:
            tasks = tasks.filter(assigned_to=request.user)
        elif request.GET.get('assigned_to'):
            tasks = tasks.filter(assigned_to_id=request.GET['assigned_to'])
        for field in ('status', 'priority', 'type'):
            value = request.GET.get(field)
            if value:
                tasks = tasks.filter(**{field: value})
        tasks = tasks.annotate(priority_rank=PRIORITY_RANK).order_by('priority_rank', 'due_date')
        return JsonResponse([task.as_json() for task in tasks], safe=False)

    require_role(request.user, User.ADMIN)
    form = TaskForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)
    task = form.save(commit=False)
    task.assigned_by = request.user
    task.save()
    logger.info("Task %r assigned to %s", task.title, task.assigned_to.email)

    notify(
        task.assigned_to,
        'New Task Assigned',
        f"You have been assigned a new task: {task.title}",
        action_url='/tasks',
    )
    broadcast('taskCreated', task.as_json())
    return JsonResponse(task.as_json(), status=201)


@require_http_methods(["GET", "PUT", "PATCH", "DELETE"])
@api_login_required
def task_detail(request, pk):
    task = get_object_or_404(task_queryset(), pk=pk)
    check_task_access(request.user, task)

    if request.method == 'GET':
        return JsonResponse(task.as_json())

    if request.method == 'DELETE':
        require_role(request.user, User.ADMIN)
        task.delete()
        logger.info("Task %s deleted by %s", pk, request.user.email)
        broadcast('taskDeleted', {'id': pk})
        return JsonResponse({'message': 'Task deleted successfully'})

    payload = read_json(request)
    if request.user.is_admin:
        form = bind_partial(TaskForm, task, _changed_fields(payload))
    else:
        # Assignees may only move their task along
        payload = {key: value for key, value in payload.items() if key == 'status'}
        form = bind_partial(TaskStatusForm, task, _changed_fields(payload))

    previous_status = task.status
    if not form.is_valid():
        return validation_error(form)
    task = form.save()
    logger.info("Task %s updated by %s", task.pk, request.user.email)

    completed_now = task.status == Task.COMPLETED and previous_status != Task.COMPLETED
    if completed_now and not request.user.is_admin and task.assigned_by is not None:
        notify(
            task.assigned_by,
            'Task Completed',
            f'Task "{task.title}" has been completed by {request.user.name}',
            type=Notification.SUCCESS,
            action_url='/tasks',
        )
    broadcast('taskUpdated', task.as_json())
    return JsonResponse(task.as_json())


@require_GET
@api_login_required
def task_stats(request):
    owner = {'assigned_to': request.user}
    rows = Task.objects.values('status', 'priority').annotate(**own_counts(**owner)).order_by('status', 'priority')
    total = Task.objects.aggregate(**own_counts(**owner))
    return JsonResponse(_with_total(rows, total, status='total', priority='all'), safe=False)


@require_GET
@api_login_required
def task_overdue(request):
    tasks = task_queryset().filter(due_date__lt=timezone.now()).exclude(status=Task.COMPLETED)
    if not request.user.is_admin:
        tasks = tasks.filter(assigned_to=request.user)
    return JsonResponse([task.as_json() for task in tasks.order_by('due_date')], safe=False)


# Body releases

RELEASE_MESSAGES = {
    BodyRelease.APPROVED: ("Release request for {name} has been approved", Notification.SUCCESS),
    BodyRelease.REJECTED: ("Release request for {name} has been rejected", Notification.WARNING),
    BodyRelease.COMPLETED: ("Release for {name} has been completed", Notification.SUCCESS),
    BodyRelease.PENDING: ("Release request for {name} is pending", Notification.INFO),
}


def release_queryset():
    return BodyRelease.objects.select_related('body', 'requested_by', 'approved_by')


@require_http_methods(["GET", "POST"])
@api_login_required
def release_collection(request):
    if request.method == 'GET':
        releases = release_queryset()
        status = request.GET.get('status')
        if status:
            releases = releases.filter(status=status)
        releases = releases.order_by('-requested_date')
        return JsonResponse([release.as_json() for release in releases], safe=False)

    form = BodyReleaseForm(read_json(request))
    if not form.is_valid():
        return validation_error(form)

    body = form.cleaned_data['body']
    if body.is_released:
        raise Conflict('Body has already been released')
    if body.releases.filter(status__in=BodyRelease.OPEN_STATUSES).exists():
        raise Conflict('An open release request already exists for this body')

    release = form.save(commit=False)
    release.requested_by = request.user
    release.save()
    logger.info("Release of %s requested by %s", body.tag_id, request.user.email)

    notify_admins(
        'New Release Request',
        f"Release request submitted for {body.full_name} ({body.tag_id})",
        action_url='/releases',
    )
    broadcast('releaseCreated', release.as_json())
    return JsonResponse(release.as_json(), status=201)


@require_http_methods(["GET", "DELETE"])
@api_login_required
def release_detail(request, pk):
    release = get_object_or_404(release_queryset(), pk=pk)

    if request.method == 'GET':
        return JsonResponse(release.as_json())

    require_role(request.user, User.ADMIN)
    release.delete()
    logger.info("Release %s deleted by %s", pk, request.user.email)
    broadcast('releaseDeleted', {'id': pk})
    return JsonResponse({'message': 'Release request deleted successfully'})


@require_http_methods(["PUT", "PATCH"])
@role_required(User.ADMIN)
def release_status(request, pk):
    release = get_object_or_404(release_queryset(), pk=pk)
    form = ReleaseStatusForm(read_json(request))
    if not form.is_valid():
        raise ApiError('Invalid status')

    status = form.cleaned_data['status']
    notes = form.cleaned_data['notes']
    if not release.can_transition_to(status):
        raise ApiError(f"Cannot move release from {release.status} to {status}")

    freed_unit = None
    with transaction.atomic():
        release.status = status
        if status in (BodyRelease.APPROVED, BodyRelease.REJECTED):
            release.approved_by = request.user
            release.approved_date = timezone.now()
        if notes:
            release.notes = notes
        release.save()
        if status == BodyRelease.COMPLETED:
            freed_unit = complete_release(release)
    logger.info("Release %s set to %s by %s", release.pk, status, request.user.email)

    template, notification_type = RELEASE_MESSAGES[status]
    if release.requested_by is not None:
        notify(
            release.requested_by,
            'Release Status Update',
            template.format(name=release.body.full_name),
            type=notification_type,
            action_url='/releases',
        )

    broadcast('releaseUpdated', release.as_json())
    if status == BodyRelease.COMPLETED:
        broadcast('bodyUpdated', {'id': release.body_id, 'status': Body.RELEASED})
        if freed_unit is not None:
            broadcast('storageUpdated', freed_unit.as_json())
    return JsonResponse(release.as_json())


@require_GET
@api_login_required
def release_stats(request):
    owner = {'requested_by': request.user}
    rows = BodyRelease.objects.values('status').annotate(**own_counts(**owner)).order_by('status')
    total = BodyRelease.objects.aggregate(**own_counts(**owner))
    return JsonResponse(_with_total(rows, total, status='total'), safe=False)
