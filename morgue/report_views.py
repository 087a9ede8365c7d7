import csv

from django.db.models import Count, Q
from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET

from mms.api import ApiError
from users.decorators import api_login_required, role_required
from users.models import User

from .models import Autopsy, Body, BodyRelease, StorageUnit, Task
from .views import (
    autopsy_queryset, body_queryset, body_stats_columns, release_queryset, task_queryset,
)


def date_range_filter(request, field='created_at'):
    """Q object for ?start_date=&end_date= (inclusive, YYYY-MM-DD)."""
    start = request.GET.get('start_date')
    end = request.GET.get('end_date')
    if not start or not end:
        return Q()

    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None or end_date is None:
        raise ApiError('Dates must be in YYYY-MM-DD format')
    if start_date > end_date:
        raise ApiError('start_date must not be after end_date')
    return Q(**{f'{field}__date__range': (start_date, end_date)})


def filter_by_params(queryset, request, **params):
    """Apply ?<param>=value filters mapped onto model fields."""
    for param, field in params.items():
        value = request.GET.get(param)
        if value:
            queryset = queryset.filter(**{field: value})
    return queryset


def export_csv(name, columns, rows):
    response = HttpResponse(content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{name}_report_{timezone.now().strftime("%Y%m%d")}.csv"'

    writer = csv.writer(response)
    writer.writerow(columns)
    for row in rows:
        writer.writerow(['' if row.get(column) is None else row[column] for column in columns])
    return response


def report_response(request, name, columns, rows):
    rows = list(rows)
    if request.GET.get('format') == 'csv':
        return export_csv(name, columns, rows)
    return JsonResponse(rows, safe=False)


@require_GET
@api_login_required
def overview(request):
    created = date_range_filter(request)

    bodies = Body.objects.filter(created).values('status').annotate(**body_stats_columns()).order_by('status')
    autopsies = (
        Autopsy.objects.filter(created).values('status')
        .annotate(count=Count('id'), completed_count=Count('id', filter=Q(completed_date__isnull=False)))
        .order_by('status')
    )
    tasks = (
        Task.objects.filter(created).values('status', 'priority')
        .annotate(count=Count('id')).order_by('status', 'priority')
    )
    releases = BodyRelease.objects.filter(created).values('status').annotate(count=Count('id')).order_by('status')
    storage = StorageUnit.objects.values('type', 'status').annotate(count=Count('id')).order_by('type', 'status')

    return JsonResponse({
        'bodies': list(bodies),
        'autopsies': list(autopsies),
        'tasks': list(tasks),
        'releases': list(releases),
        'storage': list(storage),
    })


BODY_COLUMNS = [
    'tag_id', 'full_name', 'age', 'gender', 'date_of_death', 'intake_time', 'status',
    'storage_name', 'storage_location', 'next_of_kin_name', 'next_of_kin_phone',
    'registered_by_name', 'released_at', 'created_at',
]


@require_GET
@api_login_required
def bodies_report(request):
    bodies = body_queryset().filter(date_range_filter(request))
    bodies = filter_by_params(bodies, request, status='status', gender='gender')
    rows = (body.as_json() for body in bodies.order_by('-created_at'))
    return report_response(request, 'bodies', BODY_COLUMNS, rows)


AUTOPSY_COLUMNS = [
    'body_tag_id', 'body_name', 'body_age', 'body_gender', 'pathologist_name', 'assigned_by_name',
    'scheduled_date', 'status', 'cause_of_death', 'completed_date', 'created_at',
]


@require_GET
@api_login_required
def autopsies_report(request):
    autopsies = autopsy_queryset().filter(date_range_filter(request))
    autopsies = filter_by_params(autopsies, request, status='status', pathologist_id='pathologist_id')
    if request.user.role == User.PATHOLOGIST:
        autopsies = autopsies.filter(pathologist=request.user)
    rows = (autopsy.as_json() for autopsy in autopsies.order_by('-scheduled_date'))
    return report_response(request, 'autopsies', AUTOPSY_COLUMNS, rows)


TASK_COLUMNS = [
    'title', 'type', 'priority', 'status', 'due_date', 'assigned_to_name', 'assigned_by_name',
    'body_tag_id', 'body_name', 'created_at',
]


@require_GET
@api_login_required
def tasks_report(request):
    tasks = task_queryset().filter(date_range_filter(request))
    tasks = filter_by_params(tasks, request, status='status', priority='priority', assigned_to='assigned_to_id')
    if not request.user.is_admin:
        tasks = tasks.filter(assigned_to=request.user)
    rows = (task.as_json() for task in tasks.order_by('-due_date'))
    return report_response(request, 'tasks', TASK_COLUMNS, rows)


RELEASE_COLUMNS = [
    'body_tag_id', 'body_name', 'receiver_name', 'receiver_id', 'relationship', 'status',
    'requested_by_name', 'requested_date', 'approved_by_name', 'approved_date', 'notes',
]


@require_GET
@api_login_required
def releases_report(request):
    releases = release_queryset().filter(date_range_filter(request))
    releases = filter_by_params(releases, request, status='status')
    rows = (release.as_json() for release in releases.order_by('-requested_date'))
    return report_response(request, 'releases', RELEASE_COLUMNS, rows)


@require_GET
@api_login_required
def storage_report(request):
    per_type = dict(StorageUnit.objects.values_list('type').annotate(total=Count('id')).order_by('type'))
    rows = list(StorageUnit.objects.values('type', 'status').annotate(count=Count('id')).order_by('type', 'status'))
    for row in rows:
        row['percentage'] = round(row['count'] * 100 / per_type[row['type']], 2)
    return JsonResponse(rows, safe=False)


def average_hours(pairs):
    durations = [(end - start).total_seconds() / 3600 for start, end in pairs if start and end]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


def percentage(part, whole):
    return round(part * 100 / whole, 2) if whole else None


@require_GET
@role_required(User.ADMIN)
def performance(request):
    created = date_range_filter(request)

    autopsy_times = (
        Autopsy.objects.filter(created, status=Autopsy.COMPLETED, completed_date__isnull=False)
        .values_list('scheduled_date', 'completed_date')
    )
    release_times = (
        BodyRelease.objects.filter(
            created,
            status__in=[BodyRelease.APPROVED, BodyRelease.COMPLETED],
            approved_date__isnull=False,
        ).values_list('requested_date', 'approved_date')
    )
    tasks = Task.objects.filter(created).aggregate(
        total=Count('id'), completed=Count('id', filter=Q(status=Task.COMPLETED))
    )
    units = StorageUnit.objects.aggregate(
        total=Count('id'), occupied=Count('id', filter=Q(status=StorageUnit.OCCUPIED))
    )

    return JsonResponse({
        'avg_autopsy_hours': average_hours(autopsy_times),
        'task_completion_rate': percentage(tasks['completed'], tasks['total']),
        'avg_release_processing_hours': average_hours(release_times),
        'storage_utilization': percentage(units['occupied'], units['total']),
    })
