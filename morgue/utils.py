from django.db import transaction
from django.db.models import IntegerField, Max
from django.db.models.functions import Cast, Substr
from django.utils import timezone

from mms.api import Conflict

from .models import Body, StorageUnit

TAG_PREFIX = "MT"


def generate_tag_id(year=None):
    """
    Next body tag for the year: MT<year><NNNN>, one past the highest
    sequence already issued that year.
    """
    year = year or timezone.now().year
    prefix = f"{TAG_PREFIX}{year}"
    last_number = (
        Body.objects.filter(tag_id__regex=rf'^{prefix}[0-9]+$')
        .aggregate(last=Max(Cast(Substr('tag_id', len(prefix) + 1), IntegerField())))['last']
    ) or 0

    return f"{prefix}{last_number + 1:04d}"


def occupy_storage(unit, body):
    """Assign a body to an available unit; fails if someone got there first."""
    updated = StorageUnit.objects.filter(pk=unit.pk, status=StorageUnit.AVAILABLE).update(
        status=StorageUnit.OCCUPIED,
        assigned_body=body,
        updated_at=timezone.now(),
    )
    if not updated:
        raise Conflict(f"Storage unit {unit.name} is not available")
    unit.refresh_from_db()
    return unit


def release_storage(unit, status=StorageUnit.AVAILABLE):
    """Take the body out of the unit, on both sides of the link."""
    with transaction.atomic():
        if unit.assigned_body_id:
            Body.objects.filter(pk=unit.assigned_body_id, storage=unit).update(
                storage=None, updated_at=timezone.now(),
            )
        unit.status = status
        unit.assigned_body = None
        unit.save(update_fields=['status', 'assigned_body', 'updated_at'])
    return unit


def free_storage_of(body):
    """Free whichever unit currently holds the body, if any."""
    unit = StorageUnit.objects.filter(assigned_body=body).first()
    if unit is not None:
        release_storage(unit)
    return unit


def register_body(form, user):
    """Insert a new body with a fresh tag and occupy its storage unit."""
    with transaction.atomic():
        body = form.save(commit=False)
        body.tag_id = generate_tag_id()
        body.registered_by = user
        body.status = Body.REGISTERED
        body.save()
        unit = occupy_storage(body.storage, body) if body.storage else None
    return body, unit


def move_body(body, old_unit):
    """Follow a storage change made on the body: free the old unit, occupy the new one."""
    with transaction.atomic():
        freed = release_storage(old_unit) if old_unit and old_unit.assigned_body_id == body.pk else None
        body.save()
        occupied = occupy_storage(body.storage, body) if body.storage else None
    return freed, occupied


def remove_body(body):
    with transaction.atomic():
        unit = free_storage_of(body)
        body.delete()
    return unit


def complete_release(release):
    """Mark the released body as gone and give its storage unit back."""
    body = release.body
    with transaction.atomic():
        unit = free_storage_of(body)
        body.status = Body.RELEASED
        body.released_at = timezone.now()
        body.storage = None
        body.save(update_fields=['status', 'released_at', 'storage', 'updated_at'])
    return unit
