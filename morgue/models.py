import uuid

from django.conf import settings
from django.db import models


class StorageUnit(models.Model):
    """A fridge or freezer slot holding at most one body."""

    FRIDGE = 'fridge'
    FREEZER = 'freezer'

    TYPE_CHOICES = [
        (FRIDGE, 'Fridge'),
        (FREEZER, 'Freezer'),
    ]

    AVAILABLE = 'available'
    OCCUPIED = 'occupied'
    MAINTENANCE = 'maintenance'

    STATUS_CHOICES = [
        (AVAILABLE, 'Available'),
        (OCCUPIED, 'Occupied'),
        (MAINTENANCE, 'Maintenance'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    location = models.CharField(max_length=255, blank=True, default='')
    temperature = models.CharField(max_length=20, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)
    assigned_body = models.OneToOneField(
        'Body', on_delete=models.SET_NULL, null=True, blank=True, related_name='occupied_unit'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.get_type_display()})"

    def as_json(self):
        body = self.assigned_body
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'location': self.location,
            'temperature': self.temperature,
            'status': self.status,
            'assigned_body_id': self.assigned_body_id,
            'assigned_body_name': body.full_name if body else None,
            'assigned_body_tag': body.tag_id if body else None,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class Body(models.Model):
    """A deceased person held by the mortuary, identified by a tag."""

    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    REGISTERED = 'registered'
    AUTOPSY_SCHEDULED = 'autopsy_scheduled'
    AUTOPSY_COMPLETED = 'autopsy_completed'
    RELEASED = 'released'

    STATUS_CHOICES = [
        (REGISTERED, 'Registered'),
        (AUTOPSY_SCHEDULED, 'Autopsy Scheduled'),
        (AUTOPSY_COMPLETED, 'Autopsy Completed'),
        (RELEASED, 'Released'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tag_id = models.CharField(max_length=20, unique=True, help_text="Unique identification tag, MT<year><seq>")

    # Deceased details
    full_name = models.CharField(max_length=255)
    age = models.PositiveSmallIntegerField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    date_of_death = models.DateField()
    intake_time = models.DateTimeField()

    # Storage
    storage = models.ForeignKey(StorageUnit, on_delete=models.SET_NULL, null=True, blank=True, related_name='bodies')

    # Next of kin
    next_of_kin_name = models.CharField(max_length=255)
    next_of_kin_relationship = models.CharField(max_length=100)
    next_of_kin_phone = models.CharField(max_length=30)
    next_of_kin_address = models.TextField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=REGISTERED)
    notes = models.TextField(blank=True, default='')
    death_certificate = models.CharField(max_length=255, blank=True, default='')
    released_at = models.DateTimeField(null=True, blank=True)

    # System fields
    registered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='bodies_registered'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = "Bodies"

    def __str__(self):
        return f"{self.full_name} ({self.tag_id})"

    @property
    def is_released(self):
        return self.status == self.RELEASED

    def as_json(self):
        storage = self.storage
        return {
            'id': self.id,
            'tag_id': self.tag_id,
            'full_name': self.full_name,
            'age': self.age,
            'gender': self.gender,
            'date_of_death': self.date_of_death,
            'intake_time': self.intake_time,
            'storage_id': self.storage_id,
            'storage_name': storage.name if storage else None,
            'storage_type': storage.type if storage else None,
            'storage_location': storage.location if storage else None,
            'storage_temperature': storage.temperature if storage else None,
            'next_of_kin_name': self.next_of_kin_name,
            'next_of_kin_relationship': self.next_of_kin_relationship,
            'next_of_kin_phone': self.next_of_kin_phone,
            'next_of_kin_address': self.next_of_kin_address,
            'status': self.status,
            'notes': self.notes,
            'death_certificate': self.death_certificate,
            'released_at': self.released_at,
            'registered_by': self.registered_by_id,
            'registered_by_name': self.registered_by.name if self.registered_by else None,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class Autopsy(models.Model):
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
    ]

    # Allowed forward moves; completed is final
    TRANSITIONS = {
        PENDING: {IN_PROGRESS, COMPLETED},
        IN_PROGRESS: {COMPLETED},
        COMPLETED: set(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    body = models.ForeignKey(Body, on_delete=models.CASCADE, related_name='autopsies')
    pathologist = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='autopsies_assigned'
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='autopsies_scheduled'
    )
    scheduled_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    cause_of_death = models.TextField(blank=True, default='')
    report = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')
    completed_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-scheduled_date']
        verbose_name_plural = "Autopsies"

    def __str__(self):
        return f"Autopsy of {self.body.full_name} on {self.scheduled_date:%Y-%m-%d}"

    def can_transition_to(self, status):
        return status == self.status or status in self.TRANSITIONS[self.status]

    def as_json(self):
        return {
            'id': self.id,
            'body_id': self.body_id,
            'body_name': self.body.full_name,
            'body_tag_id': self.body.tag_id,
            'body_age': self.body.age,
            'body_gender': self.body.gender,
            'date_of_death': self.body.date_of_death,
            'pathologist_id': self.pathologist_id,
            'pathologist_name': self.pathologist.name,
            'pathologist_email': self.pathologist.email,
            'assigned_by': self.assigned_by_id,
            'assigned_by_name': self.assigned_by.name if self.assigned_by else None,
            'scheduled_date': self.scheduled_date,
            'status': self.status,
            'cause_of_death': self.cause_of_death,
            'report': self.report,
            'notes': self.notes,
            'completed_date': self.completed_date,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class Task(models.Model):
    TYPE_CHOICES = [
        ('embalming', 'Embalming'),
        ('burial', 'Burial'),
        ('viewing', 'Viewing'),
        ('transport', 'Transport'),
        ('maintenance', 'Maintenance'),
    ]

    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='tasks'
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='tasks_assigned'
    )
    due_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    body = models.ForeignKey(Body, on_delete=models.SET_NULL, null=True, blank=True, related_name='tasks')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['due_date']

    def __str__(self):
        return self.title

    def as_json(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'assigned_to': self.assigned_to_id,
            'assigned_to_name': self.assigned_to.name,
            'assigned_to_email': self.assigned_to.email,
            'assigned_by': self.assigned_by_id,
            'assigned_by_name': self.assigned_by.name if self.assigned_by else None,
            'due_date': self.due_date,
            'status': self.status,
            'priority': self.priority,
            'body_id': self.body_id,
            'body_name': self.body.full_name if self.body else None,
            'body_tag_id': self.body.tag_id if self.body else None,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class BodyRelease(models.Model):
    """Request to hand a body over to a receiver, approved by an admin."""

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    COMPLETED = 'completed'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
        (COMPLETED, 'Completed'),
    ]

    TRANSITIONS = {
        PENDING: {APPROVED, REJECTED},
        APPROVED: {COMPLETED, REJECTED},
        REJECTED: set(),
        COMPLETED: set(),
    }

    # Requests that still block a new request for the same body
    OPEN_STATUSES = (PENDING, APPROVED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    body = models.ForeignKey(Body, on_delete=models.CASCADE, related_name='releases')
    receiver_name = models.CharField(max_length=255)
    receiver_id = models.CharField(max_length=50, help_text="Receiver's identity document number")
    relationship = models.CharField(max_length=100)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='releases_requested'
    )
    requested_date = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='releases_approved'
    )
    approved_date = models.DateTimeField(null=True, blank=True)
    documents = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-requested_date']

    def __str__(self):
        return f"Release of {self.body.full_name} to {self.receiver_name}"

    def can_transition_to(self, status):
        return status in self.TRANSITIONS[self.status]

    def as_json(self):
        return {
            'id': self.id,
            'body_id': self.body_id,
            'body_name': self.body.full_name,
            'body_tag_id': self.body.tag_id,
            'body_age': self.body.age,
            'body_gender': self.body.gender,
            'storage_id': self.body.storage_id,
            'receiver_name': self.receiver_name,
            'receiver_id': self.receiver_id,
            'relationship': self.relationship,
            'requested_by': self.requested_by_id,
            'requested_by_name': self.requested_by.name if self.requested_by else None,
            'requested_date': self.requested_date,
            'status': self.status,
            'approved_by': self.approved_by_id,
            'approved_by_name': self.approved_by.name if self.approved_by else None,
            'approved_date': self.approved_date,
            'documents': self.documents,
            'notes': self.notes,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
