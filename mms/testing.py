"""Fixtures shared by the app test modules."""
import json
from datetime import timedelta

from django.utils import timezone

from morgue.models import Body, StorageUnit
from morgue.utils import generate_tag_id
from users.models import User

PASSWORD = 'cold-room-42'


class MorgueFixtures:
    def make_users(self):
        self.admin = User.objects.create_superuser(email='admin@morgue.local', password=PASSWORD, name='Ada Admin')
        self.staff = User.objects.create_user(
            email='staff@morgue.local', password=PASSWORD, name='Sam Staff', role=User.STAFF
        )
        self.pathologist = User.objects.create_user(
            email='path@morgue.local', password=PASSWORD, name='Pat Pathologist', role=User.PATHOLOGIST
        )

    def login(self, user):
        self.client.logout()
        self.assertTrue(self.client.login(email=user.email, password=PASSWORD))

    def send_json(self, method, url, data=None):
        return getattr(self.client, method)(url, data=json.dumps(data or {}), content_type='application/json')

    def make_unit(self, name='Fridge-01', type=StorageUnit.FRIDGE, **extra):
        return StorageUnit.objects.create(name=name, type=type, location='Cold Room A', temperature='4°C', **extra)

    def body_payload(self, unit, **overrides):
        payload = {
            'full_name': 'John Doe',
            'age': 54,
            'gender': 'male',
            'date_of_death': (timezone.localdate() - timedelta(days=1)).isoformat(),
            'intake_time': timezone.now().isoformat(),
            'storage': str(unit.pk),
            'next_of_kin_name': 'Jane Doe',
            'next_of_kin_relationship': 'Spouse',
            'next_of_kin_phone': '0711222333',
            'next_of_kin_address': '12 Harbour Road, Mombasa',
        }
        payload.update(overrides)
        return payload

    def make_body(self, unit=None, full_name='John Doe', **extra):
        """A body placed directly in the database, occupying `unit` if given."""
        fields = {
            'tag_id': generate_tag_id(),
            'full_name': full_name,
            'age': 54,
            'gender': 'male',
            'date_of_death': timezone.localdate() - timedelta(days=1),
            'intake_time': timezone.now(),
            'storage': unit,
            'next_of_kin_name': 'Jane Doe',
            'next_of_kin_relationship': 'Spouse',
            'next_of_kin_phone': '0711222333',
            'next_of_kin_address': '12 Harbour Road, Mombasa',
            'registered_by': getattr(self, 'admin', None),
        }
        fields.update(extra)
        body = Body.objects.create(**fields)
        if unit is not None:
            unit.status = StorageUnit.OCCUPIED
            unit.assigned_body = body
            unit.save()
        return body
