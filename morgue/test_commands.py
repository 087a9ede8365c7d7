from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from morgue.models import StorageUnit
from users.models import User


class SeedMorgueTest(TestCase):
    def test_seed_is_idempotent(self):
        out = StringIO()
        call_command('seed_morgue', '--admin-email=chief@morgue.local', '--admin-password=cold-room-42', stdout=out)
        call_command('seed_morgue', '--admin-email=chief@morgue.local', '--admin-password=cold-room-42', stdout=out)

        admin = User.objects.get(email='chief@morgue.local')
        self.assertEqual(admin.role, User.ADMIN)
        self.assertTrue(admin.check_password('cold-room-42'))
        self.assertEqual(StorageUnit.objects.filter(type=StorageUnit.FRIDGE).count(), 5)
        self.assertEqual(StorageUnit.objects.filter(type=StorageUnit.FREEZER).count(), 5)
        self.assertIn('already exists', out.getvalue())

    def test_unit_counts_are_configurable(self):
        call_command('seed_morgue', '--fridges=2', '--freezers=0', stdout=StringIO())
        self.assertEqual(list(StorageUnit.objects.values_list('name', flat=True)), ['Fridge-01', 'Fridge-02'])
