from django.core.management.base import BaseCommand
from django.db import transaction

from morgue.models import StorageUnit
from users.models import User


class Command(BaseCommand):
    help = 'Seeds an admin account and the default fridge/freezer storage units'

    def add_arguments(self, parser):
        parser.add_argument('--admin-email', default='admin@morgue.local')
        parser.add_argument('--admin-password', default='admin123')
        parser.add_argument('--admin-name', default='System Administrator')
        parser.add_argument('--fridges', type=int, default=5, help='Number of fridge units to ensure')
        parser.add_argument('--freezers', type=int, default=5, help='Number of freezer units to ensure')

    @transaction.atomic
    def handle(self, *args, **options):
        email = options['admin_email']
        if User.objects.filter(email__iexact=email).exists():
            self.stdout.write(self.style.WARNING(f'Admin {email} already exists, skipping.'))
        else:
            User.objects.create_superuser(
                email=email,
                password=options['admin_password'],
                name=options['admin_name'],
            )
            self.stdout.write(self.style.SUCCESS(f'Created admin {email}'))

        units = []
        for index in range(1, options['fridges'] + 1):
            units.append({
                'name': f'Fridge-{index:02d}',
                'type': StorageUnit.FRIDGE,
                'location': 'Cold Room A',
                'temperature': '4°C',
            })
        for index in range(1, options['freezers'] + 1):
            units.append({
                'name': f'Freezer-{index:02d}',
                'type': StorageUnit.FREEZER,
                'location': 'Cold Room B',
                'temperature': '-20°C',
            })

        created_count = 0
        for unit in units:
            _, created = StorageUnit.objects.get_or_create(name=unit['name'], defaults=unit)
            if created:
                created_count += 1

        self.stdout.write(self.style.SUCCESS(
            f'Storage units: {created_count} created, {len(units) - created_count} already present.'
        ))
