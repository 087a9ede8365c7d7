from datetime import timedelta

from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from comms.models import Notification
from mms.testing import MorgueFixtures
from morgue.models import Autopsy, Body, BodyRelease
from morgue.utils import complete_release
from users.models import User


class AutopsyWorkflowTest(MorgueFixtures, TestCase):
    def setUp(self):
        self.client = Client()
        self.make_users()
        self.body = self.make_body(unit=self.make_unit())
        self.login(self.admin)

    def schedule(self, pathologist=None, body=None):
        return self.send_json('post', reverse('morgue:autopsy_list'), {
            'body': str((body or self.body).pk),
            'pathologist': str((pathologist or self.pathologist).pk),
            'scheduled_date': (timezone.now() + timedelta(days=1)).isoformat(),
            'notes': 'Suspected drowning',
        })

    def test_schedule_sets_body_status_and_notifies_pathologist(self):
        response = self.schedule()
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['status'], Autopsy.PENDING)
        self.assertEqual(data['assigned_by'], str(self.admin.pk))
        self.assertEqual(data['pathologist_name'], 'Pat Pathologist')

        self.body.refresh_from_db()
        self.assertEqual(self.body.status, Body.AUTOPSY_SCHEDULED)
        self.assertTrue(Notification.objects.filter(user=self.pathologist, title='Autopsy Scheduled').exists())

    def test_only_pathologists_can_be_assigned(self):
        response = self.schedule(pathologist=self.staff)
        self.assertEqual(response.status_code, 400)
        self.assertIn('pathologist', response.json()['details'])

    def test_released_body_cannot_be_scheduled(self):
        released = self.make_body(full_name='Mary Roe', status=Body.RELEASED)
        response = self.schedule(body=released)
        self.assertEqual(response.status_code, 409)

    def test_open_autopsy_blocks_another(self):
        self.schedule()
        self.assertEqual(self.schedule().status_code, 409)

    def test_staff_cannot_schedule(self):
        self.login(self.staff)
        self.assertEqual(self.schedule().status_code, 403)

    def test_pathologist_completes_autopsy(self):
        autopsy_id = self.schedule().json()['id']
        url = reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id})
        self.login(self.pathologist)

        started = self.send_json('put', url, {'status': Autopsy.IN_PROGRESS})
        self.assertEqual(started.status_code, 200)
        self.assertIsNone(started.json()['completed_date'])

        finished = self.send_json('put', url, {
            'status': Autopsy.COMPLETED,
            'cause_of_death': 'Drowning',
            'report': 'Water in lungs; no signs of trauma.',
        })
        self.assertEqual(finished.status_code, 200)
        self.assertIsNotNone(finished.json()['completed_date'])
        self.assertEqual(finished.json()['cause_of_death'], 'Drowning')

        self.body.refresh_from_db()
        self.assertEqual(self.body.status, Body.AUTOPSY_COMPLETED)
        self.assertTrue(Notification.objects.filter(user=self.admin, title='Autopsy Completed').exists())

    def test_completing_after_release_keeps_body_released(self):
        autopsy_id = self.schedule().json()['id']
        release = BodyRelease.objects.create(
            body=self.body, receiver_name='Jane Doe', receiver_id='12345678', relationship='Spouse',
            requested_by=self.staff, status=BodyRelease.APPROVED,
        )
        complete_release(release)

        self.login(self.pathologist)
        url = reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id})
        response = self.send_json('put', url, {'status': Autopsy.COMPLETED})
        self.assertEqual(response.status_code, 200)
        self.body.refresh_from_db()
        self.assertEqual(self.body.status, Body.RELEASED)

    def test_completed_is_final(self):
        autopsy_id = self.schedule().json()['id']
        url = reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id})
        self.send_json('put', url, {'status': Autopsy.COMPLETED})

        response = self.send_json('put', url, {'status': Autopsy.IN_PROGRESS})
        self.assertEqual(response.status_code, 400)
        self.assertIn('status', response.json()['details'])

    def test_in_progress_cannot_go_back_to_pending(self):
        autopsy_id = self.schedule().json()['id']
        url = reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id})
        self.send_json('put', url, {'status': Autopsy.IN_PROGRESS})
        self.assertEqual(self.send_json('put', url, {'status': Autopsy.PENDING}).status_code, 400)

    def test_pathologist_cannot_reschedule(self):
        autopsy_id = self.schedule().json()['id']
        original = Autopsy.objects.get(pk=autopsy_id).scheduled_date
        self.login(self.pathologist)
        url = reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id})
        response = self.send_json('put', url, {
            'scheduled_date': (timezone.now() + timedelta(days=5)).isoformat(),
            'notes': 'Moved',
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Autopsy.objects.get(pk=autopsy_id).scheduled_date, original)

    def test_delete_returns_body_to_registered(self):
        autopsy_id = self.schedule().json()['id']
        response = self.client.delete(reverse('morgue:autopsy_detail', kwargs={'pk': autopsy_id}))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Autopsy.objects.filter(pk=autopsy_id).exists())
        self.body.refresh_from_db()
        self.assertEqual(self.body.status, Body.REGISTERED)


class AutopsyVisibilityTest(MorgueFixtures, TestCase):
    def setUp(self):
        self.client = Client()
        self.make_users()
        self.other_pathologist = User.objects.create_user(
            email='path2@morgue.local', password='cold-room-42', name='Quinn Pathologist', role=User.PATHOLOGIST
        )
        body = self.make_body()
        self.mine = Autopsy.objects.create(
            body=body, pathologist=self.pathologist, assigned_by=self.admin, scheduled_date=timezone.now()
        )
        self.theirs = Autopsy.objects.create(
            body=self.make_body(full_name='Mary Roe'), pathologist=self.other_pathologist,
            assigned_by=self.admin, scheduled_date=timezone.now(), status=Autopsy.COMPLETED,
        )

    def test_pathologist_sees_only_own(self):
        self.login(self.pathologist)
        response = self.client.get(reverse('morgue:autopsy_list'))
        self.assertEqual([row['id'] for row in response.json()], [str(self.mine.pk)])

        other = self.client.get(reverse('morgue:autopsy_detail', kwargs={'pk': self.theirs.pk}))
        self.assertEqual(other.status_code, 403)

    def test_pathologist_cannot_update_others(self):
        self.login(self.pathologist)
        url = reverse('morgue:autopsy_detail', kwargs={'pk': self.theirs.pk})
        self.assertEqual(self.send_json('put', url, {'notes': 'mine now'}).status_code, 403)

    def test_staff_sees_all_but_cannot_update(self):
        self.login(self.staff)
        response = self.client.get(reverse('morgue:autopsy_list'))
        self.assertEqual(len(response.json()), 2)

        url = reverse('morgue:autopsy_detail', kwargs={'pk': self.mine.pk})
        self.assertEqual(self.send_json('put', url, {'notes': 'x'}).status_code, 403)

    def test_admin_filters(self):
        self.login(self.admin)
        by_status = self.client.get(reverse('morgue:autopsy_list'), {'status': Autopsy.COMPLETED}).json()
        self.assertEqual([row['id'] for row in by_status], [str(self.theirs.pk)])

        by_pathologist = self.client.get(
            reverse('morgue:autopsy_list'), {'pathologist_id': str(self.pathologist.pk)}
        ).json()
        self.assertEqual([row['id'] for row in by_pathologist], [str(self.mine.pk)])

    def test_stats_include_my_count(self):
        self.login(self.pathologist)
        rows = {row['status']: row for row in self.client.get(reverse('morgue:autopsy_stats')).json()}
        self.assertEqual(rows['pending']['count'], 1)
        self.assertEqual(rows['pending']['my_count'], 1)
        self.assertEqual(rows['completed']['my_count'], 0)
        self.assertEqual(rows['total']['count'], 2)
        self.assertEqual(rows['total']['my_count'], 1)
