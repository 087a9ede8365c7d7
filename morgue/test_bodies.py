from datetime import timedelta

from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from comms.models import Notification
from mms.testing import MorgueFixtures
from morgue.models import Body, StorageUnit


class BodyRegistrationTest(MorgueFixtures, TestCase):
    def setUp(self):
        self.client = Client()
        self.make_users()
        self.unit = self.make_unit()
        self.login(self.staff)

    def test_register_body_occupies_storage(self):
        response = self.send_json('post', reverse('morgue:body_list'), self.body_payload(self.unit))
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data['tag_id'], f"MT{timezone.now().year}0001")
        self.assertEqual(data['status'], Body.REGISTERED)
        self.assertEqual(data['storage_name'], 'Fridge-01')
        self.assertEqual(data['registered_by'], str(self.staff.pk))

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, StorageUnit.OCCUPIED)
        self.assertEqual(str(self.unit.assigned_body_id), data['id'])

    def test_registration_notifies_admins(self):
        self.send_json('post', reverse('morgue:body_list'), self.body_payload(self.unit))
        notification = Notification.objects.get(user=self.admin)
        self.assertEqual(notification.title, 'New Body Registration')
        self.assertIn('John Doe', notification.message)
        self.assertFalse(Notification.objects.filter(user=self.staff).exists())

    def test_tags_increase_within_the_year(self):
        second_unit = self.make_unit(name='Fridge-02')
        self.send_json('post', reverse('morgue:body_list'), self.body_payload(self.unit))
        response = self.send_json(
            'post', reverse('morgue:body_list'), self.body_payload(second_unit, full_name='Mary Roe')
        )
        self.assertEqual(response.json()['tag_id'], f"MT{timezone.now().year}0002")

    def test_occupied_unit_is_rejected(self):
        self.make_body(unit=self.unit)
        response = self.send_json(
            'post', reverse('morgue:body_list'), self.body_payload(self.unit, full_name='Mary Roe')
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('storage', response.json()['details'])
        self.assertEqual(Body.objects.count(), 1)

    def test_unit_under_maintenance_is_rejected(self):
        self.unit.status = StorageUnit.MAINTENANCE
        self.unit.save()
        response = self.send_json('post', reverse('morgue:body_list'), self.body_payload(self.unit))
        self.assertEqual(response.status_code, 400)

    def test_storage_is_required(self):
        payload = self.body_payload(self.unit)
        del payload['storage']
        response = self.send_json('post', reverse('morgue:body_list'), payload)
        self.assertEqual(response.status_code, 400)
        self.assertIn('storage', response.json()['details'])

    def test_date_of_death_in_future_is_rejected(self):
        tomorrow = (timezone.localdate() + timedelta(days=1)).isoformat()
        response = self.send_json(
            'post', reverse('morgue:body_list'), self.body_payload(self.unit, date_of_death=tomorrow)
        )
        self.assertEqual(response.status_code, 400)

    def test_field_validation(self):
        response = self.send_json(
            'post', reverse('morgue:body_list'),
            self.body_payload(self.unit, full_name='J', age=200, gender='unknown'),
        )
        self.assertEqual(response.status_code, 400)
        details = response.json()['details']
        self.assertIn('full_name', details)
        self.assertIn('age', details)
        self.assertIn('gender', details)

    def test_anonymous_cannot_register(self):
        self.client.logout()
        response = self.send_json('post', reverse('morgue:body_list'), self.body_payload(self.unit))
        self.assertEqual(response.status_code, 401)


class BodyListTest(MorgueFixtures, TestCase):
    def setUp(self):
        self.client = Client()
        self.make_users()
        self.first = self.make_body(full_name='Alice Ahn')
        self.second = self.make_body(full_name='Bob Brown')
        self.third = self.make_body(full_name='Carol Chen', status=Body.RELEASED)
        self.login(self.staff)

    def test_list_is_paginated(self):
        response = self.client.get(reverse('morgue:body_list'), {'limit': 2})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total'], 3)
        self.assertEqual(data['limit'], 2)
        self.assertEqual(data['offset'], 0)
        self.assertEqual(len(data['bodies']), 2)

    def test_offset_past_the_end(self):
        data = self.client.get(reverse('morgue:body_list'), {'offset': 10}).json()
        self.assertEqual(data['total'], 3)
        self.assertEqual(data['bodies'], [])

    def test_filter_by_status(self):
        data = self.client.get(reverse('morgue:body_list'), {'status': Body.RELEASED}).json()
        self.assertEqual([body['full_name'] for body in data['bodies']], ['Carol Chen'])

    def test_search_matches_name_or_tag(self):
        by_name = self.client.get(reverse('morgue:body_list'), {'search': 'brown'}).json()
        self.assertEqual([body['id'] for body in by_name['bodies']], [str(self.second.pk)])

        by_tag = self.client.get(reverse('morgue:body_list'), {'search': self.first.tag_id}).json()
        self.assertEqual([body['id'] for body in by_tag['bodies']], [str(self.first.pk)])

    def test_invalid_limit(self):
        response = self.client.get(reverse('morgue:body_list'), {'limit': 'many'})
        self.assertEqual(response.status_code, 400)

    def test_stats_overview(self):
        response = self.client.get(reverse('morgue:body_stats'))
        self.assertEqual(response.status_code, 200)
        rows = {row['status']: row for row in response.json()}
        self.assertEqual(rows[Body.REGISTERED]['count'], 2)
        self.assertEqual(rows[Body.RELEASED]['count'], 1)
        self.assertEqual(rows['total']['count'], 3)
        self.assertEqual(rows['total']['male_count'], 3)
        self.assertEqual(rows['total']['female_count'], 0)


class BodyUpdateTest(MorgueFixtures, TestCase):
    def setUp(self):
        self.client = Client()
        self.make_users()
        self.unit = self.make_unit()
        self.other_unit = self.make_unit(name='Freezer-01', type=StorageUnit.FREEZER)
        self.body = self.make_body(unit=self.unit)
        self.url = reverse('morgue:body_detail', kwargs={'pk': self.body.pk})
        self.login(self.staff)

    def test_get_body(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['tag_id'], self.body.tag_id)

    def test_partial_update(self):
        response = self.send_json('put', self.url, {'notes': 'Personal effects bagged', 'tag_id': 'MT19990001'})
        self.assertEqual(response.status_code, 200)
        self.body.refresh_from_db()
        self.assertEqual(self.body.notes, 'Personal effects bagged')
        self.assertNotEqual(self.body.tag_id, 'MT19990001')
        self.assertEqual(self.body.full_name, 'John Doe')

    def test_unknown_fields_only_is_rejected(self):
        response = self.send_json('put', self.url, {})
        self.assertEqual(response.status_code, 400)

    def test_moving_storage_frees_the_old_unit(self):
        response = self.send_json('put', self.url, {'storage': str(self.other_unit.pk)})
        self.assertEqual(response.status_code, 200)

        self.unit.refresh_from_db()
        self.other_unit.refresh_from_db()
        self.assertEqual(self.unit.status, StorageUnit.AVAILABLE)
        self.assertIsNone(self.unit.assigned_body_id)
        self.assertEqual(self.other_unit.status, StorageUnit.OCCUPIED)
        self.assertEqual(self.other_unit.assigned_body_id, self.body.pk)

    def test_cannot_move_into_occupied_unit(self):
        self.make_body(unit=self.other_unit, full_name='Mary Roe')
        response = self.send_json('put', self.url, {'storage': str(self.other_unit.pk)})
        self.assertEqual(response.status_code, 400)

    def test_missing_body_is_404(self):
        url = reverse('morgue:body_detail', kwargs={'pk': '00000000-0000-0000-0000-000000000000'})
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_staff_cannot_delete(self):
        self.assertEqual(self.client.delete(self.url).status_code, 403)

    def test_admin_delete_frees_storage(self):
        self.login(self.admin)
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Body.objects.filter(pk=self.body.pk).exists())
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, StorageUnit.AVAILABLE)
