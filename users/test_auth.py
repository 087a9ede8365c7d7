import json

from django.test import TestCase, Client
from django.urls import reverse

from users.models import User

PASSWORD = 'cold-room-42'


class LoginTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='staff@morgue.local', password=PASSWORD, name='Sam Staff', role=User.STAFF
        )

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_login_returns_user_and_opens_session(self):
        response = self.post_json(reverse('auth:login'), {'email': 'staff@morgue.local', 'password': PASSWORD})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['user']['email'], 'staff@morgue.local')
        self.assertEqual(body['user']['status'], 'active')
        self.assertNotIn('password', body['user'])

        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

        verify = self.client.get(reverse('auth:verify'))
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.json()['user']['id'], str(self.user.id))

    def test_login_is_case_insensitive_on_email(self):
        response = self.post_json(reverse('auth:login'), {'email': 'STAFF@morgue.local', 'password': PASSWORD})
        self.assertEqual(response.status_code, 200)

    def test_wrong_password_is_rejected(self):
        response = self.post_json(reverse('auth:login'), {'email': 'staff@morgue.local', 'password': 'nope-nope'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Invalid credentials')

    def test_unknown_email_is_rejected(self):
        response = self.post_json(reverse('auth:login'), {'email': 'ghost@morgue.local', 'password': PASSWORD})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Invalid credentials')

    def test_inactive_account_is_rejected(self):
        self.user.is_active = False
        self.user.save()
        response = self.post_json(reverse('auth:login'), {'email': 'staff@morgue.local', 'password': PASSWORD})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Account is inactive')

    def test_login_requires_email_and_password(self):
        response = self.post_json(reverse('auth:login'), {'email': 'staff@morgue.local'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.json()['details'])

    def test_malformed_json_is_a_bad_request(self):
        response = self.client.post(reverse('auth:login'), data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Malformed JSON body')

    def test_verify_without_session(self):
        response = self.client.get(reverse('auth:verify'))
        self.assertEqual(response.status_code, 401)

    def test_logout_ends_session(self):
        self.client.login(email='staff@morgue.local', password=PASSWORD)
        response = self.client.post(reverse('auth:logout'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(reverse('auth:verify')).status_code, 401)

    def test_csrf_endpoint_sets_cookie(self):
        response = self.client.get(reverse('auth:csrf'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('csrftoken', response.cookies)


class ChangePasswordTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            email='path@morgue.local', password=PASSWORD, name='Pat Pathologist', role=User.PATHOLOGIST
        )
        self.client.login(email='path@morgue.local', password=PASSWORD)
        self.url = reverse('auth:change_password')

    def post_json(self, data):
        return self.client.post(self.url, data=json.dumps(data), content_type='application/json')

    def test_change_password_keeps_session(self):
        response = self.post_json({'current_password': PASSWORD, 'new_password': 'autopsy-suite-7'})
        self.assertEqual(response.status_code, 200)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('autopsy-suite-7'))
        self.assertEqual(self.client.get(reverse('auth:verify')).status_code, 200)

    def test_wrong_current_password(self):
        response = self.post_json({'current_password': 'wrong-one', 'new_password': 'autopsy-suite-7'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('current_password', response.json()['details'])

    def test_new_password_runs_validators(self):
        response = self.post_json({'current_password': PASSWORD, 'new_password': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('new_password', response.json()['details'])

    def test_requires_login(self):
        self.client.logout()
        response = self.post_json({'current_password': PASSWORD, 'new_password': 'autopsy-suite-7'})
        self.assertEqual(response.status_code, 401)
