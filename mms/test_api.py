from django.core.exceptions import BadRequest, PermissionDenied
from django.db import IntegrityError
from django.http import Http404
from django.test import RequestFactory, SimpleTestCase, TestCase, Client, override_settings

from mms.api import Conflict, NotFound
from mms.middleware import ApiErrorMiddleware


class HealthTest(TestCase):
    def test_health_is_public(self):
        response = Client().get('/api/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'OK')
        self.assertIn('timestamp', response.json())

    def test_unknown_api_route_is_json_404(self):
        response = Client().get('/api/no-such-thing/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'error': 'Not found'})

    def test_wrong_method(self):
        response = Client().delete('/api/health/')
        self.assertEqual(response.status_code, 405)


class ApiErrorMiddlewareTest(SimpleTestCase):
    def setUp(self):
        self.middleware = ApiErrorMiddleware(lambda request: None)
        self.factory = RequestFactory()

    def render(self, exception, path='/api/bodies/'):
        return self.middleware.process_exception(self.factory.get(path), exception)

    def test_api_errors_carry_their_status(self):
        response = self.render(Conflict('Storage unit Fridge-01 is not available'))
        self.assertEqual(response.status_code, 409)
        self.assertJSONEqual(response.content, {'error': 'Storage unit Fridge-01 is not available'})
        self.assertEqual(self.render(NotFound('Body not found')).status_code, 404)

    def test_django_exceptions(self):
        self.assertEqual(self.render(Http404()).status_code, 404)
        self.assertEqual(self.render(PermissionDenied()).status_code, 403)
        self.assertEqual(self.render(BadRequest('nope')).status_code, 400)

    def test_integrity_error_is_conflict(self):
        response = self.render(IntegrityError('UNIQUE constraint failed'))
        self.assertEqual(response.status_code, 409)
        self.assertJSONEqual(response.content, {'error': 'Resource already exists'})

    @override_settings(DEBUG=False)
    def test_unexpected_errors_hide_details(self):
        with self.assertLogs('mms.middleware', level='ERROR'):
            response = self.render(RuntimeError('boom'))
        self.assertEqual(response.status_code, 500)
        self.assertJSONEqual(response.content, {'error': 'Internal Server Error'})

    def test_non_api_paths_are_left_alone(self):
        self.assertIsNone(self.render(RuntimeError('boom'), path='/admin/'))
