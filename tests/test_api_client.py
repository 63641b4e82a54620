import unittest
from unittest.mock import MagicMock

import requests

from edunite.modules.api_client import (
    AdminAPI, ApiClient, ApiConnectionError, ApiError, CommonAPI, ForbiddenError,
    ServerError, UnauthorizedError, entity_id, find_key, unwrap, unwrap_dict, unwrap_list
)


def make_response(status_code=200, body=None, content=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if body is None:
        response.content = content if content is not None else b''
        response.json.side_effect = ValueError('no json')
    else:
        response.content = content if content is not None else b'{...}'
        response.json.return_value = body
    return response


class TestApiClient(unittest.TestCase):

    def setUp(self):
        self.session = MagicMock()
        self.client = ApiClient('http://backend.test/api/', timeout=10,
                                token_provider=lambda: 'token-123', session=self.session)

    def test_get_attaches_bearer_token_and_drops_empty_params(self):
        self.session.request.return_value = make_response(body={'success': True})

        result = self.client.get('/admin/requests', params={'status': 'all', 'search': '', 'page': None})

        self.assertEqual(result, {'success': True})
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('GET', 'http://backend.test/api/admin/requests'))
        self.assertEqual(kwargs['params'], {'status': 'all'})
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer token-123')
        self.assertEqual(kwargs['timeout'], 10)

    def test_no_token_sends_no_authorization_header(self):
        client = ApiClient('http://backend.test/api', session=self.session)
        self.session.request.return_value = make_response(body={})

        client.get('/health')

        self.assertNotIn('Authorization', self.session.request.call_args[1]['headers'])

    def test_empty_body_returns_empty_dict(self):
        self.session.request.return_value = make_response(204)
        self.assertEqual(self.client.delete('/admin/classes/1'), {})

    def test_raw_returns_bytes(self):
        self.session.request.return_value = make_response(200, content=b'%PDF-1.4')
        self.assertEqual(self.client.get('/student/materials/1/download', raw=True), b'%PDF-1.4')

    def test_multipart_clears_json_content_type(self):
        self.session.request.return_value = make_response(body={'file': {'url': 'u'}})

        self.client.post('/upload/file', files={'file': ('a.pdf', b'data')}, data={'type': 'material'})

        kwargs = self.session.request.call_args[1]
        self.assertIsNone(kwargs['headers']['Content-Type'])
        self.assertEqual(kwargs['data'], {'type': 'material'})

    def test_status_codes_map_to_error_types(self):
        cases = [
            (401, UnauthorizedError),
            (403, ForbiddenError),
            (500, ServerError),
            (503, ServerError),
            (404, ApiError),
        ]
        for status, error_type in cases:
            with self.subTest(status=status):
                self.session.request.return_value = make_response(status, body={'message': 'nope'})
                with self.assertRaises(error_type) as ctx:
                    self.client.get('/anything')
                self.assertEqual(ctx.exception.status_code, status)
                self.assertEqual(ctx.exception.message, 'nope')

    def test_error_message_falls_back_to_error_key_then_default(self):
        self.session.request.return_value = make_response(400, body={'error': 'Bad file'})
        with self.assertRaises(ApiError) as ctx:
            self.client.get('/x')
        self.assertEqual(ctx.exception.message, 'Bad file')

        self.session.request.return_value = make_response(400)
        with self.assertRaises(ApiError) as ctx:
            self.client.get('/x')
        self.assertEqual(ctx.exception.message, 'An error occurred')

    def test_forbidden_keeps_payload(self):
        payload = {'message': 'pending', 'userForStorage': {'email': 'a@b.c'}}
        self.session.request.return_value = make_response(403, body=payload)
        with self.assertRaises(ForbiddenError) as ctx:
            self.client.post('/auth/login', {})
        self.assertEqual(ctx.exception.payload, payload)

    def test_timeout_becomes_connection_error(self):
        self.session.request.side_effect = requests.Timeout('slow')
        with self.assertRaises(ApiConnectionError) as ctx:
            self.client.get('/x')
        self.assertTrue(ctx.exception.timed_out)
        self.assertIsNone(ctx.exception.status_code)

    def test_connection_failure_becomes_connection_error(self):
        self.session.request.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(ApiConnectionError) as ctx:
            self.client.get('/x')
        self.assertFalse(ctx.exception.timed_out)


class TestEnvelopeHelpers(unittest.TestCase):

    def test_unwrap_prefers_named_key(self):
        self.assertEqual(unwrap({'attendance': [1]}, 'attendance'), [1])
        self.assertEqual(unwrap({'data': {'attendance': [2]}}, 'attendance'), [2])

    def test_unwrap_falls_back_to_data_then_payload(self):
        self.assertEqual(unwrap({'success': True, 'data': {'a': 1}}, 'missing'), {'a': 1})
        self.assertEqual(unwrap({'a': 1}, 'missing'), {'a': 1})
        self.assertEqual(unwrap([1, 2]), [1, 2])

    def test_unwrap_list_always_returns_list(self):
        self.assertEqual(unwrap_list({'data': [1, 2]}), [1, 2])
        self.assertEqual(unwrap_list({'data': {'not': 'a list'}}), [])
        self.assertEqual(unwrap_list(None), [])

    def test_unwrap_dict_always_returns_dict(self):
        self.assertEqual(unwrap_dict({'success': True, 'data': {'totalStudents': 3}}), {'totalStudents': 3})
        self.assertEqual(unwrap_dict({'success': True, 'data': [{'totalStudents': 3}]}), {})
        self.assertEqual(unwrap_dict(None), {})

    def test_find_key_looks_inside_data(self):
        self.assertEqual(find_key({'statistics': {'present': 1}}, 'statistics'), {'present': 1})
        self.assertEqual(find_key({'data': {'statistics': {'present': 2}}}, 'statistics'), {'present': 2})
        self.assertIsNone(find_key({'data': [1]}, 'statistics'))
        self.assertIsNone(find_key([1], 'statistics'))

    def test_entity_id(self):
        self.assertEqual(entity_id({'_id': 'abc'}), 'abc')
        self.assertEqual(entity_id({'id': 7}), '7')
        self.assertEqual(entity_id('xyz'), 'xyz')
        self.assertIsNone(entity_id(None))
        self.assertIsNone(entity_id({}))


class TestFacades(unittest.TestCase):

    def test_admin_attendance_falls_back_to_general_listing(self):
        client = MagicMock()
        client.get.side_effect = [ApiError('Not found', 404), {'attendance': []}]

        result = AdminAPI(client).get_attendance({'limit': 100})

        self.assertEqual(result, {'attendance': []})
        self.assertEqual(client.get.call_args_list[0][0][0], '/admin/attendance-reports')
        self.assertEqual(client.get.call_args_list[1][0][0], '/attendance')

    def test_admin_attendance_does_not_fall_back_on_expired_session(self):
        client = MagicMock()
        client.get.side_effect = UnauthorizedError('expired', 401)

        with self.assertRaises(UnauthorizedError):
            AdminAPI(client).get_attendance({})
        self.assertEqual(client.get.call_count, 1)

    def test_approve_user_body(self):
        client = MagicMock()
        AdminAPI(client).approve_user('req-1', 'teacher', 'ok')
        client.post.assert_called_once_with('/admin/approve-user', {
            'requestId': 'req-1', 'role': 'teacher', 'adminNotes': 'ok'
        })

    def test_upload_file_sends_multipart(self):
        client = MagicMock()
        stream = object()

        CommonAPI(client, '/upload/file').upload_file('notes.pdf', stream, 'application/pdf')

        client.post.assert_called_once_with(
            '/upload/file',
            files={'file': ('notes.pdf', stream, 'application/pdf')},
            data={'type': 'material'},
        )


if __name__ == '__main__':
    unittest.main()
