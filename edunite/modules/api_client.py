"""
API Client Module - Edunite Tuition Management Portal

This module is the single consumer of the Edunite backend REST contract.
Every view talks to the backend through the role-grouped facades defined
here, never through raw HTTP calls.

Features:
- Shared requests session with a fixed timeout
- Bearer token attached per request from a token provider
- Status-typed exceptions for error mapping
- Envelope unwrapping for the backend's inconsistent response shapes
- Role-grouped endpoint facades (auth, admin, teacher, student, upload)
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests


class ApiError(Exception):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload if payload is not None else {}


class UnauthorizedError(ApiError):
    """401 - the ID token is missing, expired or rejected."""


class ForbiddenError(ApiError):
    """403 - wrong role, or the account is still pending approval."""


class ServerError(ApiError):
    """5xx - the backend failed."""


class ApiConnectionError(ApiError):
    """The backend could not be reached or did not answer in time."""

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message, status_code=None)
        self.timed_out = timed_out


DEFAULT_ERROR_MESSAGE = 'An error occurred'


def error_message(payload: Any, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Pick the human readable message out of an error body."""
    if isinstance(payload, dict):
        for key in ('message', 'error'):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return default


def unwrap(payload: Any, *keys: str) -> Any:
    """
    Dig the useful document out of a backend response.

    The backend wraps the same kind of data differently from endpoint to
    endpoint (``{"data": ...}``, ``{"success": true, "data": ...}``,
    ``{"attendance": [...]}`` or the bare document). Each key in ``keys`` is
    tried at the top level and inside ``data`` before falling back to
    ``data`` itself and finally the payload.

    Args:
        payload: Decoded JSON body
        *keys: Envelope keys to try, in order

    Returns:
        The unwrapped document
    """
    if not isinstance(payload, dict):
        return payload

    data = payload.get('data')
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
        if isinstance(data, dict) and data.get(key) is not None:
            return data[key]

    if data is not None:
        return data
    return payload


def unwrap_list(payload: Any, *keys: str) -> List[Any]:
    """Like :func:`unwrap` but always returns a list."""
    value = unwrap(payload, *keys)
    if isinstance(value, list):
        return value
    return []


def unwrap_dict(payload: Any, *keys: str) -> Dict[str, Any]:
    """Like :func:`unwrap` but always returns a dict."""
    value = unwrap(payload, *keys)
    if isinstance(value, dict):
        return value
    return {}


def find_key(payload: Any, key: str) -> Any:
    """Value of ``key`` at the top level or inside ``data``; None when absent."""
    if not isinstance(payload, dict):
        return None
    if payload.get(key) is not None:
        return payload[key]
    data = payload.get('data')
    if isinstance(data, dict):
        return data.get(key)
    return None


def entity_id(document: Any) -> Optional[str]:
    """Return the id of a backend document (``_id`` or ``id``) or a bare id."""
    if document is None:
        return None
    if isinstance(document, dict):
        value = document.get('_id') or document.get('id')
        return str(value) if value else None
    return str(document)


class ApiClient:
    """
    Thin wrapper around ``requests.Session`` that speaks the backend contract.

    The token provider is called on every request so a refreshed ID token
    is picked up without rebuilding the client.
    """

    def __init__(self, base_url: str, timeout: int = 10,
                 token_provider: Optional[Callable[[], Optional[str]]] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        self.logger = logging.getLogger(__name__)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                json: Any = None, files: Optional[Dict[str, Any]] = None,
                data: Optional[Dict[str, Any]] = None, raw: bool = False) -> Any:
        """
        Issue a request against the backend.

        Args:
            method (str): HTTP method
            path (str): Path below the API base URL
            params (dict): Query string parameters; ``None`` values are dropped
            json: JSON body
            files (dict): Multipart files
            data (dict): Multipart form fields
            raw (bool): Return the body bytes instead of decoded JSON

        Returns:
            Decoded JSON body, ``{}`` for empty bodies, or bytes when ``raw``

        Raises:
            ApiError: on any non-2xx status or transport failure
        """
        headers = self._headers()
        if files is not None:
            # Let requests write the multipart boundary itself
            headers['Content-Type'] = None

        if params:
            params = {key: value for key, value in params.items() if value not in (None, '')}

        url = self._url(path)
        try:
            response = self.session.request(
                method,
                url,
                params=params or None,
                json=json,
                files=files,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            self.logger.error(f"{method} {path} timed out: {str(e)}")
            raise ApiConnectionError('Request timed out', timed_out=True) from e
        except requests.RequestException as e:
            self.logger.error(f"{method} {path} failed: {str(e)}")
            raise ApiConnectionError(DEFAULT_ERROR_MESSAGE) from e

        if response.ok:
            if raw:
                return response.content
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError:
                return {}

        self._raise_for_status(method, path, response)

    def _raise_for_status(self, method: str, path: str, response: requests.Response) -> None:
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        status = response.status_code
        message = error_message(payload)
        self.logger.warning(f"{method} {path} returned {status}: {message}")

        if status == 401:
            raise UnauthorizedError(message, status, payload)
        if status == 403:
            raise ForbiddenError(message, status, payload)
        if status >= 500:
            raise ServerError(message, status, payload)
        raise ApiError(message, status, payload)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, raw: bool = False) -> Any:
        return self.request('GET', path, params=params, raw=raw)

    def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request('POST', path, json=json, **kwargs)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request('PUT', path, json=json)

    def delete(self, path: str) -> Any:
        return self.request('DELETE', path)


class AuthAPI:
    """Endpoints under ``/auth``."""

    def __init__(self, client: ApiClient):
        self.client = client

    def login(self, user_data: Dict[str, Any]) -> Any:
        return self.client.post('/auth/login', user_data)

    def get_profile(self) -> Any:
        return self.client.get('/auth/profile')

    def update_profile(self, profile_data: Dict[str, Any]) -> Any:
        return self.client.put('/auth/profile', profile_data)


class AdminAPI:
    """Endpoints under ``/admin`` plus the shared attendance listing."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.logger = logging.getLogger(__name__)

    # Dashboard stats
    def get_stats(self) -> Any:
        return self.client.get('/admin/dashboard-stats')

    # User requests
    def get_user_requests(self, status: str = 'all') -> Any:
        return self.client.get('/admin/requests', params={'status': status})

    def approve_user(self, request_id: str, role: str, admin_notes: str = '') -> Any:
        return self.client.post('/admin/approve-user', {
            'requestId': request_id,
            'role': role,
            'adminNotes': admin_notes,
        })

    def reject_user(self, request_id: str, admin_notes: str = '') -> Any:
        return self.client.post('/admin/reject-user', {
            'requestId': request_id,
            'adminNotes': admin_notes,
        })

    # User management
    def get_all_users(self) -> Any:
        return self.client.get('/admin/users')

    def update_user_role(self, user_id: str, role: str) -> Any:
        return self.client.put(f'/admin/users/{user_id}/role', {'role': role})

    def delete_user(self, user_id: str) -> Any:
        return self.client.delete(f'/admin/users/{user_id}')

    # Class management
    def get_classes(self) -> Any:
        return self.client.get('/admin/classes')

    def create_class(self, class_data: Dict[str, Any]) -> Any:
        return self.client.post('/admin/classes', class_data)

    def update_class(self, class_id: str, class_data: Dict[str, Any]) -> Any:
        return self.client.put(f'/admin/classes/{class_id}', class_data)

    def delete_class(self, class_id: str) -> Any:
        return self.client.delete(f'/admin/classes/{class_id}')

    def assign_teacher(self, class_id: str, teacher_id: str) -> Any:
        return self.client.post(f'/admin/classes/{class_id}/assign-teacher', {'teacherId': teacher_id})

    # Attendance
    def get_attendance(self, params: Dict[str, Any]) -> Any:
        """
        Fetch attendance sessions for the admin reports.

        The admin report endpoint is tried first; any failure other than an
        expired session falls back to the general attendance listing.
        """
        try:
            return self.client.get('/admin/attendance-reports', params=params)
        except UnauthorizedError:
            raise
        except ApiError as e:
            self.logger.info(f"Admin attendance endpoint failed ({e.status_code}), "
                             f"falling back to general attendance endpoint")
            return self.client.get('/attendance', params=params)


class TeacherAPI:
    """Endpoints under ``/teacher``."""

    def __init__(self, client: ApiClient):
        self.client = client

    # Dashboard
    def get_stats(self) -> Any:
        return self.client.get('/teacher/stats')

    def get_profile(self) -> Any:
        return self.client.get('/teacher/profile')

    def update_profile(self, profile_data: Dict[str, Any]) -> Any:
        return self.client.put('/teacher/profile', profile_data)

    def get_my_classes(self) -> Any:
        return self.client.get('/teacher/classes')

    # Timetable
    def get_timetable(self) -> Any:
        return self.client.get('/teacher/timetable')

    def create_timetable_entry(self, entry_data: Dict[str, Any]) -> Any:
        return self.client.post('/teacher/timetable', entry_data)

    def update_timetable_entry(self, entry_id: str, entry_data: Dict[str, Any]) -> Any:
        return self.client.put(f'/teacher/timetable/{entry_id}', entry_data)

    def delete_timetable_entry(self, entry_id: str) -> Any:
        return self.client.delete(f'/teacher/timetable/{entry_id}')

    def get_all_students(self) -> Any:
        return self.client.get('/teacher/all-students')

    # Attendance
    def get_students_for_attendance(self, class_id: str, date: str) -> Any:
        return self.client.get('/teacher/attendance/students',
                               params={'classId': class_id, 'date': date})

    def mark_attendance(self, attendance_data: Dict[str, Any]) -> Any:
        return self.client.post('/teacher/attendance', attendance_data)

    def get_attendance_history(self, class_id: str, start_date: Optional[str] = None,
                               end_date: Optional[str] = None) -> Any:
        return self.client.get('/teacher/attendance/history', params={
            'classId': class_id,
            'startDate': start_date,
            'endDate': end_date,
        })

    # Materials
    def create_material(self, material_data: Dict[str, Any]) -> Any:
        return self.client.post('/teacher/materials/create', material_data)

    def get_materials(self) -> Any:
        return self.client.get('/teacher/materials')

    def delete_material(self, material_id: str) -> Any:
        return self.client.delete(f'/teacher/materials/{material_id}')


class StudentAPI:
    """Endpoints under ``/student`` (and the shared class listing)."""

    def __init__(self, client: ApiClient):
        self.client = client

    def get_stats(self) -> Any:
        return self.client.get('/student/stats')

    def get_attendance(self, start_date: str, end_date: str, limit: int = 500) -> Any:
        # The endpoint pages 10 records at a time unless a limit is given
        return self.client.get('/student/attendance',
                               params={'startDate': start_date, 'endDate': end_date, 'limit': limit})

    def get_materials(self, subject: str = '') -> Any:
        return self.client.get('/student/materials', params={'subject': subject})

    def download_material(self, material_id: str) -> bytes:
        return self.client.get(f'/student/materials/{material_id}/download', raw=True)

    def get_classes(self) -> Any:
        return self.client.get('/users/classes')

    def get_timetable(self) -> Any:
        return self.client.get('/student/timetable')

    def update_profile(self, profile_data: Dict[str, Any]) -> Any:
        return self.client.put('/student/profile', profile_data)


class CommonAPI:
    """File uploads shared by every role."""

    def __init__(self, client: ApiClient, upload_endpoint: str = '/upload/file'):
        self.client = client
        self.upload_endpoint = upload_endpoint

    def upload_file(self, filename: str, stream, content_type: Optional[str] = None,
                    file_type: str = 'material') -> Any:
        file_tuple = (filename, stream, content_type) if content_type else (filename, stream)
        return self.client.post(
            self.upload_endpoint,
            files={'file': file_tuple},
            data={'type': file_type},
        )


class EduniteAPI:
    """Bundle of every facade sharing one client."""

    def __init__(self, client: ApiClient, upload_endpoint: str = '/upload/file'):
        self.client = client
        self.auth = AuthAPI(client)
        self.admin = AdminAPI(client)
        self.teacher = TeacherAPI(client)
        self.student = StudentAPI(client)
        self.common = CommonAPI(client, upload_endpoint)
