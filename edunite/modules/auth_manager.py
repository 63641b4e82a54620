"""
Authentication Manager Module - Edunite Tuition Management Portal

This module keeps the signed-in user in the Flask session and decides which
dashboard a user may reach. Identity verification happens in the backend:
the portal only relays the externally issued ID token.

Features:
- Backend sign-in with pending-approval handling
- Session storage of the token and compact profile
- Profile refresh and update
- Role based dashboard routing
- Approval gate and role access checks
- View decorators for protected routes
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import redirect, session

from .api_client import ForbiddenError, ApiError, unwrap

PENDING_APPROVAL_MESSAGE = 'Account pending approval. You will receive an email when your account is verified.'


class AuthManager:
    """
    Session and access control for the portal.
    Wraps the auth facade of the API client.
    """

    TOKEN_KEY = 'id_token'
    PROFILE_KEY = 'user_profile'

    ROLES = ('admin', 'teacher', 'student')

    DASHBOARD_ROUTES = {
        'admin': '/admin',
        'teacher': '/teacher',
        'student': '/student',
    }

    def __init__(self, auth_api):
        """
        Initialize the authentication manager.

        Args:
            auth_api: AuthAPI facade bound to the backend client
        """
        self.auth_api = auth_api
        self.logger = logging.getLogger(__name__)

    # Session accessors

    def current_token(self) -> Optional[str]:
        return session.get(self.TOKEN_KEY)

    def current_profile(self) -> Optional[Dict[str, Any]]:
        return session.get(self.PROFILE_KEY)

    def _store_profile(self, profile: Optional[Dict[str, Any]]) -> None:
        if profile:
            session[self.PROFILE_KEY] = compact_profile(profile)

    def login(self, id_token: str, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign a user in with an ID token obtained from the identity provider.

        Args:
            id_token (str): Identity provider ID token
            user_data (dict): uid, email, displayName, photoURL

        Returns:
            dict: ``status`` (approved or pending), ``user`` and ``message``

        Raises:
            ApiError: when the backend refuses the sign-in for any reason
                other than pending approval
        """
        session.clear()
        session[self.TOKEN_KEY] = id_token
        session.permanent = True

        try:
            response = self.auth_api.login(user_data)
        except ForbiddenError as e:
            payload = e.payload if isinstance(e.payload, dict) else {}
            if payload.get('userForStorage'):
                self._store_profile(payload['userForStorage'])
                self.logger.info(f"Sign-in for {user_data.get('email')} is pending approval")
                return {
                    'status': 'pending',
                    'user': self.current_profile(),
                    'message': payload.get('message') or PENDING_APPROVAL_MESSAGE,
                }
            session.clear()
            raise
        except ApiError:
            session.clear()
            raise

        profile = response.get('userForStorage') or response.get('user')
        self._store_profile(profile)
        stored = self.current_profile() or {}
        self.logger.info(f"User {stored.get('email')} signed in as {stored.get('role')}")

        return {
            'status': 'approved' if stored.get('isApproved') else 'pending',
            'user': stored,
            'message': response.get('message') or 'Signed in successfully',
        }

    def logout(self) -> None:
        profile = self.current_profile() or {}
        session.pop(self.TOKEN_KEY, None)
        session.pop(self.PROFILE_KEY, None)
        if profile:
            self.logger.info(f"User {profile.get('email')} signed out")

    def refresh_profile(self) -> Optional[Dict[str, Any]]:
        """Re-read the profile from the backend and update the session copy."""
        response = self.auth_api.get_profile()
        profile = response.get('userForStorage') or unwrap(response, 'user')
        if isinstance(profile, dict):
            self._store_profile(profile)
        return self.current_profile()

    def update_profile(self, profile_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = self.auth_api.update_profile(profile_data)
        profile = unwrap(response, 'user')
        if isinstance(profile, dict):
            current = dict(self.current_profile() or {})
            current.update(compact_profile(profile))
            session[self.PROFILE_KEY] = current
        return self.current_profile()

    # Routing and access

    def dashboard_route(self, profile: Optional[Dict[str, Any]]) -> str:
        if not profile:
            return '/'
        return self.DASHBOARD_ROUTES.get(profile.get('role'), '/unauthorized')

    def check_access(self, profile: Optional[Dict[str, Any]], required_role: Optional[str] = None,
                     require_approval: bool = True) -> Optional[str]:
        """
        Decide whether a profile may open a protected view.

        Args:
            profile (dict): Session profile or None
            required_role (str): Role the view needs, None for any role
            require_approval (bool): Whether unapproved users are turned away

        Returns:
            str: ``login``, ``approval_pending`` or ``unauthorized`` naming
            where the user must go instead, or None when access is granted
        """
        if not profile:
            return 'login'
        if require_approval and not profile.get('isApproved'):
            return 'approval_pending'
        if required_role and profile.get('role') != required_role:
            self.logger.warning(
                f"User {profile.get('email')} with role {profile.get('role')} "
                f"denied access to {required_role} area"
            )
            return 'unauthorized'
        return None

    # Decorators

    ACCESS_REDIRECTS = {
        'login': '/',
        'approval_pending': '/approval-pending',
        'unauthorized': '/unauthorized',
    }

    def login_required(self, f):
        """Decorator to require a signed-in session"""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not self.current_token() or not self.current_profile():
                return redirect(self.ACCESS_REDIRECTS['login'])
            return f(*args, **kwargs)
        return decorated_function

    def role_required(self, role: Optional[str] = None, require_approval: bool = True):
        """Decorator factory to require an approved user with the given role"""
        def decorator(f):
            @wraps(f)
            def decorated_function(*args, **kwargs):
                profile = self.current_profile() if self.current_token() else None
                denied = self.check_access(profile, role, require_approval)
                if denied:
                    return redirect(self.ACCESS_REDIRECTS[denied])
                return f(*args, **kwargs)
            return decorated_function
        return decorator


def compact_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a backend user document to what the session needs."""
    nested = profile.get('profile') if isinstance(profile.get('profile'), dict) else {}
    compact = {
        '_id': str(profile.get('_id') or profile.get('id') or ''),
        'firebaseUid': profile.get('firebaseUid'),
        'email': profile.get('email'),
        'name': profile.get('name'),
        'displayName': profile.get('displayName') or profile.get('name'),
        'role': profile.get('role'),
        'isApproved': bool(profile.get('isApproved')),
    }
    if nested.get('grade'):
        compact['grade'] = nested['grade']
    return compact
