"""
Notification System Module - Edunite Tuition Management Portal

This module turns backend outcomes into user-facing toast messages. Toasts
are delivered as Flask flash messages and rendered by the base template.

Features:
- Toast categories (success, error, info, warning)
- Duplicate suppression within a short window
- HTTP status to toast mapping for API failures
- Upload specific error messages
"""

import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, Optional

from flask import flash, session

from .api_client import ApiConnectionError, ApiError


class ToastNotifier:
    """
    Flash based toast delivery with de-duplication.

    The same ``type:message`` pair is only shown once per dedup window so a
    page that reports the same failure from several calls shows one toast.
    The window is tracked per browser session; one user never hides
    another user's toasts.
    """

    TOAST_TYPES = ('success', 'error', 'info', 'warning')
    OWNER_KEY = '_toast_owner'

    def __init__(self, dedup_seconds: float = 3, clock: Optional[Callable[[], datetime]] = None):
        self.logger = logging.getLogger(__name__)
        self.dedup_window = timedelta(seconds=dedup_seconds)
        self.clock = clock or datetime.now
        self._recent: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def show(self, message: str, toast_type: str = 'error') -> bool:
        """
        Show a toast unless an identical one was shown within the window.

        Args:
            message (str): Text to display
            toast_type (str): One of success, error, info, warning

        Returns:
            bool: True if the toast was emitted
        """
        if not message:
            return False

        if toast_type not in self.TOAST_TYPES:
            toast_type = 'error'

        key = f"{self._owner()}:{toast_type}:{message}"
        now = self.clock()

        with self._lock:
            last_shown = self._recent.get(key)
            if last_shown is not None and now - last_shown < self.dedup_window:
                return False
            self._recent[key] = now
            self._prune(now)

        flash(message, toast_type)
        return True

    def success(self, message: str) -> bool:
        return self.show(message, 'success')

    def error(self, message: str) -> bool:
        return self.show(message, 'error')

    def info(self, message: str) -> bool:
        return self.show(message, 'info')

    def warning(self, message: str) -> bool:
        return self.show(message, 'warning')

    def clear_cache(self) -> None:
        with self._lock:
            self._recent.clear()

    def _owner(self) -> str:
        owner = session.get(self.OWNER_KEY)
        if not owner:
            owner = secrets.token_hex(8)
            session[self.OWNER_KEY] = owner
        return owner

    def _prune(self, now: datetime) -> None:
        expired = [key for key, shown in self._recent.items() if now - shown >= self.dedup_window]
        for key in expired:
            del self._recent[key]


class NotificationSystem:
    """Maps API failures onto toasts and tells the caller what to do next."""

    ACTION_REAUTH = 'reauth'
    ACTION_NOTIFIED = 'notified'
    ACTION_SILENT = 'silent'

    ACCESS_DENIED_MESSAGE = 'Access denied'
    SERVER_ERROR_MESSAGE = 'Server error. Please try again later.'

    def __init__(self, notifier: ToastNotifier, silent_endpoints: Iterable[str] = ()):
        self.notifier = notifier
        self.silent_endpoints = set(silent_endpoints)
        self.logger = logging.getLogger(__name__)

    def notify_api_error(self, error: ApiError, fallback: Optional[str] = None,
                         endpoint: Optional[str] = None) -> str:
        """
        Report a failed backend call.

        Args:
            error (ApiError): The raised client error
            fallback (str): Message to use instead of the backend's
            endpoint (str): Flask endpoint that made the call

        Returns:
            str: ``reauth`` when the session must be cleared, ``silent`` when
            nothing was shown, ``notified`` otherwise
        """
        status = error.status_code

        if status == 401:
            self.logger.warning("Backend rejected the session token")
            return self.ACTION_REAUTH

        if status == 403:
            if endpoint in self.silent_endpoints:
                return self.ACTION_SILENT
            self.notifier.error(self.ACCESS_DENIED_MESSAGE)
            return self.ACTION_NOTIFIED

        if status is not None and status >= 500:
            self.notifier.error(self.SERVER_ERROR_MESSAGE)
            return self.ACTION_NOTIFIED

        self.notifier.error(fallback or error.message)
        return self.ACTION_NOTIFIED


def upload_error_message(error: Exception) -> str:
    """Pick the toast text for a failed material upload."""
    if isinstance(error, ApiConnectionError) and error.timed_out:
        return 'Upload timeout - file may be too large or connection is slow'

    status = getattr(error, 'status_code', None)
    if status == 413:
        return 'File too large - maximum size is 50MB'
    if status == 400:
        payload = getattr(error, 'payload', None) or {}
        backend_error = payload.get('error') if isinstance(payload, dict) else None
        return backend_error or 'Invalid file or missing data'
    if status is not None and status >= 500:
        return 'Server error - please try again'
    return 'Failed to upload materials'
