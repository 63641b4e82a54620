# Edunite Tuition Management Portal - Package
"""
Main package for the Edunite tuition management portal.
This package contains the backend client, the view helpers and the templates
used by the Flask application.
"""

__version__ = "1.0.0"
__author__ = "Edunite Team"
__description__ = "Role-based Flask portal for tuition center administration, teaching and learning"

# Import core components for easy access
from .modules.api_client import ApiClient, EduniteAPI
from .modules.attendance_manager import AttendanceManager
from .modules.auth_manager import AuthManager
from .modules.class_manager import ClassManager
from .modules.material_manager import MaterialManager
from .modules.notification_system import NotificationSystem, ToastNotifier
from .modules.report_generator import ReportGenerator
from .modules.user_manager import UserManager

__all__ = [
    'ApiClient',
    'EduniteAPI',
    'AttendanceManager',
    'AuthManager',
    'ClassManager',
    'MaterialManager',
    'NotificationSystem',
    'ToastNotifier',
    'ReportGenerator',
    'UserManager'
]
