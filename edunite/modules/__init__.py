# Edunite Tuition Management Portal - Modules Package
"""
Core modules for the Edunite portal.
Each module shapes backend documents for one area of the dashboards.
"""

__version__ = "1.0.0"
__description__ = "Core modules for Edunite portal functionality"

# Module descriptions
MODULES = {
    'api_client': 'Backend REST client and role-grouped endpoints',
    'notification_system': 'Toast notifications and API error mapping',
    'auth_manager': 'Session, approval gate and role access',
    'attendance_manager': 'Attendance aggregation and chart data',
    'user_manager': 'Approval requests, students and teachers',
    'class_manager': 'Classes, timetable and schedules',
    'material_manager': 'Study material upload and library',
    'report_generator': 'Attendance report exports'
}

def get_module_info():
    """Get information about available modules"""
    return MODULES
