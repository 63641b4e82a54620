"""
User Manager Module - Edunite Tuition Management Portal

This module filters and summarizes the user documents shown on the admin
request, student and teacher pages.

Features:
- Approval request search and status filtering
- Student and teacher search, status and grade filters
- Approval counts and grade lists for filter widgets
- Role validation for approvals and role changes
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional


class UserValidationError(ValueError):
    """Raised when an admin action carries an invalid role."""


class UserManager:
    """
    Client-side shaping of backend user and request documents.
    """

    VALID_ROLES = ('student', 'teacher', 'admin')
    REQUEST_STATUSES = ('pending', 'approved', 'rejected', 'blocked')

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    # Requests

    def filter_requests(self, requests: List[Dict[str, Any]], search: str = '',
                        status: str = 'all') -> List[Dict[str, Any]]:
        """
        Filter approval requests.

        Args:
            requests (list): UserRequest documents
            search (str): Case-insensitive text matched against name, email
                and the linked user's name
            status (str): Request status or ``all``

        Returns:
            list: Matching requests, original order kept
        """
        term = (search or '').strip().lower()
        filtered = []

        for request in requests:
            if term:
                linked_user = request.get('userId') if isinstance(request.get('userId'), dict) else {}
                haystack = (request.get('name'), request.get('email'), linked_user.get('name'))
                if not any(term in (value or '').lower() for value in haystack):
                    continue

            if status and status != 'all' and request.get('status') != status:
                continue

            filtered.append(request)

        return filtered

    @staticmethod
    def request_statistics(stats: Optional[Dict[str, Any]]) -> Dict[str, int]:
        result = {'pending': 0, 'approved': 0, 'rejected': 0}
        for key in result:
            result[key] = int((stats or {}).get(key) or 0)
        return result

    # Students and teachers

    def filter_students(self, users: List[Dict[str, Any]], search: str = '',
                        status: str = 'all', grade: str = 'all') -> List[Dict[str, Any]]:
        students = [user for user in users if user.get('role') == 'student']

        def searchable(student):
            profile = student.get('profile') or {}
            return (student.get('displayName'), student.get('name'), student.get('email'),
                    profile.get('grade'), profile.get('rollNumber'))

        filtered = self._filter_people(students, search, status, searchable)

        if grade and grade != 'all':
            filtered = [student for student in filtered
                        if (student.get('profile') or {}).get('grade') == grade]
        return filtered

    def filter_teachers(self, users: List[Dict[str, Any]], search: str = '',
                        status: str = 'all') -> List[Dict[str, Any]]:
        teachers = [user for user in users if user.get('role') == 'teacher']

        def searchable(teacher):
            profile = teacher.get('profile') or {}
            return (teacher.get('displayName'), teacher.get('name'), teacher.get('email'),
                    profile.get('specialization'))

        return self._filter_people(teachers, search, status, searchable)

    def _filter_people(self, people, search, status, searchable) -> List[Dict[str, Any]]:
        term = (search or '').strip().lower()
        filtered = []

        for person in people:
            if term and not any(term in str(value or '').lower() for value in searchable(person)):
                continue
            if not self._status_matches(person, status):
                continue
            filtered.append(person)

        return filtered

    @staticmethod
    def _status_matches(person: Dict[str, Any], status: str) -> bool:
        if not status or status == 'all':
            return True
        if status == 'approved':
            return person.get('isApproved') is True
        if status == 'pending':
            return person.get('isApproved') is not True
        if status == 'rejected':
            return person.get('approvalStatus') == 'rejected'
        return True

    @staticmethod
    def approval_label(is_approved: Any) -> str:
        return 'Approved' if is_approved is True else 'Pending'

    @staticmethod
    def approval_counts(users: List[Dict[str, Any]]) -> Dict[str, int]:
        approved = sum(1 for user in users if user.get('isApproved') is True)
        return {
            'total': len(users),
            'approved': approved,
            'pending': len(users) - approved,
        }

    @staticmethod
    def unique_grades(users: List[Dict[str, Any]]) -> List[str]:
        grades = {(user.get('profile') or {}).get('grade') for user in users}
        return sorted(grade for grade in grades if grade)

    @staticmethod
    def split_by_role(users: List[Dict[str, Any]], approved_only: bool = False) -> Dict[str, List[Dict[str, Any]]]:
        """Group users into students and teachers."""
        groups = {'students': [], 'teachers': []}
        for user in users:
            if approved_only and user.get('isApproved') is not True:
                continue
            if user.get('role') == 'student':
                groups['students'].append(user)
            elif user.get('role') == 'teacher':
                groups['teachers'].append(user)
        return groups

    @staticmethod
    def format_date(value: Any) -> str:
        """Render a backend timestamp as a short date, ``N/A`` when missing."""
        if not value:
            return 'N/A'
        if isinstance(value, datetime):
            return value.strftime('%d %b %Y')
        text = str(value)
        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00')).strftime('%d %b %Y')
        except ValueError:
            return text.split('T')[0]

    # Profiles

    TEACHER_TOP_LEVEL_FIELDS = (
        'qualifications', 'experience', 'specialization',
        'emergencyContactName', 'emergencyContactPhone', 'emergencyContactRelation',
    )
    STUDENT_FIELDS = ('phone', 'address', 'dateOfBirth', 'rollNumber', 'course', 'year', 'semester')

    @staticmethod
    def _split_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return [item.strip() for item in str(value or '').split(',') if item.strip()]

    def teacher_profile_form(self, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Pre-fill values for the teacher profile form."""
        user = user or {}
        profile = user.get('profile') or {}
        form = {
            'displayName': user.get('name') or user.get('displayName') or '',
            'email': user.get('email') or '',
            'phoneNumber': profile.get('phoneNumber') or '',
            'address': profile.get('address') or '',
            'dateOfBirth': str(profile.get('dateOfBirth') or '').split('T')[0],
            'joinedDate': str(profile.get('joinedDate') or '').split('T')[0],
            'teachingGrades': ', '.join(self._split_list(profile.get('teachingGrades'))),
            'teachingSubjects': ', '.join(self._split_list(profile.get('teachingSubjects'))),
        }
        for field in self.TEACHER_TOP_LEVEL_FIELDS:
            form[field] = profile.get(field) or user.get(field) or ''
        return form

    def teacher_profile_payload(self, form: Dict[str, Any]) -> Dict[str, Any]:
        """Body for the teacher profile update."""
        payload = {
            'name': (form.get('displayName') or '').strip(),
            'teachingGrades': self._split_list(form.get('teachingGrades')),
            'teachingSubjects': self._split_list(form.get('teachingSubjects')),
            'profile': {
                'phoneNumber': (form.get('phoneNumber') or '').strip(),
                'address': (form.get('address') or '').strip(),
                'dateOfBirth': form.get('dateOfBirth') or None,
                'joinedDate': form.get('joinedDate') or None,
            },
        }
        for field in self.TEACHER_TOP_LEVEL_FIELDS:
            payload[field] = (form.get(field) or '').strip()
        if not payload['name']:
            raise UserValidationError('Name is required')
        return payload

    def student_profile_form(self, user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        user = user or {}
        profile = user.get('profile') or {}
        emergency = profile.get('emergencyContact') or user.get('emergencyContact') or {}
        form = {
            'displayName': user.get('displayName') or user.get('name') or '',
            'email': user.get('email') or '',
            'grade': profile.get('grade') or '',
            'emergencyContactName': emergency.get('name') or '',
            'emergencyContactPhone': emergency.get('phone') or '',
            'emergencyContactRelation': emergency.get('relation') or '',
        }
        for field in self.STUDENT_FIELDS:
            form[field] = profile.get(field) or user.get(field) or ''
        return form

    def student_profile_payload(self, form: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            'displayName': (form.get('displayName') or '').strip(),
            'emergencyContact': {
                'name': (form.get('emergencyContactName') or '').strip(),
                'phone': (form.get('emergencyContactPhone') or '').strip(),
                'relation': (form.get('emergencyContactRelation') or '').strip(),
            },
        }
        for field in self.STUDENT_FIELDS:
            payload[field] = (form.get(field) or '').strip()
        if not payload['displayName']:
            raise UserValidationError('Name is required')
        return payload

    def validate_role(self, role: str) -> str:
        role = (role or '').strip().lower()
        if role not in self.VALID_ROLES:
            self.logger.warning(f"Rejected invalid role: {role!r}")
            raise UserValidationError('Invalid role selected')
        return role
