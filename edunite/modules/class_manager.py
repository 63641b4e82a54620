"""
Class Manager Module - Edunite Tuition Management Portal

This module prepares class and timetable documents for the admin class page,
the teacher timetable and the student class list.

Features:
- Class search and form validation
- Timetable entry validation
- Monday-first week calendar
- Schedule and time formatting
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from .api_client import entity_id

WEEK_DAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


class ClassValidationError(ValueError):
    """Raised when a class or timetable form is incomplete."""


class ClassManager:
    """
    Class, timetable and schedule helpers.
    """

    REQUIRED_FIELDS_MESSAGE = 'Please fill in all required fields'

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def filter_classes(classes: List[Dict[str, Any]], search: str = '') -> List[Dict[str, Any]]:
        term = (search or '').strip().lower()
        if not term:
            return list(classes)
        return [
            cls for cls in classes
            if any(term in (cls.get(field) or '').lower() for field in ('name', 'subject', 'teacherName'))
        ]

    def validate_class_form(self, form: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and normalize the admin class form.

        Args:
            form (dict): Submitted form fields

        Returns:
            dict: Class document to send to the backend

        Raises:
            ClassValidationError: when name or subject is missing
        """
        name = (form.get('name') or '').strip()
        subject = (form.get('subject') or '').strip()
        if not name or not subject:
            raise ClassValidationError(self.REQUIRED_FIELDS_MESSAGE)

        data = {
            'name': name,
            'subject': subject,
            'description': (form.get('description') or '').strip(),
            'schedule': (form.get('schedule') or '').strip(),
            'teacherId': (form.get('teacherId') or '').strip(),
        }
        if form.get('grade'):
            data['grade'] = form['grade'].strip()
        return data

    @staticmethod
    def class_form_data(class_doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Values used to pre-fill the edit form."""
        class_doc = class_doc or {}
        teacher = class_doc.get('teacher')
        return {
            'id': entity_id(class_doc) or '',
            'name': class_doc.get('name') or '',
            'subject': class_doc.get('subject') or '',
            'grade': class_doc.get('grade') or '',
            'description': class_doc.get('description') or '',
            'schedule': class_doc.get('schedule') if isinstance(class_doc.get('schedule'), str) else '',
            'teacherId': class_doc.get('teacherId') or (entity_id(teacher) if teacher else '') or '',
        }

    # Timetable

    def validate_timetable_entry(self, form: Dict[str, Any]) -> Dict[str, Any]:
        entry = {
            'classId': (form.get('classId') or '').strip(),
            'dayOfWeek': (form.get('dayOfWeek') or '').strip(),
            'startTime': (form.get('startTime') or '').strip(),
            'endTime': (form.get('endTime') or '').strip(),
            'location': (form.get('location') or '').strip(),
        }
        if not all(entry[key] for key in ('classId', 'dayOfWeek', 'startTime', 'endTime')):
            raise ClassValidationError(self.REQUIRED_FIELDS_MESSAGE)
        if entry['dayOfWeek'] not in WEEK_DAYS:
            raise ClassValidationError('Please select a valid day')
        # HH:MM strings compare correctly as text
        if entry['startTime'] >= entry['endTime']:
            raise ClassValidationError('End time must be after start time')
        return entry

    @staticmethod
    def week_dates(day: Optional[date] = None) -> List[date]:
        day = day or date.today()
        monday = day - timedelta(days=day.weekday())
        return [monday + timedelta(days=offset) for offset in range(7)]

    @staticmethod
    def entries_for_day(timetable: List[Dict[str, Any]], day_name: str) -> List[Dict[str, Any]]:
        entries = [entry for entry in timetable if entry.get('dayOfWeek') == day_name]
        return sorted(entries, key=lambda entry: entry.get('startTime') or '')

    def week_view(self, timetable: List[Dict[str, Any]], day: Optional[date] = None) -> List[Dict[str, Any]]:
        """Seven columns of the teacher timetable, Monday first."""
        return [
            {'day': WEEK_DAYS[index], 'date': week_date,
             'entries': self.entries_for_day(timetable, WEEK_DAYS[index])}
            for index, week_date in enumerate(self.week_dates(day))
        ]

    # Formatting

    @staticmethod
    def format_time(value: Optional[str]) -> str:
        """``"14:05"`` -> ``"2:05 PM"``"""
        if not value:
            return ''
        parts = str(value).split(':')
        try:
            hour = int(parts[0])
        except ValueError:
            return str(value)
        minutes = parts[1] if len(parts) > 1 else '00'
        suffix = 'PM' if hour >= 12 else 'AM'
        return f"{hour % 12 or 12}:{minutes} {suffix}"

    def format_schedule(self, schedule: Any) -> str:
        if not schedule or not isinstance(schedule, list):
            return 'No schedule available'

        days = []
        for day_schedule in schedule:
            times = ', '.join(
                f"{self.format_time(slot.get('startTime'))}-{self.format_time(slot.get('endTime'))}"
                for slot in day_schedule.get('timeSlots') or []
            )
            days.append(f"{day_schedule.get('day')}: {times}")
        return ' | '.join(days)

    @staticmethod
    def schedule_days(schedule: Any) -> List[str]:
        if not schedule or not isinstance(schedule, list):
            return []
        return [day_schedule.get('day') for day_schedule in schedule if day_schedule.get('day')]
