"""
Attendance Manager Module - Edunite Tuition Management Portal

This module shapes attendance sessions returned by the backend for the admin
reports, the teacher marking form and history, and the student charts. The
backend owns every record; nothing here is persisted.

Features:
- Session level statistics for the admin overview
- Per student and per teacher attendance percentages
- Marking form defaults and submission payloads
- Attendance history summaries
- Period ranges and daily/subject breakdowns for charts
- Grade and subject reconciliation for loosely typed records
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .api_client import entity_id


def round_half_up(value: float, digits: int = 0) -> float:
    """Round the way a browser's Math.round does (halves go up)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: int, total: int, digits: int = 0):
    if not total:
        return 0
    value = round_half_up(part / total * 100, digits)
    return int(value) if digits == 0 else value


class AttendanceValidationError(ValueError):
    """Raised when a marking form cannot be submitted."""


class AttendanceManager:
    """
    Attendance aggregation over backend attendance sessions.
    """

    PERIOD_DAYS = {
        'thisWeek': 7,
        'thisMonth': 30,
        'thisQuarter': 90,
        'thisSemester': 180,
        'thisYear': 365,
    }
    DEFAULT_PERIOD_DAYS = 30

    def __init__(self):
        """Initialize the attendance manager."""
        self.logger = logging.getLogger(__name__)

        # Attendance status constants
        self.STATUS_PRESENT = 'present'
        self.STATUS_LATE = 'late'
        self.STATUS_ABSENT = 'absent'
        self.STATUSES = (self.STATUS_PRESENT, self.STATUS_ABSENT, self.STATUS_LATE)

    # Admin reports

    def session_statistics(self, sessions: List[Dict[str, Any]]) -> Dict[str, int]:
        """
        Summarize attendance sessions for the admin overview cards.

        Args:
            sessions (list): Attendance sessions with populated students and teacher

        Returns:
            dict: total_sessions, average_attendance, total_students, total_teachers
        """
        if not sessions:
            return {'total_sessions': 0, 'average_attendance': 0,
                    'total_students': 0, 'total_teachers': 0}

        present_marks = 0
        total_marks = 0
        unique_students = set()
        unique_teachers = set()

        for session in sessions:
            marks = session.get('students') or []
            present_marks += sum(1 for mark in marks if mark.get('status') == self.STATUS_PRESENT)
            total_marks += len(marks)
            for mark in marks:
                student_id = entity_id(mark.get('student'))
                if student_id:
                    unique_students.add(student_id)
            teacher_id = entity_id(session.get('teacher'))
            if teacher_id:
                unique_teachers.add(teacher_id)

        return {
            'total_sessions': len(sessions),
            'average_attendance': percentage(present_marks, total_marks),
            'total_students': len(unique_students),
            'total_teachers': len(unique_teachers),
        }

    def student_attendance(self, sessions: List[Dict[str, Any]], search: str = '') -> List[Dict[str, Any]]:
        """Per student attendance rows, best attendance first."""
        records: Dict[str, Dict[str, Any]] = {}

        for session in sessions:
            for mark in session.get('students') or []:
                student = mark.get('student')
                student_id = entity_id(student) if isinstance(student, dict) else None
                if not student_id:
                    continue

                record = records.setdefault(student_id, self._new_row('student', student))
                self._count(record, mark.get('status') == self.STATUS_PRESENT)

        return self._finish_rows(records.values(), 'student', search)

    def teacher_attendance(self, sessions: List[Dict[str, Any]], search: str = '') -> List[Dict[str, Any]]:
        """Per teacher attendance rows based on the teacher's own check-in."""
        records: Dict[str, Dict[str, Any]] = {}

        for session in sessions:
            teacher = session.get('teacher')
            teacher_id = entity_id(teacher) if isinstance(teacher, dict) else None
            if not teacher_id:
                continue

            teacher_status = (session.get('teacherAttendance') or {}).get('status')
            record = records.setdefault(teacher_id, self._new_row('teacher', teacher))
            self._count(record, teacher_status == self.STATUS_PRESENT)

        return self._finish_rows(records.values(), 'teacher', search)

    @staticmethod
    def _new_row(key: str, person: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: person,
            'total_classes': 0,
            'present_classes': 0,
            'absent_classes': 0,
            'attendance_percentage': 0,
        }

    @staticmethod
    def _count(record: Dict[str, Any], present: bool) -> None:
        record['total_classes'] += 1
        if present:
            record['present_classes'] += 1
        else:
            record['absent_classes'] += 1

    @staticmethod
    def _finish_rows(rows: Iterable[Dict[str, Any]], key: str, search: str) -> List[Dict[str, Any]]:
        term = (search or '').strip().lower()
        result = []
        for row in rows:
            row['attendance_percentage'] = percentage(row['present_classes'], row['total_classes'])
            person = row[key]
            if term and not any(term in (person.get(field) or '').lower() for field in ('name', 'email')):
                continue
            result.append(row)

        result.sort(key=lambda row: row['attendance_percentage'], reverse=True)
        return result

    @staticmethod
    def attendance_rating(attendance_percentage: float) -> str:
        if attendance_percentage >= 80:
            return 'Good'
        if attendance_percentage >= 60:
            return 'Average'
        return 'Needs attention'

    @staticmethod
    def session_present_percentage(session: Dict[str, Any]) -> int:
        marks = session.get('students') or []
        present = sum(1 for mark in marks if mark.get('status') == 'present')
        return percentage(present, len(marks))

    # Teacher marking form

    def roster_statistics(self, students: List[Dict[str, Any]], statuses: Dict[str, str]) -> Dict[str, int]:
        values = list(statuses.values())
        return {
            'total_students': len(students),
            'present': values.count(self.STATUS_PRESENT),
            'absent': values.count(self.STATUS_ABSENT),
            'late': values.count(self.STATUS_LATE),
        }

    def initial_statuses(self, students: List[Dict[str, Any]],
                         existing: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        """
        Pre-select a status for every student on the marking form.

        A mark from an attendance session already saved for the date wins,
        then the student's own ``attendanceStatus``, then present.
        """
        existing_marks = {}
        for mark in (existing or {}).get('students') or []:
            student_id = entity_id(mark.get('student'))
            if student_id and mark.get('status'):
                existing_marks[student_id] = mark['status']

        statuses = {}
        for student in students:
            student_id = entity_id(student)
            if not student_id:
                continue
            statuses[student_id] = (existing_marks.get(student_id)
                                    or student.get('attendanceStatus')
                                    or self.STATUS_PRESENT)
        return statuses

    @staticmethod
    def parse_coordinates(location: str) -> Optional[Dict[str, float]]:
        """Parse ``"lat, lng"`` into a coordinates dict, None when unusable."""
        if not location:
            return None
        parts = [part.strip() for part in str(location).split(',')]
        if len(parts) != 2:
            return None
        try:
            latitude, longitude = float(parts[0]), float(parts[1])
        except ValueError:
            return None
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            return None
        return {'latitude': latitude, 'longitude': longitude}

    def build_attendance_submission(self, class_id: str, attendance_date: str,
                                    statuses: Dict[str, str], location: str = '') -> Dict[str, Any]:
        """
        Build the body for marking attendance.

        Args:
            class_id (str): Class being marked
            attendance_date (str): YYYY-MM-DD
            statuses (dict): student id -> status
            location (str): Free text ``"lat, lng"`` from the form

        Returns:
            dict: Request body for the mark attendance call

        Raises:
            AttendanceValidationError: when class/date or students are missing
        """
        if not class_id or not attendance_date:
            raise AttendanceValidationError('Please select class and date')
        if not statuses:
            raise AttendanceValidationError('No students to mark attendance for')

        coordinates = self.parse_coordinates(location)
        students = []
        for student_id, status in statuses.items():
            if status not in self.STATUSES:
                status = self.STATUS_ABSENT
            students.append({'student': student_id, 'studentId': student_id, 'status': status})

        return {
            'classId': class_id,
            'date': attendance_date,
            'location': coordinates,
            'coordinates': coordinates,
            'students': students,
        }

    # Teacher history

    def summarize_history(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        One summary row per attendance session.

        Accepts raw sessions (with a ``students`` list) as well as rows the
        backend already aggregated.
        """
        rows = []
        for record in records:
            marks = record.get('students')
            if isinstance(marks, list):
                present = sum(1 for mark in marks if mark.get('status') == self.STATUS_PRESENT)
                absent = sum(1 for mark in marks if mark.get('status') == self.STATUS_ABSENT)
                late = sum(1 for mark in marks if mark.get('status') == self.STATUS_LATE)
                total = len(marks)
                attendance_percentage = percentage(present, total, 1)
            else:
                present = int(record.get('present') or 0)
                absent = int(record.get('absent') or 0)
                late = int(record.get('late') or 0)
                total = int(record.get('totalStudents') or present + absent + late)
                if record.get('attendancePercentage') is not None:
                    attendance_percentage = round_half_up(float(record['attendancePercentage']), 1)
                else:
                    attendance_percentage = percentage(present, total, 1)

            rows.append({
                'date': self.record_date(record),
                'total_students': total,
                'present': present,
                'absent': absent,
                'late': late,
                'attendance_percentage': float(attendance_percentage),
            })
        return rows

    @staticmethod
    def percentage_band(attendance_percentage: float) -> str:
        if attendance_percentage >= 90:
            return 'high'
        if attendance_percentage >= 75:
            return 'medium'
        return 'low'

    # Student charts

    def period_range(self, period: str, today: Optional[date] = None) -> Tuple[str, str]:
        """Return (start, end) ISO dates for a named period ending today."""
        today = today or date.today()
        days = self.PERIOD_DAYS.get(period, self.DEFAULT_PERIOD_DAYS)
        start = today - timedelta(days=days)
        return start.isoformat(), today.isoformat()

    def daily_breakdown(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._breakdown(records, 'date', self.record_date)

    def subject_breakdown(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._breakdown(records, 'subject', self.record_subject)

    def _breakdown(self, records, key, key_func) -> List[Dict[str, Any]]:
        buckets: Dict[str, Dict[str, Any]] = {}
        for record in records:
            bucket_key = key_func(record)
            if bucket_key not in buckets:
                buckets[bucket_key] = {key: bucket_key, 'present': 0, 'absent': 0, 'late': 0, 'total': 0}

            bucket = buckets[bucket_key]
            status = record.get('status')
            if status in self.STATUSES:
                bucket[status] += 1
            bucket['total'] += 1

        for bucket in buckets.values():
            bucket['attendance'] = percentage(bucket['present'] + bucket['late'], bucket['total'], 1)
        return list(buckets.values())

    def overall_statistics(self, records: List[Dict[str, Any]],
                           stats: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Totals for the student summary cards, preferring backend statistics."""
        if stats:
            overall = {
                'total_classes': int(stats.get('totalClasses') or 0),
                'present': int(stats.get('present') or 0),
                'absent': int(stats.get('absent') or 0),
                'late': int(stats.get('late') or 0),
            }
        else:
            overall = {
                'total_classes': len(records),
                'present': sum(1 for record in records if record.get('status') == self.STATUS_PRESENT),
                'absent': sum(1 for record in records if record.get('status') == self.STATUS_ABSENT),
                'late': sum(1 for record in records if record.get('status') == self.STATUS_LATE),
            }

        overall['overall_percentage'] = percentage(
            overall['present'] + overall['late'], overall['total_classes'], 1
        )
        return overall

    # Reconciliation heuristics

    @staticmethod
    def record_subject(record: Dict[str, Any]) -> str:
        if record.get('subject'):
            return record['subject']
        class_doc = record.get('class')
        if isinstance(class_doc, dict) and class_doc.get('subject'):
            return class_doc['subject']
        return 'Unknown'

    @staticmethod
    def record_date(record: Dict[str, Any]) -> str:
        value = record.get('date')
        if not value:
            return ''
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return str(value).split('T')[0]

    @staticmethod
    def normalize_grade(value: Any) -> str:
        """
        Canonical form of a grade label.

        ``"Grade 10"``, ``"grade10"``, ``"10th"`` and ``" 10 "`` all become
        ``"10"``.
        """
        if value is None:
            return ''
        text = str(value).strip().lower()
        text = re.sub(r'^grade\s*', '', text)
        text = re.sub(r'^(\d+)(st|nd|rd|th)$', r'\1', text)
        return re.sub(r'\s+', ' ', text).strip()

    @staticmethod
    def subject_matches(student_subjects: Iterable[Any], class_subjects: Iterable[str]) -> bool:
        for class_subject in class_subjects:
            wanted = (class_subject or '').lower()
            if not wanted:
                continue
            for student_subject in student_subjects:
                if isinstance(student_subject, str):
                    name = student_subject
                elif isinstance(student_subject, dict):
                    name = student_subject.get('name') or student_subject.get('subject') or ''
                else:
                    continue
                if wanted in name.lower():
                    return True
        return False

    def students_for_class(self, students: List[Dict[str, Any]], class_doc: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Students whose grade matches the class, then whose subjects match.

        A student must list at least one subject matching the class; a
        class without a grade skips the grade check.
        """
        class_grade = self.normalize_grade(class_doc.get('grade'))
        class_subjects = class_doc.get('subjects') or [class_doc.get('subject')]

        matched = []
        for student in students:
            profile = student.get('profile') or {}
            student_grade = self.normalize_grade(student.get('grade') or profile.get('grade'))
            if class_grade and student_grade != class_grade:
                continue

            student_subjects = student.get('subjects') or profile.get('subjects') or []
            if not self.subject_matches(student_subjects, class_subjects):
                continue
            matched.append(student)
        return matched
