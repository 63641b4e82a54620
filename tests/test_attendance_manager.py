import unittest
from datetime import date

from edunite.modules.attendance_manager import (
    AttendanceManager, AttendanceValidationError, percentage, round_half_up
)


def mark(student_id, status, name=None):
    return {'student': {'_id': student_id, 'name': name or student_id, 'email': f'{student_id}@edunite.test'},
            'status': status}


SESSIONS = [
    {
        '_id': 's1',
        'teacher': {'_id': 't1', 'name': 'Tina', 'email': 'tina@edunite.test'},
        'teacherAttendance': {'status': 'present'},
        'students': [mark('alice', 'present'), mark('bob', 'absent')],
    },
    {
        '_id': 's2',
        'teacher': {'_id': 't1', 'name': 'Tina', 'email': 'tina@edunite.test'},
        'teacherAttendance': {'status': 'absent'},
        'students': [mark('alice', 'present'), mark('bob', 'late'), mark('carol', 'present')],
    },
]


class TestRounding(unittest.TestCase):

    def test_halves_round_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(12.25, 1), 12.3)

    def test_percentage(self):
        self.assertEqual(percentage(1, 8), 13)
        self.assertEqual(percentage(2, 3, 1), 66.7)
        self.assertEqual(percentage(5, 0), 0)
        self.assertIsInstance(percentage(1, 3), int)


class TestAdminReports(unittest.TestCase):

    def setUp(self):
        self.manager = AttendanceManager()

    def test_session_statistics(self):
        stats = self.manager.session_statistics(SESSIONS)
        self.assertEqual(stats, {
            'total_sessions': 2,
            'average_attendance': 60,
            'total_students': 3,
            'total_teachers': 1,
        })

    def test_session_statistics_empty(self):
        self.assertEqual(self.manager.session_statistics([])['average_attendance'], 0)

    def test_student_attendance_sorted_best_first(self):
        rows = self.manager.student_attendance(SESSIONS)

        self.assertEqual([row['student']['_id'] for row in rows[:2]], ['alice', 'carol'])
        bob = rows[-1]
        self.assertEqual(bob['student']['_id'], 'bob')
        self.assertEqual(bob['total_classes'], 2)
        self.assertEqual(bob['present_classes'], 0)
        self.assertEqual(bob['absent_classes'], 2)
        self.assertEqual(bob['attendance_percentage'], 0)

    def test_student_attendance_search(self):
        rows = self.manager.student_attendance(SESSIONS, search='CAROL')
        self.assertEqual(len(rows), 1)

    def test_teacher_attendance_uses_teacher_check_in(self):
        rows = self.manager.teacher_attendance(SESSIONS)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['total_classes'], 2)
        self.assertEqual(rows[0]['present_classes'], 1)
        self.assertEqual(rows[0]['attendance_percentage'], 50)

    def test_attendance_rating(self):
        self.assertEqual(self.manager.attendance_rating(80), 'Good')
        self.assertEqual(self.manager.attendance_rating(60), 'Average')
        self.assertEqual(self.manager.attendance_rating(59), 'Needs attention')

    def test_session_present_percentage(self):
        self.assertEqual(self.manager.session_present_percentage(SESSIONS[1]), 67)


class TestMarkingForm(unittest.TestCase):

    def setUp(self):
        self.manager = AttendanceManager()
        self.students = [{'_id': 'alice'}, {'_id': 'bob', 'attendanceStatus': 'late'}, {'_id': 'carol'}]

    def test_initial_statuses_precedence(self):
        existing = {'students': [{'student': 'alice', 'status': 'absent'}]}
        statuses = self.manager.initial_statuses(self.students, existing)
        self.assertEqual(statuses, {'alice': 'absent', 'bob': 'late', 'carol': 'present'})

    def test_roster_statistics(self):
        stats = self.manager.roster_statistics(self.students, {'alice': 'absent', 'bob': 'late', 'carol': 'present'})
        self.assertEqual(stats, {'total_students': 3, 'present': 1, 'absent': 1, 'late': 1})

    def test_parse_coordinates(self):
        self.assertEqual(self.manager.parse_coordinates('6.9271, 79.8612'),
                         {'latitude': 6.9271, 'longitude': 79.8612})
        self.assertIsNone(self.manager.parse_coordinates('95, 10'))
        self.assertIsNone(self.manager.parse_coordinates('Room 4'))
        self.assertIsNone(self.manager.parse_coordinates(''))

    def test_build_submission(self):
        submission = self.manager.build_attendance_submission(
            'c1', '2024-03-01', {'alice': 'present', 'bob': 'excused'}, '1.5, 2.5'
        )
        self.assertEqual(submission['classId'], 'c1')
        self.assertEqual(submission['date'], '2024-03-01')
        self.assertEqual(submission['location'], {'latitude': 1.5, 'longitude': 2.5})
        self.assertEqual(submission['students'], [
            {'student': 'alice', 'studentId': 'alice', 'status': 'present'},
            {'student': 'bob', 'studentId': 'bob', 'status': 'absent'},
        ])

    def test_build_submission_requires_class_date_and_students(self):
        with self.assertRaises(AttendanceValidationError):
            self.manager.build_attendance_submission('', '2024-03-01', {'a': 'present'})
        with self.assertRaises(AttendanceValidationError):
            self.manager.build_attendance_submission('c1', '2024-03-01', {})


class TestHistoryAndCharts(unittest.TestCase):

    def setUp(self):
        self.manager = AttendanceManager()

    def test_summarize_raw_sessions(self):
        rows = self.manager.summarize_history([dict(SESSIONS[1], date='2024-03-02T00:00:00.000Z')])
        self.assertEqual(rows, [{
            'date': '2024-03-02', 'total_students': 3, 'present': 2, 'absent': 0, 'late': 1,
            'attendance_percentage': 66.7,
        }])

    def test_summarize_aggregated_rows(self):
        rows = self.manager.summarize_history([
            {'date': '2024-03-03', 'present': 9, 'absent': 1, 'late': 0, 'attendancePercentage': 90}
        ])
        self.assertEqual(rows[0]['total_students'], 10)
        self.assertEqual(rows[0]['attendance_percentage'], 90.0)

    def test_percentage_band(self):
        self.assertEqual(self.manager.percentage_band(90), 'high')
        self.assertEqual(self.manager.percentage_band(75), 'medium')
        self.assertEqual(self.manager.percentage_band(74.9), 'low')

    def test_period_range(self):
        today = date(2024, 3, 31)
        self.assertEqual(self.manager.period_range('thisWeek', today), ('2024-03-24', '2024-03-31'))
        self.assertEqual(self.manager.period_range('unknown', today), ('2024-03-01', '2024-03-31'))

    def test_breakdowns(self):
        records = [
            {'date': '2024-03-01T08:00:00Z', 'status': 'present', 'subject': 'Maths'},
            {'date': '2024-03-01T10:00:00Z', 'status': 'absent', 'class': {'subject': 'Science'}},
            {'date': '2024-03-02T08:00:00Z', 'status': 'late', 'subject': 'Maths'},
        ]

        daily = self.manager.daily_breakdown(records)
        self.assertEqual(daily[0], {'date': '2024-03-01', 'present': 1, 'absent': 1, 'late': 0,
                                    'total': 2, 'attendance': 50.0})

        subjects = {row['subject']: row for row in self.manager.subject_breakdown(records)}
        self.assertEqual(subjects['Maths']['attendance'], 100.0)
        self.assertEqual(subjects['Science']['absent'], 1)

    def test_overall_statistics_prefers_backend_stats(self):
        overall = self.manager.overall_statistics([], {'totalClasses': 4, 'present': 2, 'absent': 1, 'late': 1})
        self.assertEqual(overall['overall_percentage'], 75.0)

        overall = self.manager.overall_statistics([{'status': 'present'}, {'status': 'absent'}])
        self.assertEqual(overall['total_classes'], 2)
        self.assertEqual(overall['overall_percentage'], 50.0)

    def test_record_subject_unknown(self):
        self.assertEqual(self.manager.record_subject({}), 'Unknown')


class TestReconciliation(unittest.TestCase):

    def setUp(self):
        self.manager = AttendanceManager()

    def test_normalize_grade(self):
        for value in ('Grade 10', 'grade10', '10th', ' 10 ', 10):
            with self.subTest(value=value):
                self.assertEqual(self.manager.normalize_grade(value), '10')
        self.assertEqual(self.manager.normalize_grade(None), '')

    def test_students_for_class(self):
        students = [
            {'_id': 'a', 'grade': 'Grade 10', 'subjects': ['Mathematics']},
            {'_id': 'b', 'profile': {'grade': '10th'}, 'subjects': [{'name': 'History'}]},
            {'_id': 'c', 'grade': '10'},
            {'_id': 'd', 'grade': '11', 'subjects': ['Mathematics']},
        ]
        matched = self.manager.students_for_class(students, {'grade': '10', 'subject': 'Math'})
        self.assertEqual([student['_id'] for student in matched], ['a'])

    def test_students_without_subjects_are_not_matched(self):
        students = [
            {'_id': 'listed', 'grade': '10', 'profile': {'subjects': [{'subject': 'Physics'}]}},
            {'_id': 'unlisted', 'grade': '10'},
            {'_id': 'empty', 'grade': '10', 'subjects': []},
        ]
        matched = self.manager.students_for_class(students, {'grade': 'Grade 10', 'subjects': ['physics']})
        self.assertEqual([student['_id'] for student in matched], ['listed'])

    def test_class_without_grade_matches_on_subject_only(self):
        students = [
            {'_id': 'a', 'grade': '9', 'subjects': ['Chemistry']},
            {'_id': 'b', 'grade': '11', 'subjects': ['Biology']},
        ]
        matched = self.manager.students_for_class(students, {'subject': 'chem'})
        self.assertEqual([student['_id'] for student in matched], ['a'])


if __name__ == '__main__':
    unittest.main()
