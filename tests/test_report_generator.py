import unittest

from edunite.modules.attendance_manager import AttendanceManager
from edunite.modules.report_generator import ReportGenerator

ROWS = [
    {'student': {'name': 'Alice', 'email': 'alice@edunite.test'},
     'total_classes': 10, 'present_classes': 9, 'absent_classes': 1, 'attendance_percentage': 90},
    {'student': {'displayName': 'Bob', 'email': 'bob@edunite.test'},
     'total_classes': 10, 'present_classes': 5, 'absent_classes': 5, 'attendance_percentage': 50},
]
STATS = {'total_sessions': 10, 'average_attendance': 70, 'total_students': 2, 'total_teachers': 1}
FILTERS = {'startDate': '2024-01-01', 'endDate': '2024-03-31', 'classId': ''}


class TestReportGenerator(unittest.TestCase):

    def setUp(self):
        self.generator = ReportGenerator(AttendanceManager())

    def test_build_records(self):
        records = self.generator.build_records('students', ROWS)
        self.assertEqual(records[0]['Name'], 'Alice')
        self.assertEqual(records[0]['Rating'], 'Good')
        self.assertEqual(records[1]['Name'], 'Bob')
        self.assertEqual(records[1]['Rating'], 'Needs attention')

    def test_csv_report(self):
        result = self.generator.generate_attendance_report('students', ROWS, STATS, FILTERS, 'csv')

        self.assertTrue(result['success'])
        self.assertEqual(result['mimetype'], 'text/csv')
        self.assertTrue(result['filename'].startswith('students_attendance_'))
        self.assertTrue(result['filename'].endswith('.csv'))
        lines = result['content'].decode('utf-8').splitlines()
        self.assertEqual(lines[0], 'Name,Email,Total Classes,Present,Absent,Attendance %,Rating')
        self.assertEqual(len(lines), 3)

    def test_excel_report(self):
        result = self.generator.generate_attendance_report('students', ROWS, STATS, FILTERS, 'excel')
        self.assertTrue(result['success'])
        self.assertTrue(result['filename'].endswith('.xlsx'))
        self.assertEqual(result['content'][:2], b'PK')

    def test_pdf_report(self):
        teacher_rows = [dict(row, teacher=row['student']) for row in ROWS * 30]
        result = self.generator.generate_attendance_report('teachers', teacher_rows, STATS, FILTERS, 'pdf')
        self.assertTrue(result['success'])
        self.assertEqual(result['content'][:4], b'%PDF')
        self.assertEqual(result['size'], len(result['content']))

    def test_rejects_bad_requests(self):
        self.assertFalse(self.generator.generate_attendance_report('students', ROWS, output_format='docx')['success'])
        self.assertFalse(self.generator.generate_attendance_report('parents', ROWS)['success'])
        result = self.generator.generate_attendance_report('students', [])
        self.assertEqual(result['error'], 'No data found for the specified criteria')


if __name__ == '__main__':
    unittest.main()
