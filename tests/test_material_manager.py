import io
import unittest
from unittest.mock import MagicMock

from werkzeug.datastructures import FileStorage

from edunite.modules.material_manager import (
    MaterialManager, MaterialValidationError, file_type, format_file_size
)

MATERIALS = [
    {'_id': 'm1', 'title': 'Algebra notes', 'subject': 'Maths', 'classId': 'c1',
     'uploadedAt': '2024-03-01', 'files': [{'name': 'algebra.pdf'}]},
    {'_id': 'm2', 'title': 'Lab slides', 'subject': 'Physics', 'class': {'_id': 'c2'},
     'teacherName': 'Tina', 'uploadedAt': '2024-03-05', 'files': [{'name': 'lab.pptx'}]},
    {'_id': 'm3', 'title': 'Circuits video', 'subject': 'physics', 'classId': {'_id': 'c2'},
     'createdAt': '2024-02-20', 'files': [{'name': 'circuits.mp4'}]},
]


class TestFileHelpers(unittest.TestCase):

    def test_file_type(self):
        self.assertEqual(file_type('report.PDF'), 'pdf')
        self.assertEqual(file_type('slides.pptx'), 'presentation')
        self.assertEqual(file_type('photo.jpeg'), 'image')
        self.assertEqual(file_type('archive.zip'), 'file')
        self.assertEqual(file_type(None), 'file')

    def test_format_file_size(self):
        self.assertEqual(format_file_size(0), '0 Bytes')
        self.assertEqual(format_file_size(500), '500 Bytes')
        self.assertEqual(format_file_size(1024), '1 KB')
        self.assertEqual(format_file_size(1536), '1.5 KB')
        self.assertEqual(format_file_size(5 * 1024 * 1024), '5 MB')
        self.assertEqual(format_file_size('junk'), '0 Bytes')


class TestMaterialFilters(unittest.TestCase):

    def setUp(self):
        self.manager = MaterialManager()

    def test_teacher_filters(self):
        ids = lambda items: [m['_id'] for m in items]
        self.assertEqual(ids(self.manager.filter_teacher_materials(MATERIALS, class_id='c2')), ['m2', 'm3'])
        self.assertEqual(ids(self.manager.filter_teacher_materials(MATERIALS, type_filter='video')), ['m3'])
        self.assertEqual(ids(self.manager.filter_teacher_materials(MATERIALS, search='algebra')), ['m1'])

    def test_student_filters_and_sorting(self):
        ids = lambda items: [m['_id'] for m in items]
        self.assertEqual(ids(self.manager.filter_student_materials(MATERIALS)), ['m2', 'm1', 'm3'])
        self.assertEqual(ids(self.manager.filter_student_materials(MATERIALS, sort_by='oldest')), ['m3', 'm1', 'm2'])
        self.assertEqual(ids(self.manager.filter_student_materials(MATERIALS, subject='Physics', sort_by='title')),
                         ['m3', 'm2'])
        self.assertEqual(ids(self.manager.filter_student_materials(MATERIALS, search='tina')), ['m2'])

    def test_material_subjects(self):
        self.assertEqual(self.manager.material_subjects(MATERIALS), {'Maths': 1, 'Physics': 1, 'physics': 1})


class TestMaterialUpload(unittest.TestCase):

    def setUp(self):
        self.teacher_api = MagicMock()
        self.common_api = MagicMock()
        self.common_api.upload_file.return_value = {'success': True, 'file': {'url': 'https://cdn.test/a.pdf'}}
        self.manager = MaterialManager(self.teacher_api, self.common_api)

    def upload(self, name='week 1 notes.pdf', content=b'x' * 2048):
        return FileStorage(stream=io.BytesIO(content), filename=name, content_type='application/pdf')

    def test_upload_then_create_material(self):
        form = {'title': 'Week 1', 'classId': 'c1', 'subject': 'Maths', 'description': ' Intro '}

        self.manager.upload_material(form, [self.upload()])

        args = self.common_api.upload_file.call_args[0]
        self.assertEqual(args[0], 'week_1_notes.pdf')
        self.assertEqual(args[2], 'application/pdf')
        self.teacher_api.create_material.assert_called_once_with({
            'title': 'Week 1',
            'description': 'Intro',
            'classId': 'c1',
            'subject': 'Maths',
            'files': [{'name': 'week 1 notes.pdf', 'size': 2048,
                       'url': 'https://cdn.test/a.pdf', 'type': 'pdf'}],
        })

    def test_missing_fields_or_files(self):
        with self.assertRaises(MaterialValidationError):
            self.manager.upload_material({'title': 'Week 1', 'classId': 'c1'}, [])
        with self.assertRaises(MaterialValidationError):
            self.manager.upload_material({'classId': 'c1'}, [self.upload()])
        self.common_api.upload_file.assert_not_called()

    def test_failed_upload_skips_material_creation(self):
        from edunite.modules.api_client import ApiError
        self.common_api.upload_file.side_effect = ApiError('Too large', 413)

        with self.assertRaises(ApiError):
            self.manager.upload_material({'title': 'Week 1', 'classId': 'c1'}, [self.upload()])
        self.teacher_api.create_material.assert_not_called()


if __name__ == '__main__':
    unittest.main()
