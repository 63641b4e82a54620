"""
Material Manager Module - Edunite Tuition Management Portal

This module handles study materials: the teacher upload flow, the teacher
material list and the student library.

Features:
- File type detection by extension
- Human readable file sizes
- Teacher and student material filtering
- Student library sorting
- Multi-file upload followed by material creation
"""

import logging
import os
from typing import Any, Dict, List, Optional

from werkzeug.utils import secure_filename

from .api_client import entity_id

FILE_TYPES = {
    'image': ('jpg', 'jpeg', 'png', 'gif', 'webp'),
    'video': ('mp4', 'avi', 'mov', 'wmv', 'webm'),
    'pdf': ('pdf',),
    'document': ('doc', 'docx'),
    'presentation': ('ppt', 'pptx'),
    'spreadsheet': ('xls', 'xlsx'),
}

SIZE_UNITS = ['Bytes', 'KB', 'MB', 'GB']


class MaterialValidationError(ValueError):
    """Raised when the upload form is incomplete."""


def file_type(filename: Optional[str]) -> str:
    """Classify a file name by its extension."""
    extension = (filename or '').rsplit('.', 1)[-1].lower()
    for type_name, extensions in FILE_TYPES.items():
        if extension in extensions:
            return type_name
    return 'file'


def format_file_size(size: Any) -> str:
    """Format a byte count as ``1.5 KB`` style text."""
    try:
        size = float(size or 0)
    except (TypeError, ValueError):
        return '0 Bytes'
    if size <= 0:
        return '0 Bytes'

    index = 0
    while size >= 1024 ** (index + 1) and index < len(SIZE_UNITS) - 1:
        index += 1
    value = round(size / 1024 ** index, 2)
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return f"{text} {SIZE_UNITS[index]}"


class MaterialManager:
    """
    Study material operations for teachers and students.
    """

    REQUIRED_FIELDS_MESSAGE = 'Please fill in all required fields and select at least one file'
    SORT_OPTIONS = ('newest', 'oldest', 'title', 'subject')

    def __init__(self, teacher_api=None, common_api=None):
        """
        Initialize the material manager.

        Args:
            teacher_api: TeacherAPI facade used to create materials
            common_api: CommonAPI facade used to upload files
        """
        self.teacher_api = teacher_api
        self.common_api = common_api
        self.logger = logging.getLogger(__name__)

    # Listing

    @staticmethod
    def material_class_id(material: Dict[str, Any]) -> Optional[str]:
        if material.get('classId'):
            return entity_id(material['classId'])
        return entity_id(material.get('class'))

    def filter_teacher_materials(self, materials: List[Dict[str, Any]], search: str = '',
                                 class_id: str = 'all', type_filter: str = 'all') -> List[Dict[str, Any]]:
        term = (search or '').strip().lower()
        filtered = []

        for material in materials:
            if term and not any(term in (material.get(field) or '').lower()
                                for field in ('title', 'description', 'subject')):
                continue
            if class_id and class_id != 'all' and self.material_class_id(material) != class_id:
                continue
            if type_filter and type_filter != 'all':
                files = material.get('files') or []
                if not any(file_type(f.get('name')) == type_filter for f in files):
                    continue
            filtered.append(material)

        return filtered

    def filter_student_materials(self, materials: List[Dict[str, Any]], search: str = '',
                                 subject: str = 'all', sort_by: str = 'newest') -> List[Dict[str, Any]]:
        term = (search or '').strip().lower()
        filtered = []

        for material in materials:
            if term and not any(term in (material.get(field) or '').lower()
                                for field in ('title', 'description', 'subject', 'teacherName')):
                continue
            if subject and subject != 'all' and (material.get('subject') or '').lower() != subject.lower():
                continue
            filtered.append(material)

        if sort_by == 'newest':
            filtered.sort(key=lambda m: m.get('uploadedAt') or m.get('createdAt') or '', reverse=True)
        elif sort_by == 'oldest':
            filtered.sort(key=lambda m: m.get('uploadedAt') or m.get('createdAt') or '')
        elif sort_by == 'title':
            filtered.sort(key=lambda m: (m.get('title') or '').lower())
        elif sort_by == 'subject':
            filtered.sort(key=lambda m: (m.get('subject') or '').lower())
        return filtered

    @staticmethod
    def material_subjects(materials: List[Dict[str, Any]]) -> Dict[str, int]:
        """Material count per subject for the library sidebar."""
        counts: Dict[str, int] = {}
        for material in materials:
            subject = material.get('subject')
            if subject:
                counts[subject] = counts.get(subject, 0) + 1
        return dict(sorted(counts.items()))

    # Upload

    def validate_upload(self, form: Dict[str, Any], files: List[Any]) -> Dict[str, Any]:
        title = (form.get('title') or '').strip()
        class_id = (form.get('classId') or '').strip()
        files = [f for f in files or [] if f and getattr(f, 'filename', '')]

        if not title or not class_id or not files:
            raise MaterialValidationError(self.REQUIRED_FIELDS_MESSAGE)

        return {
            'title': title,
            'description': (form.get('description') or '').strip(),
            'classId': class_id,
            'subject': (form.get('subject') or '').strip(),
        }

    @staticmethod
    def _stream_size(upload) -> int:
        stream = upload.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        return size

    def upload_material(self, form: Dict[str, Any], files: List[Any]) -> Any:
        """
        Upload every selected file, then create the material record.

        Args:
            form (dict): title, description, classId, subject
            files (list): werkzeug FileStorage objects

        Returns:
            Backend response of the material creation

        Raises:
            MaterialValidationError: when the form is incomplete
            ApiError: when an upload or the creation fails
        """
        material_data = self.validate_upload(form, files)
        uploads = [f for f in files if f and f.filename]

        uploaded_files = []
        for index, upload in enumerate(uploads, start=1):
            filename = secure_filename(upload.filename) or f'file-{index}'
            size = self._stream_size(upload)
            self.logger.info(f"Uploading file {index}/{len(uploads)}: {filename}")

            response = self.common_api.upload_file(filename, upload.stream, upload.mimetype, 'material')
            uploaded = (response or {}).get('file') or {}
            uploaded_files.append({
                'name': upload.filename,
                'size': size,
                'url': uploaded.get('url'),
                'type': file_type(upload.filename),
            })

        material_data['files'] = uploaded_files
        result = self.teacher_api.create_material(material_data)
        self.logger.info(f"Created material '{material_data['title']}' with {len(uploaded_files)} file(s)")
        return result
