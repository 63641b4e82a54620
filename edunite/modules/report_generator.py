"""
Report Generator Module - Edunite Tuition Management Portal

This module exports the admin attendance summaries. Files are built in
memory and streamed back to the browser; nothing is written to disk.

Features:
- Per student and per teacher attendance exports
- Excel export with statistics and filter sheets
- CSV export
- PDF export with summary and detail tables
"""

import io
import logging
from datetime import datetime
from typing import Any, Dict, List

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle


class ReportGenerator:
    """
    Attendance report exports for the admin dashboard.
    """

    MIMETYPES = {
        'excel': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        'csv': 'text/csv',
        'pdf': 'application/pdf',
    }
    EXTENSIONS = {'excel': 'xlsx', 'csv': 'csv', 'pdf': 'pdf'}

    REPORT_TYPES = {
        'students': 'student',
        'teachers': 'teacher',
    }

    def __init__(self, attendance_manager):
        """
        Initialize the report generator.

        Args:
            attendance_manager: AttendanceManager used for ratings
        """
        self.attendance_manager = attendance_manager
        self.logger = logging.getLogger(__name__)

        # Report configuration
        self.supported_formats = list(self.MIMETYPES)
        self.max_pdf_rows = 50

    def build_records(self, report_type: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Flatten attendance rows into export records."""
        person_key = self.REPORT_TYPES[report_type]
        records = []
        for row in rows:
            person = row.get(person_key) or {}
            records.append({
                'Name': person.get('name') or person.get('displayName') or '',
                'Email': person.get('email') or '',
                'Total Classes': row.get('total_classes', 0),
                'Present': row.get('present_classes', 0),
                'Absent': row.get('absent_classes', 0),
                'Attendance %': row.get('attendance_percentage', 0),
                'Rating': self.attendance_manager.attendance_rating(row.get('attendance_percentage', 0)),
            })
        return records

    def generate_attendance_report(self, report_type: str, rows: List[Dict[str, Any]],
                                   statistics: Dict[str, Any] = None, filters: Dict[str, Any] = None,
                                   output_format: str = 'excel') -> Dict[str, Any]:
        """
        Generate an attendance export.

        Args:
            report_type (str): ``students`` or ``teachers``
            rows (list): Rows from the attendance manager
            statistics (dict): Session statistics for the summary section
            filters (dict): Applied filters, listed in the export
            output_format (str): excel, csv or pdf

        Returns:
            Dict[str, Any]: ``success`` plus filename, mimetype and content,
            or ``error``
        """
        statistics = statistics or {}
        filters = filters or {}

        if output_format not in self.supported_formats:
            return {'success': False, 'error': f'Unsupported output format: {output_format}'}
        if report_type not in self.REPORT_TYPES:
            return {'success': False, 'error': f'Unknown report type: {report_type}'}

        records = self.build_records(report_type, rows)
        if not records:
            return {'success': False, 'error': 'No data found for the specified criteria'}

        try:
            if output_format == 'excel':
                content = self._generate_excel_report(records, statistics, filters)
            elif output_format == 'csv':
                content = self._generate_csv_report(records)
            else:
                content = self._generate_pdf_report(report_type, records, statistics, filters)
        except (ValueError, OSError) as e:
            self.logger.error(f"Report generation failed: {str(e)}")
            return {'success': False, 'error': str(e)}

        filename = (f"{report_type}_attendance_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
                    f".{self.EXTENSIONS[output_format]}")
        self.logger.info(f"Report generated successfully: {filename}")

        return {
            'success': True,
            'filename': filename,
            'format': output_format,
            'mimetype': self.MIMETYPES[output_format],
            'content': content,
            'size': len(content),
        }

    def _generate_excel_report(self, records, statistics, filters) -> bytes:
        buffer = io.BytesIO()

        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            pd.DataFrame(records).to_excel(writer, sheet_name='Data', index=False)

            if statistics:
                stats_data = [{k.replace('_', ' ').title(): v for k, v in statistics.items()}]
                pd.DataFrame(stats_data).to_excel(writer, sheet_name='Statistics', index=False)

            filters_data = [{'Filter': k, 'Value': v} for k, v in filters.items() if v]
            if filters_data:
                pd.DataFrame(filters_data).to_excel(writer, sheet_name='Applied Filters', index=False)

        return buffer.getvalue()

    def _generate_csv_report(self, records) -> bytes:
        df = pd.DataFrame(records)
        return df.to_csv(index=False).encode('utf-8')

    def _generate_pdf_report(self, report_type, records, statistics, filters) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4)
        elements = []
        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=16,
            spaceAfter=30,
            alignment=1  # Center alignment
        )
        elements.append(Paragraph(f"{report_type.title()} Attendance Report", title_style))

        info_data = [
            ['Generated On:', datetime.now().strftime('%Y-%m-%d %H:%M:%S')],
            ['Total Records:', str(len(records))],
        ]
        for key, value in filters.items():
            if value:
                info_data.append([f"{key.replace('_', ' ').title()}:", str(value)])

        info_table = Table(info_data)
        info_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.lightgrey),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 12),
            ('GRID', (0, 0), (-1, -1), 1, colors.black)
        ]))
        elements.append(info_table)
        elements.append(Spacer(1, 20))

        if statistics:
            elements.append(Paragraph("Summary Statistics", styles['Heading2']))
            stats_table = Table([[k.replace('_', ' ').title(), str(v)] for k, v in statistics.items()])
            stats_table.setStyle(TableStyle([
                ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
                ('FONTSIZE', (0, 0), (-1, -1), 10),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 12),
                ('GRID', (0, 0), (-1, -1), 1, colors.black)
            ]))
            elements.append(stats_table)
            elements.append(Spacer(1, 20))

        elements.append(Paragraph("Detailed Data", styles['Heading2']))
        shown = records[:self.max_pdf_rows]
        columns = list(shown[0].keys())
        table_data = [columns]
        for record in shown:
            table_data.append([str(record.get(col, ''))[:30] for col in columns])

        data_table = Table(table_data)
        data_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('GRID', (0, 0), (-1, -1), 1, colors.black)
        ]))
        elements.append(data_table)

        if len(records) > self.max_pdf_rows:
            elements.append(Spacer(1, 10))
            elements.append(Paragraph(
                f"Note: Showing first {self.max_pdf_rows} records out of {len(records)} total records.",
                styles['Normal']
            ))

        doc.build(elements)
        return buffer.getvalue()
