"""
Edunite Tuition Management Portal - Main Application

This module serves as the main entry point for the Edunite portal.
It handles application initialization, configuration, and routes coordination.
Every page is rendered from data fetched from the Edunite backend; the portal
itself stores nothing beyond the signed-in session.

Features:
- Sign-in with an externally issued ID token and approval gating
- Admin dashboard: approvals, students, teachers, classes, attendance reports
- Teacher dashboard: profile, timetable, attendance marking, study materials
- Student dashboard: profile, classes, study materials, attendance charts
- Attendance exports to Excel/CSV/PDF
"""

from flask import Flask, render_template, request, jsonify, redirect, url_for, session, send_file, has_request_context
from werkzeug.exceptions import HTTPException
from datetime import date, datetime, timedelta
import io
import os
import logging
from config import init_config
from edunite.modules import get_module_info
from edunite.modules.api_client import (
    ApiClient, ApiError, EduniteAPI, UnauthorizedError, entity_id, find_key, unwrap_dict, unwrap_list
)
from edunite.modules.attendance_manager import AttendanceManager, AttendanceValidationError
from edunite.modules.auth_manager import AuthManager
from edunite.modules.class_manager import ClassManager, ClassValidationError, WEEK_DAYS
from edunite.modules.material_manager import (
    MaterialManager, MaterialValidationError, file_type, format_file_size
)
from edunite.modules.notification_system import NotificationSystem, ToastNotifier, upload_error_message
from edunite.modules.report_generator import ReportGenerator
from edunite.modules.user_manager import UserManager, UserValidationError

# Initialize Flask application with correct template and static folders
app = Flask(__name__,
            template_folder='edunite/templates',
            static_folder='edunite/static')
init_config(app, os.environ.get('FLASK_ENV'))

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
)
logger = logging.getLogger(__name__)


def current_token():
    """Token provider for the backend client"""
    if not has_request_context():
        return None
    return session.get(AuthManager.TOKEN_KEY)


# Initialize system components
api_client = ApiClient(app.config['API_BASE_URL'], app.config['API_TIMEOUT'], token_provider=current_token)
api = EduniteAPI(api_client, app.config['UPLOAD_ENDPOINT'])
toast_notifier = ToastNotifier(app.config['TOAST_DEDUP_SECONDS'])
notification_system = NotificationSystem(toast_notifier, app.config['ACCESS_DENIED_SILENT_ENDPOINTS'])
auth_manager = AuthManager(api.auth)
attendance_manager = AttendanceManager()
user_manager = UserManager()
class_manager = ClassManager()
material_manager = MaterialManager(api.teacher, api.common)
report_generator = ReportGenerator(attendance_manager)

role_required = auth_manager.role_required

UNEXPECTED_ERROR_MESSAGE = 'An unexpected error occurred. Please try again.'


def api_failure(error, fallback=None):
    """Report a failed backend call; an expired session is re-raised for the error handler"""
    action = notification_system.notify_api_error(error, fallback, request.endpoint)
    if action == NotificationSystem.ACTION_REAUTH:
        raise error
    return action


def redirect_back(default_endpoint, **values):
    """Redirect to the form's ``next`` path when it is local"""
    target = request.form.get('next') or ''
    if target.startswith('/') and not target.startswith('//'):
        return redirect(target)
    return redirect(url_for(default_endpoint, **values))


@app.errorhandler(UnauthorizedError)
def handle_unauthorized(error):
    """Session token rejected by the backend: sign out and return to the landing page"""
    auth_manager.logout()
    if request.path.startswith('/student/attendance/data'):
        return jsonify({'success': False, 'message': 'Session expired'}), 401
    return redirect(url_for('landing'))


@app.errorhandler(Exception)
def handle_unexpected_error(error):
    """Unexpected failure inside a view: log it and show a generic toast"""
    if isinstance(error, HTTPException):
        return error

    logger.error(f"Unexpected error on {request.path}: {str(error)}", exc_info=True)
    toast_notifier.error(UNEXPECTED_ERROR_MESSAGE)
    if request.is_json or request.path.startswith('/student/attendance/data'):
        return jsonify({'success': False, 'message': UNEXPECTED_ERROR_MESSAGE}), 500

    profile = auth_manager.current_profile()
    return render_template('error.html', dashboard_url=auth_manager.dashboard_route(profile)), 500


@app.context_processor
def inject_helpers():
    return {
        'current_user': auth_manager.current_profile(),
        'format_date': user_manager.format_date,
        'approval_label': user_manager.approval_label,
        'format_time': class_manager.format_time,
        'format_schedule': class_manager.format_schedule,
        'schedule_days': class_manager.schedule_days,
        'format_file_size': format_file_size,
        'file_type': file_type,
        'attendance_rating': attendance_manager.attendance_rating,
        'percentage_band': attendance_manager.percentage_band,
        'entity_id': entity_id,
    }


# Public pages

@app.route('/')
def landing():
    """Landing page; signed-in users go straight to their dashboard"""
    profile = auth_manager.current_profile()
    if profile and auth_manager.current_token():
        denied = auth_manager.check_access(profile)
        if denied == 'approval_pending':
            return redirect(url_for('approval_pending'))
        return redirect(auth_manager.dashboard_route(profile))
    return render_template('landing.html')


@app.route('/login', methods=['POST'])
def login():
    """Exchange an ID token for a portal session"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form
    id_token = (data.get('idToken') or '').strip()
    wants_json = request.is_json

    if not id_token:
        if wants_json:
            return jsonify({'success': False, 'message': 'ID token is required'}), 400
        toast_notifier.error('Please sign in with your Google account.')
        return redirect(url_for('landing'))

    user_data = {
        'uid': data.get('uid'),
        'email': data.get('email'),
        'displayName': data.get('displayName'),
        'photoURL': data.get('photoURL'),
    }

    try:
        result = auth_manager.login(id_token, user_data)
    except ApiError as e:
        logger.warning(f"Failed sign-in for {user_data.get('email')}: {e.message}")
        toast_notifier.error('Failed to sign in. Please try again.')
        if wants_json:
            return jsonify({'success': False, 'message': e.message}), e.status_code or 502
        return redirect(url_for('landing'))

    if result['status'] == 'pending':
        toast_notifier.info(result['message'])
        target = url_for('approval_pending')
    else:
        name = result['user'].get('displayName') or result['user'].get('name') or ''
        toast_notifier.success(f"Welcome, {name}!")
        target = auth_manager.dashboard_route(result['user'])

    if wants_json:
        return jsonify({'success': True, 'status': result['status'], 'redirect': target})
    return redirect(target)


@app.route('/logout')
def logout():
    """User logout"""
    auth_manager.logout()
    toast_notifier.success('Signed out successfully')
    return redirect(url_for('landing'))


@app.route('/approval-pending')
@auth_manager.login_required
def approval_pending():
    """Waiting page for accounts an admin has not approved yet"""
    profile = auth_manager.current_profile()
    try:
        profile = auth_manager.refresh_profile()
    except ApiError as e:
        api_failure(e)

    if profile and profile.get('isApproved'):
        return redirect(auth_manager.dashboard_route(profile))
    return render_template('approval_pending.html', profile=profile)


@app.route('/unauthorized')
def unauthorized():
    """Shown when a user opens another role's dashboard"""
    profile = auth_manager.current_profile()
    return render_template('unauthorized.html', dashboard_url=auth_manager.dashboard_route(profile))


@app.route('/health')
def health():
    """Liveness check"""
    return jsonify({
        'status': 'ok',
        'api_base_url': app.config['API_BASE_URL'],
        'modules': sorted(get_module_info()),
        'timestamp': datetime.now().isoformat()
    })


# Admin dashboard

@app.route('/admin')
@role_required('admin')
def admin_overview():
    """Admin dashboard with system overview"""
    stats = {}
    try:
        stats = unwrap_dict(api.admin.get_stats())
    except ApiError as e:
        api_failure(e, 'Failed to load statistics')

    role_distribution = [
        {'name': 'Students', 'value': stats.get('totalStudents') or 0},
        {'name': 'Teachers', 'value': stats.get('totalTeachers') or 0},
        {'name': 'Admins', 'value': stats.get('totalAdmins') or 1},
    ]
    return render_template('admin/overview.html', stats=stats, role_distribution=role_distribution)


@app.route('/admin/requests')
@role_required('admin')
def admin_requests():
    """Pending, approved and rejected access requests"""
    status = request.args.get('status', 'all')
    search = request.args.get('search', '')
    requests_list, stats = [], user_manager.request_statistics(None)

    try:
        response = api.admin.get_user_requests(status)
        requests_list = user_manager.filter_requests(unwrap_list(response, 'requests'), search, status)
        stats = user_manager.request_statistics(unwrap_dict(find_key(response, 'stats')))
    except ApiError as e:
        api_failure(e, 'Failed to load user requests')

    return render_template('admin/requests.html', requests=requests_list, stats=stats,
                           status=status, search=search, roles=UserManager.VALID_ROLES)


@app.route('/admin/requests/<request_id>/approve', methods=['POST'])
@role_required('admin')
def admin_approve_request(request_id):
    try:
        role = user_manager.validate_role(request.form.get('role'))
        api.admin.approve_user(request_id, role, request.form.get('adminNotes', '').strip())
        toast_notifier.success('User approved successfully')
        logger.info(f"Request {request_id} approved as {role}")
    except UserValidationError as e:
        toast_notifier.error(str(e))
    except ApiError as e:
        api_failure(e, 'Failed to approve user')
    return redirect_back('admin_requests')


@app.route('/admin/requests/<request_id>/reject', methods=['POST'])
@role_required('admin')
def admin_reject_request(request_id):
    try:
        api.admin.reject_user(request_id, request.form.get('adminNotes', '').strip())
        toast_notifier.success('User request rejected')
        logger.info(f"Request {request_id} rejected")
    except ApiError as e:
        api_failure(e, 'Failed to reject user')
    return redirect_back('admin_requests')


def load_users():
    try:
        return unwrap_list(api.admin.get_all_users(), 'users')
    except ApiError as e:
        api_failure(e, 'Failed to load users')
        return []


@app.route('/admin/students')
@role_required('admin')
def admin_students():
    search = request.args.get('search', '')
    status = request.args.get('status', 'all')
    grade = request.args.get('grade', 'all')

    students = [user for user in load_users() if user.get('role') == 'student']
    filtered = user_manager.filter_students(students, search, status, grade)

    return render_template('admin/students.html', students=filtered,
                           counts=user_manager.approval_counts(students),
                           grades=user_manager.unique_grades(students),
                           search=search, status=status, grade=grade,
                           roles=UserManager.VALID_ROLES)


@app.route('/admin/teachers')
@role_required('admin')
def admin_teachers():
    search = request.args.get('search', '')
    status = request.args.get('status', 'all')

    teachers = [user for user in load_users() if user.get('role') == 'teacher']
    filtered = user_manager.filter_teachers(teachers, search, status)

    return render_template('admin/teachers.html', teachers=filtered,
                           counts=user_manager.approval_counts(teachers),
                           search=search, status=status, roles=UserManager.VALID_ROLES)


@app.route('/admin/users/<user_id>/role', methods=['POST'])
@role_required('admin')
def admin_update_role(user_id):
    try:
        role = user_manager.validate_role(request.form.get('role'))
        api.admin.update_user_role(user_id, role)
        toast_notifier.success('User role updated successfully')
        logger.info(f"User {user_id} role changed to {role}")
    except UserValidationError as e:
        toast_notifier.error(str(e))
    except ApiError as e:
        api_failure(e, 'Failed to update user role')
    return redirect_back('admin_students')


@app.route('/admin/users/<user_id>/delete', methods=['POST'])
@role_required('admin')
def admin_delete_user(user_id):
    try:
        api.admin.delete_user(user_id)
        toast_notifier.success('User deleted successfully')
        logger.info(f"User {user_id} deleted")
    except ApiError as e:
        api_failure(e, 'Failed to delete user')
    return redirect_back('admin_students')


@app.route('/admin/classes')
@role_required('admin')
def admin_classes():
    search = request.args.get('search', '')
    editing_id = request.args.get('edit')
    classes = []

    try:
        classes = unwrap_list(api.admin.get_classes(), 'classes')
    except ApiError as e:
        api_failure(e, 'Failed to load classes')

    teachers = user_manager.split_by_role(load_users())['teachers']
    editing = None
    if editing_id:
        match = next((cls for cls in classes if entity_id(cls) == editing_id), None)
        editing = class_manager.class_form_data(match) if match else None

    return render_template('admin/classes.html', classes=class_manager.filter_classes(classes, search),
                           teachers=teachers, editing=editing, search=search)


@app.route('/admin/classes', methods=['POST'])
@role_required('admin')
def admin_create_class():
    try:
        class_data = class_manager.validate_class_form(request.form)
        api.admin.create_class(class_data)
        toast_notifier.success('Class created successfully')
    except ClassValidationError as e:
        toast_notifier.error(str(e))
    except ApiError as e:
        api_failure(e, 'Failed to save class')
    return redirect(url_for('admin_classes'))


@app.route('/admin/classes/<class_id>/update', methods=['POST'])
@role_required('admin')
def admin_update_class(class_id):
    try:
        class_data = class_manager.validate_class_form(request.form)
        api.admin.update_class(class_id, class_data)
        toast_notifier.success('Class updated successfully')
    except ClassValidationError as e:
        toast_notifier.error(str(e))
        return redirect(url_for('admin_classes', edit=class_id))
    except ApiError as e:
        api_failure(e, 'Failed to save class')
    return redirect(url_for('admin_classes'))


@app.route('/admin/classes/<class_id>/delete', methods=['POST'])
@role_required('admin')
def admin_delete_class(class_id):
    try:
        api.admin.delete_class(class_id)
        toast_notifier.success('Class deleted successfully')
    except ApiError as e:
        api_failure(e, 'Failed to delete class')
    return redirect(url_for('admin_classes'))


@app.route('/admin/classes/<class_id>/assign-teacher', methods=['POST'])
@role_required('admin')
def admin_assign_teacher(class_id):
    teacher_id = request.form.get('teacherId', '').strip()
    if not teacher_id:
        toast_notifier.error('Please select a teacher')
        return redirect(url_for('admin_classes'))
    try:
        api.admin.assign_teacher(class_id, teacher_id)
        toast_notifier.success('Teacher assigned successfully')
    except ApiError as e:
        api_failure(e, 'Failed to assign teacher')
    return redirect(url_for('admin_classes'))


def admin_attendance_filters():
    """Filters from the query string with the one year default range"""
    today = date.today()
    lookback = app.config['ADMIN_ATTENDANCE_LOOKBACK_DAYS']
    return {
        'startDate': request.args.get('startDate') or (today - timedelta(days=lookback)).isoformat(),
        'endDate': request.args.get('endDate') or (today + timedelta(days=1)).isoformat(),
        'classId': request.args.get('classId', ''),
        'teacherId': request.args.get('teacherId', ''),
    }


def load_admin_attendance(filters):
    params = dict(filters, limit=app.config['ADMIN_ATTENDANCE_LIMIT'])
    try:
        return unwrap_list(api.admin.get_attendance(params), 'attendance')
    except ApiError as e:
        api_failure(e, 'Failed to load attendance data')
        return []


@app.route('/admin/attendance')
@role_required('admin')
def admin_attendance():
    """Attendance reports: overview, per student and per teacher tabs"""
    tab = request.args.get('tab', 'overview')
    if tab not in ('overview', 'students', 'teachers'):
        tab = 'overview'
    search = request.args.get('search', '')
    filters = admin_attendance_filters()

    users = user_manager.split_by_role(load_users(), approved_only=True)
    classes = []
    try:
        classes = unwrap_list(api.admin.get_classes(), 'classes')
    except ApiError as e:
        api_failure(e, 'Failed to load initial data')

    sessions = load_admin_attendance(filters)

    return render_template('admin/attendance.html',
                           tab=tab, search=search, filters=filters,
                           classes=classes, teachers=users['teachers'],
                           sessions=sessions,
                           stats=attendance_manager.session_statistics(sessions),
                           student_rows=attendance_manager.student_attendance(sessions, search),
                           teacher_rows=attendance_manager.teacher_attendance(sessions, search),
                           session_percentage=attendance_manager.session_present_percentage)


@app.route('/admin/attendance/export')
@role_required('admin')
def admin_attendance_export():
    """Download the student or teacher attendance summary"""
    report_type = request.args.get('type', 'students')
    output_format = request.args.get('format', app.config['REPORTS_DEFAULT_FORMAT'])
    search = request.args.get('search', '')
    filters = admin_attendance_filters()

    sessions = load_admin_attendance(filters)
    if report_type == 'teachers':
        rows = attendance_manager.teacher_attendance(sessions, search)
    else:
        rows = attendance_manager.student_attendance(sessions, search)

    result = report_generator.generate_attendance_report(
        report_type, rows, attendance_manager.session_statistics(sessions),
        dict(filters, search=search), output_format
    )
    if not result['success']:
        toast_notifier.error(result['error'])
        return redirect(url_for('admin_attendance', tab=report_type, **filters))

    return send_file(io.BytesIO(result['content']), mimetype=result['mimetype'],
                     as_attachment=True, download_name=result['filename'])


# Teacher dashboard

def load_teacher_classes():
    try:
        return unwrap_list(api.teacher.get_my_classes(), 'classes')
    except ApiError as e:
        api_failure(e, 'Failed to load classes')
        return []


@app.route('/teacher')
@role_required('teacher')
def teacher_overview():
    stats, error = {}, None
    try:
        stats = unwrap_dict(api.teacher.get_stats())
    except ApiError as e:
        if api_failure(e, 'Failed to load statistics') == NotificationSystem.ACTION_SILENT:
            error = 'Access denied. Please ensure your account is approved.'
        else:
            error = 'Failed to load statistics'
    return render_template('teacher/overview.html', stats=stats, error=error)


@app.route('/teacher/profile', methods=['GET', 'POST'])
@role_required('teacher')
def teacher_profile():
    if request.method == 'POST':
        try:
            api.teacher.update_profile(user_manager.teacher_profile_payload(request.form))
            toast_notifier.success('Profile updated successfully')
            try:
                auth_manager.refresh_profile()
            except ApiError as e:
                logger.warning(f"Profile refresh after update failed: {e.message}")
            return redirect(url_for('teacher_profile'))
        except UserValidationError as e:
            toast_notifier.error(str(e))
        except ApiError as e:
            api_failure(e, 'Failed to update profile')
        return render_template('teacher/profile.html', form=request.form)

    user = auth_manager.current_profile()
    try:
        user = unwrap_dict(api.teacher.get_profile(), 'user') or user
    except ApiError as e:
        api_failure(e, 'Failed to load profile')
    return render_template('teacher/profile.html', form=user_manager.teacher_profile_form(user))


@app.route('/teacher/timetable')
@role_required('teacher')
def teacher_timetable():
    week_of = date.today()
    if request.args.get('week'):
        try:
            week_of = date.fromisoformat(request.args['week'])
        except ValueError:
            toast_notifier.warning('Invalid week, showing the current week')

    timetable = []
    try:
        timetable = unwrap_list(api.teacher.get_timetable(), 'timetable')
    except ApiError as e:
        api_failure(e, 'Failed to load timetable data')

    editing_id = request.args.get('edit')
    editing = next((entry for entry in timetable if entity_id(entry) == editing_id), None) if editing_id else None

    return render_template('teacher/timetable.html',
                           week=class_manager.week_view(timetable, week_of),
                           previous_week=(week_of - timedelta(days=7)).isoformat(),
                           next_week=(week_of + timedelta(days=7)).isoformat(),
                           classes=load_teacher_classes(), days=WEEK_DAYS, editing=editing)


@app.route('/teacher/timetable', methods=['POST'])
@role_required('teacher')
def teacher_create_timetable_entry():
    try:
        api.teacher.create_timetable_entry(class_manager.validate_timetable_entry(request.form))
        toast_notifier.success('Timetable entry created successfully')
    except ClassValidationError as e:
        toast_notifier.error(str(e))
    except ApiError as e:
        api_failure(e, 'Failed to save timetable entry')
    return redirect(url_for('teacher_timetable'))


@app.route('/teacher/timetable/<entry_id>/update', methods=['POST'])
@role_required('teacher')
def teacher_update_timetable_entry(entry_id):
    try:
        api.teacher.update_timetable_entry(entry_id, class_manager.validate_timetable_entry(request.form))
        toast_notifier.success('Timetable entry updated successfully')
    except ClassValidationError as e:
        toast_notifier.error(str(e))
        return redirect(url_for('teacher_timetable', edit=entry_id))
    except ApiError as e:
        api_failure(e, 'Failed to save timetable entry')
    return redirect(url_for('teacher_timetable'))


@app.route('/teacher/timetable/<entry_id>/delete', methods=['POST'])
@role_required('teacher')
def teacher_delete_timetable_entry(entry_id):
    try:
        api.teacher.delete_timetable_entry(entry_id)
        toast_notifier.success('Timetable entry deleted successfully')
    except ApiError as e:
        api_failure(e, 'Failed to delete timetable entry')
    return redirect(url_for('teacher_timetable'))


def load_class_roster(class_id, classes):
    """Students of a class picked from the full student list by grade and subject"""
    class_doc = next((cls for cls in classes if entity_id(cls) == class_id), None)
    if not class_doc:
        return []
    students = unwrap_list(api.teacher.get_all_students(), 'students')
    roster = attendance_manager.students_for_class(students, class_doc)
    logger.info(f"Matched {len(roster)} of {len(students)} students to class {class_id}")
    return roster


@app.route('/teacher/attendance')
@role_required('teacher')
def teacher_attendance():
    """Attendance marking form for one class and date"""
    class_id = request.args.get('classId', '')
    attendance_date = request.args.get('date') or date.today().isoformat()
    classes = load_teacher_classes()
    students, statuses = [], {}

    if class_id:
        try:
            response = api.teacher.get_students_for_attendance(class_id, attendance_date)
            students = unwrap_list(response, 'students')
            existing = find_key(response, 'existingAttendance')
            if not isinstance(existing, dict) or 'students' not in existing:
                existing = None
            if not students:
                students = load_class_roster(class_id, classes)
            statuses = attendance_manager.initial_statuses(students, existing)
        except ApiError as e:
            api_failure(e, 'Failed to load students for attendance')

    return render_template('teacher/attendance.html',
                           classes=classes, class_id=class_id,
                           attendance_date=attendance_date, students=students, statuses=statuses,
                           roster=attendance_manager.roster_statistics(students, statuses),
                           status_options=attendance_manager.STATUSES)


@app.route('/teacher/attendance', methods=['POST'])
@role_required('teacher')
def teacher_mark_attendance():
    class_id = request.form.get('classId', '')
    attendance_date = request.form.get('date', '')
    statuses = {
        key[len('status_'):]: value
        for key, value in request.form.items()
        if key.startswith('status_')
    }

    try:
        submission = attendance_manager.build_attendance_submission(
            class_id, attendance_date, statuses, request.form.get('location', '')
        )
        api.teacher.mark_attendance(submission)
        toast_notifier.success('Attendance marked successfully')
        logger.info(f"Attendance marked for class {class_id} on {attendance_date}")
        return redirect(url_for('teacher_attendance'))
    except AttendanceValidationError as e:
        toast_notifier.error(str(e))
    except ApiError as e:
        api_failure(e, 'Failed to mark attendance')
    return redirect(url_for('teacher_attendance', classId=class_id, date=attendance_date))


@app.route('/teacher/attendance/history')
@role_required('teacher')
def teacher_attendance_history():
    class_id = request.args.get('classId', '')
    start_date = request.args.get('startDate', '')
    end_date = request.args.get('endDate', '')
    history = None

    if 'classId' in request.args and not class_id:
        toast_notifier.error('Please select a class to view history')
    elif class_id:
        try:
            response = api.teacher.get_attendance_history(class_id, start_date, end_date)
            history = attendance_manager.summarize_history(unwrap_list(response, 'history', 'attendance'))
        except ApiError as e:
            api_failure(e, 'Failed to load attendance history')

    return render_template('teacher/attendance_history.html',
                           classes=load_teacher_classes(), class_id=class_id,
                           start_date=start_date, end_date=end_date, history=history)


@app.route('/teacher/materials')
@role_required('teacher')
def teacher_materials():
    search = request.args.get('search', '')
    class_filter = request.args.get('classId', 'all')
    type_filter = request.args.get('type', 'all')
    materials = []

    try:
        materials = unwrap_list(api.teacher.get_materials(), 'studyMaterials', 'materials')
    except ApiError as e:
        api_failure(e, 'Failed to load materials')

    return render_template('teacher/materials.html',
                           materials=material_manager.filter_teacher_materials(
                               materials, search, class_filter, type_filter),
                           classes=load_teacher_classes(), search=search,
                           class_filter=class_filter, type_filter=type_filter)


@app.route('/teacher/materials/upload', methods=['POST'])
@role_required('teacher')
def teacher_upload_material():
    try:
        material_manager.upload_material(request.form, request.files.getlist('files'))
        toast_notifier.success('Materials uploaded successfully')
    except MaterialValidationError as e:
        toast_notifier.error(str(e))
    except UnauthorizedError:
        raise
    except ApiError as e:
        logger.error(f"Error uploading materials: {str(e)}")
        toast_notifier.error(upload_error_message(e))
    return redirect(url_for('teacher_materials'))


@app.route('/teacher/materials/<material_id>/delete', methods=['POST'])
@role_required('teacher')
def teacher_delete_material(material_id):
    try:
        api.teacher.delete_material(material_id)
        toast_notifier.success('Material deleted successfully')
    except ApiError as e:
        api_failure(e, 'Failed to delete material')
    return redirect(url_for('teacher_materials'))


# Student dashboard

@app.route('/student')
@role_required('student')
def student_overview():
    stats, error = {}, None
    try:
        stats = unwrap_dict(api.student.get_stats())
    except ApiError as e:
        if api_failure(e, 'Failed to load dashboard statistics') == NotificationSystem.ACTION_SILENT:
            error = 'Access denied. Please ensure your account is approved.'
        else:
            error = 'Failed to load dashboard statistics'
    return render_template('student/overview.html', stats=stats, error=error)


@app.route('/student/profile', methods=['GET', 'POST'])
@role_required('student')
def student_profile():
    if request.method == 'POST':
        try:
            payload = user_manager.student_profile_payload(request.form)
            api.student.update_profile(payload)
            auth_manager.update_profile(payload)
            toast_notifier.success('Profile updated successfully')
            return redirect(url_for('student_profile'))
        except UserValidationError as e:
            toast_notifier.error(str(e))
        except ApiError as e:
            api_failure(e, 'Failed to update profile')
        return render_template('student/profile.html', form=request.form)

    user = auth_manager.current_profile()
    try:
        user = unwrap_dict(api.auth.get_profile(), 'user') or user
    except ApiError as e:
        api_failure(e, 'Failed to load profile')
    return render_template('student/profile.html', form=user_manager.student_profile_form(user))


@app.route('/student/classes')
@role_required('student')
def student_classes():
    classes, weekly_schedule = [], {}
    try:
        classes = unwrap_list(api.student.get_classes(), 'classes')
    except ApiError as e:
        api_failure(e, 'Failed to load classes')

    try:
        weekly_schedule = find_key(api.student.get_timetable(), 'weeklySchedule') or {}
    except ApiError as e:
        api_failure(e, 'Failed to load timetable')

    return render_template('student/classes.html', classes=classes, days=WEEK_DAYS,
                           weekly_schedule=weekly_schedule if isinstance(weekly_schedule, dict) else {})


@app.route('/student/materials')
@role_required('student')
def student_materials():
    search = request.args.get('search', '')
    subject = request.args.get('subject', 'all')
    sort_by = request.args.get('sort', 'newest')
    materials = []

    try:
        materials = unwrap_list(api.student.get_materials(''), 'materials', 'studyMaterials')
    except ApiError as e:
        api_failure(e, 'Failed to load study materials')

    return render_template('student/materials.html',
                           materials=material_manager.filter_student_materials(materials, search, subject, sort_by),
                           subjects=material_manager.material_subjects(materials),
                           search=search, subject=subject, sort_by=sort_by,
                           sort_options=MaterialManager.SORT_OPTIONS)


@app.route('/student/materials/<material_id>/download')
@role_required('student')
def student_download_material(material_id):
    filename = request.args.get('name') or f'material-{material_id}'
    try:
        content = api.student.download_material(material_id)
    except ApiError as e:
        api_failure(e, 'Failed to download file')
        return redirect(url_for('student_materials'))

    logger.info(f"Material {material_id} downloaded")
    return send_file(io.BytesIO(content), as_attachment=True, download_name=filename)


def student_attendance_data(period):
    start_date, end_date = attendance_manager.period_range(period)
    response = api.student.get_attendance(start_date, end_date)
    records = unwrap_list(response, 'attendance', 'attendanceRecords')
    statistics = find_key(response, 'statistics')

    return {
        'period': {'name': period, 'startDate': start_date, 'endDate': end_date},
        'records': records,
        'overall': attendance_manager.overall_statistics(records, statistics if isinstance(statistics, dict) else None),
        'daily': attendance_manager.daily_breakdown(records),
        'subjects': attendance_manager.subject_breakdown(records),
    }


@app.route('/student/attendance')
@role_required('student')
def student_attendance():
    period = request.args.get('period', 'thisMonth')
    data = {'records': [], 'overall': attendance_manager.overall_statistics([]), 'daily': [], 'subjects': []}
    try:
        data = student_attendance_data(period)
    except ApiError as e:
        api_failure(e, 'Failed to load attendance data')

    return render_template('student/attendance.html', period=period,
                           periods=AttendanceManager.PERIOD_DAYS, data=data,
                           record_subject=attendance_manager.record_subject,
                           record_date=attendance_manager.record_date)


@app.route('/student/attendance/data')
@role_required('student')
def student_attendance_json():
    """Chart data for the attendance page"""
    period = request.args.get('period', 'thisMonth')
    try:
        data = student_attendance_data(period)
        data.pop('records')
        return jsonify({'success': True, **data})
    except UnauthorizedError:
        raise
    except ApiError as e:
        logger.error(f"Attendance chart data error: {str(e)}")
        return jsonify({'success': False, 'message': 'Failed to load attendance data'}), e.status_code or 502


if __name__ == '__main__':
    # Run the application
    app.run(
        host=os.environ.get('HOST', '127.0.0.1'),
        port=int(os.environ.get('PORT', 5000)),
        debug=app.config.get('DEBUG', False)
    )
