from flask import Blueprint, request, jsonify
from models.teacher_assignment import TeacherClass
from models.subject import Subject
from services import attendance, grades, pupils
from services.errors import PortalError, ValidationError
from services.permissions import MARK_ATTENDANCE, VIEW_PUPILS, require
from services.promotion import archive_pupil
from services.rules import classify_grade, resolve_school_year
from utils.session import current_actor, login_required
from utils.settings import SystemSettings

teacher_bp = Blueprint('teacher', __name__, url_prefix='/teacher')

STAFF_ROLES = ('teacher', 'admin')


def _json_body():
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('No data provided')
    return data


@teacher_bp.route('/classes')
@login_required(*STAFF_ROLES)
def my_classes():
    """Classes assigned to the signed-in teacher for a school year"""
    actor = current_actor()
    school_year = request.args.get('school_year') or resolve_school_year(
        SystemSettings.school_today(), SystemSettings.get_timezone())
    assignments = (TeacherClass.query
                   .filter_by(teacher_id=actor.id, school_year=school_year)
                   .order_by(TeacherClass.grade_level, TeacherClass.section)
                   .all())
    return jsonify({
        'success': True,
        'school_year': school_year,
        'classes': [a.to_dict() for a in assignments],
    })


@teacher_bp.route('/subjects')
@login_required(*STAFF_ROLES)
def list_subjects():
    query = Subject.query
    grade_level = request.args.get('grade_level', type=int)
    if grade_level:
        query = query.filter_by(grade_level=grade_level)
    subjects = query.order_by(Subject.grade_level, Subject.start_time, Subject.name).all()
    return jsonify({'success': True, 'subjects': [s.to_dict() for s in subjects]})


# ---------------------------------------------------------------------------
# Pupils
# ---------------------------------------------------------------------------

@teacher_bp.route('/pupils')
@login_required(*STAFF_ROLES)
def search_pupils():
    require(current_actor(), VIEW_PUPILS)
    args = request.args
    is_4ps = args.get('is_4ps')
    results = pupils.search_pupils(
        term=args.get('q', ''),
        grade_level=args.get('grade_level'),
        section=args.get('section'),
        gender=args.get('gender'),
        is_4ps=None if is_4ps is None else is_4ps == 'true',
        include_archived=args.get('include_archived') == 'true',
    )
    return jsonify({'success': True, 'pupils': [p.to_dict() for p in results]})


@teacher_bp.route('/pupils', methods=['POST'])
@login_required(*STAFF_ROLES)
def create_pupil():
    pupil = pupils.create_pupil(current_actor(), _json_body())
    return jsonify({'success': True, 'pupil': pupil.to_dict()}), 201


@teacher_bp.route('/pupils/<pupil_id>')
@login_required(*STAFF_ROLES)
def get_pupil(pupil_id):
    require(current_actor(), VIEW_PUPILS)
    return jsonify({'success': True, 'pupil': pupils.get_pupil(pupil_id).to_dict()})


@teacher_bp.route('/pupils/<pupil_id>', methods=['PUT', 'PATCH'])
@login_required(*STAFF_ROLES)
def update_pupil(pupil_id):
    pupil = pupils.update_pupil(current_actor(), pupil_id, _json_body())
    return jsonify({'success': True, 'pupil': pupil.to_dict()})


@teacher_bp.route('/pupils/<pupil_id>/archive', methods=['POST'])
@login_required(*STAFF_ROLES)
def archive(pupil_id):
    restore = (request.get_json(silent=True) or {}).get('restore', False)
    pupil = archive_pupil(current_actor(), pupil_id, archive=not restore)
    return jsonify({'success': True, 'pupil': pupil.to_dict()})


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------

@teacher_bp.route('/attendance')
@login_required(*STAFF_ROLES)
def list_attendance():
    require(current_actor(), MARK_ATTENDANCE)
    subject_id = request.args.get('subject_id')
    if not subject_id:
        raise ValidationError('subject_id is required')
    records = attendance.list_attendance(subject_id, request.args.get('date'))
    return jsonify({'success': True, 'attendance': [r.to_dict() for r in records]})


@teacher_bp.route('/attendance', methods=['POST'])
@login_required(*STAFF_ROLES)
def save_attendance():
    """Save attendance for a list of pupils in one subject and date"""
    actor = current_actor()
    data = _json_body()
    subject_id = data.get('subject_id')
    attendance_date = data.get('date')
    entries = data.get('entries', [])

    if not subject_id or not attendance_date:
        raise ValidationError('Missing required fields')

    saved, errors = [], []
    for entry in entries:
        try:
            record = attendance.mark_attendance(
                actor, entry.get('pupil_id'), subject_id, attendance_date,
                entry.get('status'), entry.get('time_in'), entry.get('remarks'),
            )
            saved.append(record.to_dict())
        except PortalError as e:
            errors.append({'pupil_id': entry.get('pupil_id'), 'error': e.kind, 'message': e.message})

    return jsonify({
        'success': not errors,
        'message': f'Attendance saved successfully for {len(saved)} pupils',
        'saved_count': len(saved),
        'records': saved,
        'errors': errors,
    })


@teacher_bp.route('/attendance/excuse', methods=['POST'])
@login_required(*STAFF_ROLES)
def excuse():
    data = _json_body()
    record = attendance.excuse_absence(
        current_actor(), data.get('pupil_id'), data.get('subject_id'), data.get('date'), data.get('reason'),
    )
    return jsonify({'success': True, 'record': record.to_dict()})


@teacher_bp.route('/attendance/summary/<pupil_id>')
@login_required(*STAFF_ROLES)
def attendance_summary(pupil_id):
    require(current_actor(), VIEW_PUPILS)
    stats = attendance.pupil_attendance_stats(pupil_id, request.args.get('start'), request.args.get('end'))
    return jsonify({'success': True, 'pupil_id': pupil_id, **stats})


# ---------------------------------------------------------------------------
# Grades
# ---------------------------------------------------------------------------

@teacher_bp.route('/grades', methods=['POST'])
@login_required(*STAFF_ROLES)
def save_grade():
    data = _json_body()
    grade = grades.save_grade(
        current_actor(), data.get('pupil_id'), data.get('subject_id'),
        data.get('quarter'), data.get('final_grade'), data.get('remarks'),
    )
    return jsonify({'success': True, 'grade': grade.to_dict()})


@teacher_bp.route('/grades/bulk', methods=['POST'])
@login_required(*STAFF_ROLES)
def save_grades():
    results = grades.save_class_grades(current_actor(), _json_body().get('entries', []))
    failed = [r._asdict() for r in results if r.error]
    return jsonify({
        'success': not failed,
        'saved_count': len(results) - len(failed),
        'results': [r._asdict() for r in results],
    })


@teacher_bp.route('/grades/finalize', methods=['POST'])
@login_required(*STAFF_ROLES)
def finalize_grades():
    data = _json_body()
    count = grades.finalize_quarter(
        current_actor(), data.get('grade_level'), data.get('section'),
        data.get('subject_id'), data.get('quarter'),
    )
    return jsonify({'success': True, 'finalized': count})


@teacher_bp.route('/grades/class_average')
@login_required(*STAFF_ROLES)
def class_average():
    require(current_actor(), VIEW_PUPILS)
    args = request.args
    value = grades.class_average(args.get('grade_level'), args.get('section'),
                                 args.get('subject_id'), args.get('quarter'))
    return jsonify({
        'success': True,
        'average': value,
        'classification': classify_grade(value)._asdict() if value is not None else None,
    })


@teacher_bp.route('/pupils/<pupil_id>/grades')
@login_required(*STAFF_ROLES)
def pupil_grades(pupil_id):
    require(current_actor(), VIEW_PUPILS)
    pupils.get_pupil(pupil_id)
    return jsonify({
        'success': True,
        'grades': [g.to_dict() for g in grades.pupil_grades(pupil_id)],
        'quarterly_averages': grades.pupil_quarterly_averages(pupil_id),
        'final_average': grades.pupil_final_average(pupil_id),
        'trend': grades.pupil_grade_trend(pupil_id),
    })
