from flask import Blueprint, Response, request, jsonify
from services import reports
from services.errors import ValidationError
from services.permissions import EXPORT_CLASS_DATA, VIEW_REPORTS, require
from utils.session import current_actor, login_required

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


def _class_args():
    grade_level = request.args.get('grade_level')
    section = request.args.get('section')
    if not grade_level or not section:
        raise ValidationError('grade_level and section are required')
    return grade_level, section


@reports_bp.route('/dashboard')
@login_required('admin', 'teacher')
def dashboard():
    require(current_actor(), VIEW_REPORTS)
    return jsonify({'success': True, **reports.dashboard_counts(request.args.get('date'))})


@reports_bp.route('/class_summary')
@login_required('admin', 'teacher')
def class_summary():
    require(current_actor(), VIEW_REPORTS)
    grade_level, section = _class_args()
    summary = reports.class_summary(grade_level, section, request.args.get('date'))
    return jsonify({'success': True, 'summary': summary})


@reports_bp.route('/sf2')
@login_required('admin', 'teacher')
def sf2():
    """School Form 2: attendance summary per pupil"""
    require(current_actor(), VIEW_REPORTS)
    grade_level, section = _class_args()
    rows = reports.sf2_rows(grade_level, section, request.args.get('start'), request.args.get('end'))
    return jsonify({'success': True, 'rows': rows})


@reports_bp.route('/sf2.csv')
@login_required('admin', 'teacher')
def sf2_csv():
    require(current_actor(), EXPORT_CLASS_DATA)
    grade_level, section = _class_args()
    rows = reports.sf2_rows(grade_level, section, request.args.get('start'), request.args.get('end'))
    filename = f"SF2_Grade{grade_level}_{section}.csv"
    return Response(
        reports.to_csv(rows, reports.SF2_HEADERS),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@reports_bp.route('/sf9')
@login_required('admin', 'teacher')
def sf9():
    """School Form 9: report card rows"""
    require(current_actor(), VIEW_REPORTS)
    grade_level, section = _class_args()
    return jsonify({'success': True, 'rows': reports.sf9_rows(grade_level, section)})
