from flask import Blueprint, request, jsonify
from services import attendance, grades, pupils
from services.errors import PermissionDenied
from services.permissions import VIEW_CHILD_ATTENDANCE, VIEW_CHILD_GRADES, VIEW_OWN_CHILDREN, require
from services.rules import classify_grade
from utils.session import current_actor, login_required
from utils.settings import SystemSettings

parent_bp = Blueprint('parent', __name__, url_prefix='/parent')


def _own_child(actor, pupil_id):
    """The pupil, provided it is linked to the signed-in parent"""
    pupil = pupils.get_pupil(pupil_id)
    if pupil.parent_id != actor.id:
        raise PermissionDenied('You can only view your own children')
    return pupil


@parent_bp.route('/api/children')
@login_required('parent')
def children():
    actor = require(current_actor(), VIEW_OWN_CHILDREN)
    results = pupils.search_pupils(parent_id=actor.id)
    return jsonify({'success': True, 'pupils': [p.to_dict() for p in results]})


@parent_bp.route('/api/pupil/<pupil_id>/grades')
@login_required('parent')
def child_grades(pupil_id):
    """Grades, averages and trend for one of the parent's children"""
    actor = require(current_actor(), VIEW_CHILD_GRADES)
    pupil = _own_child(actor, pupil_id)

    records = []
    for grade in grades.pupil_grades(pupil.id):
        item = grade.to_dict()
        item['classification'] = classify_grade(grade.final_grade)._asdict()
        records.append(item)

    final_average = grades.pupil_final_average(pupil.id)
    return jsonify({
        'success': True,
        'pupil': pupil.to_dict(),
        'grades': records,
        'quarterly_averages': grades.pupil_quarterly_averages(pupil.id),
        'final_average': final_average,
        'classification': classify_grade(final_average)._asdict() if final_average is not None else None,
        'trend': grades.pupil_grade_trend(pupil.id),
    })


@parent_bp.route('/api/pupil/<pupil_id>/attendance')
@login_required('parent')
def child_attendance(pupil_id):
    actor = require(current_actor(), VIEW_CHILD_ATTENDANCE)
    pupil = _own_child(actor, pupil_id)
    stats = attendance.pupil_attendance_stats(pupil.id, request.args.get('start'), request.args.get('end'))
    return jsonify({
        'success': True,
        'pupil_id': pupil.id,
        **stats,
        'below_minimum': stats['total'] > 0 and stats['rate'] < SystemSettings.get_minimum_attendance_rate(),
    })
