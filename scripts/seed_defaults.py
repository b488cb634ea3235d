"""Seed default subjects for Grades 1-6 and the default school settings.

Run with:

    python scripts/seed_defaults.py

This script is idempotent and will only create missing records.
"""
import sys
from datetime import time
from pathlib import Path

# When this script is executed as `python scripts/seed_defaults.py` the
# interpreter's sys.path[0] is the `scripts/` directory, so `app` (at the
# project root) isn't importable. Add the project root to sys.path so
# imports work whether run from the project root or from other places.
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))

from models import db, Subject, SystemSetting
from services.rules import DEFAULT_TIMEZONE, GRADE_LEVELS, LATE_THRESHOLD_MINUTES, MINIMUM_ATTENDANCE_RATE

# (code, name, start, end); Mother Tongue is taught in Grades 1-3 only
SUBJECTS = [
    ('MT', 'Mother Tongue', time(7, 30), time(8, 20)),
    ('FIL', 'Filipino', time(8, 20), time(9, 10)),
    ('ENG', 'English', time(9, 30), time(10, 20)),
    ('MATH', 'Mathematics', time(10, 20), time(11, 10)),
    ('SCI', 'Science', time(13, 0), time(13, 50)),
    ('AP', 'Araling Panlipunan', time(13, 50), time(14, 40)),
    ('ESP', 'Edukasyon sa Pagpapakatao', time(14, 40), time(15, 20)),
    ('MAPEH', 'MAPEH', time(15, 20), time(16, 10)),
    ('EPP', 'EPP/TLE', time(7, 30), time(8, 20)),
]

DEFAULT_SETTINGS = [
    ('general', 'school_name', 'Elementary School', 'Name printed on school forms'),
    ('general', 'timezone', DEFAULT_TIMEZONE, 'Timezone used for dates and lateness'),
    ('attendance', 'late_threshold_minutes', LATE_THRESHOLD_MINUTES, 'Minutes after class start before a pupil is late'),
    ('attendance', 'minimum_rate', MINIMUM_ATTENDANCE_RATE, 'Attendance rate (%) below which a pupil is flagged'),
]


def subjects_for(grade_level):
    for code, name, start, end in SUBJECTS:
        if code == 'MT' and grade_level > 3:
            continue
        if code == 'EPP' and grade_level < 4:
            continue
        yield code, name, start, end


def seed():
    created = {'subjects': [], 'settings': []}

    for grade_level in GRADE_LEVELS:
        for code, name, start, end in subjects_for(grade_level):
            if not Subject.query.filter_by(code=code, grade_level=grade_level).first():
                db.session.add(Subject(code=code, name=name, grade_level=grade_level,
                                       start_time=start, end_time=end))
                created['subjects'].append(f'{code}-{grade_level}')

    for category, key, value, description in DEFAULT_SETTINGS:
        if not SystemSetting.query.filter_by(category=category, key=key).first():
            SystemSetting.upsert_setting(category, key, value, description)
            created['settings'].append(f'{category}.{key}')

    if created['subjects'] or created['settings']:
        db.session.commit()

    print('Created subjects:', created['subjects'])
    print('Created settings:', created['settings'])
    return created


if __name__ == '__main__':
    from app import app

    with app.app_context():
        seed()
