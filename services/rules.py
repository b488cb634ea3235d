"""
Pure school rules: grade descriptors, lateness, attendance rate, school year,
averaging and input validation.

Nothing in here touches the database; the other services call these to
validate input and derive values before persisting.
"""

import re
from collections import namedtuple
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

import pytz
from email_validator import validate_email, EmailNotValidError

from services.errors import ValidationError

DEFAULT_TIMEZONE = 'Asia/Manila'

GRADE_MIN = 0
GRADE_MAX = 100
# Lowest grade the grade entry form accepts (DepEd transmutation floor)
GRADE_ENTRY_MIN = 60

LATE_THRESHOLD_MINUTES = 15
MINIMUM_ATTENDANCE_RATE = 75

GRADE_LEVELS = (1, 2, 3, 4, 5, 6)
QUARTERS = (1, 2, 3, 4)
# Promotion target meaning "graduated from Grade 6"
GRADUATED = 7

GENDERS = ('male', 'female')

GradeClassification = namedtuple('GradeClassification', ['letter', 'label', 'color_tier'])

# (lower bound inclusive, classification), checked top-down
GRADE_BOUNDARIES = (
    (90, GradeClassification('A', 'Outstanding', 'green')),
    (85, GradeClassification('B', 'Very Satisfactory', 'blue')),
    (80, GradeClassification('C', 'Satisfactory', 'yellow')),
    (75, GradeClassification('D', 'Fairly Satisfactory', 'orange')),
    (GRADE_MIN, GradeClassification('F', 'Did Not Meet Expectations', 'red')),
)

_LRN_RE = re.compile(r'^\d{12}$')
_PHONE_RE = re.compile(r'^(\+63|0)?9\d{9}$')


def round2(value):
    """Round half up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def round_grade(value):
    return round2(_as_number(value, 'Grade'))


def _as_number(value, field='value'):
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        try:
            number = float(Decimal(str(value).strip()))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number")
    if number != number or number in (float('inf'), float('-inf')):
        raise ValidationError(f"{field} must be a finite number")
    return number


def classify_grade(score):
    """Return the DepEd descriptor for a 0-100 grade.

    Out-of-range scores are a caller error and raise ``ValidationError``
    rather than being clamped.
    """
    score = _as_number(score, 'Grade')
    if score < GRADE_MIN or score > GRADE_MAX:
        raise ValidationError(f"Grade must be between {GRADE_MIN} and {GRADE_MAX}")
    for lower, classification in GRADE_BOUNDARIES:
        if score >= lower:
            return classification
    return GRADE_BOUNDARIES[-1][1]


def parse_time(value, field='time'):
    """Coerce ``time``/``datetime``/'HH:MM[:SS]' to a time of day; None stays None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.time().replace(microsecond=0)
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in ('%H:%M:%S', '%H:%M'):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise ValidationError(f"Invalid {field}: {value!r} (expected HH:MM)")


def parse_date(value, field='date'):
    """Coerce ``date``/``datetime``/'YYYY-MM-DD' to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field}: {value!r} (expected YYYY-MM-DD)")


def is_late(time_in, class_start, threshold_minutes=LATE_THRESHOLD_MINUTES):
    """True when ``time_in`` is strictly after ``class_start`` + threshold.

    Only the time of day is compared. When either time is missing lateness
    cannot be determined and the pupil counts as not late.
    """
    time_in = parse_time(time_in, 'time in')
    class_start = parse_time(class_start, 'class start time')
    if time_in is None or class_start is None:
        return False
    base = date(2000, 1, 1)
    cutoff = datetime.combine(base, class_start) + timedelta(minutes=threshold_minutes)
    return datetime.combine(base, time_in) > cutoff


def attendance_rate(present, late, absent, excused):
    """Percentage of sessions attended; late still counts as attended."""
    counts = (present, late, absent, excused)
    if any(isinstance(c, bool) or not isinstance(c, int) or c < 0 for c in counts):
        raise ValidationError("Attendance counts must be non-negative integers")
    total = sum(counts)
    if total == 0:
        return 0
    return round2((present + late) / total * 100)


def resolve_school_year(today=None, tz_name=DEFAULT_TIMEZONE):
    """School year label ('2025-2026'); a new year starts every June 1."""
    if today is None:
        today = datetime.now(pytz.timezone(tz_name)).date()
    if today.month >= 6:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


def average(values):
    """Mean rounded to 2 decimals, or None when there is nothing to average."""
    numbers = [float(v) for v in values if v is not None]
    if not numbers:
        return None
    return round2(sum(numbers) / len(numbers))


def grade_trend(grades):
    """'improving', 'declining' or 'stable' comparing first and second half means."""
    grades = [g for g in grades if g is not None]
    if len(grades) < 2:
        return 'stable'
    middle = len(grades) // 2
    first_half, second_half = grades[:middle], grades[middle:]
    difference = sum(second_half) / len(second_half) - sum(first_half) / len(first_half)
    if difference > 2:
        return 'improving'
    if difference < -2:
        return 'declining'
    return 'stable'


def validate_entry_grade(value):
    """Validate a grade typed into the entry form and round it."""
    grade = _as_number(value, 'Final grade')
    if grade < GRADE_ENTRY_MIN or grade > GRADE_MAX:
        raise ValidationError(f"Final grade must be between {GRADE_ENTRY_MIN} and {GRADE_MAX}")
    return round2(grade)


def validate_quarter(value):
    try:
        quarter = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Quarter must be 1, 2, 3 or 4")
    if isinstance(value, bool) or quarter not in QUARTERS or str(quarter) != str(value).strip():
        raise ValidationError("Quarter must be 1, 2, 3 or 4")
    return quarter


def validate_grade_level(value, allow_graduated=False):
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid grade level: {value!r}")
    allowed = GRADE_LEVELS + ((GRADUATED,) if allow_graduated else ())
    if isinstance(value, bool) or level not in allowed:
        raise ValidationError(f"Invalid grade level: {value!r}")
    return level


def is_valid_lrn(lrn):
    """Learner Reference Number: exactly 12 digits."""
    return bool(lrn) and bool(_LRN_RE.match(str(lrn)))


def is_valid_phone_number(phone):
    """Philippine mobile number, e.g. 09171234567 or +639171234567."""
    if not phone:
        return False
    return bool(_PHONE_RE.match(re.sub(r'\s', '', phone)))


def validate_email_address(email):
    """Return the normalized address or raise ``ValidationError``."""
    try:
        return validate_email((email or '').strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}")
