from datetime import datetime
import uuid

from . import db


class AttendanceStatus:
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    EXCUSED = 'excused'

    ALL = (PRESENT, ABSENT, LATE, EXCUSED)


class Attendance(db.Model):
    """Attendance of one pupil in one subject on one day"""

    __tablename__ = 'attendance'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pupil_id = db.Column(db.String(36), db.ForeignKey('pupils.id'), nullable=False, index=True)
    subject_id = db.Column(db.String(36), db.ForeignKey('subjects.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)  # present, absent, late, excused
    time_in = db.Column(db.Time, nullable=True)
    remarks = db.Column(db.String(255), nullable=True)
    excuse_reason = db.Column(db.String(255), nullable=True)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    pupil = db.relationship('Pupil', backref='attendance_records')
    subject = db.relationship('Subject', backref='attendance_records')
    teacher = db.relationship('User', backref='attendance_records')

    # Constraints
    __table_args__ = (
        db.UniqueConstraint('pupil_id', 'subject_id', 'date', name='unique_pupil_subject_date_attendance'),
    )

    def __repr__(self):
        return f"<Attendance {self.pupil_id} {self.subject_id} on {self.date}: {self.status}>"

    def snapshot(self):
        """Values recorded in the audit trail"""
        return {
            'pupil_id': self.pupil_id,
            'subject_id': self.subject_id,
            'date': self.date.isoformat() if self.date else None,
            'status': self.status,
            'time_in': self.time_in.strftime('%H:%M:%S') if self.time_in else None,
            'remarks': self.remarks,
            'excuse_reason': self.excuse_reason,
            'teacher_id': self.teacher_id,
        }

    def to_dict(self):
        data = self.snapshot()
        data['id'] = self.id
        return data
