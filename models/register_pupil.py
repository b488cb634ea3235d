from datetime import datetime, date
import uuid

from . import db


class Pupil(db.Model):
    """Pupil (learner) record.

    ``grade_level`` and ``section`` together identify the pupil's class.
    Pupils are archived, never deleted; graduation is archival too.
    """

    __tablename__ = 'pupils'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Learner Reference Number, 12 digits, issued by DepEd
    lrn = db.Column(db.String(12), unique=True, nullable=False, index=True)

    # Basic info
    first_name = db.Column(db.String(120), nullable=False, index=True)
    middle_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=False, index=True)
    gender = db.Column(db.String(10), nullable=False, index=True)
    birth_date = db.Column(db.Date, nullable=False)
    address = db.Column(db.String(255), nullable=True)
    profile_picture = db.Column(db.String(500), nullable=True)

    # Class
    grade_level = db.Column(db.Integer, nullable=False, index=True)
    section = db.Column(db.String(80), nullable=False, index=True)

    # Guardian (parent account)
    parent_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)

    is_4ps_beneficiary = db.Column(db.Boolean, nullable=False, default=False)
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)
    enrollment_date = db.Column(db.Date, nullable=True, default=date.today)

    # Metadata
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    parent = db.relationship('User', backref='children')

    def __repr__(self):
        return f"<Pupil {self.first_name} {self.last_name} ({self.lrn})>"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def report_name(self):
        """Name as printed on school forms: ``Last, First M.``"""
        initial = f"{self.middle_name[0]}." if self.middle_name else ''
        return f"{self.last_name}, {self.first_name} {initial}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'lrn': self.lrn,
            'first_name': self.first_name,
            'middle_name': self.middle_name,
            'last_name': self.last_name,
            'gender': self.gender,
            'birth_date': self.birth_date.isoformat() if self.birth_date else None,
            'address': self.address,
            'profile_picture': self.profile_picture,
            'grade_level': self.grade_level,
            'section': self.section,
            'parent_id': self.parent_id,
            'parent': {
                'id': self.parent.id,
                'full_name': self.parent.full_name,
                'email': self.parent.email,
            } if self.parent else None,
            'is_4ps_beneficiary': self.is_4ps_beneficiary,
            'archived': self.archived,
            'enrollment_date': self.enrollment_date.isoformat() if self.enrollment_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
