from datetime import datetime

from . import db


class ParentProfile(db.Model):
    """Guardian details captured at registration"""

    __tablename__ = 'parent_profiles'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), primary_key=True)
    occupation = db.Column(db.String(120), nullable=False)
    emergency_contact = db.Column(db.String(200), nullable=False)
    emergency_phone = db.Column(db.String(30), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('parent_profile', uselist=False, cascade='all, delete-orphan'))

    def __repr__(self):
        return f"<ParentProfile {self.user_id}>"

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'occupation': self.occupation,
            'emergency_contact': self.emergency_contact,
            'emergency_phone': self.emergency_phone,
        }


class TeacherProfile(db.Model):
    """Employment details captured at registration"""

    __tablename__ = 'teacher_profiles'

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), primary_key=True)
    employee_id = db.Column(db.String(50), nullable=False, index=True)
    department = db.Column(db.String(120), nullable=False)
    position = db.Column(db.String(120), nullable=False)
    specialization = db.Column(db.String(120), nullable=True)
    education_level = db.Column(db.String(120), nullable=True)
    years_experience = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('teacher_profile', uselist=False, cascade='all, delete-orphan'))

    def __repr__(self):
        return f"<TeacherProfile {self.user_id} ({self.employee_id})>"

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'employee_id': self.employee_id,
            'department': self.department,
            'position': self.position,
            'specialization': self.specialization,
            'education_level': self.education_level,
            'years_experience': self.years_experience,
        }
