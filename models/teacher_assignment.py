from datetime import datetime
import uuid

from . import db


class TeacherClass(db.Model):
    """Model for storing teacher assignments to classes (grade level + section)"""

    __tablename__ = 'teacher_classes'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Foreign keys
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)

    # Assignment details
    grade_level = db.Column(db.Integer, nullable=False, index=True)
    section = db.Column(db.String(80), nullable=False, index=True)
    school_year = db.Column(db.String(9), nullable=False, index=True)  # e.g. '2025-2026'
    is_class_adviser = db.Column(db.Boolean, nullable=False, default=False)

    # Metadata
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    teacher = db.relationship('User', backref=db.backref('class_assignments', lazy=True, cascade='all, delete-orphan'))

    __table_args__ = (
        db.UniqueConstraint('teacher_id', 'grade_level', 'section', 'school_year', name='unique_teacher_class_year'),
    )

    def __repr__(self):
        return f"<TeacherClass teacher={self.teacher_id} grade={self.grade_level} section={self.section} sy={self.school_year}>"

    def to_dict(self):
        return {
            'id': self.id,
            'teacher_id': self.teacher_id,
            'grade_level': self.grade_level,
            'section': self.section,
            'school_year': self.school_year,
            'is_class_adviser': self.is_class_adviser,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
