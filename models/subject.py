from datetime import datetime
import uuid

from . import db


class Subject(db.Model):
    __tablename__ = 'subjects'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(120), nullable=False, index=True)
    code = db.Column(db.String(30), nullable=False, index=True)
    grade_level = db.Column(db.Integer, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    # Schedule; start_time drives late detection
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('code', 'grade_level', name='unique_subject_code_grade'),
    )

    def __repr__(self):
        return f"<Subject {self.code} (Grade {self.grade_level})>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'grade_level': self.grade_level,
            'description': self.description,
            'start_time': self.start_time.strftime('%H:%M') if self.start_time else None,
            'end_time': self.end_time.strftime('%H:%M') if self.end_time else None,
        }
