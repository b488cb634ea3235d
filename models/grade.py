from datetime import datetime
import uuid

from . import db


class Grade(db.Model):
    """Quarterly final grade for one pupil in one subject"""

    __tablename__ = 'grades'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pupil_id = db.Column(db.String(36), db.ForeignKey('pupils.id'), nullable=False, index=True)
    subject_id = db.Column(db.String(36), db.ForeignKey('subjects.id'), nullable=False, index=True)
    quarter = db.Column(db.Integer, nullable=False, index=True)  # 1..4
    final_grade = db.Column(db.Float, nullable=False)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    remarks = db.Column(db.String(255), nullable=True)
    is_finalized = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    pupil = db.relationship('Pupil', backref='grades')
    subject = db.relationship('Subject', backref='grades')
    teacher = db.relationship('User', backref='grades_recorded')

    # Constraints
    __table_args__ = (
        db.UniqueConstraint('pupil_id', 'subject_id', 'quarter', name='unique_pupil_subject_quarter_grade'),
    )

    def __repr__(self):
        return f"<Grade {self.pupil_id} {self.subject_id} Q{self.quarter}: {self.final_grade}>"

    def snapshot(self):
        """Values recorded in the audit trail"""
        return {
            'pupil_id': self.pupil_id,
            'subject_id': self.subject_id,
            'quarter': self.quarter,
            'final_grade': self.final_grade,
            'teacher_id': self.teacher_id,
            'remarks': self.remarks,
        }

    def to_dict(self):
        data = self.snapshot()
        data.update({
            'id': self.id,
            'is_finalized': self.is_finalized,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        })
        return data
