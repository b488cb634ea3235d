from datetime import datetime
import uuid

from . import db


class RegistrationStatus:
    """Registration states. APPROVED and REJECTED are terminal."""
    PENDING = 'pending'
    UNDER_REVIEW = 'under_review'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    OPEN = (PENDING, UNDER_REVIEW)
    TERMINAL = (APPROVED, REJECTED)
    ALL = OPEN + TERMINAL


class UserRegistration(db.Model):
    """Self-service account request waiting for an administrator."""

    __tablename__ = 'user_registrations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Candidate account data
    email = db.Column(db.String(255), nullable=False, index=True)
    # Chosen password in plain text, needed to create the credential on
    # approval. Cleared by the approved and rejected transitions and never
    # included in to_dict().
    password = db.Column(db.String(255), nullable=True)
    full_name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    phone_number = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    # Parent details
    occupation = db.Column(db.String(120), nullable=True)
    emergency_contact = db.Column(db.String(200), nullable=True)
    emergency_phone = db.Column(db.String(30), nullable=True)

    # Teacher details
    employee_id = db.Column(db.String(50), nullable=True)
    department = db.Column(db.String(120), nullable=True)
    position = db.Column(db.String(120), nullable=True)
    specialization = db.Column(db.String(120), nullable=True)
    education_level = db.Column(db.String(120), nullable=True)
    years_experience = db.Column(db.Integer, nullable=True)

    # Supporting documents (object storage URLs)
    profile_picture = db.Column(db.String(500), nullable=True)
    valid_id_document = db.Column(db.String(500), nullable=True)
    reason_for_application = db.Column(db.Text, nullable=True)

    # Workflow
    status = db.Column(db.String(20), nullable=False, default=RegistrationStatus.PENDING, index=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by = db.Column(db.String(36), nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)
    rejected_by = db.Column(db.String(36), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserRegistration {self.email} [{self.status}]>"

    @property
    def is_terminal(self):
        return self.status in RegistrationStatus.TERMINAL

    def to_dict(self):
        # The captured password never leaves the model
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'phone_number': self.phone_number,
            'address': self.address,
            'occupation': self.occupation,
            'emergency_contact': self.emergency_contact,
            'emergency_phone': self.emergency_phone,
            'employee_id': self.employee_id,
            'department': self.department,
            'position': self.position,
            'specialization': self.specialization,
            'education_level': self.education_level,
            'years_experience': self.years_experience,
            'profile_picture': self.profile_picture,
            'valid_id_document': self.valid_id_document,
            'reason_for_application': self.reason_for_application,
            'status': self.status,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'approved_by': self.approved_by,
            'rejected_at': self.rejected_at.isoformat() if self.rejected_at else None,
            'rejected_by': self.rejected_by,
            'rejection_reason': self.rejection_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
