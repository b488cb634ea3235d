from flask_sqlalchemy import SQLAlchemy
from email_validator import validate_email, EmailNotValidError
from datetime import datetime
import uuid

db = SQLAlchemy()


class User(db.Model):
    """Portal account (admin, teacher or parent).

    The primary key is the identity provider's credential id, so a profile row
    and its login credential always share one id.
    """

    __tablename__ = 'users'

    # Primary key
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # User information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(200), nullable=False, index=True)
    phone_number = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    profile_picture = db.Column(db.String(500), nullable=True)

    # Role (admin, teacher, parent)
    role = db.Column(db.String(20), nullable=False, index=True)

    # Soft delete
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"

    def validate_email(self):
        """
        Validate and normalize the email address using email_validator

        Returns:
            bool: True if email is valid

        Raises:
            ValueError: If email is invalid
        """
        try:
            valid = validate_email(self.email, check_deliverability=False)
            self.email = valid.normalized
            return True
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: {str(e)}")

    def to_dict(self):
        """Convert user to dictionary (for JSON responses)"""
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'phone_number': self.phone_number,
            'address': self.address,
            'profile_picture': self.profile_picture,
            'archived': self.archived,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


# Role constants
class UserRoles:
    """Constants for user roles"""
    ADMIN = 'admin'
    TEACHER = 'teacher'
    PARENT = 'parent'

    CHOICES = [
        (ADMIN, 'Administrator'),
        (TEACHER, 'Teacher'),
        (PARENT, 'Parent'),
    ]
