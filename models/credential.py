from datetime import datetime
import uuid

from werkzeug.security import generate_password_hash, check_password_hash

from . import db


class IdentityCredential(db.Model):
    """Login credential held by the local identity provider.

    Kept apart from ``users`` so that a credential can exist before its
    profile row does (registration approval creates them in two steps).
    """

    __tablename__ = 'identity_credentials'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    disabled = db.Column(db.Boolean, nullable=False, default=False)
    last_sign_in = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<IdentityCredential {self.email}{' (disabled)' if self.disabled else ''}>"

    def set_password(self, password):
        """
        Hash and set the password using Werkzeug

        Args:
            password (str): Plain text password

        Returns:
            bool: True if password was set successfully
        """
        if not password or len(password) < 6:
            raise ValueError("Password must be at least 6 characters long")

        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')
        return True

    def check_password(self, password):
        """Verify a password against the stored hash"""
        if not password:
            return False
        return check_password_hash(self.password_hash, password)
