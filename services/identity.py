"""
Identity provider boundary.

The workflows only talk to an ``IdentityProvider``; ``LocalIdentityProvider``
keeps Werkzeug-hashed credentials in the portal database and is what
``create_app`` installs unless another provider is configured.
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db, IdentityCredential
from services.errors import DependencyFailure

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Credential operations the portal needs. Failures raise DependencyFailure."""

    def create_credential(self, email, password):
        """Create a login for ``email``; returns the new identity id."""
        raise NotImplementedError

    def find_credential(self, email):
        """Identity id registered for ``email``, or None."""
        raise NotImplementedError

    def disable_credential(self, identity_id):
        raise NotImplementedError

    def enable_credential(self, identity_id):
        raise NotImplementedError

    def delete_credential(self, identity_id):
        raise NotImplementedError

    def sign_in(self, email, password):
        """Identity id when the password matches an enabled credential, else None."""
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):

    def _get(self, identity_id):
        credential = db.session.get(IdentityCredential, identity_id)
        if credential is None:
            raise DependencyFailure(f"No credential with id {identity_id}")
        return credential

    def _commit(self, what):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise DependencyFailure(f"Identity provider could not {what}: {e}")

    def create_credential(self, email, password):
        email = email.strip().lower()
        if IdentityCredential.query.filter_by(email=email).first():
            raise DependencyFailure(f"A credential for {email} already exists")
        credential = IdentityCredential(email=email)
        try:
            credential.set_password(password)
        except ValueError as e:
            raise DependencyFailure(f"Identity provider rejected the password: {e}")
        db.session.add(credential)
        self._commit('create credential')
        logger.info("Created credential %s for %s", credential.id, email)
        return credential.id

    def find_credential(self, email):
        credential = IdentityCredential.query.filter_by(email=email.strip().lower()).first()
        return credential.id if credential else None

    def disable_credential(self, identity_id):
        self._get(identity_id).disabled = True
        self._commit('disable credential')

    def enable_credential(self, identity_id):
        self._get(identity_id).disabled = False
        self._commit('enable credential')

    def delete_credential(self, identity_id):
        db.session.delete(self._get(identity_id))
        self._commit('delete credential')

    def sign_in(self, email, password):
        credential = IdentityCredential.query.filter_by(email=(email or '').strip().lower()).first()
        if credential is None or credential.disabled or not credential.check_password(password):
            return None
        credential.last_sign_in = datetime.utcnow()
        self._commit('record sign-in')
        return credential.id


def get_identity_provider():
    """Provider installed on the current app (a local one when none is set)."""
    provider = current_app.extensions.get('identity_provider')
    if provider is None:
        provider = current_app.extensions['identity_provider'] = LocalIdentityProvider()
    return provider
