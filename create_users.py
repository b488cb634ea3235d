"""Create initial accounts in the database from `.env` configuration.

This script:
- loads DATABASE_URL from .env
- initializes the Flask app
- creates tables (if missing)
- creates a login credential and a profile for each seed account
  (skips emails that already have an account)

Run:
    python create_users.py
"""

import os
from dotenv import load_dotenv

# load early
load_dotenv()

from app import create_app
from models import db, User
from services.errors import DependencyFailure
from services.identity import LocalIdentityProvider

DATABASE_URL = os.getenv('DATABASE_URL') or os.getenv('SQLALCHEMY_DATABASE_URI')

# Seed accounts to create
SEED_USERS = [
    {"full_name": "School Administrator", "email": "admin@school.edu.ph", "password": "admin123", "role": "admin"},
    {"full_name": "Maria Santos", "email": "teacher@school.edu.ph", "password": "teacher123", "role": "teacher"},
    {"full_name": "Jose Reyes", "email": "parent@school.edu.ph", "password": "parent123", "role": "parent"},
]


def seed_users(users=SEED_USERS, identity=None):
    """Create the accounts that do not exist yet. Returns (created, skipped) email lists."""
    identity = identity or LocalIdentityProvider()
    created = []
    skipped = []
    for u in users:
        email = u['email'].lower()
        if User.query.filter_by(email=email).first():
            skipped.append(email)
            print(f"Skipping existing user: {email}")
            continue

        try:
            account_id = identity.find_credential(email) or identity.create_credential(email, u['password'])
        except DependencyFailure as ex:
            print(f"Failed to create credential for {email}: {ex.message}")
            continue

        user = User(id=account_id, full_name=u['full_name'], email=email, role=u['role'])
        try:
            user.validate_email()
        except ValueError as ex:
            print(f"Invalid email for {email}: {ex}")
            continue

        db.session.add(user)
        db.session.commit()
        created.append(email)
        print(f"Created {u['role']} account: {email}")
    return created, skipped


def main():
    if not DATABASE_URL:
        raise RuntimeError('DATABASE_URL not set in .env')

    app = create_app()
    with app.app_context():
        print('Creating tables (if not present)')
        db.create_all()

        created, skipped = seed_users()

        print('\nSummary:')
        print(f'  Created: {len(created)} -> {created}')
        print(f'  Skipped: {len(skipped)} -> {skipped}')


if __name__ == '__main__':
    main()
