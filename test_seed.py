from create_users import seed_users
from models import db, IdentityCredential, Subject, User
from scripts.seed_defaults import seed
from utils.settings import SystemSettings

SEED = [
    {"full_name": "School Administrator", "email": "Admin@School.edu.ph", "password": "admin123", "role": "admin"},
    {"full_name": "Maria Santos", "email": "teacher@school.edu.ph", "password": "teacher123", "role": "teacher"},
]


def test_seed_users_creates_linked_accounts_once(app):
    created, skipped = seed_users(SEED)

    assert created == ["admin@school.edu.ph", "teacher@school.edu.ph"]
    assert skipped == []
    admin = User.query.filter_by(email="admin@school.edu.ph").one()
    assert admin.role == "admin"
    assert db.session.get(IdentityCredential, admin.id).email == "admin@school.edu.ph"

    created, skipped = seed_users(SEED)
    assert created == []
    assert len(skipped) == 2


def test_seed_defaults_is_idempotent(app):
    created = seed()

    assert "MT-1" in created["subjects"]
    assert "MT-4" not in created["subjects"]
    assert "EPP-4" in created["subjects"]
    assert "EPP-3" not in created["subjects"]
    assert Subject.query.filter_by(grade_level=1).count() == 8
    SystemSettings.invalidate_cache()
    assert SystemSettings.get_minimum_attendance_rate() == 75
    assert SystemSettings.get_timezone() == "Asia/Manila"

    again = seed()
    assert again == {"subjects": [], "settings": []}
    assert Subject.query.count() == 48
