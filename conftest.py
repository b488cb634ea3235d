import itertools
from datetime import date, time

import pytest

from app import create_app
from models import db, Pupil, Subject, User
from services.identity import LocalIdentityProvider
from services.permissions import Actor
from utils.settings import SystemSettings

DEFAULT_PASSWORD = "secret123"

_lrn_counter = itertools.count(100000000001)


@pytest.fixture
def app():
    app = create_app({
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        db.create_all()
        SystemSettings.invalidate_cache()
        yield app
        db.session.remove()
        db.drop_all()
    SystemSettings.invalidate_cache()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(role, email=None, full_name=None, password=DEFAULT_PASSWORD, with_credential=True):
        email = email or f"{role}{User.query.count() + 1}@school.edu.ph"
        account_id = None
        if with_credential:
            account_id = LocalIdentityProvider().create_credential(email, password)
        user = User(id=account_id, email=email, full_name=full_name or f"Test {role.title()}", role=role)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin", email="admin@school.edu.ph", full_name="School Admin")


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", email="teacher@school.edu.ph", full_name="Maria Santos")


@pytest.fixture
def parent(make_user):
    return make_user("parent", email="parent@school.edu.ph", full_name="Jose Reyes")


@pytest.fixture
def admin_actor(admin):
    return Actor.from_user(admin)


@pytest.fixture
def teacher_actor(teacher):
    return Actor.from_user(teacher)


@pytest.fixture
def parent_actor(parent):
    return Actor.from_user(parent)


@pytest.fixture
def make_pupil(app):
    def _make_pupil(**kwargs):
        values = {
            "lrn": str(next(_lrn_counter)),
            "first_name": "Juan",
            "last_name": "Dela Cruz",
            "gender": "male",
            "birth_date": date(2016, 3, 14),
            "grade_level": 1,
            "section": "A",
        }
        values.update(kwargs)
        pupil = Pupil(**values)
        db.session.add(pupil)
        db.session.commit()
        return pupil
    return _make_pupil


@pytest.fixture
def make_subject(app):
    def _make_subject(**kwargs):
        values = {
            "name": "Mathematics",
            "code": "MATH",
            "grade_level": 1,
            "start_time": time(7, 30),
            "end_time": time(8, 20),
        }
        values.update(kwargs)
        subject = Subject(**values)
        db.session.add(subject)
        db.session.commit()
        return subject
    return _make_subject


@pytest.fixture
def pupil(make_pupil, parent):
    return make_pupil(first_name="Juan", middle_name="Protacio", last_name="Dela Cruz", parent_id=parent.id)


@pytest.fixture
def subject(make_subject):
    return make_subject()


@pytest.fixture
def login(client):
    def _login(user, password=DEFAULT_PASSWORD):
        response = client.post("/login", json={"email": user.email, "password": password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login
