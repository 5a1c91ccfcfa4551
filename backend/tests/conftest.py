from datetime import date

import pytest
from fastapi.testclient import TestClient

from freestyle_cup import db, models
from freestyle_cup.main import app
from freestyle_cup.schemas import StarterCreate
from freestyle_cup.security import hash_password
from freestyle_cup.settings import settings


@pytest.fixture(autouse=True)
def setup_test_db(tmp_path):
    """Fresh SQLite file database for each test."""
    db.dispose_db()
    db.init_db(f"sqlite:///{tmp_path / 'test.db'}")
    yield
    db.dispose_db()


@pytest.fixture
def session():
    s = db.session_factory()()
    yield s
    s.close()


@pytest.fixture
def club(session):
    c = models.Club(name="RSC Example")
    session.add(c)
    session.commit()
    return c


@pytest.fixture
def other_club(session):
    c = models.Club(name="RV Other")
    session.add(c)
    session.commit()
    return c


@pytest.fixture
def categories(session):
    cats = [
        models.Category(name="Einer Schueler", is_pair=False, is_single_male=False, order=1,
                        from_birthday=date(2010, 1, 1), einfahrzeit_seconds=120,
                        act_duration_seconds=60, judge_duration_seconds=30),
        models.Category(name="Einer Schueler m", is_pair=False, is_single_male=True, order=2,
                        from_birthday=date(2010, 1, 1), einfahrzeit_seconds=120,
                        act_duration_seconds=60, judge_duration_seconds=30),
        models.Category(name="Paare", is_pair=True, order=3, einfahrzeit_seconds=180,
                        act_duration_seconds=90, judge_duration_seconds=60),
    ]
    session.add_all(cats)
    session.commit()
    return cats


@pytest.fixture
def make_starter(session, club):
    from freestyle_cup import pairing

    def _make(firstname, lastname, club_id=None, **kw):
        kw.setdefault("birthdate", date(2012, 5, 1))
        payload = StarterCreate(club_id=club_id or club.id, firstname=firstname, lastname=lastname, **kw)
        return pairing.add_starter(session, payload)

    return _make


@pytest.fixture
def make_user(session):
    def _make(email, password, name="Trainer", club_id=None):
        u = models.User(email=email, name=name, password_hash=hash_password(password), club_id=club_id)
        session.add(u)
        session.commit()
        return u

    return _make


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    res = client.post(
        "/api/command/login",
        json={"email": settings.CUP_ADMIN_EMAIL, "password": settings.CUP_ADMIN_PASSWORD},
    )
    assert res.status_code == 200
    return client
