"""
Pytest fixtures for the CyberPhone store tests.

Provides the app on an in-memory database, a test client, per-test table
cleanup and small factories for users, stores, products and posts.
"""

import pytest

from cyberphone import create_app
from cyberphone.extensions import db
from cyberphone.models import User, AudioTrack
from cyberphone.services import catalog_service, content_service, ledger_service, session_service
from cyberphone.services.auth_service import hash_password


TEST_PASSWORD = "Password123"

# bcrypt is slow on purpose; hash once for every factory user
PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ENFORCE_SUFFICIENT_FUNDS': True,
        'CREDIT_SELLER_ON_CHECKOUT': True,
        'MIN_WITHDRAWAL_CENTS': 10000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user("ana", balance_cents=10000) -> User with a ledger-backed balance."""
    counter = {"n": 0}

    def _make(name="user", *, balance_cents=0, user_type="STANDARD"):
        counter["n"] += 1
        user = User(
            email=f"{name}{counter['n']}@cyberphone.test",
            password_hash=PASSWORD_HASH,
            first_name=name.capitalize(),
            last_name="Tester",
            user_type=user_type,
            balance_cents=0,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        if balance_cents:
            ledger_service.adjust_balance(user.id, balance_cents, "Opening balance")
        return user

    return _make


@pytest.fixture(scope='function')
def make_store():
    def _make(owner, name="Test Store", description=None):
        return catalog_service.create_store(owner.id, {"name": name, "description": description})

    return _make


@pytest.fixture(scope='function')
def make_product():
    def _make(store, *, name="E-book", price_cents=2000, rate=0.10, product_type="DIGITAL_EBOOK"):
        return catalog_service.create_product(store.id, {
            "name": name,
            "price_cents": price_cents,
            "affiliate_commission_rate": rate,
            "product_type": product_type,
        })

    return _make


@pytest.fixture(scope='function')
def make_post():
    def _make(author, text="Hello world", scheduled_at=None):
        return content_service.create_post(author.id, "TEXT", {"text": text}, scheduled_at=scheduled_at)

    return _make


@pytest.fixture(scope='function')
def audio_track(db_session):
    track = AudioTrack(title="Chill Lo-fi", artist="BeatScaper", url="https://example.com/lofi.mp3")
    db_session.add(track)
    db_session.commit()
    return track


@pytest.fixture(scope='function')
def auth_headers_for(db_session):
    """Factory: auth_headers_for(user) -> Authorization header with a fresh session token."""
    def _headers(user):
        _session, token = session_service.create_session(user.id)
        return auth_headers(token)

    return _headers


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None
