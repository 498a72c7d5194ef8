import pytest

import catalog
from accounts import build_pwd_context
from config import Settings
from database import Database, RecordStore
from notifications import Mailer
from schemas import CategoryCreate, ProductCreate
from tables import create_tables, metadata


class RecordingMailer(Mailer):
    """Mailer that keeps messages instead of talking to SMTP."""

    def __init__(self, settings):
        super().__init__(settings)
        self.outbox = []

    def send(self, to, subject, text, html=None):
        self.outbox.append(self.build(to, subject, text, html))
        return True


@pytest.fixture
def database():
    db = Database("sqlite://").open()
    create_tables(db)
    yield db
    db.close()


@pytest.fixture
def store(database):
    return RecordStore(database, metadata)


@pytest.fixture
def pwd_context():
    # bcrypt is slow; the hashing scheme is not what these tests are about
    return build_pwd_context(["pbkdf2_sha256"])


@pytest.fixture
def mailer():
    return RecordingMailer(Settings(admin_email="admin@example.com", smtp_user="shop@example.com"))


@pytest.fixture
def category(store):
    return catalog.add_category(store, CategoryCreate(name="Chairs", description="Things to sit on"))


@pytest.fixture
def product(store, category):
    return catalog.add_product(store, ProductCreate(name="Oak Chair", category_id=category["id"], price=49.5))
