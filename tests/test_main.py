from fastapi.testclient import TestClient

from config import Settings
from database import RecordStore
from main import create_app


def test_lifespan_owns_the_database(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    app = create_app(Settings(database_url="sqlite://", password_schemes=["pbkdf2_sha256"]))

    with TestClient(app) as client:
        assert client.get("/").json() == {"message": "Shop API running"}

        body = client.get("/test").json()
        assert body["database"] == "✅ Connected & Working"
        assert body["connection_status"] == "Connected"
        assert body["database_url"] == "❌ Not Set"
        assert {"users", "products", "categories", "orders"} <= set(body["tables"])

        assert body["records"]["users"] == 0
        assert body["email"] == "⚠️  Logged only"
        assert body["password_hashing"] == "pbkdf2_sha256"

        assert isinstance(app.state.store, RecordStore)
        database = app.state.database
        assert database.is_open

    assert not database.is_open


def test_tables_are_optional(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    app = create_app(Settings(database_url="sqlite://", create_tables=False))
    with TestClient(app) as client:
        body = client.get("/test").json()
    assert body["tables"] == []
    assert body["database_url"] == "✅ Set"


def test_health_before_startup():
    client = TestClient(create_app(Settings(database_url="sqlite://")))
    body = client.get("/test").json()
    assert body["database"] == "⚠️  Available but not initialized"
    assert body["connection_status"] == "Not Connected"


def test_health_counts_live_records(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = Settings(database_url="sqlite://", admin_email="admin@example.com",
                        smtp_host="smtp.example.com", password_schemes=["pbkdf2_sha256"])
    app = create_app(settings)
    with TestClient(app) as client:
        store = app.state.store
        store.create("categories", {"id": "c1", "name": "Chairs"})
        store.create("categories", {"id": "c2", "name": "Lamps"})
        store.soft_delete_one("categories", "c2")

        body = client.get("/test").json()
    assert body["records"]["categories"] == 1
    assert body["email"] == "✅ Enabled (admin: admin@example.com)"
