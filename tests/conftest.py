import pytest

from slotbook import create_app

ADMIN_PASSWORD = "test-secret"


@pytest.fixture
def app(tmp_path):
    # Each test gets its own SQLite file so nothing leaks between tests
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'slots.db'}",
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
    })
    yield app


@pytest.fixture
def down_app(tmp_path):
    """An app whose database can never be opened."""
    missing = tmp_path / "missing" / "slots.db"
    return create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{missing}",
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def allocator(app):
    with app.app_context():
        yield app.extensions["allocator"]


@pytest.fixture
def registry(app):
    return app.extensions["session_registry"]


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}
