import json

import pytest

from catalogapi.app import create_app
from catalogapi.state import get_state
from catalogcore.catalog import CatalogStore, CollectionKind
from catalogcore.config import ServiceConfig
from catalogcore.storage import MemoryObjectStore

ADMIN = {"email": "admin@example.com", "password": "CorrectHorse1", "is_admin": True}
VIEWER = {"email": "viewer@example.com", "password": "Viewer123", "is_admin": False}


@pytest.fixture
def service_config(tmp_path):
    return ServiceConfig(
        base_dir=tmp_path,
        data_dir=tmp_path / "data",
        secret_key="test-secret",
        allowed_origins=("*",),
        force_tls=False,
    )


@pytest.fixture
def object_store():
    store = MemoryObjectStore()
    catalog = CatalogStore(store)
    for kind in CollectionKind:
        catalog.provision(kind)
    store.put("users.json", json.dumps([ADMIN, VIEWER]).encode("utf-8"))
    return store


@pytest.fixture
def flask_app(service_config, object_store):
    app = create_app(service_config, store=object_store)
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def signer(flask_app):
    with flask_app.app_context():
        return get_state().signer


@pytest.fixture
def admin_headers(signer):
    return {"Authorization": f"Bearer {signer.issue(ADMIN)}"}


@pytest.fixture
def viewer_headers(signer):
    return {"Authorization": f"Bearer {signer.issue(VIEWER)}"}
