import os

import pytest
from flask_jwt_extended import create_access_token

from hrm_api import create_app
from hrm_api.extensions import db
from hrm_api.models.tenant import Tenant


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def tenant(session):
    t = Tenant(name="Test Co", slug="test-co", status="active")
    session.add(t)
    session.commit()
    return t


@pytest.fixture(scope="function")
def seeded(session):
    from hrm_api.services.provisioning import seed_sample_org
    return seed_sample_org(session)


def bearer(user_id=1, tenant_id=None, role="tenant_admin", perms=()):
    claims = {"tenant_id": tenant_id, "role": role, "perms": list(perms)}
    token = create_access_token(identity=str(user_id), additional_claims=claims)
    return {"Authorization": f"Bearer {token}"}
