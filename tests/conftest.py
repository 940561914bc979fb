import os
import tempfile
import uuid

import pytest

# Must be set before doccustody.config is imported
_DB_DIR = tempfile.mkdtemp(prefix="doccustody-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("CUSTODY_ROLLBACK_MODE", "delete")

from fastapi.testclient import TestClient  # noqa: E402

from doccustody.db import Base, SessionLocal, engine  # noqa: E402
from doccustody.main import app  # noqa: E402
from doccustody.models import Person, PersonRole, Role  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture()
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def person(db_session):
    p = Person(
        first_name="Fixture",
        last_name="Person",
        email=f"fixture-{uuid.uuid4().hex[:8]}@test.com",
    )
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture()
def admin(db_session):
    role = db_session.query(Role).filter(Role.name == "admin").one_or_none()
    if role is None:
        role = Role(name="admin", description="Administrator")
        db_session.add(role)
        db_session.flush()
    p = Person(
        first_name="Admin",
        last_name="User",
        email=f"admin-{uuid.uuid4().hex[:8]}@test.com",
    )
    db_session.add(p)
    db_session.flush()
    db_session.add(PersonRole(person_id=p.id, role_id=role.id))
    db_session.commit()
    db_session.refresh(p)
    return p
