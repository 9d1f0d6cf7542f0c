import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app


@pytest.fixture
def db():
    return mongomock.MongoClient()["thesis_supervision_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    counter = itertools.count(1)

    def _make(role="student", **extra):
        n = next(counter)
        body = {"name": f"{role.title()} {n}", "email": f"{role}{n}@bracu.ac.bd", "role": role, **extra}
        r = client.post("/users", json=body)
        assert r.status_code == 201, r.text
        return r.json()["id"]

    return _make


@pytest.fixture
def make_group(client, make_user):
    def _make(admin=None, name="Vision Lab", interests=("nlp",)):
        admin = admin or make_user()
        r = client.post("/groups", json={"name": name, "admin": admin, "researchInterests": list(interests)})
        assert r.status_code == 201, r.text
        return r.json()["id"], admin

    return _make


@pytest.fixture
def submit(client):
    def _submit(group_id, admin_id, supervisor_id, title="Low-resource NER"):
        r = client.post("/proposals", json={
            "title": title,
            "abstract": "Named entity recognition for Bangla.",
            "domain": "NLP",
            "supervisor": supervisor_id,
            "studentId": admin_id,
            "groupId": group_id,
        })
        assert r.status_code == 201, r.text
        return r.json()["id"]

    return _submit


@pytest.fixture
def supervised_group(client, make_user, make_group, submit):
    """A group with one extra member whose proposal has been approved by its supervisor."""
    group_id, admin = make_group()
    member = make_user()
    assert client.patch(f"/groups/{group_id}/join", json={"studentId": member}).status_code == 200
    supervisor = make_user("supervisor")
    proposal_id = submit(group_id, admin, supervisor)
    r = client.patch(f"/proposals/{proposal_id}/decision", json={"supervisorId": supervisor, "decision": "approve"})
    assert r.status_code == 200, r.text
    return {"group": group_id, "admin": admin, "member": member, "supervisor": supervisor, "proposal": proposal_id}
