import pytest


@pytest.fixture
def meeting(client, supervised_group):
    r = client.post("/meetings", json={
        "title": "Kickoff",
        "date": "2026-11-02",
        "time": "10:00",
        "groupId": supervised_group["group"],
        "supervisorId": supervised_group["supervisor"],
        "link": "https://meet.example.org/abc",
    })
    assert r.status_code == 201, r.text
    return r.json()["id"]


def test_schedule_meeting_notifies_members(client, supervised_group, meeting):
    m = client.get(f"/meetings/{meeting}").json()
    assert m["status"] == "scheduled"
    assert m["supervisorId"] == supervised_group["supervisor"]
    inbox = client.get(f"/users/{supervised_group['member']}/notifications").json()["notifications"]
    assert "Kickoff" in inbox[0]["message"]


def test_only_assigned_supervisor_schedules(client, make_user, make_group, supervised_group):
    outsider = make_user("supervisor")
    body = {"title": "Sync", "date": "2026-11-03", "time": "09:00", "groupId": supervised_group["group"]}
    assert client.post("/meetings", json={**body, "supervisorId": outsider}).status_code == 403

    unsupervised, _ = make_group(name="Unsupervised")
    r = client.post("/meetings", json={**body, "groupId": unsupervised, "supervisorId": outsider})
    assert r.status_code == 403


def test_delete_by_other_supervisor_is_forbidden(client, make_user, meeting):
    other = make_user("supervisor")
    r = client.delete(f"/meetings/{meeting}", params={"supervisorId": other})
    assert r.status_code == 403
    assert client.get(f"/meetings/{meeting}").status_code == 200


def test_delete_by_owner(client, supervised_group, meeting):
    r = client.delete(f"/meetings/{meeting}", params={"supervisorId": supervised_group["supervisor"]})
    assert r.status_code == 200
    assert client.get(f"/meetings/{meeting}").status_code == 404


def test_update_meeting(client, make_user, supervised_group, meeting):
    owner = supervised_group["supervisor"]
    r = client.put(f"/meetings/{meeting}", json={"supervisorId": owner, "time": "11:30"})
    assert r.status_code == 200
    assert r.json()["meeting"]["time"] == "11:30"
    assert r.json()["meeting"]["title"] == "Kickoff"

    assert client.put(f"/meetings/{meeting}", json={"supervisorId": owner}).status_code == 400
    r = client.put(f"/meetings/{meeting}", json={"supervisorId": make_user("supervisor"), "time": "12:00"})
    assert r.status_code == 403


def test_status_can_move_freely(client, supervised_group, meeting):
    owner = supervised_group["supervisor"]
    for status in ("completed", "cancelled", "scheduled"):
        r = client.patch(f"/meetings/{meeting}/status", json={"supervisorId": owner, "status": status})
        assert r.status_code == 200
        assert client.get(f"/meetings/{meeting}").json()["status"] == status
    r = client.patch(f"/meetings/{meeting}/status", json={"supervisorId": owner, "status": "postponed"})
    assert r.status_code == 400


def test_list_filters(client, make_user, supervised_group, meeting):
    assert [m["id"] for m in client.get("/meetings", params={"supervisorId": supervised_group["supervisor"]}).json()] == [meeting]
    assert [m["id"] for m in client.get("/meetings", params={"groupId": supervised_group["group"]}).json()] == [meeting]
    assert [m["id"] for m in client.get("/meetings", params={"studentId": supervised_group["member"]}).json()] == [meeting]
    assert client.get("/meetings", params={"studentId": make_user()}).json() == []


def test_group_and_student_filters_combine(client, make_user, make_group, supervised_group, meeting):
    other_group, other_admin = make_group(name="Other")
    member = supervised_group["member"]
    assert client.get("/meetings", params={"groupId": other_group, "studentId": member}).json() == []
    assert client.get("/meetings", params={"groupId": supervised_group["group"], "studentId": other_admin}).json() == []
    r = client.get("/meetings", params={"groupId": supervised_group["group"], "studentId": member})
    assert [m["id"] for m in r.json()] == [meeting]
