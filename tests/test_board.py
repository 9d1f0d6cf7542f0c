def test_announcements(client):
    r = client.post("/announcements", json={"title": "Deadline", "content": "Proposals close Friday", "postedBy": "office"})
    assert r.status_code == 201
    assert client.post("/announcements", json={"title": "", "content": "x"}).status_code == 400
    items = client.get("/announcements").json()
    assert [a["title"] for a in items] == ["Deadline"]
    assert items[0]["createdAt"]


def test_faqs(client):
    assert client.post("/faqs", json={"question": "Group size?", "answer": "Up to five."}).status_code == 201
    assert client.post("/faqs", json={"question": "Who picks?", "answer": "Supervisors."}).status_code == 201
    assert client.post("/faqs", json={"question": "Missing answer"}).status_code == 400
    assert [f["question"] for f in client.get("/faqs").json()] == ["Group size?", "Who picks?"]


def test_root_and_schema(client):
    assert client.get("/").status_code == 200
    schema = client.get("/schema").json()
    assert {"user", "group", "proposal", "meeting", "announcement", "faq"} <= set(schema)


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/nowhere")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Not Found"}


def test_database_diagnostics(client, make_user):
    make_user()
    report = client.get("/test").json()
    assert report["connection_status"] == "Connected"
    assert report["database_name"] == "thesis_supervision_test"
    assert "user" in report["collections"]
