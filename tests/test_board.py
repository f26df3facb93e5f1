import pytest


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def _post_announcement(client, token, **fields):
    data = {"title": "Exams", "content": "Timetable is out", "category": "exam"}
    data.update(fields)
    return client.post("/api/admin/announcements", data=data, headers=auth(token))


def test_admin_creates_announcement_with_file(client, admin_token, blob_store):
    resp = client.post(
        "/api/admin/announcements",
        data={"title": "Exams", "content": "Timetable is out", "category": "exam", "isFeatured": "true"},
        files={"file": ("schedule.pdf", b"%PDF-1.4 demo", "application/pdf")},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    announcement = resp.json()["announcement"]
    assert announcement["isFeatured"] is True
    assert announcement["isUrgent"] is False
    assert announcement["author"]["name"] == "Head of Department"
    assert announcement["fileUrl"].startswith("/uploads/file-")
    assert announcement["fileUrl"].endswith(".pdf")
    stored = blob_store.root / announcement["fileUrl"].rsplit("/", 1)[1]
    assert stored.read_bytes() == b"%PDF-1.4 demo"


def test_announcement_requires_fields(client, admin_token):
    resp = _post_announcement(client, admin_token, category="")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Title, content, and category are required"


def test_students_cannot_use_admin_routes(client, student_token):
    resp = _post_announcement(client, student_token)
    assert resp.status_code == 403
    assert client.post("/api/admin/announcements", data={}).status_code == 401


def test_list_filter_and_featured(client, admin_token):
    _post_announcement(client, admin_token, title="Lab closed", category="general")
    _post_announcement(client, admin_token, title="Workshop", category="event", isUrgent="true")

    everything = client.get("/api/announcements").json()
    assert [a["title"] for a in everything] == ["Workshop", "Lab closed"]

    assert [a["title"] for a in client.get("/api/announcements", params={"category": "general"}).json()] == [
        "Lab closed"
    ]
    assert [a["title"] for a in client.get("/api/announcements", params={"search": "WORK"}).json()] == [
        "Workshop"
    ]
    assert [a["title"] for a in client.get("/api/announcements", params={"urgent": "false"}).json()] == [
        "Lab closed"
    ]
    assert [a["title"] for a in client.get("/api/announcements/featured").json()] == ["Workshop"]


def test_update_and_delete_announcement(client, admin_token):
    announcement_id = _post_announcement(client, admin_token).json()["announcement"]["id"]

    resp = client.put(
        f"/api/admin/announcements/{announcement_id}",
        data={"title": "Exams moved", "isUrgent": "true"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    updated = resp.json()["announcement"]
    assert updated["title"] == "Exams moved"
    assert updated["content"] == "Timetable is out"
    assert updated["isUrgent"] is True

    assert client.delete(f"/api/admin/announcements/{announcement_id}", headers=auth(admin_token)).status_code == 200
    assert client.get(f"/api/announcements/{announcement_id}").status_code == 404
    assert client.delete(f"/api/admin/announcements/{announcement_id}", headers=auth(admin_token)).status_code == 404


def test_timetables(client, admin_token, student_token):
    resp = client.post(
        "/api/admin/timetables",
        data={"title": "200 Level", "level": "200", "semester": "first"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/admin/timetables",
        data={"title": "200 Level", "level": "200", "semester": "first"},
        files={"file": ("tt.pdf", b"pdf", "application/pdf")},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    assert resp.json()["timetable"]["level"] == 200

    assert client.get("/api/timetables/200").json()["title"] == "200 Level"
    assert client.get("/api/timetables/400").status_code == 404
    assert len(client.get("/api/admin/timetables/200", headers=auth(admin_token)).json()) == 1
    assert client.get("/api/students/timetable", headers=auth(student_token)).json()["level"] == 200


def test_rejected_timetable_does_not_leave_file(client, admin_token, blob_store):
    resp = client.post(
        "/api/admin/timetables",
        data={"title": "200 Level", "level": "two hundred", "semester": "first"},
        files={"file": ("tt.pdf", b"pdf", "application/pdf")},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400
    assert not blob_store.root.exists() or not any(blob_store.root.iterdir())


def test_oversized_upload_is_rejected(client, admin_token, blob_store):
    resp = client.post(
        "/api/admin/timetables",
        data={"title": "Big", "level": "100", "semester": "first"},
        files={"file": ("big.pdf", b"0" * (blob_store.max_bytes + 1), "application/pdf")},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400
    assert not any(blob_store.root.iterdir())


def test_events(client, admin_token):
    resp = client.post(
        "/api/admin/events",
        data={"title": "Workshop", "description": "Security", "date": "2026-01-20T10:00:00", "venue": "LT3"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    assert [e["title"] for e in client.get("/api/events").json()] == ["Workshop"]

    resp = client.post(
        "/api/admin/events",
        data={"title": "Bad", "description": "x", "date": "next week", "venue": "LT3"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400


def test_results(client, admin_token, student_token):
    student_id = client.get("/me", headers=auth(student_token)).json()["id"]
    resp = client.post(
        "/api/admin/results",
        data={"studentId": student_id, "courseCode": "CSC201", "courseTitle": "DSA", "grade": "A"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    result = resp.json()["result"]
    assert (result["semester"], result["session"], result["level"]) == ("first", "2023/2024", 100)

    resp = client.post(
        "/api/admin/results",
        data={"studentId": "missing", "courseCode": "CSC201", "courseTitle": "DSA", "grade": "A"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 404

    results = client.get("/api/students/results", headers=auth(student_token)).json()
    assert [r["courseCode"] for r in results] == ["CSC201"]


def test_profile_update(client, student_token, signup_payload):
    resp = client.put(
        "/api/students/profile",
        json={"name": "A. Student", "email": " New@X.edu ", "phone": "+234"},
        headers=auth(student_token),
    )
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == "new@x.edu"

    assert client.post("/login", json={"identifier": "NEW@x.edu", "password": "p1"}).status_code == 200

    client.post("/signup", json={**signup_payload, "email": "b@x.edu", "matricNumber": "M2"})
    resp = client.put(
        "/api/students/profile",
        json={"name": "A", "email": "b@x.edu"},
        headers=auth(student_token),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Email already exists"
    assert client.get("/api/students/profile", headers=auth(student_token)).json()["email"] == "new@x.edu"


def test_profile_picture(client, student_token):
    resp = client.put(
        "/api/students/profile/picture",
        files={"profileImage": ("me.txt", b"hello", "text/plain")},
        headers=auth(student_token),
    )
    assert resp.status_code == 400

    resp = client.put(
        "/api/students/profile/picture",
        files={"profileImage": ("me.png", b"\x89PNG", "image/png")},
        headers=auth(student_token),
    )
    assert resp.status_code == 200
    assert resp.json()["student"]["profileImage"].startswith("/uploads/profile-")


def test_archives(client, admin_token, student_token, signup_payload):
    announcement_id = _post_announcement(client, admin_token).json()["announcement"]["id"]

    resp = client.post(f"/api/students/archives/{announcement_id}", headers=auth(student_token))
    assert resp.status_code == 200
    archive_id = resp.json()["archive"]["id"]
    assert resp.json()["archive"]["announcement"]["title"] == "Exams"

    again = client.post(f"/api/students/archives/{announcement_id}", headers=auth(student_token))
    assert again.status_code == 400
    assert client.post("/api/students/archives/missing", headers=auth(student_token)).status_code == 404

    archives = client.get("/api/students/archives", headers=auth(student_token)).json()
    assert [a["id"] for a in archives] == [archive_id]

    other = client.post("/signup", json={**signup_payload, "email": "b@x.edu", "matricNumber": "M2"}).json()["token"]
    assert client.delete(f"/api/students/archives/{archive_id}", headers=auth(other)).status_code == 404
    assert client.delete(f"/api/students/archives/{archive_id}", headers=auth(student_token)).status_code == 200
    assert client.get("/api/students/archives", headers=auth(student_token)).json() == []


@pytest.mark.parametrize("path", ["/api/students/profile", "/api/students/results", "/api/students/archives"])
def test_admins_cannot_use_student_routes(client, admin_token, path):
    assert client.get(path, headers=auth(admin_token)).status_code == 403
