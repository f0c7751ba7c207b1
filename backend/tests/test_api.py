import csv
import io

from app.models.change_log import ChangeLog

PASSWORD = "Passw0rd!"
HEADER = "facility_id,venue_name,venue_address,town_suburb,postcode,state,latitude,longitude"


def test_login_required(client):
    res = client.get("/api/facilities")
    assert res.status_code == 401
    assert res.json() == {"detail": "Login required"}


def test_auditor_cannot_use_admin_routes(client, login_as, auditor):
    login_as(auditor)
    assert client.get("/api/admin/users").status_code == 403
    assert client.get("/api/admin/csv/export").status_code == 403
    assert client.post("/api/admin/questionnaires", json={"name": "v2"}).status_code == 403


def test_published_questionnaire(client, login_as, auditor, db, admin):
    login_as(auditor)
    assert client.get("/api/questionnaires/published").status_code == 404

    login_as(admin)
    version = client.post("/api/admin/questionnaires", json={"name": "Audit"}).json()
    assert (version["version_number"], version["status"]) == (1, "draft")
    section = client.post(f"/api/admin/questionnaires/{version['id']}/sections", json={"name": "General"}).json()
    question = client.post(
        f"/api/admin/questionnaires/sections/{section['id']}/questions",
        json={"label": "Pitch Surface!", "question_type": "radio", "options": ["Grass", "Turf"]},
    )
    assert question.status_code == 201
    assert question.json()["question_key"] == "pitch_surface"
    assert client.post(f"/api/admin/questionnaires/{version['id']}/publish").json()["status"] == "published"

    login_as(auditor)
    res = client.get("/api/questionnaires/published")
    assert res.status_code == 200
    body = res.json()
    assert body["sections"][0]["name"] == "General"
    assert body["sections"][0]["questions"][0]["options"] == ["Grass", "Turf"]


def test_published_version_cannot_be_edited(client, login_as, admin, published):
    login_as(admin)
    section_id = published.sections[0].section.id
    res = client.post(f"/api/admin/questionnaires/sections/{section_id}/questions", json={"label": "Late"})
    assert res.status_code == 409


def test_facility_save_flow(client, login_as, db, admin, auditor, published, qids):
    login_as(auditor)
    created = client.post("/api/facilities", json={"venue_name": "Pool", "latitude": "-37.8", "longitude": 144.9})
    assert created.status_code == 201
    facility = created.json()
    assert (facility["latitude"], facility["revision"]) == (-37.8, 1)

    payload = {"state": "VIC", "answers": {str(qids["rating"]): "2"}, "revision": 1}
    res = client.put(f"/api/facilities/{facility['id']}", json=payload)
    assert res.status_code == 200
    body = res.json()
    assert (body["changes"], body["facility"]["revision"]) == (2, 2)
    assert body["audit_id"] is not None

    # 古いrevisionでの再送信は衝突
    stale = client.put(f"/api/facilities/{facility['id']}", json={"state": "NSW", "revision": 1})
    assert stale.status_code == 409

    detail = client.get(f"/api/facilities/{facility['id']}").json()
    assert detail["audits"][0]["answers"] == {str(qids["rating"]): "2"}
    assert sorted(detail["visible_question_ids"]) == sorted(qids.values())

    assert client.get(f"/api/facilities/{facility['id']}/change-logs").status_code == 403
    login_as(admin)
    logs = client.get(f"/api/facilities/{facility['id']}/change-logs").json()
    assert {l["field_name"] for l in logs} == {"_created", "state", "rating"}


def test_invalid_answer_is_400(client, login_as, auditor, facility, published, qids):
    login_as(auditor)
    res = client.put(f"/api/facilities/{facility.id}", json={"answers": {str(qids["rating"]): "9"}})
    assert res.status_code == 400


def test_only_super_admin_deletes_facilities(client, login_as, db, admin, super_admin, facility):
    login_as(admin)
    assert client.delete(f"/api/facilities/{facility.id}").status_code == 403

    login_as(super_admin)
    assert client.delete(f"/api/facilities/{facility.id}").status_code == 200
    assert client.get(f"/api/facilities/{facility.id}").status_code == 404
    assert db.query(ChangeLog).filter_by(field_name="is_deleted").count() == 1


def test_facility_list_search_and_filters(client, login_as, auditor, facility):
    login_as(auditor)
    assert [f["venue_name"] for f in client.get("/api/facilities", params={"search": "carl"}).json()] == ["A"]
    assert client.get("/api/facilities", params={"facility:state": "NSW"}).json() == []
    assert client.get("/api/facilities", params={"facility:colour": "red"}).status_code == 400


def test_map_skips_facilities_without_coordinates(client, login_as, auditor, facility):
    login_as(auditor)
    assert client.get("/api/facilities/map").json() == []


def test_display_config_endpoints(client, login_as, admin, published):
    login_as(admin)
    res = client.post("/api/admin/display-config/filters", json={
        "field_source": "question", "field_key": "rating", "display_label": "Rating", "filter_type": "select",
    })
    assert res.status_code == 201
    bad = client.post("/api/admin/display-config/tooltips", json={
        "field_source": "facility", "field_key": "colour", "display_label": "Colour",
    })
    assert bad.status_code == 400

    options = client.get("/api/facilities/filter-options").json()
    assert [(o["field_key"], o["options"]) for o in options] == [("rating", ["1", "2", "3"])]


def test_csv_downloads(client, login_as, admin, facility):
    login_as(admin)
    res = client.get("/api/admin/csv/facility-template")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert 'filename="facility_template.csv"' in res.headers["content-disposition"]
    assert res.text == HEADER + "\n"

    assert client.get("/api/admin/csv/audit-template").status_code == 404

    export = client.get("/api/admin/csv/export")
    assert 'filename="facilities_export.csv"' in export.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[1][:2] == [facility.id, "A"]


def test_csv_import(client, login_as, admin, facility):
    login_as(admin)
    content = f"{HEADER}\n,New Venue,,,,,,\n,,,,,,,\n{facility.id},Renamed,,,,,,\n".encode("utf-8")
    res = client.post("/api/admin/csv/import", files={"file": ("facilities.csv", content, "text/csv")})

    assert res.status_code == 200
    assert res.json() == {
        "created": 1,
        "updated": 1,
        "errors": [{"row": 3, "message": "venue_name is required"}],
    }

    report = client.post("/api/admin/csv/error-report", json={"errors": res.json()["errors"]})
    assert 'filename="import_errors.csv"' in report.headers["content-disposition"]
    assert report.text == "row,error\n3,venue_name is required\n"


def test_csv_import_without_header_is_400(client, login_as, admin):
    login_as(admin)
    res = client.post("/api/admin/csv/import", files={"file": ("x.csv", b"", "text/csv")})
    assert res.status_code == 400


def test_create_users(client, login_as, admin):
    login_as(admin)
    res = client.post("/api/admin/users", json={"email": "new@example.com", "password": PASSWORD})
    assert res.status_code == 201
    assert res.json()["role"] == "auditor"

    denied = client.post("/api/admin/users", json={"email": "boss@example.com", "password": PASSWORD, "role": "admin"})
    assert denied.status_code == 403
    assert denied.json() == {"detail": "Only Super Admins can create admin users"}

    weak = client.post("/api/admin/users", json={"email": "weak@example.com", "password": "alllowercase"})
    assert weak.status_code == 422


def test_import_users(client, login_as, admin):
    login_as(admin)
    content = f"email,password,full_name,role\nx@example.com,{PASSWORD},X,auditor\n,,,\n".encode("utf-8")
    res = client.post("/api/admin/users/import", files={"file": ("users.csv", content, "text/csv")})
    assert res.json() == {"success": 1, "errors": [{"row": 3, "message": "Email and password are required"}]}

    missing = client.post("/api/admin/users/import", files={"file": ("users.csv", b"email\nx@example.com\n", "text/csv")})
    assert missing.status_code == 400


def test_questionnaire_and_csv_routes_check_their_permissions(client, login_as, auditor, admin):
    login_as(auditor)
    denied = client.get("/api/admin/questionnaires")
    assert (denied.status_code, denied.json()) == (403, {"detail": "Questionnaire admin access required"})
    denied = client.get("/api/admin/csv/facility-template")
    assert (denied.status_code, denied.json()) == (403, {"detail": "Export access required"})

    login_as(admin)
    assert client.get("/api/admin/questionnaires").status_code == 200
    assert client.get("/api/admin/csv/facility-template").status_code == 200


def test_display_config_without_label_uses_field_label(client, login_as, admin):
    login_as(admin)
    res = client.post("/api/admin/display-config/tooltips", json={"field_source": "facility", "field_key": "town_suburb"})
    assert res.status_code == 201
    assert res.json()["display_label"] == "Town/Suburb"
