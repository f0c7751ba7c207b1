import csv
import io

from app.services import csv_service, questionnaire_service
from app.services.answer_service import save_facility
from app.services.facility_service import create_facility, delete_facility

FACILITY_HEADER = "facility_id,venue_name,venue_address,town_suburb,postcode,state,latitude,longitude"


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def test_facility_template_has_header_only():
    assert csv_service.facility_template() == FACILITY_HEADER + "\n"


def test_audit_template_lists_active_questions(db, admin):
    version = questionnaire_service.create_version(db, admin, "v1")
    section = questionnaire_service.add_section(db, version.id, "General")
    questionnaire_service.add_question(db, section.id, "Temperature", "string")
    questionnaire_service.add_question(db, section.id, "Rating", "list", ["Good", "Bad"])
    old = questionnaire_service.add_question(db, section.id, "Old Question", "string")
    questionnaire_service.publish_version(db, admin, version.id)
    questionnaire_service.retire_question(db, old.id)

    tree = questionnaire_service.get_published_tree(db)
    text = csv_service.audit_template(tree)
    assert text == FACILITY_HEADER + ",q__temperature,q__rating\n"
    assert csv_service.audit_template_filename(tree) == "audit_template_v1.csv"


def test_audit_template_orders_by_section_then_question(db, admin):
    version = questionnaire_service.create_version(db, admin, "v1")
    first = questionnaire_service.add_section(db, version.id, "First")
    second = questionnaire_service.add_section(db, version.id, "Second")
    questionnaire_service.add_question(db, second.id, "Beta")
    questionnaire_service.add_question(db, first.id, "Alpha")
    questionnaire_service.move_section(db, second.id, "up")

    header = _rows(csv_service.audit_template(questionnaire_service.get_version_tree(db, version.id)))[0]
    assert header[-2:] == ["q__beta", "q__alpha"]


def test_export_includes_latest_answers(db, admin, super_admin, auditor, published, qids):
    a = create_facility(db, admin, {"venue_name": "Alpha Oval", "state": "VIC", "latitude": "-37.8"})
    b = create_facility(db, admin, {"venue_name": "Beta Park"})
    gone = create_facility(db, admin, {"venue_name": "Closed Court"})
    delete_facility(db, super_admin, gone.id)
    save_facility(db, auditor, a, {}, {qids["temperature"]: "20", qids["facilities"]: ["Toilets"]})

    rows = _rows(csv_service.export_facilities(db, published))
    assert rows[0] == FACILITY_HEADER.split(",") + ["q__temperature", "q__rating", "q__facilities"]
    assert len(rows) == 3
    assert rows[1] == [a.id, "Alpha Oval", "", "", "", "VIC", "-37.8", "", "20", "", '["Toilets"]']
    assert rows[2][:2] == [b.id, "Beta Park"]
    assert rows[2][8:] == ["", "", ""]
    assert csv_service.export_filename(published) == "facilities_export_v1.csv"


def test_export_without_questionnaire(db, admin):
    create_facility(db, admin, {"venue_name": "Alpha Oval"})
    rows = _rows(csv_service.export_facilities(db, None))
    assert rows[0] == FACILITY_HEADER.split(",")
    assert rows[1][1] == "Alpha Oval"


def test_error_report():
    text = csv_service.error_report([
        {"row": 3, "message": "venue_name is required"},
        {"row": 7, "message": "facility not found"},
    ])
    assert _rows(text) == [["row", "error"], ["3", "venue_name is required"], ["7", "facility not found"]]


def test_error_report_quotes_commas():
    text = csv_service.error_report([{"row": 2, "message": "Alpha, Beta"}])
    assert text.splitlines()[1] == '2,"Alpha, Beta"'
