import pytest

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.audit import Audit
from app.models.audit_answer import AuditAnswer
from app.models.change_log import ChangeLog
from app.services import questionnaire_service
from app.services.answer_service import save_facility


def _logs(db, **filters):
    return db.query(ChangeLog).filter_by(**filters).order_by(ChangeLog.id).all()


def test_only_changed_facility_fields_are_logged(db, auditor, facility):
    result = save_facility(db, auditor, facility, {"venue_name": "A", "postcode": "3001"}, {})

    logs = _logs(db)
    assert len(logs) == 1
    assert (logs[0].entity_type, logs[0].field_name) == ("facility", "postcode")
    assert (logs[0].old_value, logs[0].new_value) == ("3000", "3001")
    assert logs[0].changed_by == auditor.user_id
    assert result.facility.postcode == "3001"
    assert result.facility.revision == 2


def test_cleared_field_is_logged_as_null(db, auditor, facility):
    save_facility(db, auditor, facility, {"postcode": "  "}, {})
    log = _logs(db)[0]
    assert (log.old_value, log.new_value) == ("3000", None)
    db.refresh(facility)
    assert facility.postcode is None


def test_numeric_fields_compare_as_numbers(db, auditor, facility):
    save_facility(db, auditor, facility, {"latitude": "-37.80"}, {})
    log = _logs(db)[0]
    assert (log.old_value, log.new_value) == (None, "-37.8")

    save_facility(db, auditor, facility, {"latitude": -37.8}, {})
    assert len(_logs(db)) == 1


def test_invalid_number_is_rejected(db, auditor, facility):
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"longitude": "east"}, {})
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"latitude": "nan"}, {})
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"longitude": "-inf"}, {})
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"venue_name": ""}, {})
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"colour": "red"}, {})


def test_no_op_save_writes_nothing(db, auditor, facility, published, qids):
    result = save_facility(db, auditor, facility, {"venue_name": "A"}, {qids["temperature"]: ""})

    assert result.changes == []
    assert result.audit is None
    assert db.query(Audit).count() == 0
    assert db.query(ChangeLog).count() == 0
    db.refresh(facility)
    assert facility.revision == 1


def test_answer_upsert_is_idempotent(db, auditor, facility, published, qids):
    qid = qids["temperature"]
    first = save_facility(db, auditor, facility, {}, {qid: "21"})
    second = save_facility(db, auditor, facility, {}, {qid: "21"})

    assert first.audit.id == second.audit.id
    assert db.query(AuditAnswer).filter_by(audit_id=first.audit.id, question_id=qid).count() == 1
    assert len(first.changes) == 1
    assert second.changes == []

    log = _logs(db, entity_type="audit_answer")[0]
    assert (log.field_name, log.old_value, log.new_value) == ("temperature", None, "21")
    assert log.audit_id == first.audit.id


def test_answer_change_updates_existing_row(db, auditor, facility, published, qids):
    qid = qids["rating"]
    save_facility(db, auditor, facility, {}, {qid: "1"})
    save_facility(db, auditor, facility, {}, {qid: "3"})

    rows = db.query(AuditAnswer).filter_by(question_id=qid).all()
    assert [r.value for r in rows] == ["3"]
    logs = _logs(db, field_name="rating")
    assert [(l.old_value, l.new_value) for l in logs] == [(None, "1"), ("1", "3")]


def test_audit_is_created_for_published_version(db, auditor, facility, published, qids):
    result = save_facility(db, auditor, facility, {}, {qids["temperature"]: "18"})
    assert result.audit.questionnaire_version_id == published.version.id
    assert result.audit.facility_id == facility.id
    assert result.audit.created_by == auditor.user_id


def test_checkbox_answers_are_encoded(db, auditor, facility, published, qids):
    qid = qids["facilities"]
    save_facility(db, auditor, facility, {}, {qid: ["Toilets", "Parking"]})
    row = db.query(AuditAnswer).filter_by(question_id=qid).one()
    assert row.value == '["Toilets","Parking"]'

    result = save_facility(db, auditor, facility, {}, {qid: ["Toilets", "Parking"]})
    assert result.changes == []

    save_facility(db, auditor, facility, {}, {qid: []})
    db.refresh(row)
    assert row.value is None
    assert _logs(db, field_name="facilities")[-1].new_value is None


@pytest.mark.parametrize(
    "key, value",
    [
        ("rating", "5"),
        ("facilities", ["Toilets", "Pool"]),
        ("facilities", "not json"),
    ],
)
def test_invalid_answers_are_rejected(db, auditor, facility, published, qids, key, value):
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {"postcode": "3999"}, {qids[key]: value})
    assert db.query(ChangeLog).count() == 0
    db.refresh(facility)
    assert facility.postcode == "3000"


def test_number_question_validation(db, admin, auditor, facility):
    version = questionnaire_service.create_version(db, admin, "v1")
    section = questionnaire_service.add_section(db, version.id, "General")
    courts = questionnaire_service.add_question(db, section.id, "Courts", "number")
    questionnaire_service.publish_version(db, admin, version.id)

    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {}, {courts.id: "four"})
    for value in ("nan", "inf", "1_000"):
        with pytest.raises(ValidationError):
            save_facility(db, auditor, facility, {}, {courts.id: value})
    result = save_facility(db, auditor, facility, {}, {courts.id: "4"})
    assert len(result.changes) == 1


def test_retired_question_cannot_receive_new_values(db, auditor, facility, published, qids):
    qid = qids["temperature"]
    save_facility(db, auditor, facility, {}, {qid: "20"})
    questionnaire_service.retire_question(db, qid)

    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {}, {qid: "25"})
    # 同じ値の再送信は変更なしとして通る
    assert save_facility(db, auditor, facility, {}, {qid: "20"}).changes == []


def test_unknown_question_is_rejected(db, auditor, facility, published):
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {}, {9999: "x"})


def test_answers_require_published_questionnaire(db, auditor, facility):
    with pytest.raises(ValidationError):
        save_facility(db, auditor, facility, {}, {1: "x"})


def test_stale_revision_is_rejected(db, auditor, facility):
    save_facility(db, auditor, facility, {"state": "NSW"}, {}, revision=1)

    with pytest.raises(ConflictError):
        save_facility(db, auditor, facility, {"state": "QLD"}, {}, revision=1)

    db.refresh(facility)
    assert facility.state == "NSW"
    assert facility.revision == 2
    assert db.query(ChangeLog).count() == 1


def test_save_with_explicit_audit(db, auditor, facility, published, qids):
    first = save_facility(db, auditor, facility, {}, {qids["temperature"]: "10"})
    result = save_facility(db, auditor, facility, {}, {qids["temperature"]: "12"}, audit_id=first.audit.id)
    assert result.audit.id == first.audit.id


def test_audit_from_another_facility_is_not_found(db, admin, auditor, facility, published, qids):
    from app.services.facility_service import create_facility

    other = create_facility(db, admin, {"venue_name": "B"})
    audit = save_facility(db, auditor, other, {}, {qids["temperature"]: "10"}).audit

    with pytest.raises(NotFoundError):
        save_facility(db, auditor, facility, {}, {qids["temperature"]: "12"}, audit_id=audit.id)


def test_field_name_falls_back_to_question_id(db, admin, auditor, facility, published, qids):
    # 公開版の監査に、別の版の質問の回答を保存する
    old_audit = Audit(facility_id=facility.id, questionnaire_version_id=published.version.id)
    db.add(old_audit)
    db.commit()

    draft = questionnaire_service.create_version(db, admin, "v2")
    section = questionnaire_service.add_section(db, draft.id, "Extra")
    extra = questionnaire_service.add_question(db, section.id, "Lighting", "string")

    save_facility(db, auditor, facility, {}, {extra.id: "LED"}, audit_id=old_audit.id)
    log = _logs(db, entity_type="audit_answer")[0]
    assert log.field_name == str(extra.id)


def test_retired_question_answered_in_an_older_audit_stays_visible(db, auditor, facility, published, qids):
    from app.services.facility_service import get_facility_detail

    save_facility(db, auditor, facility, {}, {qids["temperature"]: "20"})
    db.add(Audit(facility_id=facility.id, questionnaire_version_id=published.version.id))
    db.commit()
    questionnaire_service.retire_question(db, qids["temperature"])
    questionnaire_service.retire_question(db, qids["rating"])

    detail = get_facility_detail(db, facility.id)
    assert detail.audits[0].answers == {}
    assert qids["temperature"] in detail.visible_question_ids
    assert qids["rating"] not in detail.visible_question_ids
    assert qids["facilities"] in detail.visible_question_ids
