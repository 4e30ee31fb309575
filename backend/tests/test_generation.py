import logging

import pytest

from formengine.exceptions import DependencyError, InvalidStateError, NotFoundError, ValidationError
from formengine.models.submission import FormSubmission, SubmissionStatus
from formengine.schemas.mapping import PortalFieldTarget
from formengine.schemas.template import TemplateCreate, TemplateField, TemplateSection, ValidationRule
from formengine.services.generation import GenerationService
from formengine.services.mapping import MappingService
from formengine.services.resolver import DataResolver
from formengine.services.template import TemplateService

from conftest import (
    PORTAL_ID,
    DictCaseDataSource,
    FailingAuditSink,
    FailingCaseDataSource,
)


def generate(db, template, form_data, case_source=None, **kwargs):
    resolver = DataResolver(case_source or DictCaseDataSource())
    return GenerationService.generate_form(
        db, template.id, form_data, "C1", "agent-1", resolver, **kwargs
    )


def create_mapping(db, template, portals, table):
    targets = {field_id: PortalFieldTarget.model_validate(t) for field_id, t in table.items()}
    return MappingService.create_mapping(db, template.id, PORTAL_ID, targets, "admin-1", portals)


def test_missing_required_field_fails_without_persisting(db, t1, audit):
    result = generate(db, t1, {"fullName": "A. Smith"}, audit=audit)

    assert result.success is False
    assert result.missing_fields == ["passportNumber"]
    assert result.message == "Missing required fields"
    assert result.submission is None
    assert db.query(FormSubmission).count() == 0
    assert audit.events == []


def test_complete_form_data_generates_submission(db, t1, audit):
    result = generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, audit=audit)

    assert result.success is True
    submission = result.submission
    assert submission.status == SubmissionStatus.GENERATED
    assert submission.data == {"fullName": "A. Smith", "passportNumber": "X123"}
    assert submission.missing_fields == []
    assert submission.template_id == t1.id
    assert submission.template_version == 1
    assert submission.portal_payload is None
    assert submission.created_by == "agent-1"
    assert audit.actions == ["generate"]
    assert audit.events[0].details["case_id"] == "C1"


def test_target_portal_payload_is_translated(db, t1, portals):
    create_mapping(db, t1, portals, {"passportNumber": {"portalField": "pp_no", "transform": {"kind": "trim"}}})

    result = generate(
        db, t1, {"fullName": "A. Smith", "passportNumber": " X123 "}, target_portal_id=PORTAL_ID
    )

    assert result.success
    assert result.submission.portal_payload == {"pp_no": "X123"}
    assert result.submission.data["passportNumber"] == " X123 "
    assert result.submission.target_portal_id == PORTAL_ID


def test_source_paths_fill_fields_from_case_data(db, t1):
    source = DictCaseDataSource({"C1": {"applicant": {"passport": {"number": "P-998"}}}})

    result = generate(db, t1, {"fullName": "A. Smith"}, source)

    assert result.success
    assert result.submission.data == {"fullName": "A. Smith", "passportNumber": "P-998"}


@pytest.mark.parametrize("override", ["", None])
def test_form_data_key_wins_over_case_data_even_when_blank(db, t1, override):
    source = DictCaseDataSource({"C1": {"applicant": {"passport": {"number": "P-998"}}}})

    result = generate(db, t1, {"fullName": "A. Smith", "passportNumber": override}, source)

    assert result.success is False
    assert result.missing_fields == ["passportNumber"]
    assert source.calls == []


def test_missing_fields_follow_declaration_order(db, t1):
    result = generate(db, t1, {"notes": "urgent"})

    assert result.missing_fields == ["fullName", "passportNumber"]


def test_unknown_form_data_keys_are_ignored(db, t1):
    result = generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123", "favouriteColour": "blue"})

    assert result.success
    assert "favouriteColour" not in result.submission.data


def test_optional_blank_values_are_kept(db, t1, portals):
    create_mapping(db, t1, portals, {
        "passportNumber": {"portalField": "pp_no"},
        "notes": {"portalField": "remarks", "transform": {"kind": "case", "mode": "upper"}},
    })

    result = generate(
        db, t1, {"fullName": "A. Smith", "passportNumber": "X123", "notes": None},
        target_portal_id=PORTAL_ID,
    )

    assert result.submission.data == {"fullName": "A. Smith", "passportNumber": "X123", "notes": None}
    assert result.submission.portal_payload == {"pp_no": "X123", "remarks": None}


def test_generation_is_deterministic(db, t1, portals):
    create_mapping(db, t1, portals, {
        "fullName": {"portalField": "name", "transform": {"kind": "case", "mode": "upper"}},
        "passportNumber": {"portalField": "pp_no", "transform": {"kind": "trim"}},
    })
    source = DictCaseDataSource({"C1": {"applicant": {"passport": {"number": " X123 "}}}})

    first = generate(db, t1, {"fullName": "A. Smith"}, source, target_portal_id=PORTAL_ID)
    second = generate(db, t1, {"fullName": "A. Smith"}, source, target_portal_id=PORTAL_ID)

    assert first.submission.id != second.submission.id
    assert first.submission.data == second.submission.data
    assert list(first.submission.data) == ["fullName", "passportNumber"]
    assert first.submission.portal_payload == second.submission.portal_payload == {
        "name": "A. SMITH",
        "pp_no": "X123",
    }


def test_draft_template_cannot_generate(db, make_template):
    draft = make_template(publish=False)

    with pytest.raises(InvalidStateError, match="not published"):
        generate(db, draft, {"fullName": "A. Smith", "passportNumber": "X123"})


def test_archived_template_cannot_generate(db, t1):
    TemplateService.archive_template(db, t1.id, "admin-1")

    with pytest.raises(InvalidStateError, match="archived"):
        generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"})
    assert db.query(FormSubmission).count() == 0


def test_unknown_template_is_not_found(db):
    with pytest.raises(NotFoundError):
        GenerationService.generate_form(db, 999, {}, "C1", "agent-1", DataResolver(DictCaseDataSource()))


def test_missing_mapping_for_target_portal_is_not_found(db, t1):
    with pytest.raises(NotFoundError, match=PORTAL_ID):
        generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, target_portal_id=PORTAL_ID)
    assert db.query(FormSubmission).count() == 0


def test_soft_deleted_mapping_is_not_used(db, t1, portals):
    mapping = create_mapping(db, t1, portals, {"passportNumber": {"portalField": "pp_no"}})
    MappingService.delete_mapping(db, mapping.id, "admin-1")

    with pytest.raises(NotFoundError):
        generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, target_portal_id=PORTAL_ID)


def test_transform_failure_persists_nothing(db, t1, portals):
    create_mapping(db, t1, portals, {
        "fullName": {"portalField": "dob", "transform": {"kind": "dateFormat", "toFormat": "%d/%m/%Y"}},
    })

    with pytest.raises(ValidationError, match="fullName"):
        generate(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, target_portal_id=PORTAL_ID)
    assert db.query(FormSubmission).count() == 0


def test_case_data_failure_aborts_generation(db, t1, audit):
    with pytest.raises(DependencyError):
        generate(db, t1, {"fullName": "A. Smith"}, FailingCaseDataSource(), audit=audit)

    assert db.query(FormSubmission).count() == 0
    assert audit.events == []


def test_audit_failure_does_not_undo_generation(db, t1, caplog):
    with caplog.at_level(logging.ERROR, logger="formengine.services.audit"):
        result = generate(
            db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, audit=FailingAuditSink()
        )

    assert result.success
    assert db.query(FormSubmission).count() == 1
    assert "Audit delivery failed" in caplog.text


@pytest.fixture
def visa(db):
    """Published template with typed fields and validation rules."""
    definition = TemplateCreate(
        name="Visa with rules",
        sections=[
            TemplateSection(id="trip", title="Trip", fields=[
                TemplateField(
                    id="passportNumber",
                    label="Passport number",
                    required=True,
                    rules=[ValidationRule(type="pattern", value="^[A-Z0-9]{6,9}$")],
                ),
                TemplateField(id="arrival", label="Arrival date", type="date", required=True),
                TemplateField(id="purpose", label="Purpose", type="choice", options=["tourism", "business"]),
                TemplateField(
                    id="days",
                    label="Length of stay",
                    type="number",
                    rules=[ValidationRule(type="max", value=90, message="Stays are limited to 90 days")],
                ),
            ]),
        ],
    )
    template = TemplateService.create_template(db, definition, "admin-1")
    return TemplateService.publish_template(db, template.id, "admin-1")


VALID_VISA = {"passportNumber": "X1234567", "arrival": "2026-11-02", "purpose": "tourism", "days": 14}


def test_valid_typed_values_generate(db, visa):
    result = generate(db, visa, VALID_VISA)

    assert result.success
    assert result.invalid_fields == {}
    assert result.submission.data == VALID_VISA


def test_invalid_values_fail_without_persisting(db, visa, audit):
    form_data = {**VALID_VISA, "passportNumber": "x-1", "arrival": "next week", "days": 120}

    result = generate(db, visa, form_data, audit=audit)

    assert result.success is False
    assert result.message == "Invalid field values"
    assert result.missing_fields == []
    assert result.invalid_fields == {
        "passportNumber": ["must match the pattern ^[A-Z0-9]{6,9}$"],
        "arrival": ["must be a date (YYYY-MM-DD)"],
        "days": ["Stays are limited to 90 days"],
    }
    assert list(result.invalid_fields) == ["passportNumber", "arrival", "days"]
    assert db.query(FormSubmission).count() == 0
    assert audit.events == []


def test_missing_fields_are_reported_alongside_invalid_ones(db, visa):
    result = generate(db, visa, {"passportNumber": "X1234567", "purpose": "study"})

    assert result.message == "Missing required fields"
    assert result.missing_fields == ["arrival"]
    assert result.invalid_fields == {"purpose": ["must be one of: tourism, business"]}


def preview(db, template, form_data, case_source=None, **kwargs):
    resolver = DataResolver(case_source or DictCaseDataSource())
    return GenerationService.preview_form(db, template.id, form_data, "C1", resolver, **kwargs)


def test_preview_translates_without_persisting(db, t1, portals):
    create_mapping(db, t1, portals, {"passportNumber": {"portalField": "pp_no", "transform": {"kind": "trim"}}})

    result = preview(db, t1, {"fullName": "A. Smith", "passportNumber": " X123 "}, target_portal_id=PORTAL_ID)

    assert result.success
    assert result.template.id == t1.id
    assert result.data == {"fullName": "A. Smith", "passportNumber": " X123 "}
    assert result.portal_payload == {"pp_no": "X123"}
    assert db.query(FormSubmission).count() == 0


def test_preview_accepts_draft_templates(db, make_template):
    draft = make_template(publish=False)

    result = preview(db, draft, {"fullName": "A. Smith", "passportNumber": "X123"})

    assert result.success
    assert result.portal_payload is None


def test_preview_reports_failures_with_partial_data(db, visa):
    result = preview(db, visa, {"passportNumber": "X1234567", "days": "many"})

    assert result.success is False
    assert result.missing_fields == ["arrival"]
    assert result.invalid_fields == {"days": ["must be a number"]}
    assert result.data == {"passportNumber": "X1234567", "days": "many"}


def test_preview_rejects_archived_templates(db, t1):
    TemplateService.archive_template(db, t1.id, "admin-1")

    with pytest.raises(InvalidStateError, match="archived"):
        preview(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"})


def test_preview_needs_a_mapping_for_the_target_portal(db, t1):
    with pytest.raises(NotFoundError, match=PORTAL_ID):
        preview(db, t1, {"fullName": "A. Smith", "passportNumber": "X123"}, target_portal_id=PORTAL_ID)
