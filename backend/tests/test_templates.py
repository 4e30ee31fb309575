import logging

import pytest
from pydantic import ValidationError as SchemaValidationError

from formengine.exceptions import InvalidStateError, NotFoundError, ValidationError
from formengine.models.template import FormTemplate, TemplateStatus
from formengine.schemas.mapping import PortalFieldTarget
from formengine.schemas.template import (
    TemplateCreate,
    TemplateField,
    TemplateSection,
    TemplateUpdate,
    ValidationRule,
)
from formengine.services.mapping import MappingService
from formengine.services.template import TemplateService

from conftest import PORTAL_ID, t1_definition


def test_create_template_starts_family_at_draft_v1(db, audit):
    template = TemplateService.create_template(db, t1_definition(), "admin-1", audit)

    assert template.version == 1
    assert template.status == TemplateStatus.DRAFT
    assert template.family_id
    assert template.field_ids == ["fullName", "passportNumber", "notes"]
    assert template.required_field_ids == ["fullName", "passportNumber"]
    assert template.fields[1]["sourcePath"] == "applicant.passport.number"
    assert audit.actions == ["create"]


def test_create_rejects_blank_name(db):
    definition = t1_definition()
    definition.name = "   "

    with pytest.raises(ValidationError):
        TemplateService.create_template(db, definition, "admin-1")


def test_create_rejects_template_without_fields(db):
    definition = TemplateCreate(
        name="Empty",
        sections=[TemplateSection(id="s1", title="Nothing here")],
    )

    with pytest.raises(ValidationError, match="at least one field"):
        TemplateService.create_template(db, definition, "admin-1")
    assert db.query(FormTemplate).count() == 0


def test_create_rejects_field_ids_repeated_across_sections(db):
    definition = TemplateCreate(
        name="Duplicated",
        sections=[
            TemplateSection(id="a", title="A", fields=[TemplateField(id="fullName", label="Name")]),
            TemplateSection(id="b", title="B", fields=[TemplateField(id="fullName", label="Name again")]),
        ],
    )

    with pytest.raises(ValidationError) as exc_info:
        TemplateService.create_template(db, definition, "admin-1")
    assert exc_info.value.details == {"field_ids": ["fullName"]}


def test_publish_moves_draft_to_published(db, make_template, audit):
    draft = make_template(publish=False)

    published = TemplateService.publish_template(db, draft.id, "admin-1", audit)

    assert published.status == TemplateStatus.PUBLISHED
    assert published.published_at is not None
    assert audit.actions == ["publish"]


def test_publish_rejects_non_draft(db, t1):
    with pytest.raises(InvalidStateError):
        TemplateService.publish_template(db, t1.id, "admin-1")


def test_publish_unknown_template_is_not_found(db):
    with pytest.raises(NotFoundError):
        TemplateService.publish_template(db, 404, "admin-1")


def test_draft_can_be_edited_in_place(db, make_template):
    draft = make_template(publish=False)

    updated = TemplateService.update_template(
        db, draft.id, TemplateUpdate(name="Renamed"), "admin-1"
    )

    assert updated.id == draft.id
    assert updated.version == 1
    assert updated.name == "Renamed"
    assert updated.field_ids == ["fullName", "passportNumber", "notes"]


def test_published_template_cannot_be_edited_in_place(db, t1):
    with pytest.raises(InvalidStateError):
        TemplateService.update_template(db, t1.id, TemplateUpdate(name="Renamed"), "admin-1")

    db.refresh(t1)
    assert t1.name == "Irish Visa Application"


def test_new_version_leaves_prior_version_untouched(db, t1, audit):
    original_sections = [dict(section) for section in t1.sections]
    patch = TemplateUpdate(sections=[
        TemplateSection(id="applicant", title="Applicant", fields=[
            TemplateField(id="fullName", label="Full name", required=True),
            TemplateField(id="dateOfBirth", label="Date of birth", type="date", required=True),
        ]),
    ])

    v2 = TemplateService.update_template(db, t1.id, patch, "admin-2", create_new_version=True, audit=audit)

    assert v2.id != t1.id
    assert v2.family_id == t1.family_id
    assert v2.version == 2
    assert v2.status == TemplateStatus.DRAFT
    assert v2.name == t1.name
    assert v2.field_ids == ["fullName", "dateOfBirth"]

    db.refresh(t1)
    assert t1.version == 1
    assert t1.status == TemplateStatus.PUBLISHED
    assert t1.sections == original_sections
    assert audit.actions == ["create_version"]
    assert audit.events[0].details["source_template_id"] == t1.id


def test_new_version_revalidates_merged_definition(db, t1):
    patch = TemplateUpdate(sections=[TemplateSection(id="empty", title="Empty")])

    with pytest.raises(ValidationError):
        TemplateService.update_template(db, t1.id, patch, "admin-1", create_new_version=True)
    assert [v.version for v in TemplateService.get_versions(db, t1.family_id)] == [1]


def test_current_version_is_highest_published(db, t1):
    v2 = TemplateService.update_template(db, t1.id, TemplateUpdate(), "admin-1", create_new_version=True)
    TemplateService.publish_template(db, v2.id, "admin-1")
    TemplateService.update_template(db, v2.id, TemplateUpdate(), "admin-1", create_new_version=True)

    current = TemplateService.get_current_version(db, t1.family_id)

    assert current.id == v2.id
    assert [v.version for v in TemplateService.get_versions(db, t1.family_id)] == [1, 2, 3]
    assert TemplateService.get_version(db, t1.family_id, 3).status == TemplateStatus.DRAFT


def test_archive_is_idempotent(db, t1, audit):
    archived = TemplateService.archive_template(db, t1.id, "admin-1", audit)
    again = TemplateService.archive_template(db, t1.id, "admin-1", audit)

    assert archived.status == TemplateStatus.ARCHIVED
    assert again.archived_at == archived.archived_at
    assert audit.actions == ["archive"]
    assert TemplateService.get_current_version(db, t1.family_id) is None


def test_get_templates_filters_by_status(db, make_template):
    make_template(publish=False, name="Draft one")
    published = make_template(name="Published one")

    result = TemplateService.get_templates(db, status=TemplateStatus.PUBLISHED)

    assert [t.id for t in result] == [published.id]


def test_new_version_retries_after_concurrent_allocation(db, t1, monkeypatch, caplog):
    # Another writer takes version 2 between our head read and our insert
    db.add(FormTemplate(
        family_id=t1.family_id,
        version=2,
        name=t1.name,
        status=TemplateStatus.DRAFT,
        sections=t1.sections,
        created_by="admin-other",
    ))
    db.commit()

    real_head_version = TemplateService._head_version
    stale_reads = iter([1])

    def head_version(session, family_id):
        return next(stale_reads, None) or real_head_version(session, family_id)

    monkeypatch.setattr(TemplateService, "_head_version", staticmethod(head_version))

    with caplog.at_level(logging.WARNING, logger="formengine.services.template"):
        v3 = TemplateService.update_template(
            db, t1.id, TemplateUpdate(name="Mine"), "admin-1", create_new_version=True
        )

    assert v3.version == 3
    assert v3.name == "Mine"
    versions = TemplateService.get_versions(db, t1.family_id)
    assert [(v.version, v.created_by) for v in versions] == [
        (1, "admin-1"), (2, "admin-other"), (3, "admin-1"),
    ]
    assert "allocated concurrently" in caplog.text


def test_new_version_gives_up_after_configured_retries(db, t1, monkeypatch):
    monkeypatch.setattr(TemplateService, "_head_version", staticmethod(lambda session, family_id: 0))

    with pytest.raises(InvalidStateError, match="Could not allocate"):
        TemplateService.update_template(db, t1.id, TemplateUpdate(), "admin-1", create_new_version=True)

    assert db.query(FormTemplate).count() == 1


def only_full_name() -> TemplateUpdate:
    return TemplateUpdate(sections=[
        TemplateSection(id="applicant", title="Applicant", fields=[
            TemplateField(id="fullName", label="Full name", required=True),
        ]),
    ])


def map_passport(db, template, portals):
    targets = {"passportNumber": PortalFieldTarget(portal_field="pp_no")}
    return MappingService.create_mapping(db, template.id, PORTAL_ID, targets, "admin-1", portals)


def test_draft_edit_cannot_drop_a_mapped_field(db, make_template, portals):
    draft = make_template(publish=False)
    map_passport(db, draft, portals)

    with pytest.raises(ValidationError, match="passportNumber") as exc_info:
        TemplateService.update_template(db, draft.id, only_full_name(), "admin-1")

    assert exc_info.value.details == {"field_ids": ["passportNumber"]}
    db.refresh(draft)
    assert draft.field_ids == ["fullName", "passportNumber", "notes"]


def test_draft_edit_may_drop_unmapped_fields(db, make_template, portals):
    draft = make_template(publish=False)
    map_passport(db, draft, portals)
    keep_passport = TemplateUpdate(sections=[
        TemplateSection(id="applicant", title="Applicant", fields=[
            TemplateField(id="fullName", label="Full name", required=True),
            TemplateField(id="passportNumber", label="Passport no.", required=True),
        ]),
    ])

    updated = TemplateService.update_template(db, draft.id, keep_passport, "admin-1")

    assert updated.field_ids == ["fullName", "passportNumber"]


def test_draft_edit_may_drop_field_once_its_mapping_is_deleted(db, make_template, portals):
    draft = make_template(publish=False)
    mapping = map_passport(db, draft, portals)
    MappingService.delete_mapping(db, mapping.id, "admin-1")

    updated = TemplateService.update_template(db, draft.id, only_full_name(), "admin-1")

    assert updated.field_ids == ["fullName"]


def with_field(field: TemplateField) -> TemplateCreate:
    return TemplateCreate(
        name="Rules",
        sections=[TemplateSection(id="s", title="S", fields=[field])],
    )


def test_field_rules_are_stored_with_the_definition(db):
    field = TemplateField(
        id="passportNumber",
        label="Passport number",
        rules=[
            ValidationRule(type="pattern", value="^[A-Z0-9]+$", message="Letters and digits only"),
            ValidationRule(type="maxLength", value=9),
        ],
    )

    template = TemplateService.create_template(db, with_field(field), "admin-1")

    assert template.fields[0]["rules"] == [
        {"type": "pattern", "value": "^[A-Z0-9]+$", "message": "Letters and digits only"},
        {"type": "maxLength", "value": 9},
    ]
    rules = TemplateService.get_validation_rules(db, template.id)
    assert rules == [{
        "field_id": "passportNumber",
        "type": "text",
        "required": False,
        "options": None,
        "rules": template.fields[0]["rules"],
    }]


@pytest.mark.parametrize("rule", [
    {"type": "pattern", "value": "[unclosed"},
    {"type": "minLength", "value": -1},
    {"type": "max", "value": "ten"},
])
def test_malformed_rules_are_rejected_by_the_schema(rule):
    with pytest.raises(SchemaValidationError):
        ValidationRule.model_validate(rule)


def test_bounds_rules_need_a_number_field(db):
    field = TemplateField(id="age", label="Age", rules=[ValidationRule(type="min", value=18)])

    with pytest.raises(ValidationError, match="number field"):
        TemplateService.create_template(db, with_field(field), "admin-1")


def test_contradictory_bounds_are_rejected(db):
    field = TemplateField(
        id="code",
        label="Code",
        rules=[ValidationRule(type="minLength", value=8), ValidationRule(type="maxLength", value=4)],
    )

    with pytest.raises(ValidationError, match="minLength is greater than maxLength"):
        TemplateService.create_template(db, with_field(field), "admin-1")
    assert db.query(FormTemplate).count() == 0
