"""Seed script to create initial data for development/demo."""

import sys
import os
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from formengine.database import SessionLocal, engine, Base
from formengine.models.case_record import CaseRecord
from formengine.models.mapping import Portal, FieldMapping
from formengine.models.template import FormTemplate, TemplateStatus

SEED_USER = "seed"

# Government portals that submissions can be translated for
PORTALS = [
    {"id": "IRISH_IMMIGRATION", "name": "Irish Immigration Service Delivery"},
    {"id": "IRISH_VISA", "name": "Irish Visa Online Application (AVATS)"},
    {"id": "GNIB", "name": "Garda National Immigration Bureau Registration"},
    {"id": "EMPLOYMENT_PERMIT", "name": "Employment Permits Online (DETE)"},
]

VISA_TEMPLATE = {
    "name": "Irish Short Stay Visa Application",
    "description": "Applicant details required for a short stay (C) visa application.",
    "sections": [
        {
            "id": "personal_details",
            "title": "Personal Details",
            "fields": [
                {"id": "fullName", "label": "Full name", "type": "text", "required": True,
                 "sourcePath": "applicant.fullName"},
                {"id": "dateOfBirth", "label": "Date of birth", "type": "date", "required": True,
                 "sourcePath": "applicant.dateOfBirth"},
                {"id": "nationality", "label": "Nationality", "type": "text", "required": True,
                 "sourcePath": "applicant.nationality"},
            ],
        },
        {
            "id": "travel_document",
            "title": "Travel Document",
            "fields": [
                {"id": "passportNumber", "label": "Passport number", "type": "text", "required": True,
                 "sourcePath": "applicant.passport.number"},
                {"id": "passportExpiry", "label": "Passport expiry date", "type": "date", "required": False,
                 "sourcePath": "applicant.passport.expiryDate"},
            ],
        },
        {
            "id": "journey",
            "title": "Journey",
            "fields": [
                {"id": "purpose", "label": "Purpose of travel", "type": "choice", "required": True,
                 "options": ["tourism", "business", "family"]},
                {"id": "notes", "label": "Additional notes", "type": "text", "required": False,
                 "rules": [{"type": "maxLength", "value": 500}]},
            ],
        },
    ],
}

VISA_MAPPING = {
    "fullName": {"portalField": "applicant_name", "transform": {"kind": "case", "mode": "upper"}},
    "dateOfBirth": {"portalField": "dob", "transform": {"kind": "dateFormat", "toFormat": "%d/%m/%Y"}},
    "nationality": {"portalField": "nationality", "transform": {"kind": "trim"}},
    "passportNumber": {"portalField": "travel_doc_no", "transform": {"kind": "trim"}},
    "purpose": {
        "portalField": "journey_type",
        "transform": {
            "kind": "enumRelabel",
            "table": {"tourism": "Tourist", "business": "Business", "family": "Visit Family/Friends"},
        },
    },
}

SAMPLE_CASE = {
    "case_id": "CASE-0001",
    "data": {
        "applicant": {
            "fullName": "Amara Okafor",
            "dateOfBirth": "1990-04-12",
            "nationality": "Nigerian",
            "passport": {"number": " A01234567 ", "expiryDate": "2031-08-30"},
        }
    },
}


def seed_database():
    """Create initial seed data."""
    db = SessionLocal()

    try:
        # Create portals
        print("Creating portals...")

        for portal_config in PORTALS:
            portal = db.query(Portal).filter(Portal.id == portal_config["id"]).first()
            if not portal:
                db.add(Portal(id=portal_config["id"], name=portal_config["name"]))
                print(f"  Created portal: {portal_config['id']}")

        db.commit()

        # Create the sample template, published at version 1
        print("\nCreating templates...")

        template = db.query(FormTemplate).filter(FormTemplate.name == VISA_TEMPLATE["name"]).first()
        if not template:
            template = FormTemplate(
                version=1,
                name=VISA_TEMPLATE["name"],
                description=VISA_TEMPLATE["description"],
                status=TemplateStatus.PUBLISHED,
                sections=VISA_TEMPLATE["sections"],
                created_by=SEED_USER,
                published_at=datetime.utcnow(),
            )
            db.add(template)
            db.commit()
            db.refresh(template)
            print(f"  Created template: {template.name} (id={template.id})")
        else:
            print(f"  Template exists: {template.name} (id={template.id})")

        # Map it to the visa portal
        print("\nCreating field mappings...")

        mapping = db.query(FieldMapping).filter(
            FieldMapping.template_id == template.id,
            FieldMapping.portal_id == "IRISH_VISA",
            FieldMapping.is_active == True
        ).first()
        if not mapping:
            db.add(FieldMapping(
                template_id=template.id,
                portal_id="IRISH_VISA",
                mappings=VISA_MAPPING,
                created_by=SEED_USER,
            ))
            print("  Created mapping: template -> IRISH_VISA")
        else:
            mapping.mappings = VISA_MAPPING
            print("  Updated mapping: template -> IRISH_VISA")

        # Case data snapshot for source-path resolution
        print("\nCreating case data...")

        record = db.query(CaseRecord).filter(CaseRecord.case_id == SAMPLE_CASE["case_id"]).first()
        if not record:
            db.add(CaseRecord(case_id=SAMPLE_CASE["case_id"], data=SAMPLE_CASE["data"]))
            print(f"  Created case: {SAMPLE_CASE['case_id']}")
        else:
            record.data = SAMPLE_CASE["data"]
            print(f"  Updated case: {SAMPLE_CASE['case_id']}")

        db.commit()

        print("\nSeed data created successfully!")
        print(f"\nCreated {len(PORTALS)} portals:")
        for p in PORTALS:
            print(f"  - {p['id']}")
        print("\nTry generating a form with:")
        print("  POST /api/forms/generate  (X-User-Id: agent-1, X-User-Role: agent)")
        print(f"  {{\"template_id\": {template.id}, \"case_id\": \"{SAMPLE_CASE['case_id']}\", "
              f"\"form_data\": {{\"purpose\": \"tourism\"}}, \"target_portal_id\": \"IRISH_VISA\"}}")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    # Create tables
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Seed data
    seed_database()
