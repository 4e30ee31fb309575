"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Template versions; one row per (family, version)
    op.create_table(
        'form_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('family_id', sa.String(36), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('DRAFT', 'PUBLISHED', 'ARCHIVED', name='templatestatus'), nullable=False),
        sa.Column('sections', sa.JSON(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('family_id', 'version', name='uq_form_templates_family_version')
    )
    op.create_index('ix_form_templates_id', 'form_templates', ['id'])
    op.create_index('ix_form_templates_family_id', 'form_templates', ['family_id'])
    op.create_index('ix_form_templates_status', 'form_templates', ['status'])
    
    # Portals table
    op.create_table(
        'portals',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, default=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    
    # Field mappings table
    op.create_table(
        'field_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('portal_id', sa.String(64), nullable=False),
        sa.Column('mappings', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('updated_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['template_id'], ['form_templates.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_field_mappings_id', 'field_mappings', ['id'])
    op.create_index('ix_field_mappings_template_id', 'field_mappings', ['template_id'])
    op.create_index('ix_field_mappings_portal_id', 'field_mappings', ['portal_id'])
    op.create_index('ix_field_mappings_is_active', 'field_mappings', ['is_active'])
    op.create_index(
        'uq_field_mappings_active_pair',
        'field_mappings',
        ['template_id', 'portal_id'],
        unique=True,
        sqlite_where=sa.text('is_active'),
        postgresql_where=sa.text('is_active')
    )
    
    # Form submissions table
    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('case_id', sa.String(255), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('template_version', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('status', sa.Enum('GENERATED', 'INCOMPLETE', 'SUBMITTED', 'FAILED', name='submissionstatus'), nullable=False),
        sa.Column('missing_fields', sa.JSON(), nullable=False),
        sa.Column('target_portal_id', sa.String(64), nullable=True),
        sa.Column('mapping_id', sa.Integer(), nullable=True),
        sa.Column('portal_payload', sa.JSON(), nullable=True),
        sa.Column('status_reason', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['template_id'], ['form_templates.id']),
        sa.ForeignKeyConstraint(['mapping_id'], ['field_mappings.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_form_submissions_id', 'form_submissions', ['id'])
    op.create_index('ix_form_submissions_case_id', 'form_submissions', ['case_id'])
    op.create_index('ix_form_submissions_template_id', 'form_submissions', ['template_id'])
    op.create_index('ix_form_submissions_status', 'form_submissions', ['status'])
    
    # Case data snapshots
    op.create_table(
        'case_records',
        sa.Column('case_id', sa.String(255), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('case_id')
    )
    
    # Audit events table
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.Enum('FORM_TEMPLATE', 'FIELD_MAPPING', 'FORM_SUBMISSION', name='auditentitytype'), nullable=False),
        sa.Column('entity_id', sa.String(255), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_events_id', 'audit_events', ['id'])
    op.create_index('ix_audit_events_entity_type', 'audit_events', ['entity_type'])
    op.create_index('ix_audit_events_entity_id', 'audit_events', ['entity_id'])
    op.create_index('ix_audit_events_user_id', 'audit_events', ['user_id'])


def downgrade() -> None:
    op.drop_table('audit_events')
    op.drop_table('case_records')
    op.drop_table('form_submissions')
    op.drop_table('field_mappings')
    op.drop_table('portals')
    op.drop_table('form_templates')
    
    # Drop enums
    op.execute("DROP TYPE IF EXISTS auditentitytype")
    op.execute("DROP TYPE IF EXISTS submissionstatus")
    op.execute("DROP TYPE IF EXISTS templatestatus")
