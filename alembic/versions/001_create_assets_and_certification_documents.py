"""Create assets and certification documents tables

Revision ID: 001_create_assets_and_certification_documents
Revises:
Create Date: 2026-10-19

Glove inventory scoped per organization, plus the certification documents
that restart each asset's six-month cycle.
"""

from alembic import op
import sqlalchemy as sa

revision = '001_create_assets_and_certification_documents'
down_revision = None
branch_labels = None
depends_on = None

ASSET_STATUSES = "('active', 'near-due', 'expired', 'failed', 'in-testing')"


def upgrade():
    """Create assets and certification_documents tables"""
    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('org_id', sa.String(64), nullable=False,
                 comment="Owning organization"),
        sa.Column('serial_number', sa.String(100), nullable=False),
        sa.Column('asset_class', sa.String(20), nullable=False,
                 comment="Class 00 .. Class 4"),
        sa.Column('glove_size', sa.String(2), nullable=True),
        sa.Column('glove_color', sa.String(10), nullable=True),
        sa.Column('assigned_user_id', sa.String(64), nullable=True),
        sa.Column('issue_date', sa.Date, nullable=False),
        sa.Column('last_certification_date', sa.Date, nullable=False),
        sa.Column('next_certification_date', sa.Date, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('failure_date', sa.Date, nullable=True),
        sa.Column('failure_reason', sa.Text, nullable=True),
        sa.Column('testing_start_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                 server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                 server_default=sa.func.now()),
        sa.UniqueConstraint('org_id', 'serial_number', name='uq_assets_org_serial'),
        # Inline so the constraint is also created on SQLite
        sa.CheckConstraint(f"status IN {ASSET_STATUSES}", name='chk_assets_status'),
    )

    op.create_index('ix_assets_org_id', 'assets', ['org_id'])
    op.create_index('ix_assets_next_certification_date', 'assets', ['next_certification_date'])
    op.create_index('idx_assets_org_assigned', 'assets', ['org_id', 'assigned_user_id'])

    op.create_table(
        'certification_documents',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('asset_id', sa.Uuid,
                 sa.ForeignKey('assets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('org_id', sa.String(64), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.Text, nullable=False,
                 comment="Storage reference returned by the document store"),
        sa.Column('upload_date', sa.DateTime(timezone=True), nullable=False,
                 server_default=sa.func.now()),
        sa.Column('uploaded_by', sa.String(64), nullable=False),
        sa.Column('applied_to_assets', sa.JSON, nullable=True,
                 comment="Asset ids sharing this document (bulk uploads)"),
    )

    op.create_index('ix_certification_documents_asset_id', 'certification_documents', ['asset_id'])
    op.create_index('ix_certification_documents_org_id', 'certification_documents', ['org_id'])


def downgrade():
    """Remove certification_documents and assets tables"""
    op.drop_index('ix_certification_documents_org_id', 'certification_documents')
    op.drop_index('ix_certification_documents_asset_id', 'certification_documents')
    op.drop_table('certification_documents')
    op.drop_index('idx_assets_org_assigned', 'assets')
    op.drop_index('ix_assets_next_certification_date', 'assets')
    op.drop_index('ix_assets_org_id', 'assets')
    op.drop_table('assets')
