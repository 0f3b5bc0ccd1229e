"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create files table
    op.create_table(
        'files',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('mime_type', sa.String(), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('file_type', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Create purchase_orders table
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('po_number', sa.String(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('carrier_name', sa.String(), nullable=False),
        sa.Column('origin', sa.String(), nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('pickup_date', sa.Date(), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('expected_charges', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('po_file_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['po_file_id'], ['files.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_purchase_orders_po_number'), 'purchase_orders', ['po_number'], unique=True)
    op.create_index(op.f('ix_purchase_orders_status'), 'purchase_orders', ['status'], unique=False)

    # Create bills_of_lading table
    op.create_table(
        'bills_of_lading',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('bol_number', sa.String(), nullable=False),
        sa.Column('po_number', sa.String(), nullable=False),
        sa.Column('carrier_name', sa.String(), nullable=False),
        sa.Column('origin', sa.String(), nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('pickup_date', sa.Date(), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('weight_lbs', sa.Float(), nullable=True),
        sa.Column('item_description', sa.Text(), nullable=True),
        sa.Column('actual_charges', sa.JSON(), nullable=True),
        sa.Column('pod_file_id', sa.String(), nullable=True),
        sa.Column('pod_signed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['pod_file_id'], ['files.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bills_of_lading_bol_number'), 'bills_of_lading', ['bol_number'], unique=True)
    op.create_index(op.f('ix_bills_of_lading_po_number'), 'bills_of_lading', ['po_number'], unique=False)
    op.create_index(op.f('ix_bills_of_lading_status'), 'bills_of_lading', ['status'], unique=False)

    # Create invoices table
    op.create_table(
        'invoices',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('carrier_name', sa.String(), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('po_number', sa.String(), nullable=False),
        sa.Column('bol_number', sa.String(), nullable=True),
        sa.Column('po_id', sa.String(), nullable=True),
        sa.Column('bol_id', sa.String(), nullable=True),
        sa.Column('charges', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_terms', sa.String(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('invoice_file_id', sa.String(), nullable=True),
        sa.Column('match_type', sa.String(), nullable=True),
        sa.Column('match_confidence', sa.Float(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(), nullable=True),
        sa.Column('approval_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['po_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['bol_id'], ['bills_of_lading.id'], ),
        sa.ForeignKeyConstraint(['invoice_file_id'], ['files.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
    op.create_index(op.f('ix_invoices_po_number'), 'invoices', ['po_number'], unique=False)
    op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'], unique=False)

    # Create matching_results table
    op.create_table(
        'matching_results',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('po_id', sa.String(), nullable=False),
        sa.Column('bol_id', sa.String(), nullable=True),
        sa.Column('invoice_id', sa.String(), nullable=False),
        sa.Column('match_status', sa.String(length=20), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=False),
        sa.Column('comparison', sa.JSON(), nullable=True),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('flags_count', sa.Integer(), nullable=False),
        sa.Column('high_severity_flags_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['po_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['bol_id'], ['bills_of_lading.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_matching_results_invoice_id'), 'matching_results', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_matching_results_match_status'), 'matching_results', ['match_status'], unique=False)
    op.create_index(op.f('ix_matching_results_created_at'), 'matching_results', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_matching_results_created_at'), table_name='matching_results')
    op.drop_index(op.f('ix_matching_results_match_status'), table_name='matching_results')
    op.drop_index(op.f('ix_matching_results_invoice_id'), table_name='matching_results')
    op.drop_table('matching_results')
    op.drop_index(op.f('ix_invoices_status'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_po_number'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_invoice_number'), table_name='invoices')
    op.drop_table('invoices')
    op.drop_index(op.f('ix_bills_of_lading_status'), table_name='bills_of_lading')
    op.drop_index(op.f('ix_bills_of_lading_po_number'), table_name='bills_of_lading')
    op.drop_index(op.f('ix_bills_of_lading_bol_number'), table_name='bills_of_lading')
    op.drop_table('bills_of_lading')
    op.drop_index(op.f('ix_purchase_orders_status'), table_name='purchase_orders')
    op.drop_index(op.f('ix_purchase_orders_po_number'), table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_table('files')
