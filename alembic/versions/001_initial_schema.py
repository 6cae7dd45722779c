"""initial schema - webhook pipeline tables

Revision ID: 001
Revises: 
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create clients table
    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('webhook_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    
    # Create user_settings table
    op.create_table(
        'user_settings',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('webhook_url', sa.Text(), nullable=True),
        sa.Column('zapier_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('api_key', sa.String(64), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    
    # Create forms table
    op.create_table(
        'forms',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, index=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    
    # Create form_steps table
    op.create_table(
        'form_steps',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('form_id', sa.String(36), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('question_type', sa.String(50), nullable=False),
        sa.Column('step_order', sa.Integer(), nullable=False, server_default='0'),
    )
    
    # Create form_responses table
    op.create_table(
        'form_responses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('form_id', sa.String(36), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('contact_postcode', sa.String(20), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    
    # Create response_answers table
    op.create_table(
        'response_answers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('response_id', sa.String(36), sa.ForeignKey('form_responses.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('step_id', sa.String(36), sa.ForeignKey('form_steps.id', ondelete='CASCADE'), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('selected_option_id', sa.String(36), nullable=True),
        sa.Column('file_url', sa.Text(), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('width', sa.Float(), nullable=True),
        sa.Column('height', sa.Float(), nullable=True),
        sa.Column('depth', sa.Float(), nullable=True),
        sa.Column('units', sa.String(20), nullable=True),
        sa.Column('scale_rating', sa.Integer(), nullable=True),
    )
    
    # Create webhook_notifications table (status as VARCHAR)
    op.create_table(
        'webhook_notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('webhook_url', sa.Text(), nullable=False),
        sa.Column('form_id', sa.String(36), nullable=False, index=True),
        sa.Column('response_id', sa.String(36), nullable=False, index=True),
        sa.Column('payload', postgresql.JSONB(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index(
        'ix_webhook_notifications_dispatch',
        'webhook_notifications',
        ['status', 'attempts', 'created_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_webhook_notifications_dispatch', table_name='webhook_notifications')
    op.drop_table('webhook_notifications')
    op.drop_table('response_answers')
    op.drop_table('form_responses')
    op.drop_table('form_steps')
    op.drop_table('forms')
    op.drop_table('user_settings')
    op.drop_table('clients')
