"""create_payroll_import_tables

Revision ID: 3f1c2a7d9b10
Revises: 
Create Date: 2026-10-19 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7d9b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

alias_origin = sa.Enum('exact', 'fuzzy', 'manual', name='aliasorigin')
mapping_type = sa.Enum('exact', 'fuzzy', 'manual', 'alias', name='mappingtype')
json_type = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'mapping_configuration',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_mapping_configuration_id'), 'mapping_configuration', ['id'], unique=False)
    op.create_index(op.f('ix_mapping_configuration_is_default'), 'mapping_configuration', ['is_default'], unique=False)

    op.create_table(
        'configuration_field_mapping',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('field_key', sa.String(), nullable=False),
        sa.Column('column_name', sa.String(), nullable=False),
        sa.Column('confidence_score', sa.Integer(), nullable=False),
        sa.Column('mapping_type', mapping_type, nullable=False),
        sa.Column('validation_passed', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['config_id'], ['mapping_configuration.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('config_id', 'field_key', name='uix_config_field')
    )
    op.create_index(op.f('ix_configuration_field_mapping_id'), 'configuration_field_mapping', ['id'], unique=False)

    op.create_table(
        'column_alias',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('field_key', sa.String(), nullable=False),
        sa.Column('alias_text', sa.String(), nullable=False),
        sa.Column('alias_key', sa.String(), nullable=False),
        sa.Column('confidence_score', sa.Integer(), nullable=False),
        sa.Column('origin', alias_origin, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['config_id'], ['mapping_configuration.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('field_key', 'alias_key', name='uix_alias_field_text')
    )
    op.create_index(op.f('ix_column_alias_id'), 'column_alias', ['id'], unique=False)
    op.create_index(op.f('ix_column_alias_field_key'), 'column_alias', ['field_key'], unique=False)

    op.create_table(
        'employee',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_employee_id'), 'employee', ['id'], unique=False)
    op.create_index(op.f('ix_employee_employee_id'), 'employee', ['employee_id'], unique=True)

    op.create_table(
        'payroll',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(), nullable=False),
        sa.Column('salary_month', sa.String(), nullable=False),
        sa.Column('fields', json_type, nullable=False),
        sa.Column('source_file', sa.String(), nullable=True),
        sa.Column('source_row', sa.Integer(), nullable=True),
        sa.Column('import_batch_id', sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'salary_month', name='uix_payroll_employee_month')
    )
    op.create_index(op.f('ix_payroll_id'), 'payroll', ['id'], unique=False)
    op.create_index(op.f('ix_payroll_employee_id'), 'payroll', ['employee_id'], unique=False)
    op.create_index(op.f('ix_payroll_salary_month'), 'payroll', ['salary_month'], unique=False)
    op.create_index(op.f('ix_payroll_import_batch_id'), 'payroll', ['import_batch_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_payroll_import_batch_id'), table_name='payroll')
    op.drop_index(op.f('ix_payroll_salary_month'), table_name='payroll')
    op.drop_index(op.f('ix_payroll_employee_id'), table_name='payroll')
    op.drop_index(op.f('ix_payroll_id'), table_name='payroll')
    op.drop_table('payroll')
    op.drop_index(op.f('ix_employee_employee_id'), table_name='employee')
    op.drop_index(op.f('ix_employee_id'), table_name='employee')
    op.drop_table('employee')
    op.drop_index(op.f('ix_column_alias_field_key'), table_name='column_alias')
    op.drop_index(op.f('ix_column_alias_id'), table_name='column_alias')
    op.drop_table('column_alias')
    op.drop_index(op.f('ix_configuration_field_mapping_id'), table_name='configuration_field_mapping')
    op.drop_table('configuration_field_mapping')
    op.drop_index(op.f('ix_mapping_configuration_is_default'), table_name='mapping_configuration')
    op.drop_index(op.f('ix_mapping_configuration_id'), table_name='mapping_configuration')
    op.drop_table('mapping_configuration')
    mapping_type.drop(op.get_bind(), checkfirst=True)
    alias_origin.drop(op.get_bind(), checkfirst=True)
