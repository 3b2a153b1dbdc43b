"""student experiences

Revision ID: 0002
Revises: 0001
Create Date: 2025-02-03 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "experiences",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("position", sa.String(), nullable=False),
        sa.Column("company", sa.String(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
    )
    op.create_index("ix_experiences_student_id", "experiences", ["student_id"])


def downgrade() -> None:
    op.drop_index("ix_experiences_student_id", table_name="experiences")
    op.drop_table("experiences")
