"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_deleted: bool = False):
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]
    if with_deleted:
        columns.append(sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("profile_picture", sa.String(), nullable=True),
        sa.Column("profile_completed", sa.Boolean(), nullable=False),
        sa.Column("email_verified", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_deleted=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "admins",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, unique=True),
    )

    op.create_table(
        "authorized_school_domains",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("domain", sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_authorized_school_domains_domain", "authorized_school_domains", ["domain"], unique=True)

    op.create_table(
        "schools",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("logo", sa.String(), nullable=True),
        sa.Column("domain_id", sa.String(36), sa.ForeignKey("authorized_school_domains.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(with_deleted=True),
    )

    op.create_table(
        "school_owners",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("school_id", sa.String(36), sa.ForeignKey("schools.id"), nullable=False),
    )

    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("logo", sa.String(), nullable=True),
        *_timestamps(with_deleted=True),
    )

    op.create_table(
        "company_owners",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("school_id", sa.String(36), sa.ForeignKey("schools.id"), nullable=True),
        sa.Column("student_email", sa.String(), nullable=True, unique=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("skills", sa.Text(), nullable=False),
        sa.Column("apprenticeship_rhythm", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("curriculum_vitae", sa.String(), nullable=True),
        sa.Column("previous_companies", sa.Text(), nullable=False),
        sa.Column("availability", sa.Boolean(), nullable=False),
        sa.Column("primary_recommendation_id", sa.String(36), nullable=True),
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("skills", sa.Text(), nullable=True),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column("availability", sa.String(), nullable=True),
        sa.Column("featured_image", sa.String(), nullable=True),
        *_timestamps(with_deleted=True),
    )

    op.create_table(
        "job_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("job_id", sa.String(36), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        *_timestamps(with_deleted=True),
        sa.UniqueConstraint("student_id", "job_id", name="uq_job_requests_student_job"),
    )
    op.create_index("ix_job_requests_student_id", "job_requests", ["student_id"])
    op.create_index("ix_job_requests_job_id", "job_requests", ["job_id"])

    op.create_table(
        "recommendations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("recommendation", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_recommendations_student_id", "recommendations", ["student_id"])

    # students <-> recommendations reference each other; close the cycle last
    with op.batch_alter_table("students") as batch_op:
        batch_op.create_foreign_key(
            "fk_students_primary_recommendation",
            "recommendations",
            ["primary_recommendation_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("identifier", sa.String(), nullable=False),
        sa.Column("token", sa.String(), nullable=False, unique=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_verification_tokens_identifier", "verification_tokens", ["identifier"])


def downgrade() -> None:
    op.drop_table("verification_tokens")
    with op.batch_alter_table("students") as batch_op:
        batch_op.drop_constraint("fk_students_primary_recommendation", type_="foreignkey")
    op.drop_table("recommendations")
    op.drop_table("job_requests")
    op.drop_table("jobs")
    op.drop_table("students")
    op.drop_table("company_owners")
    op.drop_table("companies")
    op.drop_table("school_owners")
    op.drop_table("schools")
    op.drop_table("authorized_school_domains")
    op.drop_table("admins")
    op.drop_table("users")
