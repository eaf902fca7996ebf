"""initial schema: clients, icons and icon assignments

Revision ID: 0001
Revises:
Create Date: 2026-10-18 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

EMPLOYMENT_TYPES = ("DG", "DG_ETAT", "DG_AKCJONARIUSZ", "DG_HALF_TIME_BELOW_MIN", "DG_HALF_TIME_ABOVE_MIN")
VAT_STATUSES = ("VAT_MONTHLY", "VAT_QUARTERLY", "NO", "NO_WATCH_LIMIT")
TAX_SCHEMES = ("PIT_17", "PIT_19", "LUMP_SUM", "GENERAL")
ZUS_STATUSES = ("FULL", "PREFERENTIAL", "NONE")
AML_GROUPS = ("LOW", "STANDARD", "ELEVATED", "HIGH")
ICON_TYPES = ("lucide", "custom", "emoji")


def _enum(name, values, length=32):
    return sa.Enum(*values, name=name, native_enum=False, length=length)


def upgrade():
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("nip", sa.String()),
        sa.Column("email", sa.String()),
        sa.Column("phone", sa.String()),
        sa.Column("company_specificity", sa.Text()),
        sa.Column("additional_info", sa.Text()),
        sa.Column("pkd_code", sa.String()),
        sa.Column("gtu_codes", sa.JSON()),
        sa.Column("employment_type", _enum("employmenttype", EMPLOYMENT_TYPES)),
        sa.Column("vat_status", _enum("vatstatus", VAT_STATUSES)),
        sa.Column("tax_scheme", _enum("taxscheme", TAX_SCHEMES)),
        sa.Column("zus_status", _enum("zusstatus", ZUS_STATUSES)),
        sa.Column("aml_group", _enum("amlgroup", AML_GROUPS)),
        sa.Column("receive_email_copy", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_clients_company_id", "clients", ["company_id"])

    op.create_table(
        "client_icons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("color", sa.String()),
        sa.Column("icon_type", _enum("icontype", ICON_TYPES, length=20), nullable=False),
        sa.Column("icon_value", sa.String(100)),
        sa.Column("tooltip", sa.String(255)),
        sa.Column("auto_assign_condition", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_client_icons_company_id", "client_icons", ["company_id"])

    op.create_table(
        "client_icon_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "client_id", sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "icon_id", sa.Integer(),
            sa.ForeignKey("client_icons.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("is_auto_assigned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime()),
        sa.UniqueConstraint("client_id", "icon_id", name="uq_client_icon_assignment"),
    )
    op.create_index("ix_client_icon_assignments_client_id", "client_icon_assignments", ["client_id"])
    op.create_index("ix_client_icon_assignments_icon_id", "client_icon_assignments", ["icon_id"])


def downgrade():
    op.drop_index("ix_client_icon_assignments_icon_id", table_name="client_icon_assignments")
    op.drop_index("ix_client_icon_assignments_client_id", table_name="client_icon_assignments")
    op.drop_table("client_icon_assignments")
    op.drop_index("ix_client_icons_company_id", table_name="client_icons")
    op.drop_table("client_icons")
    op.drop_index("ix_clients_company_id", table_name="clients")
    op.drop_table("clients")
