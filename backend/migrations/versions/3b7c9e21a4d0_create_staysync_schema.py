from alembic import op
import sqlalchemy as sa

revision = "3b7c9e21a4d0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=150), nullable=False),
        sa.Column("company_tax_id", sa.String(length=8), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("bank_code", sa.String(length=3), nullable=True),
        sa.Column("bank_account", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "property",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=50), nullable=False),
        sa.Column("district", sa.String(length=50), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("legal_license_no", sa.String(length=100), nullable=True),
        sa.Column("base_price_twd", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("base_price_twd BETWEEN 500 AND 50000", name="ck_property_base_price_range"),
        sa.ForeignKeyConstraint(["owner_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_property_owner_id", "property", ["owner_id"])
    op.create_index("ix_property_city", "property", ["city"])

    op.create_table(
        "booking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("source_channel", sa.String(length=20), nullable=False),
        sa.Column("guest_name", sa.String(length=100), nullable=False),
        sa.Column("guest_id_no", sa.String(length=20), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("is_tax_included", sa.Boolean(), nullable=False),
        sa.Column("breakfast_included", sa.Boolean(), nullable=False),
        sa.Column("special_note", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("check_out > check_in", name="ck_booking_dates"),
        sa.CheckConstraint("total_amount >= 0", name="ck_booking_total_amount"),
        sa.CheckConstraint(
            "status IN ('Reserved', 'CheckedIn', 'CheckedOut', 'Cancelled')",
            name="ck_booking_status",
        ),
        sa.CheckConstraint(
            "source_channel IN ('Direct', 'Airbnb', 'Booking.com', 'Agoda')",
            name="ck_booking_source_channel",
        ),
        sa.ForeignKeyConstraint(["property_id"], ["property.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_booking_property_status_dates",
        "booking",
        ["property_id", "status", "check_in", "check_out"],
    )


def downgrade():
    op.drop_index("ix_booking_property_status_dates", table_name="booking")
    op.drop_table("booking")
    op.drop_index("ix_property_city", table_name="property")
    op.drop_index("ix_property_owner_id", table_name="property")
    op.drop_table("property")
    op.drop_table("user")
