"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "role_enum": ("STUDENT", "STAFF", "ADMIN"),
    "staff_vertical_enum": (
        "ELECTRICAL", "PLUMBING", "HVAC", "CARPENTRY", "IT_SUPPORT", "HOUSEKEEPING",
        "SECURITY", "GENERAL_MAINTENANCE", "BLOCK_A_WARDEN", "BLOCK_B_WARDEN", "BLOCK_C_WARDEN",
    ),
    "hostel_block_enum": (
        "BLOCK_A", "BLOCK_B", "BLOCK_C", "BLOCK_D", "BLOCK_E", "BLOCK_F", "BLOCK_G", "BLOCK_H",
    ),
    "ticket_status_enum": (
        "OPEN", "ASSIGNED", "IN_PROGRESS", "ON_HOLD", "RESOLVED", "CLOSED", "CANCELLED", "REOPENED",
    ),
    "ticket_priority_enum": ("LOW", "MEDIUM", "HIGH", "EMERGENCY"),
    "ticket_category_enum": (
        "ELECTRICAL_ISSUES", "PLUMBING_WATER", "HVAC", "STRUCTURAL_CIVIL", "FURNITURE_FIXTURES",
        "NETWORK_INTERNET", "COMPUTER_HARDWARE", "AUDIO_VISUAL_EQUIPMENT", "SECURITY_SYSTEMS",
        "HOUSEKEEPING_CLEANLINESS", "SAFETY_SECURITY", "LANDSCAPING_OUTDOOR", "GENERAL",
        "MAINTENANCE", "HOUSEKEEPING", "SECURITY", "FACILITIES", "STUDENT_SERVICES", "CUSTOM",
    ),
    "asset_type_enum": (
        "FURNITURE", "APPLIANCE", "ELECTRONICS", "SAFETY", "MAINTENANCE_EQUIPMENT",
        "RECREATION", "KITCHEN", "OTHER",
    ),
    "asset_status_enum": (
        "ACTIVE", "MAINTENANCE", "OUT_OF_ORDER", "RETIRED", "LOST", "DAMAGED", "STORED",
        "RESERVED", "IN_TRANSIT",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    # тип створюємо окремо (ідемпотентно), тож create_type=False
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _ts(name: str, nullable: bool = False, server_default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now() if server_default else None,
        nullable=nullable,
    )


def upgrade() -> None:
    # ---------- 1) ENUM типи (ідемпотентно) ----------
    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(*ENUMS[name], name=name).create(bind, checkfirst=True)

    # ---------- 2) Таблиці ----------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("role", _enum("role_enum"), nullable=False, server_default="STUDENT"),
        sa.Column("staff_vertical", _enum("staff_vertical_enum"), nullable=True),
        sa.Column("staff_id", sa.String(50), nullable=True),
        sa.Column("student_id", sa.String(50), nullable=True),
        sa.Column("room_number", sa.String(20), nullable=True),
        sa.Column("hostel_block", _enum("hostel_block_enum"), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_number", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", _enum("ticket_category_enum"), nullable=False, server_default="GENERAL"),
        sa.Column("custom_category", sa.String(100), nullable=True),
        sa.Column("priority", _enum("ticket_priority_enum"), nullable=False, server_default="MEDIUM"),
        sa.Column("status", _enum("ticket_status_enum"), nullable=False, server_default="OPEN"),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assigned_to_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("hostel_block", _enum("hostel_block_enum"), nullable=True),
        sa.Column("room_number", sa.String(20), nullable=True),
        sa.Column("location_details", sa.String(500), nullable=True),
        _ts("created_at", server_default=False),
        _ts("updated_at", server_default=False),
        _ts("assigned_at", nullable=True, server_default=False),
        _ts("resolved_at", nullable=True, server_default=False),
        _ts("closed_at", nullable=True, server_default=False),
        _ts("sla_breach_at", nullable=True, server_default=False),
    )
    op.create_index("ix_tickets_ticket_number", "tickets", ["ticket_number"], unique=True)
    op.create_index("ix_tickets_created_by_id", "tickets", ["created_by_id"], unique=False)
    op.create_index("ix_tickets_assigned_to_id", "tickets", ["assigned_to_id"], unique=False)
    op.create_index("ix_tickets_status_priority", "tickets", ["status", "priority"], unique=False)
    op.create_index("ix_tickets_created_at", "tickets", ["created_at"], unique=False)

    op.create_table(
        "ticket_comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts("created_at"),
    )
    op.create_index("ix_ticket_comments_ticket_id", "ticket_comments", ["ticket_id"], unique=False)
    op.create_index("ix_ticket_comments_author_id", "ticket_comments", ["author_id"], unique=False)

    op.create_table(
        "ticket_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("changed_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("field", sa.String(32), nullable=False),
        sa.Column("old_value", sa.String(255), nullable=True),
        sa.Column("new_value", sa.String(255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_ticket_history_ticket_id", "ticket_history", ["ticket_id"], unique=False)
    op.create_index("ix_ticket_history_changed_by_id", "ticket_history", ["changed_by_id"], unique=False)

    op.create_table(
        "category_staff_mappings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("hostel_block", _enum("hostel_block_enum"), nullable=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("priority_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("capacity_weight", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("expertise_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_category_staff_mappings_staff_id", "category_staff_mappings", ["staff_id"], unique=False)
    op.create_index("ix_category_staff_mappings_category", "category_staff_mappings", ["category"], unique=False)

    op.create_table(
        "ticket_escalations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("escalated_from_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("escalated_to_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("escalation_level", sa.Integer(), nullable=False),
        sa.Column("is_auto_escalated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts("escalated_at", server_default=False),
        _ts("resolved_at", nullable=True, server_default=False),
        sa.Column("resolution_note", sa.Text(), nullable=True),
    )
    op.create_index("ix_ticket_escalations_ticket_id", "ticket_escalations", ["ticket_id"], unique=False)
    op.create_index("ix_ticket_escalations_escalated_to_id", "ticket_escalations", ["escalated_to_id"], unique=False)

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset_tag", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", _enum("asset_type_enum"), nullable=False, server_default="OTHER"),
        sa.Column("status", _enum("asset_status_enum"), nullable=False, server_default="ACTIVE"),
        sa.Column("building", sa.String(100), nullable=True),
        sa.Column("room_number", sa.String(20), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("manufacturer", sa.String(100), nullable=True),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("serial_number", sa.String(100), nullable=True),
        _ts("purchase_date", nullable=True, server_default=False),
        _ts("warranty_expiry", nullable=True, server_default=False),
        sa.Column("purchase_price", sa.Float(), nullable=True),
        sa.Column("assigned_to_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_assets_asset_tag", "assets", ["asset_tag"], unique=True)

    op.create_table(
        "asset_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset_id", sa.Integer(), sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_building", sa.String(100), nullable=True),
        sa.Column("from_room", sa.String(20), nullable=True),
        sa.Column("to_building", sa.String(100), nullable=True),
        sa.Column("to_room", sa.String(20), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("moved_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _ts("moved_at"),
    )
    op.create_index("ix_asset_movements_asset_id", "asset_movements", ["asset_id"], unique=False)

    op.create_table(
        "maintenance_schedules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset_id", sa.Integer(), sa.ForeignKey("assets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _ts("scheduled_for", server_default=False),
        sa.Column("frequency_days", sa.Integer(), nullable=True),
        _ts("completed_at", nullable=True, server_default=False),
        _ts("created_at"),
    )
    op.create_index("ix_maintenance_schedules_asset_id", "maintenance_schedules", ["asset_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_maintenance_schedules_asset_id", table_name="maintenance_schedules")
    op.drop_table("maintenance_schedules")
    op.drop_index("ix_asset_movements_asset_id", table_name="asset_movements")
    op.drop_table("asset_movements")
    op.drop_index("ix_assets_asset_tag", table_name="assets")
    op.drop_table("assets")

    op.drop_index("ix_ticket_escalations_escalated_to_id", table_name="ticket_escalations")
    op.drop_index("ix_ticket_escalations_ticket_id", table_name="ticket_escalations")
    op.drop_table("ticket_escalations")

    op.drop_index("ix_category_staff_mappings_category", table_name="category_staff_mappings")
    op.drop_index("ix_category_staff_mappings_staff_id", table_name="category_staff_mappings")
    op.drop_table("category_staff_mappings")

    op.drop_index("ix_ticket_history_changed_by_id", table_name="ticket_history")
    op.drop_index("ix_ticket_history_ticket_id", table_name="ticket_history")
    op.drop_table("ticket_history")

    op.drop_index("ix_ticket_comments_author_id", table_name="ticket_comments")
    op.drop_index("ix_ticket_comments_ticket_id", table_name="ticket_comments")
    op.drop_table("ticket_comments")

    op.drop_index("ix_tickets_created_at", table_name="tickets")
    op.drop_index("ix_tickets_status_priority", table_name="tickets")
    op.drop_index("ix_tickets_assigned_to_id", table_name="tickets")
    op.drop_index("ix_tickets_created_by_id", table_name="tickets")
    op.drop_index("ix_tickets_ticket_number", table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
