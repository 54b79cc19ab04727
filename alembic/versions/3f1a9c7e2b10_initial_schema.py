"""initial schema (marketplace tables)

Revision ID: 3f1a9c7e2b10
Revises:
Create Date: 2026-10-17 10:12:41.118230

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision: str = '3f1a9c7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tbl_kwargs():
    return dict(mysql_charset="utf8mb4", mysql_collate="utf8mb4_unicode_ci")


def _id():
    return sa.BigInteger().with_variant(mysql.BIGINT(unsigned=True), "mysql")


def _pk():
    return sa.Column("id", _id(), primary_key=True, autoincrement=True)


def _fk(name, target, ondelete="CASCADE", nullable=False):
    return sa.Column(name, _id(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _flag(name, default):
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text("1" if default else "0"))


NOTIFICATION_TYPES = (
    "property_shortlisted", "property_viewed", "visit_scheduled", "visit_reminder", "visit_confirmed",
    "visit_cancelled", "new_property_match", "price_drop", "property_sold", "builder_message",
    "system_announcement", "property_approved", "property_rejected", "property_published", "visit_request",
    "visit_confirmed_by_user", "visit_cancelled_by_user", "user_inquiry", "user_shortlist", "user_view",
    "profile_approved", "profile_rejected", "team_member_added", "team_member_removed", "welcome",
    "email_verification", "password_reset", "account_suspended", "account_reactivated",
)


def upgrade() -> None:
    """Upgrade schema: create all marketplace tables."""
    created_ts = sa.text("CURRENT_TIMESTAMP")

    # =======================
    # Accounts
    # =======================
    op.create_table(
        "admins",
        _pk(),
        sa.Column("public_id", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role_name", sa.Enum("admin", "super_admin", name="admin_role"), nullable=False, server_default="admin"),
        _flag("perm_dashboard", True),
        _flag("perm_builders", True),
        _flag("perm_users", True),
        _flag("perm_properties", True),
        _flag("perm_analytics", True),
        _flag("perm_messages", True),
        _flag("perm_appointments", True),
        _flag("perm_comments", True),
        _flag("perm_settings", True),
        _flag("perm_user_management", False),
        _flag("perm_reports", False),
        _flag("perm_system_settings", False),
        _flag("is_active", True),
        sa.Column("last_login_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_admins_public_id", "admins", ["public_id"], unique=True)

    op.create_table(
        "users",
        _pk(),
        sa.Column("public_id", sa.String(50), nullable=False),
        sa.Column("name", sa.String(120)),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("contact_number", sa.String(32)),
        sa.Column("city_of_interest", sa.String(120)),
        sa.Column("image", sa.String(1024)),
        sa.Column("role", sa.Enum("user", "agent", "guest", name="user_role"), nullable=False, server_default="user"),
        sa.Column("account_type", sa.Enum("registered", "guest", name="user_account_type"), nullable=False, server_default="registered"),
        _flag("is_email_verified", False),
        _flag("is_phone_verified", False),
        _flag("is_otp_verified", False),
        sa.Column(
            "registration_status",
            sa.Enum("partial", "otp_verified", "completed", name="user_registration_status"),
            nullable=False,
            server_default="partial",
        ),
        sa.Column("preferences", sa.JSON()),
        _flag("perm_new_properties", True),
        _flag("perm_visit_confirmation", True),
        _flag("perm_visit_reminder", True),
        _flag("perm_release_messages", True),
        sa.Column("rera_number", sa.String(64)),
        sa.Column("state", sa.String(120)),
        sa.Column("agency_name", sa.String(200)),
        sa.Column("years_of_experience", sa.Integer()),
        _flag("is_active", True),
        sa.Column("last_login_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_users_public_id", "users", ["public_id"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"])

    op.create_table(
        "builders",
        _pk(),
        sa.Column("public_id", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255)),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("contact_info", sa.String(255)),
        sa.Column("address", sa.Text()),
        sa.Column("company", sa.String(255)),
        sa.Column("city", sa.String(120)),
        sa.Column("logo", sa.String(1024)),
        sa.Column("rera_registration_id", sa.String(120)),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("phone", sa.String(32)),
        sa.Column("website", sa.String(1024)),
        sa.Column(
            "status",
            sa.Enum("draft", "submitted", "approved", "rejected", name="builder_status"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("admin_decision_status", sa.Enum("approved", "rejected", name="builder_admin_decision")),
        sa.Column("admin_decision_notes", sa.Text()),
        _fk("reviewed_by", "admins.id", ondelete="SET NULL", nullable=True),
        sa.Column("reviewed_at", sa.DateTime()),
        _flag("is_otp_verified", False),
        _flag("is_active", True),
        sa.Column("last_login_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_builders_public_id", "builders", ["public_id"], unique=True)
    op.create_index("ix_builders_status_active", "builders", ["status", "is_active"])

    op.create_table(
        "builder_team_members",
        _pk(),
        _fk("builder_id", "builders.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(64), nullable=False, server_default="team_member"),
        _flag("perm_dashboard", True),
        _flag("perm_my_properties", True),
        _flag("perm_analytics", True),
        _flag("perm_messages", True),
        _flag("perm_my_profile", True),
        _flag("perm_users", True),
        _flag("is_active", True),
        sa.Column("last_login_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.UniqueConstraint("builder_id", "email", name="uq_builder_team_member_email"),
        **_tbl_kwargs(),
    )
    op.create_index("ix_builder_team_members_builder_id", "builder_team_members", ["builder_id"])

    op.create_table(
        "builder_documents",
        _pk(),
        _fk("builder_id", "builders.id"),
        sa.Column(
            "document_type",
            sa.Enum("document", "license", "certificate", "registration", name="builder_document_type"),
            nullable=False,
            server_default="document",
        ),
        sa.Column("url", sa.String(1024), nullable=False),
        sa.Column("url_key", sa.String(512)),
        sa.Column("file_name", sa.String(255)),
        sa.Column("content_type", sa.String(120)),
        sa.Column("size", sa.Integer()),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_builder_documents_builder_id", "builder_documents", ["builder_id"])

    # =======================
    # Tokens / OTP
    # =======================
    op.create_table(
        "tokens",
        _pk(),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("account_type", sa.Enum("user", "builder", "admin", name="token_account_type"), nullable=False),
        sa.Column("account_id", _id(), nullable=False),
        sa.Column("type", sa.Enum("refresh", "emailOtp", "passwordResetOtp", name="token_type"), nullable=False),
        sa.Column("expires", sa.DateTime(), nullable=False),
        _flag("blacklisted", False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_tokens_account", "tokens", ["account_type", "account_id", "type"])

    op.create_table(
        "otp_requests",
        _pk(),
        sa.Column("account_type", sa.String(16), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("requested_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_otp_requests_email_time", "otp_requests", ["account_type", "email", "requested_at"])

    op.create_table(
        "otp_attempts",
        _pk(),
        sa.Column("account_type", sa.String(16), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("otp_type", sa.String(32), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_attempt_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.UniqueConstraint("account_type", "email", "otp_type", name="uq_otp_attempts_key"),
        **_tbl_kwargs(),
    )

    # =======================
    # Properties
    # =======================
    op.create_table(
        "properties",
        _pk(),
        sa.Column("public_id", sa.String(50), nullable=False),
        _fk("builder_id", "builders.id"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "type",
            sa.Enum("apartment", "villa", "plot", "commercial", "office", "shop", "warehouse", "other", name="property_type"),
            nullable=False,
        ),
        sa.Column("bhk", sa.String(32), nullable=False),
        sa.Column("area_value", sa.Float(), nullable=False),
        sa.Column("area_unit", sa.Enum("sqft", "sqm", "acre", "hectare", name="property_area_unit"), nullable=False, server_default="sqft"),
        sa.Column("price_value", sa.Float(), nullable=False),
        sa.Column("price_unit", sa.Enum("lakh", "crore", "rupees", name="property_price_unit"), nullable=False, server_default="lakh"),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("locality", sa.String(200), nullable=False),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("address", sa.String(500)),
        sa.Column("description", sa.Text()),
        sa.Column("specifications", sa.JSON()),
        sa.Column("availability", sa.JSON()),
        sa.Column("contact", sa.JSON()),
        sa.Column("seo_title", sa.String(60)),
        sa.Column("seo_description", sa.String(160)),
        sa.Column("seo_keywords", sa.JSON()),
        sa.Column("slug", sa.String(255)),
        sa.Column(
            "status",
            sa.Enum("draft", "active", "sold", "rented", "inactive", "archived", name="property_status"),
            nullable=False,
            server_default="draft",
        ),
        _flag("admin_approved", False),
        _fk("approved_by", "admins.id", ondelete="SET NULL", nullable=True),
        sa.Column("approved_at", sa.DateTime()),
        sa.Column("rejection_reason", sa.Text()),
        _fk("rejected_by", "admins.id", ondelete="SET NULL", nullable=True),
        sa.Column("rejected_at", sa.DateTime()),
        sa.Column("quality_score", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("inquiries", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("likes_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_properties_public_id", "properties", ["public_id"], unique=True)
    op.create_index("ix_properties_slug", "properties", ["slug"], unique=True)
    op.create_index("ix_properties_builder_id", "properties", ["builder_id"])
    op.create_index("ix_properties_search", "properties", ["status", "admin_approved", "city"])
    op.create_index("ix_properties_geo", "properties", ["latitude", "longitude"])

    op.create_table(
        "property_media",
        _pk(),
        _fk("property_id", "properties.id"),
        sa.Column(
            "type",
            sa.Enum("image", "video", "document", "floor_plan", "brochure", name="property_media_type"),
            nullable=False,
        ),
        sa.Column("url", sa.String(1024), nullable=False),
        sa.Column("url_key", sa.String(512)),
        sa.Column("caption", sa.String(200)),
        _flag("is_primary", False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_property_media_property_id", "property_media", ["property_id"])

    op.create_table(
        "property_amenities",
        _pk(),
        _fk("property_id", "properties.id"),
        sa.Column(
            "category",
            sa.Enum("basic", "lifestyle", "security", "parking", "maintenance", "other", name="property_amenity_category"),
            nullable=False,
            server_default="other",
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(200)),
        **_tbl_kwargs(),
    )
    op.create_index("ix_property_amenities_property_id", "property_amenities", ["property_id"])

    op.create_table(
        "property_flags",
        _pk(),
        _fk("property_id", "properties.id"),
        sa.Column(
            "flag",
            sa.Enum(
                "featured", "new_launch", "premium", "best_seller", "limited_offer", "verified", "trending",
                name="property_flag",
            ),
            nullable=False,
        ),
        sa.UniqueConstraint("property_id", "flag", name="uq_property_flag"),
        **_tbl_kwargs(),
    )
    op.create_index("ix_property_flags_flag", "property_flags", ["flag"])

    op.create_table(
        "user_shortlist",
        _pk(),
        _fk("user_id", "users.id"),
        _fk("property_id", "properties.id"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.UniqueConstraint("user_id", "property_id", name="uq_user_shortlist"),
        **_tbl_kwargs(),
    )

    # =======================
    # Engagement
    # =======================
    op.create_table(
        "visits",
        _pk(),
        _fk("user_id", "users.id"),
        _fk("property_id", "properties.id"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(8), nullable=False),
        sa.Column(
            "status",
            sa.Enum("scheduled", "confirmed", "completed", "cancelled", "rescheduled", name="visit_status"),
            nullable=False,
            server_default="scheduled",
        ),
        sa.Column("slot_key", sa.String(96), unique=True),
        sa.Column("confirmed_at", sa.DateTime()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("cancelled_at", sa.DateTime()),
        sa.Column("cancelled_by", _id()),
        sa.Column("rescheduled_at", sa.DateTime()),
        sa.Column("rescheduled_by", _id()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_visits_property_date", "visits", ["property_id", "date", "time"])
    op.create_index("ix_visits_user_date", "visits", ["user_id", "date"])
    op.create_index("ix_visits_status", "visits", ["status"])

    op.create_table(
        "property_likes",
        _pk(),
        _fk("property_id", "properties.id"),
        _fk("user_id", "users.id"),
        sa.Column("type", sa.Enum("like", "dislike", name="like_type"), nullable=False, server_default="like"),
        sa.Column("status", sa.Enum("active", "inactive", "flagged", name="like_status"), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.UniqueConstraint("property_id", "user_id", name="uq_property_likes_pair"),
        **_tbl_kwargs(),
    )
    op.create_index("idx_likes_user", "property_likes", ["user_id", "created_at"])

    op.create_table(
        "property_comments",
        _pk(),
        _fk("property_id", "properties.id"),
        _fk("user_id", "users.id"),
        _fk("parent_comment_id", "property_comments.id", nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "flagged", "deleted", name="comment_status"),
            nullable=False,
            server_default="active",
        ),
        _flag("flagged", False),
        sa.Column("flag_reason", sa.String(255)),
        sa.Column("reply_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("dislike_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.String(255)),
        _flag("is_edited", False),
        sa.Column("edited_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("idx_comments_property", "property_comments", ["property_id", "status", "created_at"])
    op.create_index("idx_comments_user", "property_comments", ["user_id", "created_at"])
    op.create_index("idx_comments_parent", "property_comments", ["parent_comment_id"])

    op.create_table(
        "property_views",
        _pk(),
        _fk("user_id", "users.id"),
        _fk("property_id", "properties.id"),
        sa.Column("viewed_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_property_views_user_time", "property_views", ["user_id", "viewed_at"])
    op.create_index("ix_property_views_property", "property_views", ["property_id"])

    # =======================
    # Messaging
    # =======================
    op.create_table(
        "notifications",
        _pk(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("recipient_type", sa.Enum("user", "builder", name="notification_recipient_type"), nullable=False),
        sa.Column("recipient_id", _id(), nullable=False),
        sa.Column("notification_type", sa.Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False),
        sa.Column(
            "priority",
            sa.Enum("low", "medium", "high", "urgent", name="notification_priority"),
            nullable=False,
            server_default="medium",
        ),
        _flag("is_read", False),
        sa.Column("read_at", sa.DateTime()),
        sa.Column(
            "action_type",
            sa.Enum("visit_property", "view_profile", "reply_message", "view_document", "none", name="notification_action_type"),
            nullable=False,
            server_default="none",
        ),
        sa.Column("action_url", sa.String(1024)),
        sa.Column("action_metadata", sa.JSON()),
        sa.Column(
            "sender_type",
            sa.Enum("system", "user", "builder", "admin", name="notification_sender_type"),
            nullable=False,
            server_default="system",
        ),
        sa.Column("sender_id", _id()),
        sa.Column("delivery_channels", sa.JSON()),
        sa.Column("expires_at", sa.DateTime()),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_notifications_recipient", "notifications", ["recipient_type", "recipient_id", "is_read", "created_at"])
    op.create_index("ix_notifications_expires", "notifications", ["expires_at"])

    op.create_table(
        "chat_messages",
        _pk(),
        _fk("user_id", "users.id"),
        _fk("builder_id", "builders.id"),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("sender_type", sa.Enum("User", "Builder", name="chat_sender_type"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )
    op.create_index("ix_chat_conversation", "chat_messages", ["user_id", "builder_id", "created_at"])
    op.create_index("ix_chat_builder", "chat_messages", ["builder_id", "created_at"])

    op.create_table(
        "cities",
        _pk(),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("state", sa.String(120), nullable=False),
        sa.Column("country", sa.String(120), nullable=False, server_default="India"),
        _flag("is_active", True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=created_ts),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=created_ts),
        **_tbl_kwargs(),
    )


def downgrade() -> None:
    """Downgrade schema: drop everything in reverse dependency order."""
    op.drop_table("cities")
    op.drop_index("ix_chat_builder", table_name="chat_messages")
    op.drop_index("ix_chat_conversation", table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_index("ix_notifications_expires", table_name="notifications")
    op.drop_index("ix_notifications_recipient", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_property_views_property", table_name="property_views")
    op.drop_index("ix_property_views_user_time", table_name="property_views")
    op.drop_table("property_views")
    op.drop_index("idx_comments_parent", table_name="property_comments")
    op.drop_index("idx_comments_user", table_name="property_comments")
    op.drop_index("idx_comments_property", table_name="property_comments")
    op.drop_table("property_comments")
    op.drop_index("idx_likes_user", table_name="property_likes")
    op.drop_table("property_likes")
    op.drop_index("ix_visits_status", table_name="visits")
    op.drop_index("ix_visits_user_date", table_name="visits")
    op.drop_index("ix_visits_property_date", table_name="visits")
    op.drop_table("visits")

    op.drop_table("user_shortlist")
    op.drop_index("ix_property_flags_flag", table_name="property_flags")
    op.drop_table("property_flags")
    op.drop_index("ix_property_amenities_property_id", table_name="property_amenities")
    op.drop_table("property_amenities")
    op.drop_index("ix_property_media_property_id", table_name="property_media")
    op.drop_table("property_media")
    for ix in ("ix_properties_geo", "ix_properties_search", "ix_properties_builder_id", "ix_properties_slug", "ix_properties_public_id"):
        op.drop_index(ix, table_name="properties")
    op.drop_table("properties")

    op.drop_table("otp_attempts")
    op.drop_index("ix_otp_requests_email_time", table_name="otp_requests")
    op.drop_table("otp_requests")
    op.drop_index("ix_tokens_account", table_name="tokens")
    op.drop_table("tokens")

    op.drop_index("ix_builder_documents_builder_id", table_name="builder_documents")
    op.drop_table("builder_documents")
    op.drop_index("ix_builder_team_members_builder_id", table_name="builder_team_members")
    op.drop_table("builder_team_members")
    op.drop_index("ix_builders_status_active", table_name="builders")
    op.drop_index("ix_builders_public_id", table_name="builders")
    op.drop_table("builders")
    op.drop_index("ix_users_role_active", table_name="users")
    op.drop_index("ix_users_public_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_admins_public_id", table_name="admins")
    op.drop_table("admins")
