"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the canonical tables (users, groups, group_members, events,
event_groups, polls, poll_options, votes, cars, car_riders, needs_ride,
event_attributes, interest_levels) and the projection store
(event_pointers, pointer_repairs).
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- groups ---
    op.create_table(
        "groups",
        sa.Column("group_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_modified_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- group_members ---
    op.create_table(
        "group_members",
        sa.Column("group_id", sa.String(36), sa.ForeignKey("groups.group_id"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("role", sa.Enum("admin", "member", name="grouprole"), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("calendar_token", sa.String(64), nullable=True),
    )
    op.create_index("ix_group_members_calendar_token", "group_members", ["calendar_token"], unique=True)

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("visibility", sa.Enum("invite_only", "public", name="eventvisibility"), nullable=False),
        sa.Column("carpool_enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("time_input", sa.JSON, nullable=True),
        sa.Column("start_time_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.JSON, nullable=True),
        sa.Column("series_id", sa.String(36), nullable=True),
        sa.Column("ticket_link", sa.String(500), nullable=True),
        sa.Column("tickets_required", sa.Boolean, nullable=True),
        sa.Column("discount_code", sa.String(100), nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_groups ---
    op.create_table(
        "event_groups",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), primary_key=True),
        sa.Column("group_id", sa.String(36), sa.ForeignKey("groups.group_id"), primary_key=True),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_event_groups_group_id", "event_groups", ["group_id"])

    # --- polls ---
    op.create_table(
        "polls",
        sa.Column("poll_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("multiple_choice", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_polls_event_id", "polls", ["event_id"])

    op.create_table(
        "poll_options",
        sa.Column("option_id", sa.String(36), primary_key=True),
        sa.Column("poll_id", sa.String(36), sa.ForeignKey("polls.poll_id"), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("text", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_poll_options_poll_id", "poll_options", ["poll_id"])
    op.create_index("ix_poll_options_event_id", "poll_options", ["event_id"])

    op.create_table(
        "votes",
        sa.Column("vote_id", sa.String(36), primary_key=True),
        sa.Column("poll_id", sa.String(36), sa.ForeignKey("polls.poll_id"), nullable=False),
        sa.Column("option_id", sa.String(36), sa.ForeignKey("poll_options.option_id"), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("option_id", "user_id", name="uq_votes_option_user"),
    )
    op.create_index("ix_votes_poll_id", "votes", ["poll_id"])
    op.create_index("ix_votes_event_id", "votes", ["event_id"])

    # --- carpool ---
    op.create_table(
        "cars",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), primary_key=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("driver_name", sa.String(100), nullable=False),
        sa.Column("total_capacity", sa.Integer, nullable=False),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "car_riders",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), primary_key=True),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("rider_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("rider_name", sa.String(100), nullable=False),
        sa.Column("plus_one_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "needs_ride",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_attributes ---
    op.create_table(
        "event_attributes",
        sa.Column("attribute_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("value", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "name", name="uq_event_attributes_name"),
    )
    op.create_index("ix_event_attributes_event_id", "event_attributes", ["event_id"])

    # --- interest_levels ---
    op.create_table(
        "interest_levels",
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column(
            "status",
            sa.Enum("going", "interested", "not_going", name="attendancestatus"),
            nullable=False,
        ),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- event_pointers (per-group projection) ---
    op.create_table(
        "event_pointers",
        sa.Column("group_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("visibility", sa.String(20), nullable=True),
        sa.Column("carpool_enabled", sa.Boolean, nullable=True),
        sa.Column("time_input", sa.JSON, nullable=True),
        sa.Column("start_timestamp", sa.BigInteger, nullable=True),
        sa.Column("end_timestamp", sa.BigInteger, nullable=True),
        sa.Column("location", sa.JSON, nullable=True),
        sa.Column("series_id", sa.String(36), nullable=True),
        sa.Column("ticket_link", sa.String(500), nullable=True),
        sa.Column("tickets_required", sa.Boolean, nullable=True),
        sa.Column("discount_code", sa.String(100), nullable=True),
        sa.Column("participant_count", sa.Integer, nullable=True),
        sa.Column("polls", sa.JSON, nullable=True),
        sa.Column("cars", sa.JSON, nullable=True),
        sa.Column("needs_ride", sa.JSON, nullable=True),
        sa.Column("attributes", sa.JSON, nullable=True),
        sa.Column("interest_levels", sa.JSON, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("schema_version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("projected_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_event_pointers_group_time", "event_pointers", ["group_id", "start_timestamp", "event_id"]
    )
    op.create_index("ix_event_pointers_event", "event_pointers", ["event_id"])

    # --- pointer_repairs ---
    op.create_table(
        "pointer_repairs",
        sa.Column("repair_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "event_id", name="uq_pointer_repairs_pointer"),
    )


def downgrade() -> None:
    op.drop_table("pointer_repairs")
    op.drop_index("ix_event_pointers_event", table_name="event_pointers")
    op.drop_index("ix_event_pointers_group_time", table_name="event_pointers")
    op.drop_table("event_pointers")
    op.drop_table("interest_levels")
    op.drop_table("event_attributes")
    op.drop_table("needs_ride")
    op.drop_table("car_riders")
    op.drop_table("cars")
    op.drop_table("votes")
    op.drop_table("poll_options")
    op.drop_table("polls")
    op.drop_table("event_groups")
    op.drop_table("events")
    op.drop_index("ix_group_members_calendar_token", table_name="group_members")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
