"""Create daily metrics, health events and uploaded file tables.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create the tables read by the context retriever."""
    op.create_table(
        "health_metrics_daily",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, comment="Owning user identifier"),
        sa.Column("date", sa.Date(), nullable=False),
        # Activity
        sa.Column("steps", sa.Integer()),
        sa.Column("distance_km", sa.Float()),
        sa.Column("active_calories", sa.Float()),
        sa.Column("resting_calories", sa.Float()),
        sa.Column("exercise_minutes", sa.Float()),
        sa.Column("flights_climbed", sa.Integer()),
        # Heart
        sa.Column("avg_heart_rate", sa.Float()),
        sa.Column("resting_heart_rate", sa.Float()),
        sa.Column("heart_rate_variability", sa.Float()),
        # Sleep and body
        sa.Column("sleep_hours", sa.Float()),
        sa.Column("weight_kg", sa.Float()),
        # Nutrition
        sa.Column("protein_g", sa.Float()),
        sa.Column("carbs_g", sa.Float()),
        sa.Column("fat_g", sa.Float()),
        sa.Column("calories_consumed", sa.Float()),
        sa.Column("water_ml", sa.Float()),
        # Workouts
        sa.Column("workout_count", sa.Integer()),
        sa.Column("total_workout_minutes", sa.Float()),
        sa.Column("strength_sessions", sa.Integer()),
        sa.Column("cardio_sessions", sa.Integer()),
        sa.Column("data_completeness_score", sa.Float()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "date", name="uq_health_metrics_daily_user_date"),
        comment="Daily health metric rollups written by the ingestion pipeline",
    )
    op.create_index("ix_health_metrics_daily_user_id", "health_metrics_daily", ["user_id"])
    op.create_index("ix_health_metrics_daily_date", "health_metrics_daily", ["date"])

    op.create_table(
        "health_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, comment="Owning user identifier"),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True)),
        sa.Column("duration_seconds", sa.Integer()),
        sa.Column("title", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("source_app", sa.String(100)),
        sa.Column("metrics", sa.JSON()),
        *_timestamps(),
        comment="Discrete health events with free-form metrics",
    )
    op.create_index("ix_health_events_user_id", "health_events", ["user_id"])
    op.create_index("ix_health_events_event_type", "health_events", ["event_type"])
    op.create_index("ix_health_events_start_time", "health_events", ["start_time"])

    op.create_table(
        "uploaded_file_data",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False, comment="Owning user identifier"),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("extracted_data", sa.JSON()),
        sa.Column("data_categories", sa.JSON()),
        sa.Column("summary", sa.Text()),
        sa.Column("date_range_start", sa.Date()),
        sa.Column("date_range_end", sa.Date()),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        comment="Structured data extracted from uploaded health documents",
    )
    op.create_index("ix_uploaded_file_data_user_id", "uploaded_file_data", ["user_id"])
    op.create_index("ix_uploaded_file_data_upload_date", "uploaded_file_data", ["upload_date"])


def downgrade() -> None:
    """Drop the read tables."""
    op.drop_table("uploaded_file_data")
    op.drop_table("health_events")
    op.drop_table("health_metrics_daily")
