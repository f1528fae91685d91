"""create tournament tables

Revision ID: 4a7e1c9d2b30
Revises:
Create Date: 2026-09-28 00:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM

from alembic import op

# revision identifiers, used by Alembic.
revision: str | None = "4a7e1c9d2b30"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None

tournament_format_enum = ENUM(
    "league",
    "cup",
    "champions-league",
    "swiss",
    name="tournament_format",
    create_type=False,
)
tournament_status_enum = ENUM(
    "pending",
    "open_for_registration",
    "generating_fixtures",
    "ready_to_start",
    "in_progress",
    "completed",
    name="tournament_status",
    create_type=False,
)
match_status_enum = ENUM(
    "scheduled",
    "awaiting_confirmation",
    "needs_secondary_evidence",
    "disputed",
    "approved",
    name="match_status",
    create_type=False,
)


def _created_column() -> sa.Column:
    return sa.Column(
        "created", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default="0", nullable=False)


def upgrade() -> None:
    for enum in (tournament_format_enum, tournament_status_enum, match_status_enum):
        enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "tournaments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        _created_column(),
        sa.Column("organizer_id", sa.String(), nullable=False),
        sa.Column("format", tournament_format_enum, nullable=False),
        sa.Column("max_teams", sa.Integer(), nullable=False),
        _counter("team_count"),
        sa.Column("home_and_away", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("penalties", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("extra_time", sa.Boolean(), server_default="f", nullable=False),
        sa.Column(
            "status",
            tournament_status_enum,
            server_default="open_for_registration",
            nullable=False,
        ),
        sa.Column("registration_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_auto_resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tournaments_id"), "tournaments", ["id"], unique=False)
    op.create_index(op.f("ix_tournaments_name"), "tournaments", ["name"], unique=False)
    op.create_index(
        op.f("ix_tournaments_organizer_id"), "tournaments", ["organizer_id"], unique=False
    )
    op.create_index(op.f("ix_tournaments_status"), "tournaments", ["status"], unique=False)

    op.create_table(
        "teams",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        _created_column(),
        sa.Column("tournament_id", sa.BigInteger(), nullable=False),
        sa.Column("captain_id", sa.String(), nullable=False),
        sa.Column("players", sa.JSON(), server_default="[]", nullable=False),
        sa.Column("is_approved", sa.Boolean(), server_default="f", nullable=False),
        _counter("performance_points"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tournament_id", "captain_id"),
    )
    op.create_index(op.f("ix_teams_id"), "teams", ["id"], unique=False)
    op.create_index(op.f("ix_teams_name"), "teams", ["name"], unique=False)
    op.create_index(op.f("ix_teams_tournament_id"), "teams", ["tournament_id"], unique=False)
    op.create_index(op.f("ix_teams_captain_id"), "teams", ["captain_id"], unique=False)

    op.create_table(
        "matches",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _created_column(),
        sa.Column("tournament_id", sa.BigInteger(), nullable=False),
        sa.Column("home_team_id", sa.BigInteger(), nullable=False),
        sa.Column("away_team_id", sa.BigInteger(), nullable=False),
        sa.Column("host_id", sa.BigInteger(), nullable=False),
        sa.Column("round", sa.String(), nullable=False),
        sa.Column("match_day", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", match_status_enum, server_default="scheduled", nullable=False),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("pk_home_score", sa.Integer(), nullable=True),
        sa.Column("pk_away_score", sa.Integer(), nullable=True),
        sa.Column("home_report", sa.JSON(), nullable=True),
        sa.Column("away_report", sa.JSON(), nullable=True),
        sa.Column("home_secondary_report", sa.JSON(), nullable=True),
        sa.Column("away_secondary_report", sa.JSON(), nullable=True),
        sa.Column("home_stats", sa.JSON(), nullable=True),
        sa.Column("away_stats", sa.JSON(), nullable=True),
        sa.Column("home_stats_penalty", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("away_stats_penalty", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("was_auto_forfeited", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("is_replay", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("auto_resolution_attempted", sa.Boolean(), server_default="f", nullable=False),
        sa.Column("replay_request", sa.JSON(), nullable=True),
        sa.Column("room_code", sa.String(), nullable=True),
        sa.Column("room_code_set_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("highlight_url", sa.String(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["home_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["away_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["host_id"], ["teams.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_matches_id"), "matches", ["id"], unique=False)
    op.create_index(op.f("ix_matches_tournament_id"), "matches", ["tournament_id"], unique=False)
    op.create_index(op.f("ix_matches_home_team_id"), "matches", ["home_team_id"], unique=False)
    op.create_index(op.f("ix_matches_away_team_id"), "matches", ["away_team_id"], unique=False)
    op.create_index(op.f("ix_matches_round"), "matches", ["round"], unique=False)
    op.create_index(op.f("ix_matches_match_day"), "matches", ["match_day"], unique=False)
    op.create_index(op.f("ix_matches_status"), "matches", ["status"], unique=False)

    op.create_table(
        "standings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("tournament_id", sa.BigInteger(), nullable=False),
        sa.Column("team_id", sa.BigInteger(), nullable=False),
        _counter("matches_played"),
        _counter("wins"),
        _counter("draws"),
        _counter("losses"),
        _counter("goals_for"),
        _counter("goals_against"),
        _counter("goal_difference"),
        _counter("points"),
        _counter("clean_sheets"),
        _counter("ranking"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tournament_id", "team_id"),
    )
    op.create_index(op.f("ix_standings_id"), "standings", ["id"], unique=False)
    op.create_index(
        op.f("ix_standings_tournament_id"), "standings", ["tournament_id"], unique=False
    )
    op.create_index(op.f("ix_standings_team_id"), "standings", ["team_id"], unique=False)

    op.create_table(
        "player_stats",
        sa.Column("user_id", sa.String(), nullable=False),
        _counter("total_matches"),
        _counter("wins"),
        _counter("losses"),
        _counter("draws"),
        _counter("goals"),
        _counter("conceded"),
        _counter("clean_sheets"),
        _counter("avg_pass_accuracy"),
        sa.Column("pass_accuracy_sum", sa.Numeric(), server_default="0", nullable=False),
        _counter("matches_with_pass_stats"),
        _counter("shots"),
        _counter("shots_on_target"),
        _counter("passes"),
        _counter("tackles"),
        _counter("interceptions"),
        _counter("saves"),
        sa.Column("performance_history", sa.JSON(), server_default="[]", nullable=False),
        sa.Column(
            "updated", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("player_stats")
    op.drop_index(op.f("ix_standings_team_id"), table_name="standings")
    op.drop_index(op.f("ix_standings_tournament_id"), table_name="standings")
    op.drop_index(op.f("ix_standings_id"), table_name="standings")
    op.drop_table("standings")
    for column in (
        "status",
        "match_day",
        "round",
        "away_team_id",
        "home_team_id",
        "tournament_id",
        "id",
    ):
        op.drop_index(op.f(f"ix_matches_{column}"), table_name="matches")
    op.drop_table("matches")
    for column in ("captain_id", "tournament_id", "name", "id"):
        op.drop_index(op.f(f"ix_teams_{column}"), table_name="teams")
    op.drop_table("teams")
    for column in ("status", "organizer_id", "name", "id"):
        op.drop_index(op.f(f"ix_tournaments_{column}"), table_name="tournaments")
    op.drop_table("tournaments")
    for enum in (match_status_enum, tournament_status_enum, tournament_format_enum):
        enum.drop(op.get_bind(), checkfirst=True)
