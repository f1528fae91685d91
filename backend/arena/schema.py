from sqlalchemy import Column, ForeignKey, Integer, String, Table, UniqueConstraint, func
from sqlalchemy.orm import declarative_base  # type: ignore[attr-defined]
from sqlalchemy.sql.sqltypes import JSON, BigInteger, Boolean, DateTime, Enum, Numeric, Text

Base = declarative_base()
metadata = Base.metadata
DateTimeTZ = DateTime(timezone=True)

tournaments = Table(
    "tournaments",
    metadata,
    Column("id", BigInteger, primary_key=True, index=True, autoincrement=True),
    Column("name", String, nullable=False, index=True),
    Column("created", DateTimeTZ, nullable=False, server_default=func.now()),
    Column("organizer_id", String, nullable=False, index=True),
    Column(
        "format",
        Enum("league", "cup", "champions-league", "swiss", name="tournament_format"),
        nullable=False,
    ),
    Column("max_teams", Integer, nullable=False),
    Column("team_count", Integer, nullable=False, server_default="0"),
    Column("home_and_away", Boolean, nullable=False, server_default="f"),
    Column("penalties", Boolean, nullable=False, server_default="f"),
    Column("extra_time", Boolean, nullable=False, server_default="f"),
    Column(
        "status",
        Enum(
            "pending",
            "open_for_registration",
            "generating_fixtures",
            "ready_to_start",
            "in_progress",
            "completed",
            name="tournament_status",
        ),
        nullable=False,
        server_default="open_for_registration",
        index=True,
    ),
    Column("registration_end", DateTimeTZ, nullable=False),
    Column("start_date", DateTimeTZ, nullable=False),
    Column("end_date", DateTimeTZ, nullable=False),
    Column("last_auto_resolved_at", DateTimeTZ, nullable=True),
    Column("ended_at", DateTimeTZ, nullable=True),
)

teams = Table(
    "teams",
    metadata,
    Column("id", BigInteger, primary_key=True, index=True, autoincrement=True),
    Column("name", String, nullable=False, index=True),
    Column("created", DateTimeTZ, nullable=False, server_default=func.now()),
    Column(
        "tournament_id",
        BigInteger,
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    ),
    Column("captain_id", String, nullable=False, index=True),
    Column("players", JSON, nullable=False, server_default="[]"),
    Column("is_approved", Boolean, nullable=False, server_default="f"),
    Column("performance_points", Integer, nullable=False, server_default="0"),
    UniqueConstraint("tournament_id", "captain_id"),
)

matches = Table(
    "matches",
    metadata,
    Column("id", BigInteger, primary_key=True, index=True, autoincrement=True),
    Column("created", DateTimeTZ, nullable=False, server_default=func.now()),
    Column(
        "tournament_id",
        BigInteger,
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    ),
    Column("home_team_id", BigInteger, ForeignKey("teams.id"), index=True, nullable=False),
    Column("away_team_id", BigInteger, ForeignKey("teams.id"), index=True, nullable=False),
    Column("host_id", BigInteger, ForeignKey("teams.id"), nullable=False),
    Column("round", String, nullable=False, index=True),
    Column("match_day", DateTimeTZ, nullable=False, index=True),
    Column(
        "status",
        Enum(
            "scheduled",
            "awaiting_confirmation",
            "needs_secondary_evidence",
            "disputed",
            "approved",
            name="match_status",
        ),
        nullable=False,
        server_default="scheduled",
        index=True,
    ),
    Column("home_score", Integer, nullable=True),
    Column("away_score", Integer, nullable=True),
    Column("pk_home_score", Integer, nullable=True),
    Column("pk_away_score", Integer, nullable=True),
    Column("home_report", JSON, nullable=True),
    Column("away_report", JSON, nullable=True),
    Column("home_secondary_report", JSON, nullable=True),
    Column("away_secondary_report", JSON, nullable=True),
    Column("home_stats", JSON, nullable=True),
    Column("away_stats", JSON, nullable=True),
    Column("home_stats_penalty", Boolean, nullable=False, server_default="f"),
    Column("away_stats_penalty", Boolean, nullable=False, server_default="f"),
    Column("resolution_notes", Text, nullable=True),
    Column("was_auto_forfeited", Boolean, nullable=False, server_default="f"),
    Column("is_replay", Boolean, nullable=False, server_default="f"),
    Column("auto_resolution_attempted", Boolean, nullable=False, server_default="f"),
    Column("replay_request", JSON, nullable=True),
    Column("room_code", String, nullable=True),
    Column("room_code_set_at", DateTimeTZ, nullable=True),
    Column("highlight_url", String, nullable=True),
    Column("approved_at", DateTimeTZ, nullable=True),
)

standings = Table(
    "standings",
    metadata,
    Column("id", BigInteger, primary_key=True, index=True, autoincrement=True),
    Column(
        "tournament_id",
        BigInteger,
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    ),
    Column(
        "team_id",
        BigInteger,
        ForeignKey("teams.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    ),
    Column("matches_played", Integer, nullable=False, server_default="0"),
    Column("wins", Integer, nullable=False, server_default="0"),
    Column("draws", Integer, nullable=False, server_default="0"),
    Column("losses", Integer, nullable=False, server_default="0"),
    Column("goals_for", Integer, nullable=False, server_default="0"),
    Column("goals_against", Integer, nullable=False, server_default="0"),
    Column("goal_difference", Integer, nullable=False, server_default="0"),
    Column("points", Integer, nullable=False, server_default="0"),
    Column("clean_sheets", Integer, nullable=False, server_default="0"),
    Column("ranking", Integer, nullable=False, server_default="0"),
    UniqueConstraint("tournament_id", "team_id"),
)

player_stats = Table(
    "player_stats",
    metadata,
    Column("user_id", String, primary_key=True),
    Column("total_matches", Integer, nullable=False, server_default="0"),
    Column("wins", Integer, nullable=False, server_default="0"),
    Column("losses", Integer, nullable=False, server_default="0"),
    Column("draws", Integer, nullable=False, server_default="0"),
    Column("goals", Integer, nullable=False, server_default="0"),
    Column("conceded", Integer, nullable=False, server_default="0"),
    Column("clean_sheets", Integer, nullable=False, server_default="0"),
    Column("avg_pass_accuracy", Integer, nullable=False, server_default="0"),
    Column("pass_accuracy_sum", Numeric, nullable=False, server_default="0"),
    Column("matches_with_pass_stats", Integer, nullable=False, server_default="0"),
    Column("shots", Integer, nullable=False, server_default="0"),
    Column("shots_on_target", Integer, nullable=False, server_default="0"),
    Column("passes", Integer, nullable=False, server_default="0"),
    Column("tackles", Integer, nullable=False, server_default="0"),
    Column("interceptions", Integer, nullable=False, server_default="0"),
    Column("saves", Integer, nullable=False, server_default="0"),
    Column("performance_history", JSON, nullable=False, server_default="[]"),
    Column("updated", DateTimeTZ, nullable=False, server_default=func.now()),
)
