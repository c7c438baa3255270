"""Initial schema: tournament, team, match

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy import inspect

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    tables = inspect(bind).get_table_names()

    if "tournament" not in tables:
        op.create_table(
            "tournament",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False, server_default="draft"),
            sa.Column("bracket_config", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "team" not in tables:
        op.create_table(
            "team",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tournament_id", sa.Integer(), nullable=False),
            sa.Column("team_code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("logo_url", sa.String(), nullable=True),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tournament_id", "team_code", name="uq_tournament_team_code"),
        )
        op.create_index(op.f("ix_team_tournament_id"), "team", ["tournament_id"], unique=False)

    if "match" not in tables:
        op.create_table(
            "match",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tournament_id", sa.Integer(), nullable=False),
            sa.Column("match_code", sa.String(), nullable=False),
            sa.Column("stage", sa.String(), nullable=False),
            sa.Column("round_number", sa.Integer(), nullable=False),
            sa.Column("format", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("group_label", sa.String(), nullable=True),
            sa.Column("bracket_side", sa.String(), nullable=True),
            sa.Column("team1_code", sa.String(), nullable=True),
            sa.Column("team2_code", sa.String(), nullable=True),
            sa.Column("placeholder_side_1", sa.String(), nullable=True),
            sa.Column("placeholder_side_2", sa.String(), nullable=True),
            sa.Column("next_match_code", sa.String(), nullable=True),
            sa.Column("loser_match_code", sa.String(), nullable=True),
            sa.Column("score1", sa.Integer(), nullable=True),
            sa.Column("score2", sa.Integer(), nullable=True),
            sa.Column("winner_code", sa.String(), nullable=True),
            sa.Column("start_time", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tournament_id", "match_code", name="uq_tournament_match_code"),
        )
        op.create_index(op.f("ix_match_tournament_id"), "match", ["tournament_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_match_tournament_id"), table_name="match")
    op.drop_table("match")
    op.drop_index(op.f("ix_team_tournament_id"), table_name="team")
    op.drop_table("team")
    op.drop_table("tournament")
