from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text,
    UniqueConstraint, CheckConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from outwit.core.database import Base
from outwit.services.point_tables import EventKind, PlacementCategory


# --- Source data ---

class Player(Base):
    """Read-only here: rows are owned by the auth service."""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String(100), nullable=False)
    avatar_url = Column(Text)
    is_commissioner = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    picks = relationship("Picks", back_populates="player", uselist=False)
    prophecy_answers = relationship("ProphecyAnswer", back_populates="player")


class Castaway(Base):
    __tablename__ = "castaways"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    original_tribe = Column(String(50))
    current_tribe = Column(String(50))
    photo_url = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)
    boot_order = Column(Integer)  # 1 = first boot
    final_placement = Column(SAEnum(PlacementCategory))  # Null while still in the game
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    events = relationship("CastawayEvent", back_populates="castaway")


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    episode_number = Column(Integer, unique=True, nullable=False)
    title = Column(String(200))
    air_date = Column(DateTime)
    is_merge = Column(Boolean, default=False, nullable=False)
    is_finale = Column(Boolean, default=False, nullable=False)
    is_finalized = Column(Boolean, default=False, nullable=False)  # Events locked in, scores computed
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    events = relationship("CastawayEvent", back_populates="episode")


class CastawayEvent(Base):
    """
    One immutable fact: castaway X did Y in episode Z.
    Unique per (episode, castaway, event_kind) so re-logging is an upsert.
    """
    __tablename__ = "castaway_events"

    id = Column(Integer, primary_key=True, index=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    castaway_id = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    event_kind = Column(SAEnum(EventKind), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    episode = relationship("Episode", back_populates="events")
    castaway = relationship("Castaway", back_populates="events")

    __table_args__ = (
        UniqueConstraint("episode_id", "castaway_id", "event_kind", name="uq_castaway_event"),
    )


class Picks(Base):
    __tablename__ = "picks"

    id = Column(Integer, primary_key=True, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), unique=True, nullable=False)
    trio_castaway_1 = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    trio_castaway_2 = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    trio_castaway_3 = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    icky_castaway = Column(Integer, ForeignKey("castaways.id"), nullable=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    is_locked = Column(Boolean, default=False, nullable=False)

    # Relationships
    player = relationship("Player", back_populates="picks")

    __table_args__ = (
        CheckConstraint(
            "trio_castaway_1 <> trio_castaway_2 AND trio_castaway_1 <> trio_castaway_3 "
            "AND trio_castaway_2 <> trio_castaway_3",
            name="ck_picks_trio_distinct",
        ),
        CheckConstraint(
            "icky_castaway NOT IN (trio_castaway_1, trio_castaway_2, trio_castaway_3)",
            name="ck_picks_icky_not_in_trio",
        ),
    )

    @property
    def trio(self) -> tuple[int, int, int]:
        return (self.trio_castaway_1, self.trio_castaway_2, self.trio_castaway_3)


class ProphecyAnswer(Base):
    __tablename__ = "prophecy_answers"

    id = Column(Integer, primary_key=True, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    question_id = Column(Integer, nullable=False)
    answer = Column(Boolean, nullable=False)

    # Relationships
    player = relationship("Player", back_populates="prophecy_answers")

    __table_args__ = (
        UniqueConstraint("player_id", "question_id", name="uq_prophecy_answer"),
        CheckConstraint("question_id BETWEEN 1 AND 16", name="ck_prophecy_answer_question"),
    )


class ProphecyOutcome(Base):
    """Null outcome = not resolved yet."""
    __tablename__ = "prophecy_outcomes"

    question_id = Column(Integer, primary_key=True)
    outcome = Column(Boolean)
    resolved_at = Column(DateTime(timezone=True))
    episode_number = Column(Integer)  # Episode the question resolved in, if any
    updated_by = Column(Integer, ForeignKey("players.id"))

    __table_args__ = (
        CheckConstraint("question_id BETWEEN 1 AND 16", name="ck_prophecy_outcome_question"),
    )


class SeasonConfig(Base):
    """Single-row table (id = 1)."""
    __tablename__ = "season_config"

    id = Column(Integer, primary_key=True, default=1)
    season_name = Column(String(100), nullable=False, default="Survivor 50")
    picks_deadline = Column(DateTime(timezone=True))
    picks_revealed = Column(Boolean, default=False, nullable=False)
    current_episode = Column(Integer, default=0, nullable=False)


# --- Derived data: written only by the recompute engine ---

class ScoreCache(Base):
    __tablename__ = "score_cache"

    player_id = Column(Integer, ForeignKey("players.id"), primary_key=True)
    trio_points = Column(Integer, nullable=False, default=0)
    icky_points = Column(Integer, nullable=False, default=0)
    prophecy_points = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    last_calculated_at = Column(DateTime(timezone=True))  # Moves only when the totals change


class ScoreCacheTrioDetail(Base):
    __tablename__ = "score_cache_trio_detail"

    player_id = Column(Integer, ForeignKey("players.id"), primary_key=True)
    castaway_id = Column(Integer, ForeignKey("castaways.id"), primary_key=True)
    points_earned = Column(Integer, nullable=False, default=0)


class ScoreSnapshot(Base):
    """Totals as of a given episode, for movement-since-last-episode views."""
    __tablename__ = "score_snapshots"

    player_id = Column(Integer, ForeignKey("players.id"), primary_key=True)
    episode_number = Column(Integer, primary_key=True)
    trio_points = Column(Integer, nullable=False, default=0)
    icky_points = Column(Integer, nullable=False, default=0)
    prophecy_points = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
