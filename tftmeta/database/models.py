from sqlalchemy import (
    Column, Integer, String, DateTime, JSON, BigInteger, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TeamComposition(Base):
    __tablename__ = 'team_compositions'

    id = Column(Integer, primary_key=True)
    comp_hash = Column(String(40), nullable=False, index=True)
    comp_key = Column(String(512), nullable=False)

    # Partition
    patch_version = Column(String(20), nullable=False)
    region = Column(String(10), nullable=False)
    tier = Column(String(20), nullable=False)

    # Board summaries from the first observed board
    traits = Column(JSON, nullable=False, default=list)
    units = Column(JSON, nullable=False, default=list)

    # Running aggregate; rates are derived on read
    total_games = Column(Integer, nullable=False, default=0)
    total_wins = Column(Integer, nullable=False, default=0)
    total_top4 = Column(Integer, nullable=False, default=0)
    placement_sum = Column(Integer, nullable=False, default=0)
    placement_counts = Column(JSON, nullable=False, default=list)

    first_seen = Column(DateTime(timezone=True))
    last_seen = Column(DateTime(timezone=True))
    last_updated = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())

    # Optimistic locking: a stale write raises StaleDataError
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}
    __table_args__ = (
        UniqueConstraint('patch_version', 'region', 'tier', 'comp_hash', name='uq_comp_partition'),
        Index('ix_comp_patch_region', 'patch_version', 'region'),
    )

    def __repr__(self):
        return (
            f"<TeamComposition(key='{self.comp_key}', partition={self.patch_version}/"
            f"{self.region}/{self.tier}, games={self.total_games})>"
        )


class CompositionGame(Base):
    __tablename__ = 'composition_games'

    id = Column(Integer, primary_key=True)
    match_id = Column(String(64), nullable=False)
    participant_id = Column(Integer, nullable=False)
    comp_hash = Column(String(40), nullable=False)

    patch_version = Column(String(20), nullable=False)
    region = Column(String(10), nullable=False)
    tier = Column(String(20), nullable=False)

    puuid = Column(String(100))
    placement = Column(Integer, nullable=False)
    level = Column(Integer, default=0)
    gold_left = Column(Integer, default=0)
    total_damage = Column(Integer, default=0)
    game_datetime = Column(BigInteger)  # epoch milliseconds

    created_at = Column(DateTime(timezone=True), default=func.now())

    __table_args__ = (
        UniqueConstraint('match_id', 'participant_id', name='uq_game_participant'),
        Index('ix_game_comp', 'patch_version', 'region', 'tier', 'comp_hash'),
    )

    def __repr__(self):
        return f"<CompositionGame(match_id='{self.match_id}', participant={self.participant_id}, placement={self.placement})>"
