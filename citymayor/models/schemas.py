from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column
from sqlalchemy.types import Boolean, DateTime, Integer, String, TEXT, Uuid
from uuid import uuid4
from uuid6 import uuid7
from datetime import datetime


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"
    account_id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    hash_password = Column(String, nullable=False)
    salt = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    sessions = relationship(
        "AuthSession",
        back_populates="account",
        cascade="all, delete",
    )


class AuthSession(Base):
    __tablename__ = "auth_sessions"
    token = Column(String, primary_key=True, index=True)
    account_id = Column(Uuid, ForeignKey("accounts.account_id"), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    expires_at = Column(DateTime, nullable=False)

    account = relationship("Account", back_populates="sessions")


class Player(Base):
    __tablename__ = "players"
    # Same value as accounts.account_id
    player_id = Column(Uuid, primary_key=True)
    username = Column(String, nullable=False)
    gold = Column(Integer, nullable=False, default=0)
    land_size_x = Column(Integer, nullable=False)
    land_size_y = Column(Integer, nullable=False)
    last_collected_at = Column(DateTime, default=datetime.now)
    created_at = Column(DateTime, default=datetime.now)

    placements = relationship(
        "PlayerBuilding",
        back_populates="player",
        cascade="all, delete",
    )


class Building(Base):
    __tablename__ = "buildings"
    building_id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    income_per_hour = Column(Integer, nullable=False, default=0)
    size_x = Column(Integer, nullable=False, default=1)
    size_y = Column(Integer, nullable=False, default=1)
    image_url = Column(String, nullable=True)
    description = Column(TEXT, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    placements = relationship("PlayerBuilding", back_populates="building")


class PlayerBuilding(Base):
    __tablename__ = "player_buildings"
    placement_id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(Uuid, ForeignKey("players.player_id"), index=True, nullable=False)
    building_id = Column(Uuid, ForeignKey("buildings.building_id"), nullable=False)
    position_x = Column(Integer, nullable=False)
    position_y = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    player = relationship("Player", back_populates="placements")
    building = relationship("Building", back_populates="placements")
