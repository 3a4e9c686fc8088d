"""
Pydantic schemas for data validation.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config import RACK_SETTINGS
from models.match import GameType


# ============ Player Schemas ============

class PlayerIn(BaseModel):
    """A player joining a match."""
    handle: str = Field(..., min_length=1, max_length=100)
    user_id: Optional[str] = None

    @field_validator("handle")
    @classmethod
    def handle_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Handle cannot be empty")
        return v.strip()


# ============ Match Schemas ============

class MatchCreate(BaseModel):
    """Schema for setting up a new match."""
    game_type: GameType = GameType.ONE_VS_ONE
    cup_count: int = RACK_SETTINGS.default_cup_count
    team1_players: list[PlayerIn]
    team2_players: list[PlayerIn]

    @field_validator("cup_count")
    @classmethod
    def valid_cup_count(cls, v: int) -> int:
        if v not in RACK_SETTINGS.supported_cup_counts:
            raise ValueError(
                f"Cup count must be one of {RACK_SETTINGS.supported_cup_counts}"
            )
        return v

    @model_validator(mode="after")
    def valid_rosters(self) -> "MatchCreate":
        expected = dict(RACK_SETTINGS.players_per_side)[self.game_type.value]
        for label, roster in (("team1", self.team1_players), ("team2", self.team2_players)):
            if len(roster) != expected:
                raise ValueError(
                    f"{self.game_type.value} needs {expected} player(s) on {label}, got {len(roster)}"
                )

        handles = [p.handle for p in self.team1_players + self.team2_players]
        if len(set(handles)) != len(handles):
            raise ValueError("Player handles must be unique within a match")
        return self


class MatchResponse(BaseModel):
    """Schema for match response."""
    id: str
    game_type: GameType
    cup_count: int
    completed: bool
    winning_side: Optional[str]
    team1_score: Optional[int]
    team2_score: Optional[int]
    duration_seconds: Optional[int]

    class Config:
        from_attributes = True


# ============ Shot Schemas ============

class MadeShotResponse(BaseModel):
    """Schema for a persisted shot."""
    shot_id: str
    match_id: str
    player_handle: str
    user_id: Optional[str]
    cup_index: int
    side: str
    timestamp: int
    is_bounce: bool
    is_grenade: bool
    is_redemption: bool
    is_undone: bool
    bounce_group_id: Optional[str]
    grenade_group_id: Optional[str]
    team1_remaining: int
    team2_remaining: int

    class Config:
        from_attributes = True
