"""Pydantic models for the match API request/response schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from flagwar.game.state import GameStatus, Side


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateMatchRequest(BaseModel):
    """Create a new match."""
    ai_sides: Optional[list[Side]] = Field(
        None, description="Sides played by the server AI (default from config)"
    )


class MovementModel(BaseModel):
    """One piece command. Invalid entries are ignored when the round runs."""
    piece_id: int
    direction: str
    distance: int


class SubmitCommandsRequest(BaseModel):
    """Queue commands for one side."""
    side: Side
    movements: list[MovementModel] = Field(default_factory=list)
    target_round: Optional[int] = Field(None, ge=0, description="Round to apply to (default: current)")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class MatchStatus(BaseModel):
    """Current match status."""
    match_id: str
    status: GameStatus
    round: int
    winner: Optional[Side] = None
    ai_sides: list[Side]
    captures: dict[str, int]
    queued_rounds: list[int] = Field(default_factory=list)


class CreateMatchResponse(BaseModel):
    match_id: str
    status: GameStatus
    ai_sides: list[Side]
    state: dict


class SubmitCommandsResponse(BaseModel):
    match_id: str
    side: Side
    round: int
    queued: int


class GameStateResponse(BaseModel):
    match_id: str
    state: dict
    board_text: str


class TickResponse(BaseModel):
    match_id: str
    record: dict
    state: dict


class HistoryResponse(BaseModel):
    match_id: str
    rounds: list[dict]


class ScoreResponse(BaseModel):
    match_id: str
    scores: dict[str, dict]


class SuggestResponse(BaseModel):
    match_id: str
    side: Side
    movements: list[MovementModel]
    analysis: dict
