"""FastAPI server for the match API."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query, Request

from flagwar.game.state import Side
from flagwar.match.dependencies import get_match_manager
from flagwar.match.models import (
    CreateMatchRequest,
    CreateMatchResponse,
    GameStateResponse,
    HistoryResponse,
    MatchStatus,
    MovementModel,
    ScoreResponse,
    SubmitCommandsRequest,
    SubmitCommandsResponse,
    SuggestResponse,
    TickResponse,
)
from flagwar.match.session import StatusError

app = FastAPI(
    title="flagwar API",
    description="Simultaneous-move capture-the-flag matches",
    version="0.1.0",
)


def _get_match(request: Request, match_id: str):
    """Look up match or raise 404."""
    session = get_match_manager(request.app).get_match(match_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Match '{match_id}' not found")
    return session


def _conflict(e: StatusError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.post("/matches", response_model=CreateMatchResponse, status_code=201)
def create_match(body: CreateMatchRequest, request: Request):
    """Create a new match in waiting status."""
    session = get_match_manager(request.app).create_match(body.ai_sides)
    return CreateMatchResponse(
        match_id=session.match_id,
        status=session.status,
        ai_sides=session.ai_sides,
        state=session.export_state(),
    )


@app.get("/matches/{match_id}", response_model=MatchStatus)
def get_match_status(match_id: str, request: Request):
    """Get match status."""
    session = _get_match(request, match_id)
    return MatchStatus(**session.get_status())


@app.get("/matches/{match_id}/state", response_model=GameStateResponse)
def get_state(match_id: str, request: Request):
    """Get the exported game state."""
    session = _get_match(request, match_id)
    return GameStateResponse(
        match_id=match_id,
        state=session.export_state(),
        board_text=session.render(),
    )


@app.post("/matches/{match_id}/start", response_model=MatchStatus)
def start_match(match_id: str, request: Request):
    """Start or resume play."""
    _get_match(request, match_id)
    try:
        session = get_match_manager(request.app).start_match(match_id)
    except StatusError as e:
        raise _conflict(e)
    return MatchStatus(**session.get_status())


@app.post("/matches/{match_id}/pause", response_model=MatchStatus)
def pause_match(match_id: str, request: Request):
    """Pause play."""
    session = _get_match(request, match_id)
    try:
        session.pause()
    except StatusError as e:
        raise _conflict(e)
    return MatchStatus(**session.get_status())


@app.post("/matches/{match_id}/commands", response_model=SubmitCommandsResponse)
def submit_commands(match_id: str, body: SubmitCommandsRequest, request: Request):
    """Queue commands for one side."""
    session = _get_match(request, match_id)
    try:
        round_no = session.submit_commands(
            body.side,
            [m.model_dump() for m in body.movements],
            target_round=body.target_round,
        )
    except StatusError as e:
        raise _conflict(e)
    return SubmitCommandsResponse(
        match_id=match_id, side=body.side, round=round_no, queued=len(body.movements),
    )


@app.post("/matches/{match_id}/tick", response_model=TickResponse)
def tick(match_id: str, request: Request):
    """Execute the current round now."""
    session = _get_match(request, match_id)
    try:
        record = session.tick()
    except StatusError as e:
        raise _conflict(e)
    return TickResponse(match_id=match_id, record=record.to_dict(), state=session.export_state())


@app.get("/matches/{match_id}/history", response_model=HistoryResponse)
def get_history(match_id: str, request: Request):
    """Get all executed round records."""
    session = _get_match(request, match_id)
    return HistoryResponse(match_id=match_id, rounds=[r.to_dict() for r in session.history])


@app.get("/matches/{match_id}/score", response_model=ScoreResponse)
def get_score(match_id: str, request: Request):
    """Get the itemized score for both sides."""
    session = _get_match(request, match_id)
    return ScoreResponse(match_id=match_id, scores=session.scores())


@app.get("/matches/{match_id}/suggest", response_model=SuggestResponse)
def suggest(match_id: str, request: Request, side: Side = Query(...)):
    """Run the search for a side without queuing its result."""
    session = _get_match(request, match_id)
    movements, analysis = session.suggest(side)
    return SuggestResponse(
        match_id=match_id,
        side=side,
        movements=[MovementModel(**m.to_dict()) for m in movements],
        analysis=analysis,
    )


@app.delete("/matches/{match_id}")
def delete_match(match_id: str, request: Request):
    """Delete a match and stop its tick loop."""
    if not get_match_manager(request.app).delete_match(match_id):
        raise HTTPException(status_code=404, detail=f"Match '{match_id}' not found")
    return {"match_id": match_id, "deleted": True}
