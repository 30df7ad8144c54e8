"""
FastAPI server exposing one event synchronization session.

The session engine is driven by a ManualClock: each POST /tick emits one
playback offset and returns the resulting state.
"""

import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from correlation.clock import ManualClock
from correlation.engine import EngineConfig, EventSyncEngine
from event_index.window import WindowConfig
from utils.config_loader import load_config
from utils.errors import ConfigurationError, EventScopeError, ValidationError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event Scope API",
    description="REST API for synchronizing timestamped events with video playback",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Active session: engine and the clock that drives it
session: Dict[str, Any] = {'engine': None, 'clock': None}


class SessionRequest(BaseModel):
    start_timestamp: str


class EntryModel(BaseModel):
    name: str
    data_jsonl: str


class DataRequest(BaseModel):
    entries: List[EntryModel]
    sort_data: Optional[bool] = None


class TickRequest(BaseModel):
    video_time_seconds: float


class WindowRequest(BaseModel):
    matching_indexes: Optional[Dict[str, List[int]]] = None
    video_time_seconds: Optional[float] = None
    prepend_size: Optional[int] = None
    append_size: Optional[int] = None
    minimum_size: Optional[int] = None


class ShiftRequest(BaseModel):
    matching_indexes: Dict[str, List[int]]
    shift: int


def _http_error(error: EventScopeError) -> HTTPException:
    if isinstance(error, ValidationError):
        status_code = 400
    elif isinstance(error, ConfigurationError):
        status_code = 409
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=error.to_dict())


def _require_engine() -> EventSyncEngine:
    engine = session['engine']
    if engine is None:
        raise HTTPException(status_code=409, detail="No session; POST /session first")
    return engine


def reset_session() -> None:
    """Destroy the current engine, if any."""
    if session['engine'] is not None:
        session['engine'].destroy()
    session.update({'engine': None, 'clock': None})


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Event Scope API",
        "version": "1.0.0",
        "endpoints": [
            "/session",
            "/data",
            "/tick",
            "/window",
            "/shift",
            "/categories"
        ]
    }


@app.post("/session")
async def create_session(request: SessionRequest) -> Dict:
    """
    Start a new session, replacing any existing one.

    Args:
        request: Session start timestamp (ISO-8601)
    """
    reset_session()
    clock = ManualClock()
    try:
        engine = EventSyncEngine(
            request.start_timestamp,
            clock,
            config=EngineConfig.from_dict(session.get('config'))
        )
    except EventScopeError as e:
        raise _http_error(e)

    session.update({'engine': engine, 'clock': clock})
    return {"start_timestamp": engine.start_time.isoformat()}


@app.post("/data")
async def add_data(request: DataRequest) -> Dict:
    """
    Ingest JSONL entries into the session.

    Returns:
        Ingestion response plus the streamed progress events
    """
    engine = _require_engine()
    progress = []

    try:
        response = await engine.add_data(
            [(entry.name, entry.data_jsonl) for entry in request.entries],
            on_progress=lambda status: progress.append(
                {"status": status.status, "progress": status.progress}
            ),
            sort_data=request.sort_data
        )
    except EventScopeError as e:
        raise _http_error(e)

    result = response.to_dict()
    result['progress'] = progress
    return result


@app.delete("/data")
async def clear_data() -> Dict:
    """Discard all categories of the session."""
    engine = _require_engine()
    engine.clear()
    return {"categories": engine.categories}


@app.get("/categories")
async def get_categories() -> Dict:
    """Category names and record counts."""
    engine = _require_engine()
    return {"categories": engine.data_store.category_lengths()}


@app.post("/tick")
async def tick(request: TickRequest) -> Dict:
    """
    Emit one clock tick and return the state with the matching records.
    """
    engine = _require_engine()
    try:
        session['clock'].emit(request.video_time_seconds)
    except EventScopeError as e:
        raise _http_error(e)

    state = engine.query(request.video_time_seconds)
    matching = engine.get_matching_data(state.matching_indexes)
    active = engine.get_matching_data(state.active_matching_indexes)

    result = state.to_dict()
    result['matching_data'] = {c: [r.to_dict() for r in records] for c, records in matching.items()}
    result['active_data'] = {c: [r.to_dict() for r in records] for c, records in active.items()}
    return result


@app.post("/window")
async def window(request: WindowRequest) -> Dict:
    """Moving-window positions around the given matches or playback offset."""
    engine = _require_engine()
    defaults = engine.config.window

    try:
        window_config = WindowConfig(
            prepend_size=request.prepend_size if request.prepend_size is not None else defaults.prepend_size,
            append_size=request.append_size if request.append_size is not None else defaults.append_size,
            minimum_size=request.minimum_size if request.minimum_size is not None else defaults.minimum_size,
        )
    except EventScopeError as e:
        raise _http_error(e)

    result = engine.get_window(
        current_indexes=request.matching_indexes,
        video_time_seconds=request.video_time_seconds,
        window_config=window_config
    )
    return result.to_dict()


@app.post("/shift")
async def shift(request: ShiftRequest) -> Dict:
    """Positions after (shift > 0) or before (shift < 0) the given matches."""
    engine = _require_engine()
    return {"shifted_indexes": engine.shift(request.matching_indexes, request.shift)}


def start_server(host: str = "127.0.0.1", port: int = 8000, config: Optional[Dict] = None):
    """
    Start the API server.

    Args:
        host: Host address
        port: Port number
        config: Loaded configuration for new sessions
    """
    session['config'] = config
    print(f"Starting Event Scope API server at http://{host}:{port}")
    print(f"API documentation available at http://{host}:{port}/docs")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    loaded = load_config()
    start_server(
        host=loaded.get('server', {}).get('host', '127.0.0.1'),
        port=loaded.get('server', {}).get('port', 8000),
        config=loaded
    )
