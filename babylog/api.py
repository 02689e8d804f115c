"""
HTTP API over the SQLite event store.

Run: uvicorn babylog.api:app --port 3001
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

import uvicorn
from fastapi import Body, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import API_PORT, DB_PATH
from .errors import EventNotFoundError
from .store import EventStore

logger = logging.getLogger(__name__)

app = FastAPI(title="babylog")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_store: EventStore | None = None


def get_store() -> EventStore:
    global _store
    if _store is None:
        _store = EventStore(DB_PATH)
    return _store


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


@app.get("/api/events")
def list_events(store: EventStore = Depends(get_store)):
    try:
        return store.list_events()
    except Exception:
        logger.exception("Error fetching events")
        return _error(500, "Failed to fetch events")


@app.post("/api/events", status_code=201)
def create_events(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    store: EventStore = Depends(get_store),
):
    """Accepts a single event object or an array of them."""
    events = payload if isinstance(payload, list) else [payload]
    try:
        return store.add_events(events)
    except ValueError as e:
        return _error(400, str(e))
    except Exception:
        logger.exception("Error inserting events")
        return _error(500, "Failed to insert events")


@app.post("/api/events/sync")
def sync_events(payload: Any = Body(...), store: EventStore = Depends(get_store)):
    """Replace every stored event (used by the JSON editor)."""
    if not isinstance(payload, list) or not all(isinstance(e, dict) for e in payload):
        return _error(400, "Expected array of events")
    try:
        return store.sync_events(payload)
    except ValueError as e:
        return _error(400, str(e))
    except Exception:
        logger.exception("Error syncing events")
        return _error(500, "Failed to sync events")


@app.put("/api/events/{event_id}")
def update_event(
    event_id: int,
    payload: Dict[str, Any] = Body(...),
    store: EventStore = Depends(get_store),
):
    try:
        return store.update_event(event_id, payload)
    except EventNotFoundError:
        return _error(404, "Event not found")
    except ValueError as e:
        return _error(400, str(e))
    except Exception:
        logger.exception("Error updating event %s", event_id)
        return _error(500, "Failed to update event")


@app.delete("/api/events/{event_id}")
def delete_event(event_id: int, store: EventStore = Depends(get_store)):
    try:
        store.delete_event(event_id)
    except EventNotFoundError:
        return _error(404, "Event not found")
    except Exception:
        logger.exception("Error deleting event %s", event_id)
        return _error(500, "Failed to delete event")
    return {"success": True}


@app.get("/api/health")
def health():
    return {"status": "ok", "database": "connected"}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("Database: %s", DB_PATH)
    uvicorn.run(app, host="127.0.0.1", port=API_PORT)


if __name__ == "__main__":
    main()
