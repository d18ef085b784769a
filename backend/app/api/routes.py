import json
import logging
import random

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from app.core.config import get_settings
from app.db import SqlStore, get_session
from app.schemas import ImportRequest, PickResponse, SessionStatus, Snapshot, SoundSetting
from rollcall.importer import parse_import
from rollcall.roster import RosterStateManager, ValidationError, validate_names
from rollcall.store import load_sound_enabled, save_sound_enabled

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

_rng = random.Random()


def get_rng() -> random.Random:
    """Random source for picks; overridden in tests for deterministic draws."""
    return _rng


def get_store(session: Session = Depends(get_session)) -> SqlStore:
    return SqlStore(session)


def get_manager(
    store: SqlStore = Depends(get_store),
    rng: random.Random = Depends(get_rng),
) -> RosterStateManager:
    return RosterStateManager.from_store(store, default_roster=settings.default_roster, rng=rng)


def _status(manager: RosterStateManager, store: SqlStore) -> SessionStatus:
    state = manager.state
    return SessionStatus(
        roster=list(state.roster),
        remaining=list(state.remaining),
        picked=list(state.picked),
        total=len(state.roster),
        remaining_count=len(state.remaining),
        picked_count=len(state.picked),
        exhausted=manager.exhausted,
        needs_reset=manager.needs_reset,
        sound_enabled=load_sound_enabled(store),
    )


@router.get("/session", response_model=SessionStatus, tags=["session"])
def get_status(
    manager: RosterStateManager = Depends(get_manager),
    store: SqlStore = Depends(get_store),
) -> SessionStatus:
    return _status(manager, store)


@router.post("/session/pick", response_model=PickResponse, tags=["session"])
def pick(
    manager: RosterStateManager = Depends(get_manager),
    store: SqlStore = Depends(get_store),
) -> PickResponse:
    """Call one name from the remaining pool."""
    name = manager.pick_one()
    if name is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Roll call exhausted: every name has been picked. Reset to start over.",
        )
    return PickResponse(name=name, session=_status(manager, store))


@router.post("/session/reset", response_model=SessionStatus, tags=["session"])
def reset(
    manager: RosterStateManager = Depends(get_manager),
    store: SqlStore = Depends(get_store),
) -> SessionStatus:
    manager.reset()
    return _status(manager, store)


@router.post("/session/import", response_model=SessionStatus, tags=["session"])
def import_roster(
    request: ImportRequest,
    manager: RosterStateManager = Depends(get_manager),
    store: SqlStore = Depends(get_store),
) -> SessionStatus:
    """Replace the roster from an uploaded file body and restart the session."""
    try:
        names = parse_import(request.content, filename=request.filename, fmt=request.format)
        manager.import_roster(names)
    except ValidationError as exc:
        logger.info("Rejected roster import: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _status(manager, store)


@router.get("/session/export", tags=["session"])
def export_session(manager: RosterStateManager = Depends(get_manager)):
    """Download roster, pick order and remaining pool as a JSON document."""
    snapshot = manager.export_snapshot()
    body = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2).encode("utf-8")
    filename = f"roll-call_{snapshot.timestamp[:10]}.json"
    return StreamingResponse(
        iter([body]),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/session/restore", response_model=SessionStatus, tags=["session"])
def restore_session(
    snapshot: Snapshot,
    manager: RosterStateManager = Depends(get_manager),
    store: SqlStore = Depends(get_store),
) -> SessionStatus:
    """Restore a previously exported document; inconsistent pick progress starts a fresh pool."""
    try:
        validate_names(snapshot.roster)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    manager.initialize(snapshot.model_dump())
    return _status(manager, store)


@router.get("/settings/sound", response_model=SoundSetting, tags=["settings"])
def get_sound(store: SqlStore = Depends(get_store)) -> SoundSetting:
    return SoundSetting(enabled=load_sound_enabled(store))


@router.put("/settings/sound", response_model=SoundSetting, tags=["settings"])
def set_sound(request: SoundSetting, store: SqlStore = Depends(get_store)) -> SoundSetting:
    save_sound_enabled(store, request.enabled)
    return SoundSetting(enabled=request.enabled)
