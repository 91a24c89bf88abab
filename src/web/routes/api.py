from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from geometry.perspective import PerspectiveMapper
from models.drain_event import Lane
from models.errors import ConfigurationError, ProfileNotFound
from models.profile import ActiveProfile, CameraProfile, GameProfile
from runtime.context import RuntimeContext
from storage.profile_store import resolve_lane_regions
from ..api_models import (
    ActivateRequest,
    ActiveProfileResponse,
    CameraProfileBody,
    ConfigResponse,
    DrainEventResponse,
    EngineStatusResponse,
    GameProfileBody,
    LogsTailResponse,
    OverrideRequest,
    ProfileListResponse,
    StatsResponse,
)
from ..services.logs_service import LogsService

router = APIRouter()


def get_context(request: Request) -> RuntimeContext:
    return request.app.state.ctx


@router.get("/stats", response_model=StatsResponse)
def stats(ctx: RuntimeContext = Depends(get_context)):
    return ctx.stats.get_summary()


@router.post("/override", response_model=DrainEventResponse)
def override(req: OverrideRequest, ctx: RuntimeContext = Depends(get_context)):
    """Record a drain by hand. Goes to every sink, skipping the detection loop."""
    try:
        lane = Lane.parse(req.lane)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    event = ctx.override(lane)
    logging.info(f"Manual drain override: lane={lane.value}")
    return event.to_dict()


@router.post("/session/reset", response_model=StatsResponse)
def reset_session(ctx: RuntimeContext = Depends(get_context)):
    """Zero the session counters. Lane cooldowns are untouched."""
    ctx.stats.reset()
    logging.info("Session stats reset")
    return ctx.stats.get_summary()


@router.get("/status", response_model=EngineStatusResponse)
def status(ctx: RuntimeContext = Depends(get_context)):
    engine = ctx.engine
    if engine is None:
        return {"running": False, "overlay_clients": ctx.hub.client_count}
    return {
        "running": engine.running,
        "error": str(engine.error) if engine.error is not None else None,
        "overlay_clients": ctx.hub.client_count,
        **engine.stats.to_dict(),
    }


@router.get("/config", response_model=ConfigResponse)
def effective_config(ctx: RuntimeContext = Depends(get_context)):
    return {"config": ctx.config.to_dict()}


@router.get("/logs/tail", response_model=LogsTailResponse)
def logs_tail(lines: int = 200, ctx: RuntimeContext = Depends(get_context)):
    log_path = ctx.config.log_path
    return {"path": log_path, "lines": LogsService.tail(log_path, lines=lines)}


@router.get("/profiles", response_model=ProfileListResponse)
def list_profiles(ctx: RuntimeContext = Depends(get_context)):
    try:
        return ctx.profiles.list_profiles()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/profiles/camera", response_model=CameraProfileBody)
def save_camera_profile(body: CameraProfileBody, ctx: RuntimeContext = Depends(get_context)):
    try:
        profile = CameraProfile.from_dict(body.model_dump(exclude_none=True))
        ctx.profiles.save_camera(profile)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return profile.to_dict()


@router.post("/profiles/game", response_model=GameProfileBody)
def save_game_profile(body: GameProfileBody, ctx: RuntimeContext = Depends(get_context)):
    try:
        profile = GameProfile.from_dict(body.model_dump(exclude_none=True))
        ctx.profiles.save_game(profile)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return profile.to_dict()


@router.post("/profiles/activate", response_model=ActiveProfileResponse)
def activate_profiles(req: ActivateRequest, ctx: RuntimeContext = Depends(get_context)):
    """
    Select the camera/game pair for the next run.

    The pair must load and calibrate: the game has every required lane and
    the camera quad maps onto the game's canonical space.
    """
    store = ctx.profiles
    try:
        camera = store.load_camera(req.camera_id)
        game = store.load_game(req.game_id)
        resolve_lane_regions(
            game,
            required=ctx.config.lanes.required,
            aliases=ctx.config.lanes.region_aliases,
        )
        PerspectiveMapper(camera.quad, game.canonical, scene_size=camera.scene_size)
    except ProfileNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    active = ActiveProfile(camera_id=camera.id, game_id=game.id)
    store.activate(active)
    return {**active.to_dict(), "restart_required": True}
