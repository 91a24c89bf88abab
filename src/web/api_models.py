from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LaneStats(BaseModel):
    count: int
    pct: float = Field(..., description="Share of session drains, rounded to 0.1")


class StatsResponse(BaseModel):
    total: int = Field(..., description="Percentage denominator; at least 1")
    lanes: Dict[str, LaneStats]


class OverrideRequest(BaseModel):
    lane: str = Field(..., description="Lane code: L, C or R")


class DrainEventResponse(BaseModel):
    type: str = "drain"
    lane: str
    confidence: float
    ts: str
    source: str


class EngineStatusResponse(BaseModel):
    """Processing loop counters for dashboard polling."""
    running: bool
    error: Optional[str] = None
    frames: int = 0
    detections: int = 0
    tracks: int = 0
    drains: int = 0
    suppressed_frames: int = 0
    drains_by_lane: Dict[str, int] = Field(default_factory=dict)
    consecutive_failures: int = 0
    uptime_s: float = 0.0
    overlay_clients: int = 0


class LogsTailResponse(BaseModel):
    path: Optional[str]
    lines: list[str]


class ConfigResponse(BaseModel):
    config: Dict[str, Any]


class CameraProfileBody(BaseModel):
    """Camera calibration as stored in cameras/<id>.yaml."""
    id: str
    name: Optional[str] = None
    quad: List[List[float]] = Field(..., description="Scene corners TL, TR, BR, BL as [x, y]")
    scene_size: Optional[List[int]] = Field(None, description="[width, height] the quad was recorded at")


class CanonicalSizeBody(BaseModel):
    width: int
    height: int


class GameProfileBody(BaseModel):
    """Game geometry as stored in games/<id>.yaml."""
    id: str
    name: Optional[str] = None
    canonical: CanonicalSizeBody
    regions: Dict[str, List[List[float]]] = Field(default_factory=dict)


class ActivateRequest(BaseModel):
    camera_id: str
    game_id: str


class ActiveProfileResponse(BaseModel):
    camera_id: str
    game_id: str
    restart_required: bool = Field(True, description="The running pipeline keeps its calibration until restart")


class ProfileListResponse(BaseModel):
    cameras: List[Dict[str, Any]]
    games: List[Dict[str, Any]]
    active: Optional[Dict[str, Any]] = None
