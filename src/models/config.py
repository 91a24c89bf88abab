"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


DEFAULT_REGION_ALIASES: Dict[str, str] = {
    "leftOutlane": "L",
    "centerDrain": "C",
    "rightOutlane": "R",
}


@dataclass
class CameraConfig:
    """Frame source configuration."""
    device_id: Union[int, str] = 0
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "device_id": self.device_id,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
            "max_retries": self.max_retries,
        }
        if self.resolution is not None:
            d["resolution"] = self.resolution
        if self.fps is not None:
            d["fps"] = self.fps
        return d


@dataclass
class MotionConfig:
    """
    Background subtraction and nudge suppression.

    Attributes:
        history: Background model history length (frames).
        var_threshold: Background model sensitivity.
        detect_shadows: Let the model tag shadows (removed by binary_threshold).
        binary_threshold: Foreground confidence cut-off (0-255).
        median_ksize: Median filter kernel size (odd).
        nudge_fraction: Fraction of the lane-union area that triggers suppression.
        nudge_window_ms: Suppression window length after a nudge.
    """
    history: int = 500
    var_threshold: float = 16.0
    detect_shadows: bool = False
    binary_threshold: int = 200
    median_ksize: int = 3
    nudge_fraction: float = 0.25
    nudge_window_ms: float = 250.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MotionConfig":
        return cls(
            history=d.get("history", 500),
            var_threshold=d.get("var_threshold", 16.0),
            detect_shadows=d.get("detect_shadows", False),
            binary_threshold=d.get("binary_threshold", 200),
            median_ksize=d.get("median_ksize", 3),
            nudge_fraction=d.get("nudge_fraction", 0.25),
            nudge_window_ms=d.get("nudge_window_ms", 250.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": self.history,
            "var_threshold": self.var_threshold,
            "detect_shadows": self.detect_shadows,
            "binary_threshold": self.binary_threshold,
            "median_ksize": self.median_ksize,
            "nudge_fraction": self.nudge_fraction,
            "nudge_window_ms": self.nudge_window_ms,
        }


@dataclass
class BlobConfig:
    """Contour filtering: area bounds (px^2) and minimum roundness."""
    min_area: float = 8.0
    max_area: float = 600.0
    min_circularity: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BlobConfig":
        return cls(
            min_area=d.get("min_area", 8.0),
            max_area=d.get("max_area", 600.0),
            min_circularity=d.get("min_circularity", 0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_area": self.min_area,
            "max_area": self.max_area,
            "min_circularity": self.min_circularity,
        }


@dataclass
class TrackingConfig:
    """Centroid tracking configuration."""
    max_distance_px: float = 40.0
    max_age_frames: int = 8

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            max_distance_px=d.get("max_distance_px", 40.0),
            max_age_frames=d.get("max_age_frames", 8),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_distance_px": self.max_distance_px,
            "max_age_frames": self.max_age_frames,
        }


@dataclass
class LaneConfig:
    """
    Lane classification configuration.

    Attributes:
        min_downward_velocity: Tracks must move down faster than this (px/frame).
        cooldown_ms: Minimum time between two events on the same lane.
        confidence: Confidence attached to automatic events.
        required: Lane codes the game profile must define.
        region_aliases: Game profile region name -> lane code.
    """
    min_downward_velocity: float = 1.0
    cooldown_ms: float = 600.0
    confidence: float = 0.8
    required: List[str] = field(default_factory=lambda: ["L", "C", "R"])
    region_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REGION_ALIASES))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LaneConfig":
        return cls(
            min_downward_velocity=d.get("min_downward_velocity", 1.0),
            cooldown_ms=d.get("cooldown_ms", 600.0),
            confidence=d.get("confidence", 0.8),
            required=list(d.get("required", ["L", "C", "R"])),
            region_aliases=dict(d.get("region_aliases") or DEFAULT_REGION_ALIASES),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_downward_velocity": self.min_downward_velocity,
            "cooldown_ms": self.cooldown_ms,
            "confidence": self.confidence,
            "required": self.required,
            "region_aliases": self.region_aliases,
        }


@dataclass
class PipelineSettings:
    """
    Processing loop configuration.

    Attributes:
        target_fps: Throughput cap; sets the inter-frame delay.
        retry_delay_s: Wait after a missing frame (None = one frame interval).
        max_consecutive_failures: Stop after this many missing frames in a row
            (None = never stop, the right choice for live cameras).
        stats_log_interval: Seconds between status log messages.
    """
    target_fps: float = 30.0
    retry_delay_s: Optional[float] = None
    max_consecutive_failures: Optional[int] = None
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineSettings":
        return cls(
            target_fps=d.get("target_fps", 30.0),
            retry_delay_s=d.get("retry_delay_s"),
            max_consecutive_failures=d.get("max_consecutive_failures"),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "target_fps": self.target_fps,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.retry_delay_s is not None:
            d["retry_delay_s"] = self.retry_delay_s
        if self.max_consecutive_failures is not None:
            d["max_consecutive_failures"] = self.max_consecutive_failures
        return d


@dataclass
class ProfilesConfig:
    """Where calibration profiles live."""
    root: str = "profiles"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProfilesConfig":
        return cls(root=d.get("root", "profiles"))

    def to_dict(self) -> Dict[str, Any]:
        return {"root": self.root}


@dataclass
class WebConfig:
    """Overlay/stats web server."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 5173

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 5173),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.
    
    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    blobs: BlobConfig = field(default_factory=BlobConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    lanes: LaneConfig = field(default_factory=LaneConfig)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    profiles: ProfilesConfig = field(default_factory=ProfilesConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/drain_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            motion=MotionConfig.from_dict(d.get("motion") or {}),
            blobs=BlobConfig.from_dict(d.get("blobs") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            lanes=LaneConfig.from_dict(d.get("lanes") or {}),
            pipeline=PipelineSettings.from_dict(d.get("pipeline") or {}),
            profiles=ProfilesConfig.from_dict(d.get("profiles") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/drain_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "motion": self.motion.to_dict(),
            "blobs": self.blobs.to_dict(),
            "tracking": self.tracking.to_dict(),
            "lanes": self.lanes.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "profiles": self.profiles.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
