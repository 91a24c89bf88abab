"""
Pipeline module for the drain monitor.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources
- Canonical warp, motion detection and nudge suppression
- Blob extraction and tracking
- Lane classification and event dispatch
"""

from .engine import (
    DrainPipeline,
    FrameResult,
    PipelineEngine,
    PipelineStats,
    build_pipeline,
)

__all__ = [
    "DrainPipeline",
    "FrameResult",
    "PipelineEngine",
    "PipelineStats",
    "build_pipeline",
]
