"""
Pipeline engine for the drain monitor.

``DrainPipeline`` runs the per-frame chain (normalize -> motion -> blobs ->
tracking -> lane classification). ``PipelineEngine`` drives it from an
ObservationSource and hands the resulting events to a sink.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from algorithms.lanes import LaneClassifier, LaneClassifierConfig
from detection.blobs import BlobExtractor
from detection.motion import MotionDetector
from detection.opencv_backend import Mog2ForegroundModel, OpenCVContourFinder
from geometry.normalizer import FrameNormalizer
from geometry.perspective import PerspectiveMapper
from geometry.regions import RegionCatalog
from models.config import Config, PipelineSettings
from models.detection import Detection
from models.drain_event import DrainEvent
from models.frame import FrameData
from models.profile import CameraProfile, GameProfile
from models.track import TrackState
from observation import ObservationSource
from runtime.sinks import EventSink
from storage.profile_store import resolve_lane_regions
from tracking.tracker import ObjectTracker


@dataclass
class FrameResult:
    """Outcome of processing one frame."""
    events: List[DrainEvent] = field(default_factory=list)
    detections: List[Detection] = field(default_factory=list)
    tracks: List[TrackState] = field(default_factory=list)
    suppressed: bool = False


class DrainPipeline:
    """
    One frame in, zero or more DrainEvents out.

    While the motion detector reports a nudge the frame is discarded
    entirely: no blob extraction, no tracker update, no classification.
    """

    def __init__(
        self,
        normalizer: FrameNormalizer,
        regions: RegionCatalog,
        motion: MotionDetector,
        blobs: BlobExtractor,
        tracker: ObjectTracker,
        classifier: LaneClassifier,
    ):
        self.normalizer = normalizer
        self.regions = regions
        self.motion = motion
        self.blobs = blobs
        self.tracker = tracker
        self.classifier = classifier

    def process(self, frame: np.ndarray, now: float) -> FrameResult:
        canonical = self.normalizer.normalize(frame)
        mask = self.motion.detect(canonical, now)
        if mask is None:
            return FrameResult(suppressed=True)

        detections = self.blobs.extract(mask)
        tracks = self.tracker.update(detections)
        events = self.classifier.classify(tracks, now)
        return FrameResult(events=events, detections=detections, tracks=tracks)


def build_pipeline(
    config: Config,
    camera: CameraProfile,
    game: GameProfile,
    capture_size: Optional[Tuple[int, int]] = None,
) -> DrainPipeline:
    """
    Factory: wire a DrainPipeline from config and the active profiles.

    Raises:
        ConfigurationError: Missing required lane or bad profile data.
        InvalidCalibration: Degenerate camera quad.
    """
    mapper = PerspectiveMapper(
        camera.quad,
        game.canonical,
        scene_size=camera.scene_size,
        capture_size=capture_size,
    )
    polygons = resolve_lane_regions(
        game,
        required=config.lanes.required,
        aliases=config.lanes.region_aliases,
    )
    regions = RegionCatalog(game.canonical, polygons)
    motion = MotionDetector(
        Mog2ForegroundModel.from_config(config.motion),
        regions.union_mask,
        regions.union_area,
        config.motion,
    )
    pipeline = DrainPipeline(
        normalizer=FrameNormalizer(mapper),
        regions=regions,
        motion=motion,
        blobs=BlobExtractor(OpenCVContourFinder(), config.blobs),
        tracker=ObjectTracker(
            max_distance_px=config.tracking.max_distance_px,
            max_age_frames=config.tracking.max_age_frames,
        ),
        classifier=LaneClassifier(regions, LaneClassifierConfig.from_lane_config(config.lanes)),
    )
    logging.info(
        f"Pipeline built: camera='{camera.id}' game='{game.id}' "
        f"canonical={game.canonical.width}x{game.canonical.height} "
        f"lanes={[lane.value for lane in regions.lanes]} union_area={regions.union_area}"
    )
    return pipeline


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    active_tracks: int = 0
    drain_count: int = 0
    suppressed_frames: int = 0
    drains_by_lane: Dict[str, int] = field(default_factory=dict)
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frames": self.frame_count,
            "detections": self.detection_count,
            "tracks": self.active_tracks,
            "drains": self.drain_count,
            "suppressed_frames": self.suppressed_frames,
            "drains_by_lane": dict(self.drains_by_lane),
            "consecutive_failures": self.consecutive_failures,
            "uptime_s": round(time.time() - self.start_time, 1),
        }


class PipelineEngine:
    """
    Sequential processing loop on the calling thread.

    Per iteration: check the stop signal, pull a frame (None is a transient
    skip), process it, publish its events to the sink in emission order,
    then wait one frame interval.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        source.open()
        pipeline = build_pipeline(config, camera, game, source.capture_size)
        engine = PipelineEngine(source, pipeline, sink, config.pipeline)
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        pipeline: DrainPipeline,
        sink: EventSink,
        settings: Optional[PipelineSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.pipeline = pipeline
        self.sink = sink
        self.settings = settings or PipelineSettings()
        self.stats = PipelineStats()
        self.error: Optional[BaseException] = None
        self._clock = clock
        self._stop_event = threading.Event()
        self._running = False

        fps = self.settings.target_fps
        self._frame_interval = 1.0 / fps if fps and fps > 0 else 0.0
        self._retry_delay = (
            self.settings.retry_delay_s
            if self.settings.retry_delay_s is not None
            else self._frame_interval
        )

    @property
    def running(self) -> bool:
        return self._running

    def run(self) -> None:
        """
        Run the processing loop until stopped, the failure limit is hit, or
        an unexpected error occurs (stored on ``error``).

        An engine can be run again after it stops.
        """
        self._stop_event.clear()
        self._running = True
        self.error = None
        self.stats = PipelineStats()

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while not self._stop_event.is_set():
                frame_data = self.source.read()

                if frame_data is None:
                    if not self._handle_missing_frame():
                        break
                    continue

                self.stats.consecutive_failures = 0
                self.process_frame(frame_data)
                self._handle_periodic_tasks()
                self._stop_event.wait(self._frame_interval)

        except Exception as e:
            self.error = e
            logging.exception(f"Pipeline error: {e}")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the loop to stop after the in-flight frame."""
        self._stop_event.set()

    def process_frame(self, frame_data: FrameData) -> FrameResult:
        """Run one frame through the pipeline and publish its events."""
        now = self._clock()
        result = self.pipeline.process(frame_data.frame, now)

        self.stats.frame_count += 1
        if result.suppressed:
            self.stats.suppressed_frames += 1
            return result

        self.stats.detection_count += len(result.detections)
        self.stats.active_tracks = len(result.tracks)

        for event in result.events:
            self.stats.drain_count += 1
            lane = event.lane.value
            self.stats.drains_by_lane[lane] = self.stats.drains_by_lane.get(lane, 0) + 1
            logging.info(
                f"Drain detected: lane={lane} confidence={event.confidence:.2f} "
                f"total={self.stats.drain_count}"
            )
            self._publish(event)

        return result

    def _publish(self, event: DrainEvent) -> None:
        try:
            self.sink.publish(event)
        except Exception as e:
            logging.warning(f"Event sink failed: {e}")

    def _handle_missing_frame(self) -> bool:
        """Count a missing frame. Returns False when the loop should stop."""
        self.stats.consecutive_failures += 1
        limit = self.settings.max_consecutive_failures
        if limit is not None and self.stats.consecutive_failures >= limit:
            logging.error(
                f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
            )
            return False
        if limit is not None:
            logging.warning(f"No frame ({self.stats.consecutive_failures}/{limit})")
        else:
            logging.warning(f"No frame ({self.stats.consecutive_failures} in a row)")
        self._stop_event.wait(self._retry_delay)
        return True

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.settings.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"suppressed={self.stats.suppressed_frames}, "
                f"tracks={self.stats.active_tracks}, "
                f"drains={self.stats.drain_count}, "
                f"by_lane={self.stats.drains_by_lane}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        logging.info("Pipeline stopped")
