"""
Drain monitor entry point.

Loads the layered config and the active calibration profiles, opens the
camera, starts the web server (stats, overrides, overlay events) and runs
the detection loop until interrupted.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-web: Run the detection loop without the web server
"""

import argparse
import logging
import os
import signal
import sys
import threading
from typing import Any, Dict, Optional, Tuple

import uvicorn

from models.config import Config
from models.drain_event import Lane
from models.errors import ConfigurationError
from observation import OpenCVSource, OpenCVSourceConfig
from ops.logging import setup_logging
from pipeline.engine import PipelineEngine, build_pipeline
from runtime.context import RuntimeContext
from storage.profile_store import ProfileStore
from web.app import create_app
from web.services.config_service import ConfigService

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)

    Raises:
        ConfigurationError: If a layer cannot be read or parsed.
    """
    service = ConfigService(os.path.dirname(config_path) or ".")
    try:
        return service.load_effective_config(config_path)
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.
    
    Args:
        config: Configuration dictionary
        
    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (URL or path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if camera.get('resolution') is not None:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution values must be positive integers"
    if camera.get('fps') is not None and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"
    if (camera.get('rotate') or 0) not in (0, 90, 180, 270):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    motion = config.get('motion') or {}
    if 'history' in motion and (not isinstance(motion['history'], int) or motion['history'] <= 0):
        return False, "motion.history must be a positive integer"
    if 'binary_threshold' in motion and not (
        isinstance(motion['binary_threshold'], int) and 0 <= motion['binary_threshold'] <= 255
    ):
        return False, "motion.binary_threshold must be an integer between 0 and 255"
    if 'median_ksize' in motion:
        k = motion['median_ksize']
        if not isinstance(k, int) or k < 1 or k % 2 == 0:
            return False, "motion.median_ksize must be a positive odd integer"
    if 'nudge_fraction' in motion and not (
        _is_number(motion['nudge_fraction']) and 0 < motion['nudge_fraction'] <= 1
    ):
        return False, "motion.nudge_fraction must be between 0 and 1"
    if 'nudge_window_ms' in motion and not (
        _is_number(motion['nudge_window_ms']) and motion['nudge_window_ms'] >= 0
    ):
        return False, "motion.nudge_window_ms must be a non-negative number"

    blobs = config.get('blobs') or {}
    for key in ('min_area', 'max_area'):
        if key in blobs and not (_is_number(blobs[key]) and blobs[key] >= 0):
            return False, f"blobs.{key} must be a non-negative number"
    if blobs.get('min_area', 0) > blobs.get('max_area', float('inf')):
        return False, "blobs.min_area must not exceed blobs.max_area"
    if 'min_circularity' in blobs and not (
        _is_number(blobs['min_circularity']) and 0 <= blobs['min_circularity'] <= 1
    ):
        return False, "blobs.min_circularity must be between 0 and 1"

    tracking = config.get('tracking') or {}
    if 'max_distance_px' in tracking and not (
        _is_number(tracking['max_distance_px']) and tracking['max_distance_px'] > 0
    ):
        return False, "tracking.max_distance_px must be a positive number"
    if 'max_age_frames' in tracking and not (
        isinstance(tracking['max_age_frames'], int) and tracking['max_age_frames'] >= 0
    ):
        return False, "tracking.max_age_frames must be a non-negative integer"

    lanes = config.get('lanes') or {}
    if 'cooldown_ms' in lanes and not (_is_number(lanes['cooldown_ms']) and lanes['cooldown_ms'] >= 0):
        return False, "lanes.cooldown_ms must be a non-negative number"
    if 'confidence' in lanes and not (_is_number(lanes['confidence']) and 0 <= lanes['confidence'] <= 1):
        return False, "lanes.confidence must be between 0 and 1"
    for code in list(lanes.get('required') or []) + list((lanes.get('region_aliases') or {}).values()):
        try:
            Lane.parse(code)
        except ValueError:
            return False, f"lanes: unknown lane code {code!r} (expected L, C or R)"

    pipeline = config.get('pipeline') or {}
    if 'target_fps' in pipeline and not (_is_number(pipeline['target_fps']) and pipeline['target_fps'] > 0):
        return False, "pipeline.target_fps must be a positive number"
    mcf = pipeline.get('max_consecutive_failures')
    if mcf is not None and (not isinstance(mcf, int) or mcf <= 0):
        return False, "pipeline.max_consecutive_failures must be a positive integer or null"

    web = config.get('web') or {}
    if 'port' in web and not (isinstance(web['port'], int) and 0 < web['port'] < 65536):
        return False, "web.port must be a valid TCP port"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def start_web_server(ctx: RuntimeContext) -> threading.Thread:
    """Run uvicorn on a daemon thread."""
    web_cfg = ctx.config.web

    def run_web_app():
        uvicorn.run(
            create_app(ctx),
            host=web_cfg.host,
            port=web_cfg.port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, name="web", daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on {web_cfg.host}:{web_cfg.port}")
    return web_thread


def main(argv=None) -> int:
    """Main application function. Returns the process exit code."""
    parser = argparse.ArgumentParser(description='Pinball drain monitor')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the web server')
    args = parser.parse_args(argv)

    try:
        raw_config = load_config(args.config)
    except ConfigurationError as e:
        logging.error(str(e))
        return 1

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info("Starting drain monitor")

    source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config.camera, source_id="playfield"))
    try:
        store = ProfileStore(config.profiles.root)
        camera_profile, game_profile = store.load_active()
        source.open()
        pipeline = build_pipeline(config, camera_profile, game_profile, source.capture_size)
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        source.close()
        return 1
    except RuntimeError as e:
        logging.error(f"Failed to open frame source: {e}")
        source.close()
        return 1

    ctx = RuntimeContext(config=config, profiles=store)
    engine = PipelineEngine(source, pipeline, ctx.sink, config.pipeline)
    ctx.engine = engine

    if config.web.enabled and not args.no_web:
        start_web_server(ctx)

    def handle_signal(signum, frame):
        logging.info(f"Received signal {signum}, stopping")
        engine.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    engine.run()
    return 1 if engine.error is not None else 0


if __name__ == "__main__":
    sys.exit(main())
