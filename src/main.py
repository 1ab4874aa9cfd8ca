"""
Traffic violation monitor entry point.

Starts one processing worker per configured camera, loads the detection model
(falling back to simulated detections if it is unavailable) and serves the
read-only violation API.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-web: Do not start the web API
"""

import argparse
import logging
import os
import sys
import threading
from typing import Any, Dict, List, Optional, Tuple

import uvicorn
import yaml

from inference.decoder import MIN_CONFIDENCE_FLOOR, MIN_OBJECTNESS_THRESHOLD
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from runtime.context import create_context_from_config
from web.app import create_app
from web.state import SharedState

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_CAMERA_BACKENDS = ('opencv', 'synthetic')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def config_layers(config_path: str) -> List[str]:
    """
    Files merged by load_config, lowest precedence first:
    - `default.yaml` next to the given path (checked in)
    - `config.yaml` next to it (site overrides)
    - the given path itself, when it is a different file
    """
    config_dir = os.path.dirname(config_path)
    site_path = os.path.join(config_dir, "config.yaml")
    layers = [os.path.join(config_dir, "default.yaml"), site_path]
    if os.path.abspath(config_path) != os.path.abspath(site_path):
        layers.append(config_path)
    return layers


def load_config(config_path: str) -> Dict[str, Any]:
    """Merge every existing config layer into one dict. Exits on unreadable YAML."""
    merged: Dict[str, Any] = {}
    for path in config_layers(config_path):
        if not os.path.exists(path):
            continue
        try:
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration from {path}: {e}")
            sys.exit(1)
        _deep_merge(merged, layer)
    return merged


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['cameras', 'ledger', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    cameras = config.get('cameras')
    if not isinstance(cameras, list) or not cameras:
        return False, "cameras must be a non-empty list"
    seen_ids = set()
    for i, camera in enumerate(cameras):
        if not isinstance(camera, dict):
            return False, f"cameras[{i}] must be a mapping"
        source_id = camera.get('source_id')
        if not isinstance(source_id, str) or not source_id:
            return False, f"cameras[{i}].source_id must be a non-empty string"
        if source_id in seen_ids:
            return False, f"cameras[{i}].source_id '{source_id}' is duplicated"
        seen_ids.add(source_id)

        backend = camera.get('backend', 'synthetic')
        if backend not in VALID_CAMERA_BACKENDS:
            return False, f"cameras[{i}].backend must be one of: {', '.join(VALID_CAMERA_BACKENDS)}"
        if backend == 'opencv' and not isinstance(camera.get('device_id', 0), (int, str)):
            return False, f"cameras[{i}].device_id must be an integer (index) or string (URL/path)"

        resolution = camera.get('resolution', [1280, 720])
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, f"cameras[{i}].resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, f"cameras[{i}].resolution values must be positive integers"

        interval = camera.get('interval_s', 2.0)
        if not isinstance(interval, (int, float)) or interval <= 0:
            return False, f"cameras[{i}].interval_s must be a positive number"

    model = config.get('model', {}) or {}
    if 'path' in model and model['path'] is not None and not isinstance(model['path'], str):
        return False, "model.path must be a string"
    if 'input_size' in model:
        size = model['input_size']
        if not isinstance(size, int) or size <= 0:
            return False, "model.input_size must be a positive integer"
    if 'class_names' in model:
        names = model['class_names']
        if not isinstance(names, list) or not names or not all(isinstance(n, str) for n in names):
            return False, "model.class_names must be a non-empty list of strings"

    detection = config.get('detection', {}) or {}
    if 'objectness_threshold' in detection:
        thr = detection['objectness_threshold']
        if not isinstance(thr, (int, float)) or not (MIN_OBJECTNESS_THRESHOLD <= thr < 1):
            return False, f"detection.objectness_threshold must be in [{MIN_OBJECTNESS_THRESHOLD}, 1)"
    if 'min_confidence' in detection:
        mc = detection['min_confidence']
        if not isinstance(mc, int) or not (MIN_CONFIDENCE_FLOOR <= mc <= 100):
            return False, f"detection.min_confidence must be an integer in [{MIN_CONFIDENCE_FLOOR}, 100]"

    fallback = config.get('fallback', {}) or {}
    if 'rate' in fallback:
        rate = fallback['rate']
        if not isinstance(rate, (int, float)) or not (0 <= rate <= 1):
            return False, "fallback.rate must be between 0 and 1"

    ledger = config.get('ledger', {}) or {}
    capacity = ledger.get('capacity', 10)
    if not isinstance(capacity, int) or capacity <= 0:
        return False, "ledger.capacity must be a positive integer"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Traffic Violation Monitor')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the web API')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Traffic Violation Monitor")

    web_state = SharedState()
    ctx = create_context_from_config(config)

    # Model load failure is not fatal: cameras run on the fallback generator
    status = ctx.backend.load_model()
    if ctx.backend_ready:
        logging.info(f"Detection model ready ({ctx.backend.name})")
    else:
        logging.warning(f"Detection model unavailable (status={status.value}), running in fallback mode")

    engine = create_engine_from_config(config, ctx)
    web_state.attach(ctx, engine)

    web_cfg = config.get('web', {}) or {}
    if web_cfg.get('enabled', True) and not args.no_web:
        host = web_cfg.get('host', '0.0.0.0')
        port = int(web_cfg.get('port', 5000))

        def run_web_app():
            uvicorn.run(
                create_app(web_state),
                host=host,
                port=port,
                log_level="info",
            )

        web_thread = threading.Thread(target=run_web_app, name="web", daemon=True)
        web_thread.start()
        logging.info(f"Web interface started on port {port}")

    engine.run()
    logging.info("Traffic Violation Monitor stopped")


if __name__ == "__main__":
    main()
