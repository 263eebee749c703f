#!/usr/bin/env python3
"""Start the flagwar match API server.

Usage:
    python scripts/run_server.py
    python scripts/run_server.py --config configs/server.yaml --port 9000
    python scripts/run_server.py --tick-seconds 0      # rounds only advance via POST /tick
"""

import argparse
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import yaml

logger = logging.getLogger("flagwar.server")


def load_config(path: str) -> dict:
    """Read the YAML config; exits with a message instead of a traceback."""
    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except OSError as e:
        sys.exit(f"Cannot read config {path}: {e.strerror}")
    except yaml.YAMLError as e:
        sys.exit(f"Config {path} is not valid YAML: {e}")
    if not isinstance(config, dict):
        sys.exit(f"Config {path} must be a mapping of sections, got {type(config).__name__}")
    return config


def main():
    parser = argparse.ArgumentParser(description="flagwar match API server")
    parser.add_argument("--config", default="configs/server.yaml",
                        help="Path to server config YAML (default: configs/server.yaml)")
    parser.add_argument("--host", default=None, help="Override server.host")
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    parser.add_argument("--tick-seconds", type=float, default=None,
                        help="Override match.tick_seconds (0 disables the tick loop)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = load_config(args.config)
    if args.tick_seconds is not None:
        config.setdefault("match", {})["tick_seconds"] = args.tick_seconds

    server_cfg = config.get("server", {})
    host = args.host or server_cfg.get("host", "0.0.0.0")
    port = args.port or server_cfg.get("port", 8000)

    from flagwar.game.board import ConfigError
    from flagwar.match.dependencies import get_match_manager, init_app
    from flagwar.match.server import app

    # Bad geometry or weights should stop the server before it binds a port.
    try:
        init_app(app, config)
    except ConfigError as e:
        sys.exit(f"Invalid board in {args.config}: {e}")
    except ValueError as e:
        sys.exit(f"Invalid settings in {args.config}: {e}")

    manager = get_match_manager(app)
    logger.info(
        f"AI sides {[s.value for s in manager.default_ai_sides] or 'none'}, "
        f"tick every {manager.tick_seconds:g}s, search budget {manager.exploration.time_budget:g}s"
    )

    try:
        import uvicorn
    except ImportError:
        sys.exit("uvicorn not installed. Run: pip install -e '.[api]'")

    try:
        uvicorn.run(app, host=host, port=port, log_level=args.log_level.lower())
    finally:
        manager.shutdown()


if __name__ == "__main__":
    main()
