"""
DC dimming controller service.

Usage:
    python -m dimming                                   # sim output, sim brightness
    python -m dimming --output sysfs --node /sys/.../dc_dimming
    python -m dimming --brightness sysfs --backlight-dir /sys/class/backlight/panel0-backlight
"""

from __future__ import annotations

import argparse

import uvicorn

from .core.config import Settings
from .main import create_app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="DC dimming controller")
    p.add_argument("--host", help="HTTP bind address")
    p.add_argument("--port", type=int, help="HTTP port")
    p.add_argument("--output", choices=["sim", "sysfs"], help="Output sink")
    p.add_argument("--node", help="DC dimming control node path")
    p.add_argument("--brightness", choices=["sim", "sysfs"], help="Brightness source")
    p.add_argument("--backlight-dir", help="Kernel backlight directory")
    p.add_argument("--store", choices=["sqlite", "memory"], help="Settings store")
    p.add_argument("--db", help="SQLite database path")
    p.add_argument("--timezone", help="IANA timezone for the time window")
    p.add_argument("--log-level", help="Logging level")
    return p.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "host": args.host,
        "port": args.port,
        "output_mode": args.output,
        "output_node": args.node,
        "brightness_mode": args.brightness,
        "backlight_dir": args.backlight_dir,
        "store_mode": args.store,
        "sqlite_path": args.db,
        "timezone": args.timezone,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> None:
    cfg = settings_from_args(parse_args(argv))
    app = create_app(cfg)
    # Logging is configured in the app lifespan
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)


if __name__ == "__main__":
    main()
