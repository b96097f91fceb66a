from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import FastAPI, HTTPException

from .core.config import Settings, settings as default_settings
from .core.log import configure_logging

from .api.routes import router as api_router
import dimming.api.routes as routes_module

from .domain.controller import DimmingController
from .domain.interfaces import BrightnessSource, ClockSource, OutputSink
from .drivers.brightness_sim import SimulatedBrightnessSource
from .drivers.brightness_sysfs import SysfsBacklightSource
from .drivers.clock import SystemClock
from .drivers.output_sim import SimulatedOutputSink
from .drivers.output_sysfs import SysfsOutputSink
from .services.dimming_service import DimmingService
from .storage.memory_store import MemoryConfigStore
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)

Store = Union[SQLiteRepository, MemoryConfigStore]


def build_sink(cfg: Settings) -> OutputSink:
    if cfg.output_mode.lower() == "sysfs":
        return SysfsOutputSink(cfg.output_node)
    return SimulatedOutputSink()


def build_brightness(cfg: Settings) -> BrightnessSource:
    if cfg.brightness_mode.lower() == "sysfs":
        return SysfsBacklightSource(cfg.backlight_dir, poll_seconds=cfg.brightness_poll_seconds)
    # default to sim
    return SimulatedBrightnessSource(level=cfg.sim_initial_brightness)


def build_store(cfg: Settings) -> Store:
    if cfg.store_mode.lower() == "memory":
        return MemoryConfigStore()
    return SQLiteRepository(cfg.sqlite_path)


@dataclass
class Runtime:
    """Everything one process owns: exactly one controller and its collaborators."""

    settings: Settings
    store: Store
    sink: OutputSink
    brightness: BrightnessSource
    clock: ClockSource
    controller: DimmingController
    service: DimmingService


def build_runtime(
    cfg: Settings,
    store: Optional[Store] = None,
    sink: Optional[OutputSink] = None,
    brightness: Optional[BrightnessSource] = None,
    clock: Optional[ClockSource] = None,
) -> Runtime:
    store = store if store is not None else build_store(cfg)
    sink = sink if sink is not None else build_sink(cfg)
    brightness = brightness if brightness is not None else build_brightness(cfg)
    clock = clock if clock is not None else SystemClock(cfg.timezone)

    controller = DimmingController(
        store=store,
        sink=sink,
        clock=clock,
        brightness=brightness,
        recorder=store,
    )
    service = DimmingService(
        controller,
        brightness,
        time_interval_s=cfg.time_interval_seconds,
        brightness_interval_s=cfg.brightness_interval_seconds,
        time_screen_on_delay_s=cfg.time_screen_on_delay_seconds,
        brightness_screen_on_delay_s=cfg.brightness_screen_on_delay_seconds,
        screen_on_settle_s=cfg.screen_on_settle_seconds,
    )
    return Runtime(cfg, store, sink, brightness, clock, controller, service)


def create_app(
    cfg: Optional[Settings] = None,
    *,
    store: Optional[Store] = None,
    sink: Optional[OutputSink] = None,
    brightness: Optional[BrightnessSource] = None,
    clock: Optional[ClockSource] = None,
) -> FastAPI:
    cfg = cfg or default_settings
    runtime = build_runtime(cfg, store=store, sink=sink, brightness=brightness, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.log_level, cfg.log_file or None)
        logger.info(
            "Starting %s (output=%s brightness=%s store=%s)",
            cfg.app_name, cfg.output_mode, cfg.brightness_mode, cfg.store_mode,
        )

        if isinstance(runtime.store, SQLiteRepository):
            await runtime.store.init()

        await runtime.service.start()

        try:
            yield
        finally:
            await runtime.service.stop()
            logger.info("Shutdown complete")

    app = FastAPI(title=cfg.app_name, lifespan=lifespan)
    app.state.runtime = runtime

    def get_sim_source() -> SimulatedBrightnessSource:
        if not isinstance(runtime.brightness, SimulatedBrightnessSource):
            raise HTTPException(status_code=404, detail="Simulated brightness not available (brightness_mode is not 'sim')")
        return runtime.brightness

    # Make the dependency functions in routes resolve to this runtime
    app.dependency_overrides[routes_module.get_service] = lambda: runtime.service
    app.dependency_overrides[routes_module.get_controller] = lambda: runtime.controller
    app.dependency_overrides[routes_module.get_repo] = lambda: runtime.store
    app.dependency_overrides[routes_module.get_sim_source] = get_sim_source

    app.include_router(api_router, prefix="/api")
    return app
