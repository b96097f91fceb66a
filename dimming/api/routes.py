from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import now_utc, now_local
from ..domain.controller import DimmingController
from ..domain.errors import InvalidTimeFormat
from ..domain.models import AutoMode
from ..domain.schedule import TimeWindow
from ..drivers.brightness_sim import SimulatedBrightnessSource
from ..services.dimming_service import DimmingService
from .schemas import (
    ManualRequest,
    ModeRequest,
    SimBrightnessRequest,
    ThresholdRequest,
    WindowIn,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# main.create_app binds these to the running instances via app.dependency_overrides.
def get_service() -> DimmingService:  # overridden in main
    raise RuntimeError("Service dependency not configured")

def get_controller() -> DimmingController:  # overridden in main
    raise RuntimeError("Controller dependency not configured")

def get_repo():  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_sim_source() -> SimulatedBrightnessSource:  # overridden in main
    raise RuntimeError("Simulated brightness dependency not configured")


def _mode_name(mode: AutoMode) -> str:
    return mode.name.lower()


def _window_out(w: TimeWindow) -> dict:
    start, end = w.as_strings()
    return {"start_time": start, "end_time": end, "wraps": w.wraps}


@router.get("/live")
async def get_live(
    svc: DimmingService = Depends(get_service),
    ctrl: DimmingController = Depends(get_controller),
):
    s = ctrl.snapshot()
    last = ctrl.last_write
    sample = ctrl.current_sample()
    return {
        "app": settings.app_name,
        "now_local": now_local().isoformat(),
        "phase": ctrl.phase.value,
        "manual_enable": s.manual_enable,
        "mode": _mode_name(s.mode),
        "threshold": s.threshold,
        "window": _window_out(s.window),
        "output": ctrl.get_auto_output(),
        "running_average": s.running_average,
        "minute_of_day": s.minute_of_day,
        "screen_on": s.screen_on,
        "last_write": {"ok": last.ok, "error": last.error} if last else None,
        "brightness": {
            "level": sample.level,
            "since_utc": sample.observed_at.isoformat(),
            "tracked_levels": len(ctrl.history_entries()),
        }
        if sample
        else None,
        "service": {
            "running": svc.running,
            "last_event": svc.live.last_event,
            "events_processed": svc.live.events_processed,
            "event_errors": svc.live.event_errors,
        },
    }


@router.post("/controller/enable")
async def controller_enable(ctrl: DimmingController = Depends(get_controller)):
    output = await ctrl.set_manual_enable(True)
    return {"ok": True, "manual_enable": True, "output": output}


@router.post("/controller/disable")
async def controller_disable(ctrl: DimmingController = Depends(get_controller)):
    output = await ctrl.set_manual_enable(False)
    return {"ok": True, "manual_enable": False, "output": output}


@router.put("/controller/manual")
async def controller_manual(req: ManualRequest, ctrl: DimmingController = Depends(get_controller)):
    output = await ctrl.set_manual_enable(req.enabled)
    return {"ok": True, "manual_enable": req.enabled, "output": output}


@router.get("/mode")
async def get_mode(ctrl: DimmingController = Depends(get_controller)):
    mode = ctrl.get_mode()
    return {"mode": _mode_name(mode), "value": int(mode)}


@router.put("/mode")
async def set_mode(req: ModeRequest, ctrl: DimmingController = Depends(get_controller)):
    try:
        mode = AutoMode.parse(req.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    output = await ctrl.set_mode(mode)
    return {"ok": True, "mode": _mode_name(mode), "output": output}


@router.get("/window")
async def get_window(ctrl: DimmingController = Depends(get_controller)):
    return _window_out(ctrl.get_window())


@router.put("/window")
async def set_window(req: WindowIn, ctrl: DimmingController = Depends(get_controller)):
    try:
        window = TimeWindow.from_strings(req.start_time, req.end_time)
    except InvalidTimeFormat as e:
        raise HTTPException(status_code=400, detail=str(e))
    output = await ctrl.set_window(window)
    return {"ok": True, **_window_out(window), "output": output}


@router.get("/threshold")
async def get_threshold(ctrl: DimmingController = Depends(get_controller)):
    return {"level": ctrl.get_threshold(), "running_average": ctrl.get_running_average()}


@router.put("/threshold")
async def set_threshold(req: ThresholdRequest, ctrl: DimmingController = Depends(get_controller)):
    output = await ctrl.set_threshold(req.level)
    return {"ok": True, "level": req.level, "output": output}


# --- External events ---
@router.post("/screen/on")
async def screen_on(svc: DimmingService = Depends(get_service)):
    return {"ok": True, "queued": svc.notify_screen_on()}


@router.post("/screen/off")
async def screen_off(svc: DimmingService = Depends(get_service)):
    return {"ok": True, "queued": svc.notify_screen_off()}


@router.post("/settings/changed")
async def settings_changed(svc: DimmingService = Depends(get_service)):
    return {"ok": True, "queued": svc.notify_setting_changed()}


@router.get("/outputs")
async def outputs(
    minutes: int = 240,
    limit: int = 2000,
    repo=Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_outputs(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": e.ts_utc.isoformat(),
                "enabled": e.enabled,
                "reason": e.reason,
                "ok": e.ok,
                "error": e.error,
                "mode": _mode_name(e.mode),
                "running_average": e.running_average,
            }
            for e in rows
        ],
    }


# --- Simulation endpoints ---
@router.get("/sim/brightness")
async def sim_status(source: SimulatedBrightnessSource = Depends(get_sim_source)):
    return source.status()


@router.post("/sim/brightness")
async def sim_set_brightness(req: SimBrightnessRequest, source: SimulatedBrightnessSource = Depends(get_sim_source)):
    source.set_level(req.level)
    return {"ok": True, "level": req.level}
