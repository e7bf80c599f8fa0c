from __future__ import annotations

"""FastAPI + WebSocket host for a boat on simulated drivers."""

import asyncio
import json
import logging
import os
import traceback
from contextlib import asynccontextmanager
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .boat import Boat
from .config import BoatConfig
from .errors import BoatError, ConfigError, OperationCancelled
from .simulation import DEMO_CONFIG, SimulatedHull, simulated_dependencies

CONFIG_ENV = "BOATBASE_CONFIG"


class MoveStraightRequest(BaseModel):
    distance_mm: float
    mm_per_sec: float
    timeout: float | None = None


class SpinRequest(BaseModel):
    angle_deg: float
    degs_per_sec: float
    timeout: float | None = None


class MotionRequest(BaseModel):
    linear: list[float] = [0.0, 0.0, 0.0]
    angular: list[float] = [0.0, 0.0, 0.0]


def load_config() -> BoatConfig:
    path = os.environ.get(CONFIG_ENV)
    if not path:
        return DEMO_CONFIG
    logger.info(f"loading boat config from {path}")
    return BoatConfig.from_dict(json.loads(Path(path).read_text()))


def build_boat(config: BoatConfig) -> tuple[Boat, SimulatedHull]:
    config.validate()
    hull = SimulatedHull(config)
    boat = Boat.from_dependencies(config, simulated_dependencies(config, hull))
    return boat, hull


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.boat, app.state.hull = build_boat(load_config())
    try:
        yield
    finally:
        app.state.boat.close()


app = FastAPI(lifespan=lifespan)


def _run(fn, *args, **kwargs):
    try:
        fn(*args, **kwargs)
    except (ConfigError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OperationCancelled as e:
        raise HTTPException(status_code=409, detail=str(e))
    except BoatError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"ok": True}


# Blocking commands are plain defs so they run in the threadpool.

@app.post("/move_straight")
def move_straight(req: MoveStraightRequest):
    return _run(app.state.boat.move_straight, req.distance_mm, req.mm_per_sec, timeout=req.timeout)


@app.post("/spin")
def spin(req: SpinRequest):
    return _run(app.state.boat.spin, req.angle_deg, req.degs_per_sec, timeout=req.timeout)


@app.post("/velocity")
def set_velocity(req: MotionRequest):
    return _run(app.state.boat.set_velocity, req.linear, req.angular)


@app.post("/power")
def set_power(req: MotionRequest):
    return _run(app.state.boat.set_power, req.linear, req.angular)


@app.post("/stop")
def stop():
    return _run(app.state.boat.stop)


@app.get("/is_moving")
def is_moving():
    return {"is_moving": app.state.boat.is_moving()}


@app.get("/width")
def width():
    return {"width_mm": app.state.boat.width()}


@app.get("/state")
def state():
    return _telemetry(app.state.boat, app.state.hull)


def _telemetry(boat: Boat, hull: SimulatedHull) -> dict:
    v_x, v_y, omega_z, heading = hull.read()
    return {
        "control": boat.snapshot(),
        "hull": {
            "v_x": round(float(v_x), 2),
            "v_y": round(float(v_y), 2),
            "omega_z": round(float(omega_z), 2),
            "heading": round(float(heading), 2),
        },
        "powers": [round(hull.power(idx), 3) for idx in range(len(hull.powers))],
    }


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    send_interval = 0.2

    try:
        while True:
            # snapshot() and read() take thread locks held by the control loop
            telemetry = await run_in_threadpool(_telemetry, app.state.boat, app.state.hull)
            payload = json.dumps(telemetry, separators=(',', ':'))
            await websocket.send_text(payload)
            await asyncio.sleep(send_interval)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}\n{traceback.format_exc()}")
