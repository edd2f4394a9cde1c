from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SKETCHES, AppConfig
from .headless import Simulation, build_simulation

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SWARMSKETCH_CONFIG"


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig):
        self.config = config
        self.simulation: Simulation = build_simulation(config)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, config.snapshot_queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def tick(self) -> int:
        return self.simulation.tick

    async def start(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._loop())
            self._loop_task.add_done_callback(self._log_loop_exit)
        self.running = True
        logger.info("Simulation %s started", self.config.sketch)

    async def stop(self) -> None:
        self.running = False
        logger.info("Simulation %s stopped at tick %d", self.config.sketch, self.tick)

    async def shutdown(self) -> None:
        self.running = False
        task = self._loop_task
        self._loop_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def reset(self) -> None:
        async with self._lock:
            self.simulation.reset()
        await self._restart_stream()
        logger.info("Simulation %s reset", self.config.sketch)

    async def select_sketch(self, sketch: str) -> None:
        if sketch not in SKETCHES:
            raise ValueError(f"Unknown sketch: {sketch!r} (expected one of {', '.join(SKETCHES)})")
        async with self._lock:
            self.config = replace(self.config, sketch=sketch)
            self.simulation = build_simulation(self.config)
        await self._restart_stream()
        logger.info("Switched to sketch %s", sketch)

    async def update_params(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            params = self.simulation.config.params
            params.update(**changes)
            logger.info("Updated %s params: %s", self.config.sketch, changes)
            return asdict(params)

    def params(self) -> Dict[str, Any]:
        return asdict(self.simulation.config.params)

    async def status(self) -> Dict[str, Any]:
        async with self._lock:
            metrics = self.simulation.metrics
            return {
                "sketch": self.config.sketch,
                "running": self.running,
                "tick": self.tick,
                "metrics": asdict(metrics) if metrics is not None else None,
            }

    def register_client(self, client: WebSocket) -> None:
        self.clients.add(client)
        self._client_last_sent[client] = -1

    def drop_client(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.frame_interval / self.speed_multiplier)
            if not self.running:
                continue
            try:
                await self._advance()
            except Exception:
                logger.exception("Simulation %s failed at tick %d; pausing", self.config.sketch, self.tick)
                self.running = False

    async def _advance(self) -> None:
        async with self._lock:
            self.simulation.step()
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    @staticmethod
    def _log_loop_exit(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Simulation loop exited", exc_info=exc)

    async def _restart_stream(self) -> None:
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in list(self._client_last_sent):
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def _serialize_snapshot(self) -> QueuedSnapshot:
        async with self._lock:
            snapshot = self.simulation.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "fields": asdict(snapshot.fields),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
            self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = await self._serialize_snapshot()
        async with self._queue_lock:
            # deque maxlen evicts the oldest entry once the queue is full
            self._snapshot_queue.append(queued)
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.info("Dropping websocket client after send failure: %r", exc)
                self.drop_client(client)


def load_app_config() -> AppConfig:
    path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return AppConfig()
    logger.info("Loading server config from %s", path)
    return AppConfig.from_yaml(Path(path))


@asynccontextmanager
async def lifespan(app: FastAPI):
    await controller.start()
    try:
        yield
    finally:
        await controller.shutdown()


app = FastAPI(title="Swarm Sketch Simulation", lifespan=lifespan)
controller = SimulationController(load_app_config())


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(await controller.status())


@app.get("/api/params")
async def get_params() -> JSONResponse:
    return JSONResponse(controller.params())


@app.post("/api/params")
async def set_params(payload: dict) -> JSONResponse:
    try:
        params = await controller.update_params(payload)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(params)


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/sketch")
async def select_sketch(payload: dict) -> JSONResponse:
    try:
        await controller.select_sketch(str(payload.get("sketch", "")))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse({"sketch": controller.config.sketch, "params": controller.params()})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.register_client(websocket)
    try:
        await controller._send_pending_snapshots(websocket)
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict) and payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        pass
    finally:
        controller.drop_client(websocket)


__all__ = ["app", "controller", "lifespan", "load_app_config"]
