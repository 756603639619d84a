from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import DeploymentRequest
from .deployments import DeploymentNotFound, DeploymentSpec, DeploymentStore
from .docker_ops import DockerRuntime, RuntimeAdapter
from .reconciler import Reconciler
from .triggers import DestroyEventWatcher, Wakeup


def _parse_id(deployment_id: str) -> str:
    try:
        return str(uuid.UUID(deployment_id))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid deployment id '{deployment_id}'")


def _dump(dep: DeploymentSpec) -> dict:
    return asdict(dep)


def create_app(
    store: DeploymentStore | None = None,
    runtime: RuntimeAdapter | None = None,
    run_controller: bool = True,
) -> FastAPI:
    """Build the HTTP API and wire the store, wakeup signal and reconciler together.

    With ``run_controller=False`` only the CRUD surface is served; nothing talks
    to the container runtime.
    """
    store = store or DeploymentStore()
    wakeup = Wakeup()
    store.subscribe(wakeup)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.init_db()
        if run_controller:
            rt = runtime or DockerRuntime()
            app.state.reconciler = Reconciler(store, rt, wakeup)
            app.state.watcher = DestroyEventWatcher(rt, wakeup)
            app.state.watcher.start()
            app.state.reconciler.start()
        yield
        if app.state.watcher:
            app.state.watcher.stop()
            app.state.watcher.join(timeout=2)
        if app.state.reconciler:
            app.state.reconciler.stop()
            app.state.reconciler.join(timeout=10)

    app = FastAPI(title="Declarative Deployment Reconciler", lifespan=lifespan)
    app.state.store = store
    app.state.wakeup = wakeup
    app.state.reconciler = None
    app.state.watcher = None

    @app.get("/deployments")
    def list_deployments():
        return {"status": "ok", "deployments": [_dump(d) for d in store.list()]}

    @app.get("/deployment/{deployment_id}")
    def get_deployment(deployment_id: str):
        try:
            dep = store.get(_parse_id(deployment_id))
        except DeploymentNotFound:
            raise HTTPException(status_code=404, detail="id not found")
        return {"status": "ok", "deployment": _dump(dep)}

    @app.post("/deployments")
    def make_deployment(req: DeploymentRequest):
        dep = store.create(name=req.name, image=req.image, replicas=req.replicas)
        db.log_event("INFO", f"Deployment created: {dep}", deployment_id=dep.id)
        return {"status": "ok", "deployment": _dump(dep)}

    @app.patch("/deployment/{deployment_id}")
    def update_deployment(deployment_id: str, req: DeploymentRequest):
        try:
            dep = store.replace(_parse_id(deployment_id), name=req.name, image=req.image, replicas=req.replicas)
        except DeploymentNotFound:
            raise HTTPException(status_code=404, detail="id not found")
        db.log_event("INFO", f"Deployment updated: {dep}", deployment_id=dep.id)
        return {"status": "ok", "deployment": _dump(dep)}

    @app.delete("/deployment/{deployment_id}")
    def delete_deployment(deployment_id: str):
        dep_id = _parse_id(deployment_id)
        try:
            store.delete(dep_id)
        except DeploymentNotFound:
            raise HTTPException(status_code=404, detail="id not found")
        db.log_event("INFO", "Deployment deleted", deployment_id=dep_id)
        return {"status": "ok"}

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000), deployment_id: str | None = None):
        return {"status": "ok", "events": db.latest_events(limit=limit, deployment_id=deployment_id)}

    return app
