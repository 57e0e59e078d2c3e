"""FastAPI application - UCS recalculation service.

Exposes preview (simulate), commit and business-day checks over HTTP.
Errors are returned as JSON bodies with a display-ready ``detail``.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import Config
from .errors import (
    ComputationError,
    GateBlockedError,
    NotBaseAssetError,
    UcsError,
    UnknownAssetError,
)
from .graph.types import AssetNode
from .identity.extractor import extract_actor
from .recalc.types import JobStatus
from .service import UcsService


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "UCS_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"


# Request models
class EditSetRequest(BaseModel):
    """An edit set for one date: base asset id -> proposed price."""
    date: dt.date
    edits: dict[str, float] = Field(default_factory=dict)


class AffectedRequest(BaseModel):
    asset_ids: list[str]


# Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    assets: int
    holiday_cache: dict[str, Any]


class AssetResponse(BaseModel):
    id: str
    name: str
    calculation_type: str
    depends_on: list[str]
    dependents: list[str]
    formula: str | None = None
    formula_description: str
    currency: str
    description: str = ""
    editable: bool


class AffectedResponse(BaseModel):
    edited: list[str]
    affected: list[str]


class BusinessDayResponse(BaseModel):
    date: str
    allowed: bool
    state: str
    reason: str | None = None
    blocked_by: str | None = None
    holiday_name: str | None = None
    suggested_date: str | None = None
    degraded: bool = False


class AdjacentDayResponse(BaseModel):
    date: str
    business_day: str


# Global service instance (initialized in lifespan)
_service: UcsService | None = None


def load_config() -> Config:
    """Config from $UCS_CONFIG, else ./config.yaml if present, else defaults."""
    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        return Config.from_yaml(path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return Config.from_yaml(DEFAULT_CONFIG_PATH)
    return Config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    global _service

    logger.info("Starting UCS recalculation service...")

    if _service is None:
        _service = UcsService.from_config(load_config())
    await _service.start()

    logger.info("UCS recalculation service started")

    yield

    logger.info("Shutting down UCS recalculation service...")
    await _service.stop()
    logger.info("UCS recalculation service stopped")


# Create FastAPI app
app = FastAPI(
    title="UCS Recalculation Service",
    description="Previews and commits manual price corrections, recomputing every dependent index.",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(UnknownAssetError)
async def unknown_asset_handler(request: Request, exc: UnknownAssetError):
    return JSONResponse(
        status_code=404,
        content={"error": "Unknown asset", "detail": str(exc)},
    )


@app.exception_handler(NotBaseAssetError)
async def not_base_asset_handler(request: Request, exc: NotBaseAssetError):
    return JSONResponse(
        status_code=400,
        content={"error": "Asset not editable", "detail": str(exc)},
    )


@app.exception_handler(ComputationError)
async def computation_error_handler(request: Request, exc: ComputationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Computation error", "detail": str(exc), "asset_id": exc.asset_id},
    )


@app.exception_handler(GateBlockedError)
async def gate_blocked_handler(request: Request, exc: GateBlockedError):
    return JSONResponse(
        status_code=409,
        content={
            "error": "Not a business day",
            "detail": exc.reason,
            "suggested_date": exc.suggested_date.isoformat() if exc.suggested_date else None,
        },
    )


@app.exception_handler(UcsError)
async def ucs_error_handler(request: Request, exc: UcsError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "detail": str(exc)},
    )


def _get_service() -> UcsService:
    if not _service:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _service


def _asset_response(service: UcsService, node: AssetNode) -> AssetResponse:
    return AssetResponse(
        id=node.id,
        name=node.display_name,
        calculation_type=node.calculation_type.value,
        depends_on=list(node.depends_on),
        dependents=service.graph.dependents(node.id),
        formula=node.formula_key,
        formula_description=service.engine.describe(node.id),
        currency=node.currency,
        description=node.description,
        editable=node.is_base,
    )


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    service = _get_service()
    return HealthResponse(
        status="healthy",
        version=__version__,
        assets=len(service.graph),
        holiday_cache=service.gate.cache_stats(),
    )


@app.get("/assets", response_model=list[AssetResponse])
async def list_assets():
    """Every asset in declaration order."""
    service = _get_service()
    return [_asset_response(service, node) for node in service.graph]


@app.get("/assets/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: str):
    service = _get_service()
    return _asset_response(service, service.graph.get_node(asset_id))


@app.post("/affected", response_model=AffectedResponse)
async def affected(body: AffectedRequest):
    """Ordered list of assets that must be recomputed when ``asset_ids`` change."""
    service = _get_service()
    return AffectedResponse(
        edited=service.resolver.validate(body.asset_ids),
        affected=service.affected(body.asset_ids),
    )


@app.post("/simulate")
async def simulate(body: EditSetRequest):
    """
    Preview an edit set against the stored values for the date.

    Read-only: nothing is persisted or audited.
    """
    service = _get_service()
    report = await service.simulate(body.date, body.edits)
    return report.to_dict()


@app.post("/plan")
async def plan(body: EditSetRequest):
    """Steps and time estimate of a commit. 409 when the date is not a business day."""
    service = _get_service()
    result = await service.plan(body.date, body.edits)
    return result.to_dict()


@app.post("/commit")
async def commit(request: Request, body: EditSetRequest):
    """
    Recalculate and persist an edit set.

    Returns the job: 200 when committed, 409 when rejected (non-business
    day or a commit already running for the date), 422 when it failed.
    Nothing is written unless the job is committed.
    """
    service = _get_service()
    actor = extract_actor(request)
    job = await service.commit(body.date, body.edits, actor)

    status_code = {
        JobStatus.COMMITTED: 200,
        JobStatus.REJECTED: 409,
        JobStatus.FAILED: 422,
    }.get(job.status, 500)
    return JSONResponse(status_code=status_code, content=job.to_dict())


@app.get("/business-day/{target_date}", response_model=BusinessDayResponse)
async def business_day(target_date: date, suggest: bool = False):
    """Is the date a business day? With ``suggest`` a blocked date includes the next one."""
    service = _get_service()
    decision = await service.check(target_date, suggest=suggest)
    return BusinessDayResponse(**decision.to_dict())


@app.get("/business-day/{target_date}/next", response_model=AdjacentDayResponse)
async def next_business_day(target_date: date):
    service = _get_service()
    result = await service.next_business_day(target_date)
    return AdjacentDayResponse(date=target_date.isoformat(), business_day=result.isoformat())


@app.get("/business-day/{target_date}/previous", response_model=AdjacentDayResponse)
async def previous_business_day(target_date: date):
    service = _get_service()
    result = await service.previous_business_day(target_date)
    return AdjacentDayResponse(date=target_date.isoformat(), business_day=result.isoformat())


@app.get("/values/{target_date}")
async def values(target_date: date):
    """Stored values for the date, flagging manual overrides."""
    service = _get_service()
    rows = await service.values_for_date(target_date)
    return {"date": target_date.isoformat(), "values": [v.to_dict() for v in rows]}


@app.get("/audit/{target_date}")
async def audit(target_date: date):
    """Audit entries recorded for the date, oldest first."""
    service = _get_service()
    entries = await service.audit_for_date(target_date)
    return {"date": target_date.isoformat(), "entries": [e.to_dict() for e in entries]}


@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "UCS Recalculation Service",
        "version": __version__,
        "endpoints": {
            "/assets": "List assets and their dependencies",
            "/affected": "POST - Ordered affected set for edited assets",
            "/simulate": "POST - Preview an edit set (read-only)",
            "/plan": "POST - Recalculation plan and estimate",
            "/commit": "POST - Recalculate and persist an edit set",
            "/business-day/{date}": "Business-day check",
            "/values/{date}": "Stored values for a date",
            "/audit/{date}": "Audit trail for a date",
            "/health": "Health check",
        },
    }


def run():
    """Run the service with uvicorn."""
    import uvicorn

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "ucs_engine.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
    )


if __name__ == "__main__":
    run()
