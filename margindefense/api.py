"""
FastAPI REST service for the margin engine.

Endpoints:
  GET   /health                           Health check + classifier info
  POST  /classify                         Classify a work description
  GET   /work-logs                        List work logs (filters: category, client_id, project_id, start, end)
  POST  /work-logs                        Create, classify and cost a work log
  PATCH /work-logs/{log_id}               Manually reclassify a work log
  POST  /scope-requests                   Create a scope request
  POST  /scope-requests/{id}/resolve      Resolve a pending scope request
  GET   /metrics                          Period metrics
  GET   /metrics/burn-by-reason           Burn grouped by sub-reason
  GET   /metrics/burn-by-client           Burn vs billable per client
  GET   /hall-of-shame                    Costliest burn logs of all time
  GET   /trend                            Daily revenue / burn
  GET   /clients/health                   Client risk scores and health tiers
  GET   /alerts                           Prioritized margin alerts
  GET   /command-center                   Headline KPIs

Run with:
  uvicorn margindefense.api:app --reload --port 8080
  curl http://localhost:8080/alerts
"""

from __future__ import annotations

import datetime
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from margindefense.classifier import MODEL_NAME
from margindefense.config import Thresholds
from margindefense.data_loader import load_demo_store
from margindefense.models import RecordNotFoundError, ValidationError
from margindefense.pipeline import MarginEngine


app = FastAPI(
    title="MarginDefense API",
    description="Work classification, margin metrics and client risk scoring",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
)

# Singleton engine over the demo store, built on first request
_engine: Optional[MarginEngine] = None


def get_engine() -> MarginEngine:
    global _engine
    if _engine is None:
        _engine = MarginEngine(load_demo_store(), Thresholds.from_env())
    return _engine


def set_engine(engine: Optional[MarginEngine]) -> None:
    """Swap the engine (tests, or a store backed by real storage)."""
    global _engine
    _engine = engine


# ─── Request Models ───────────────────────────────────────────────────────────

Category = Literal["billable", "margin_burn", "scope_risk", "unclassified"]
Resolution = Literal["accepted_burn", "converted_revenue", "rejected"]


class ClassifyRequest(BaseModel):
    description: str = Field(..., max_length=2000)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("description is empty")
        return v.strip()


class WorkLogCreate(ClassifyRequest):
    duration_minutes: float = Field(..., gt=0)
    hourly_rate: Optional[float] = Field(None, gt=0)
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    source: Literal["manual", "slack", "jira", "email", "csv", "webhook"] = "manual"


class ReclassifyRequest(BaseModel):
    category: Category
    burn_reason: Optional[str] = None
    actor: Optional[str] = None


class ScopeRequestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, gt=0)


class ResolveRequest(BaseModel):
    resolution: Resolution
    resolved_by: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    classifier: str
    version: str


def _reject(e: Exception) -> HTTPException:
    if isinstance(e, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=422, detail=str(e))


# ─── Endpoints ─────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse, tags=["meta"])
async def health():
    return HealthResponse(status="ok", classifier=MODEL_NAME, version="1.0.0")


@app.post("/classify", tags=["classification"])
async def classify(request: ClassifyRequest):
    """Classify a description without storing anything."""
    return get_engine().classify(request.description).to_dict()


@app.get("/work-logs", tags=["work-logs"])
async def list_work_logs(
    category: Optional[Category] = None,
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
    start: Optional[datetime.datetime] = None,
    end: Optional[datetime.datetime] = None,
):
    logs = get_engine().store.get_work_logs(
        category=category, client_id=client_id, project_id=project_id, start=start, end=end
    )
    return {"count": len(logs), "results": [l.to_dict() for l in logs]}


@app.post("/work-logs", status_code=201, tags=["work-logs"])
async def create_work_log(request: WorkLogCreate):
    try:
        log = get_engine().store.create_work_log(
            description=request.description,
            duration_minutes=request.duration_minutes,
            project_id=request.project_id,
            client_id=request.client_id,
            hourly_rate=request.hourly_rate,
            source=request.source,
        )
    except ValidationError as e:
        raise _reject(e)
    return log.to_dict()


@app.patch("/work-logs/{log_id}", tags=["work-logs"])
async def reclassify_work_log(log_id: str, request: ReclassifyRequest):
    try:
        log = get_engine().store.reclassify_work_log(
            log_id, request.category, request.burn_reason, actor=request.actor
        )
    except (ValidationError, RecordNotFoundError) as e:
        raise _reject(e)
    return log.to_dict()


@app.post("/scope-requests", status_code=201, tags=["scope"])
async def create_scope_request(request: ScopeRequestCreate):
    try:
        scope = get_engine().store.create_scope_request(
            title=request.title,
            description=request.description,
            client_id=request.client_id,
            project_id=request.project_id,
            estimated_hours=request.estimated_hours,
        )
    except ValidationError as e:
        raise _reject(e)
    return scope.to_dict()


@app.post("/scope-requests/{request_id}/resolve", tags=["scope"])
async def resolve_scope_request(request_id: str, request: ResolveRequest):
    try:
        scope = get_engine().store.resolve_scope_request(
            request_id, request.resolution, resolved_by=request.resolved_by
        )
    except (ValidationError, RecordNotFoundError) as e:
        raise _reject(e)
    return scope.to_dict()


@app.get("/metrics", tags=["metrics"])
async def period_metrics(
    days: float = Query(7, gt=0),
    client_id: Optional[str] = None,
    project_id: Optional[str] = None,
):
    return get_engine().get_period_metrics(days, client_id=client_id, project_id=project_id).to_dict()


@app.get("/metrics/burn-by-reason", tags=["metrics"])
async def burn_by_reason(days: float = Query(7, gt=0)):
    return [row.to_dict() for row in get_engine().get_burn_by_sub_reason(days)]


@app.get("/metrics/burn-by-client", tags=["metrics"])
async def burn_by_client(days: float = Query(7, gt=0)):
    return [row.to_dict() for row in get_engine().get_burn_by_client(days)]


@app.get("/hall-of-shame", tags=["metrics"])
async def hall_of_shame(limit: int = Query(5, ge=1, le=100)):
    return [entry.to_dict() for entry in get_engine().get_hall_of_shame(limit)]


@app.get("/trend", tags=["metrics"])
async def trend(days: int = Query(7, ge=1, le=90)):
    return [point.to_dict() for point in get_engine().get_trend(days)]


@app.get("/clients/health", tags=["risk"])
async def client_health():
    return [c.to_dict() for c in get_engine().get_client_risk_metrics()]


@app.get("/alerts", tags=["risk"])
async def alerts(days: Optional[float] = Query(None, gt=0)):
    return [a.to_dict() for a in get_engine().get_alerts(days)]


@app.get("/command-center", tags=["risk"])
async def command_center(days: float = Query(7, gt=0)):
    return get_engine().get_command_center_metrics(days).to_dict()
