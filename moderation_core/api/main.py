"""FastAPI backend that exposes the moderation dashboard endpoints.

These endpoints are called by the dashboard frontend:
- content upload, listing and the per-item review page
- the audited status override
- the analytics page aggregations

Each route is a thin call into the services; every mutation goes through
the Content Store and is re-read from it, never trusted from the client.

Errors: every validation failure is a 400, whether the body did not parse
(bad enum, score out of range) or the core refused it. Unknown ids are 404
and writes that still conflict after a retry are 503.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from moderation_core.lib.config import Settings, configure_logging
from moderation_core.lib.errors import ContentNotFoundError, StoreConflictError, ValidationError
from moderation_core.lib.metrics import metrics
from moderation_core.models.analytics import (
    LabelValueData, ModerationSummary, RiskScoreData, StatusByMediaTypeData, TimeSeries,
)
from moderation_core.models.content import Content, ContentCreate, ModerationResult, ModerationResultCreate
from moderation_core.models.review import (
    Audit, ContentWithAudits, ContentWithEvents, ContentWithResults,
    ReviewRequest, StatusOverrideRequest,
)
from moderation_core.services.wiring import ModerationServices, build_services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> ModerationServices:
    return request.app.state.services


def create_app(services: Optional[ModerationServices] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    services = services or build_services(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.store.init_schema()
        logger.info(f"Moderation API started ({settings.store_backend} store, {settings.reporting_timezone} days)")
        yield
        services.store.close()

    app = FastAPI(title="Moderation API", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    app.mount("/metrics", make_asgi_app())

    # -- error mapping -------------------------------------------------------

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        metrics.record_rejection("validation")
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def malformed_body(request: Request, exc: RequestValidationError):
        # Bad enums and out-of-range scores are validation errors like any other
        metrics.record_rejection("validation")
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(ContentNotFoundError)
    async def not_found(request: Request, exc: ContentNotFoundError):
        metrics.record_rejection("not_found")
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StoreConflictError)
    async def conflict(request: Request, exc: StoreConflictError):
        metrics.record_rejection("conflict")
        return JSONResponse(status_code=503, content={"detail": "Write conflict, please retry"})

    # -- content -------------------------------------------------------------

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/upload/content", response_model=Content, status_code=201)
    def upload_content(body: ContentCreate, svc: ModerationServices = Depends(get_services)):
        return svc.content.create_content(text=body.text, image=body.image, video=body.video)

    @app.get("/content", response_model=List[Content])
    def list_content(svc: ModerationServices = Depends(get_services)):
        return svc.content.list_contents()

    @app.patch("/content/update", response_model=Content)
    def update_content(body: StatusOverrideRequest, svc: ModerationServices = Depends(get_services)):
        """Human override of every status; requires a reason."""
        return svc.content.override_statuses(body.content_id, body.statuses(), body.reason)

    @app.get("/content/{content_id}", response_model=Content)
    def get_content(content_id: str, svc: ModerationServices = Depends(get_services)):
        return svc.content.get_content(content_id)

    @app.get("/content/{content_id}/results", response_model=ContentWithResults)
    def get_results(content_id: str, svc: ModerationServices = Depends(get_services)):
        return svc.content.with_results(content_id)

    @app.post("/content/{content_id}/results", response_model=ModerationResult, status_code=201)
    def post_result(content_id: str, body: ModerationResultCreate, svc: ModerationServices = Depends(get_services)):
        """Ingestion for the external scoring pipeline."""
        return svc.recorder.record(body, content_id=content_id)

    @app.get("/content/{content_id}/events", response_model=ContentWithEvents)
    def get_events(content_id: str, svc: ModerationServices = Depends(get_services)):
        return svc.content.with_events(content_id)

    @app.get("/content/{content_id}/audits", response_model=ContentWithAudits)
    def get_audits(content_id: str, svc: ModerationServices = Depends(get_services)):
        return svc.content.with_audits(content_id)

    @app.post("/content/{content_id}/review", response_model=Audit, status_code=201)
    def review_content(content_id: str, body: ReviewRequest, svc: ModerationServices = Depends(get_services)):
        return svc.content.mark_reviewed(content_id, body.reason)

    # -- analytics -----------------------------------------------------------

    @app.get("/analytics/summary", response_model=ModerationSummary)
    def analytics_summary(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.summary()

    @app.get("/analytics/status-distribution", response_model=LabelValueData)
    def status_distribution(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.status_distribution()

    @app.get("/analytics/media-type-breakdown", response_model=LabelValueData)
    def media_type_breakdown(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.media_type_breakdown()

    @app.get("/analytics/risk-score-distribution", response_model=RiskScoreData)
    def risk_score_distribution(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.risk_score_distribution()

    @app.get("/analytics/moderation-over-time", response_model=TimeSeries)
    def moderation_over_time(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.moderation_over_time()

    @app.get("/analytics/audit-activity", response_model=TimeSeries)
    def audit_activity(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.audit_activity()

    @app.get("/analytics/status-by-media-type", response_model=StatusByMediaTypeData)
    def status_by_media_type(svc: ModerationServices = Depends(get_services)):
        return svc.analytics.status_by_media_type()

    return app


def main():
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings)
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=8080)


if __name__ == "__main__":
    main()
