import logging
from typing import List, Optional

from fastapi import FastAPI, Request

from jobsync.config import Settings, settings
from jobsync.discovery import JobClassDiscovery
from jobsync.schemas import HealthResponse, JobResultResponse, ReconcileResponse, RegistrationResponse
from jobsync.service import JobSyncService
from jobsync.telemetry import setup_logging

logger = logging.getLogger("jobsync.app")


def create_app(
    app_settings: Optional[Settings] = None,
    discovery: Optional[JobClassDiscovery] = None,
    service: Optional[JobSyncService] = None,
) -> FastAPI:
    cfg = app_settings or settings
    app = FastAPI(title="jobsync")

    @app.on_event("startup")
    def on_startup() -> None:
        setup_logging(cfg.LOG_LEVEL, cfg.LOG_FORMAT)
        logger.info({"event": "boot", "service": cfg.APP_NAME, "version": cfg.VERSION, "env": cfg.ENV})
        runtime = service or JobSyncService(cfg, discovery=discovery)
        app.state.service = runtime
        report = runtime.start()
        logger.info({"event": "startup.reconciled", "jobs": len(report.results), "failed": len(report.failed)})

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        runtime: Optional[JobSyncService] = getattr(app.state, "service", None)
        if runtime is not None:
            runtime.shutdown()

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        logger.debug({"event": "health.check"})
        return HealthResponse(ok=True, version=cfg.VERSION, service=cfg.APP_NAME)

    @app.get("/api/jobs", response_model=List[RegistrationResponse])
    def list_jobs(request: Request) -> List[RegistrationResponse]:
        runtime: JobSyncService = request.app.state.service
        return [
            RegistrationResponse(
                name=registration.name,
                job_id=registration.job_id,
                trigger=registration.trigger,
                next_run_time=registration.next_run_time,
            )
            for registration in runtime.registrations()
        ]

    @app.post("/api/reconcile", response_model=ReconcileResponse)
    def reconcile(request: Request) -> ReconcileResponse:
        runtime: JobSyncService = request.app.state.service
        report = runtime.reconcile()
        return ReconcileResponse(
            total=len(report.results),
            results=[JobResultResponse(**result.as_dict()) for result in report.results],
        )

    return app


app = create_app()
