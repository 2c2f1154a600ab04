"""FastAPI application exposing the absence notification job."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .db import Database, DocumentStore
from .dispatcher import NotificationDispatcher, SmsGateway
from .eligibility import parse_iso_date
from .service import AbsenceJobService, import_roster, import_sessions
from .sms_client import SmsGatewayClient

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "firestore":
        from .firestore_store import build_firestore_store

        return build_firestore_store(settings.firebase_credentials or "")
    return Database(settings.database_path)


def build_gateway(settings: Settings) -> SmsGatewayClient:
    return SmsGatewayClient(
        settings.sms_api_url,
        settings.sms_api_key,
        settings.sms_template_text,
        settings.sms_template_id,
        timeout=settings.sms_timeout,
    )


def build_service(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    gateway: Optional[SmsGateway] = None,
) -> AbsenceJobService:
    store = store if store is not None else build_store(settings)
    gateway = gateway if gateway is not None else build_gateway(settings)
    dispatcher = NotificationDispatcher(gateway, settings.operator_phones)
    return AbsenceJobService(store, dispatcher)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    gateway: Optional[SmsGateway] = None,
) -> FastAPI:
    settings = settings or load_settings()
    service = build_service(settings, store, gateway)

    async def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
        if not settings.cron_secret:
            return
        if authorization != f"Bearer {settings.cron_secret}":
            logger.warning("Unauthorized trigger attempt")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    def date_dependency(date: Optional[str] = None) -> Optional[str]:
        if not date:
            return None
        try:
            return parse_iso_date(date).isoformat()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD") from exc

    def get_service() -> AbsenceJobService:
        return service

    app = FastAPI(title="Absence Notifier API", version="1.0.0")

    @app.exception_handler(HTTPException)
    async def http_error_handler(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": f"Invalid request: {problems}"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        if not isinstance(service.store, Database):
            return
        if settings.student_roster_path.exists():
            import_roster(service.store, settings.student_roster_path)
        if settings.sessions_import_path.exists():
            import_sessions(service.store, settings.sessions_import_path)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        close = getattr(service.dispatcher.gateway, "close", None)
        if close is not None:
            await close()

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/api/cron", methods=["GET", "POST"], dependencies=[Depends(verify_cron_secret)])
    async def run_cron(
        day: Optional[str] = Depends(date_dependency),
        force: bool = False,
        svc: AbsenceJobService = Depends(get_service),
    ) -> JSONResponse:
        summary = await svc.run(day, force=force)
        status_code = status.HTTP_200_OK if summary.success else status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(status_code=status_code, content=summary.to_dict())

    @app.get("/api/notifications/{date}", dependencies=[Depends(verify_cron_secret)])
    async def get_notifications(
        date: str,
        svc: AbsenceJobService = Depends(get_service),
    ) -> dict[str, object]:
        day = date_dependency(date)
        report = svc.get_report(day)
        if report is None:
            raise HTTPException(status_code=404, detail=f"No notifications recorded for {day}")
        return report

    return app


__all__ = ["create_app", "build_service", "build_store", "build_gateway"]
