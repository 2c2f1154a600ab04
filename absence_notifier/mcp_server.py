"""MCP server exposing the absence notification job as tools."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .api import build_service
from .config import load_settings
from .eligibility import parse_iso_date
from .service import AbsenceJobService

_service: Optional[AbsenceJobService] = None
_run_lock = asyncio.Lock()


def _get_service() -> AbsenceJobService:
    global _service
    if _service is None:
        _service = build_service(load_settings())
    return _service


async def close_service() -> None:
    """Close the gateway client of the lazily built service, if any."""

    global _service
    if _service is None:
        return
    close = getattr(_service.dispatcher.gateway, "close", None)
    _service = None
    if close is not None:
        await close()


@asynccontextmanager
async def _lifespan(_: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_service()


mcp = FastMCP("absence-notifier", lifespan=_lifespan)


@mcp.tool()
async def run_absence_job(date: Optional[str] = None, force: bool = False) -> dict:
    """Run the absence notification job for a date (default: today, UTC)."""

    async with _run_lock:
        summary = await _get_service().run(date, force=force)
    return summary.to_dict()


@mcp.tool()
async def get_notification_report(date: str) -> dict:
    """Return the stored notification outcomes for a date."""

    try:
        day = parse_iso_date(date).isoformat()
    except ValueError as exc:  # noqa: TRY003
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc
    report = _get_service().get_report(day)
    if report is None:
        raise ValueError(f"No notifications recorded for {day}")
    return report


__all__ = ["mcp", "run_absence_job", "get_notification_report", "close_service"]


if __name__ == "__main__":  # pragma: no cover
    mcp.run()
