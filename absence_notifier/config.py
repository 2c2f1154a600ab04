"""Configuration helpers for the absence notifier."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

STORE_BACKENDS = ("sqlite", "firestore")


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    sms_api_url: str
    sms_api_key: str
    sms_template_text: str
    sms_template_id: int
    database_path: Path
    student_roster_path: Path
    sessions_import_path: Path = Path("sessions.csv")
    store_backend: str = "sqlite"
    cron_secret: Optional[str] = None
    operator_phones: tuple[str, ...] = ()
    firebase_credentials: Optional[str] = None
    sms_timeout: float = 30.0


def _dlt_blob() -> Dict[str, Any]:
    raw = os.getenv("SMS_DLT_CONFIG")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RuntimeError("SMS_DLT_CONFIG must be valid JSON") from exc
    if not isinstance(data, dict):
        raise RuntimeError("SMS_DLT_CONFIG must be a JSON object")
    return data


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    blob = _dlt_blob()
    api_url = os.getenv("SMS_API_URL") or blob.get("API_URL")
    api_key = os.getenv("SMS_API_KEY") or blob.get("API_KEY")
    template_text = os.getenv("SMS_TEMPLATE_TEXT") or blob.get("TEMPLATE_TEXT")
    template_id = os.getenv("SMS_TEMPLATE_ID") or blob.get("TEMPLATE_ID")

    if not api_url:
        raise RuntimeError("SMS_API_URL must be configured")
    if not api_key:
        raise RuntimeError("SMS_API_KEY must be configured")
    if not template_text:
        raise RuntimeError("SMS_TEMPLATE_TEXT must be configured")
    if template_id in (None, ""):
        raise RuntimeError("SMS_TEMPLATE_ID must be configured")
    try:
        template_id = int(template_id)
    except (TypeError, ValueError) as exc:
        raise RuntimeError("SMS_TEMPLATE_ID must be an integer") from exc

    backend = os.getenv("STORE_BACKEND", "sqlite").strip().lower()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"STORE_BACKEND must be one of: {', '.join(STORE_BACKENDS)}")
    firebase_credentials = os.getenv("FIREBASE_CREDENTIALS") or None
    if backend == "firestore" and not firebase_credentials:
        raise RuntimeError("FIREBASE_CREDENTIALS must be configured for the firestore backend")

    operator_phones = tuple(
        phone.strip() for phone in os.getenv("OPERATOR_PHONES", "").split(",") if phone.strip()
    )

    return Settings(
        sms_api_url=str(api_url).rstrip("/"),
        sms_api_key=str(api_key),
        sms_template_text=str(template_text),
        sms_template_id=template_id,
        database_path=Path(os.getenv("DATABASE_PATH", "absence_notifier.db")).expanduser(),
        student_roster_path=Path(os.getenv("STUDENT_ROSTER_PATH", "students.csv")).expanduser(),
        sessions_import_path=Path(os.getenv("ATTENDANCE_SESSIONS_PATH", "sessions.csv")).expanduser(),
        store_backend=backend,
        cron_secret=os.getenv("CRON_SECRET") or None,
        operator_phones=operator_phones,
        firebase_credentials=firebase_credentials,
        sms_timeout=float(os.getenv("SMS_TIMEOUT_SECONDS", "30")),
    )


__all__ = ["Settings", "load_settings", "STORE_BACKENDS"]
