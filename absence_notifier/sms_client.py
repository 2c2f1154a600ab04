"""HTTP client for the bulk SMS gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

SEND_PATH = "/api/sms/send"


class SmsGatewayError(RuntimeError):
    """Raised when the gateway answers with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"SMS gateway returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


@dataclass(slots=True)
class SmsRecipient:
    phone: str
    template_vars: List[str]

    def to_payload(self) -> Dict[str, Any]:
        return {"phone": self.phone, "templateVars": list(self.template_vars)}


@dataclass(slots=True)
class SmsResult:
    phone: str
    success: bool
    guid: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "SmsResult":
        return cls(
            phone=str(data.get("phone", "")),
            success=bool(data.get("success")),
            guid=data.get("guid"),
            error=data.get("error"),
            error_code=data.get("errorCode"),
        )


@dataclass(slots=True)
class SmsBatchResult:
    results: List[SmsResult] = field(default_factory=list)
    message: Optional[str] = None
    summary: Any = None


class SmsGatewayClient:
    """Async wrapper around the gateway's batch send endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        template_text: str,
        template_id: int,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.template_text = template_text
        self.template_id = template_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "X-API-Key": api_key,
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send_batch(self, recipients: List[SmsRecipient]) -> SmsBatchResult:
        """POST every recipient in one request and return the per-recipient results."""

        payload = {
            "template": self.template_text,
            "templateId": self.template_id,
            "recipients": [recipient.to_payload() for recipient in recipients],
        }
        response = await self._client.post(SEND_PATH, json=payload)
        if not response.is_success:
            raise SmsGatewayError(response.status_code, response.text)
        data = response.json()
        return SmsBatchResult(
            results=[SmsResult.from_payload(item) for item in data.get("results") or []],
            message=data.get("message"),
            summary=data.get("summary"),
        )


__all__ = ["SmsGatewayClient", "SmsGatewayError", "SmsRecipient", "SmsResult", "SmsBatchResult"]
