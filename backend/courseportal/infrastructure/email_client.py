"""Resilient Email Client — wraps the Resend REST API with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, any httpx.TransportError): max_retries retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - A 2xx body that is not a JSON object fails with provider_error_type "invalid_response"
    - All failures mapped to EmailDeliveryError (core/errors.py)
    - No API key configured => every send fails fast with provider_error_type "not_configured"

Design Decisions:
    - Wrapper over raw httpx: isolates retry logic from NotificationService (single responsibility)
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - transport injectable: tests use httpx.MockTransport, no network
"""

import asyncio
import logging
import random

import httpx

from courseportal.core.errors import EmailDeliveryError, ErrorContext

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {500, 502, 503, 504}


class ResilientEmailClient:
    """Sends email through Resend with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.resend.com",
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: int = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        *,
        sender: str,
        to: list[str],
        subject: str,
        html: str,
        reply_to: str | None = None,
        context: ErrorContext | None = None,
    ) -> str:
        """Send one email. Returns the provider's message id."""
        if not self.configured:
            raise EmailDeliveryError(
                "Email provider API key is not configured",
                "not_configured", context=context,
            )
        payload = {"from": sender, "to": to, "subject": subject, "html": html}
        if reply_to:
            payload["reply_to"] = reply_to

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post("/emails", json=payload)
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, context)
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt, context)
                continue
            if response.status_code in _RETRYABLE_STATUS:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt, context,
                )
                continue
            if response.status_code >= 400:
                raise EmailDeliveryError(
                    self._error_message(response), "client_error",
                    context=context,
                )

            message_id = self._message_id(response, context)
            logger.info(
                "Email sent",
                extra={"attempt": attempt + 1, "provider_email_id": message_id},
            )
            return message_id

        raise EmailDeliveryError(
            "Exhausted retries", "connection_error", context=context,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle rate limit response with retry or raise."""
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise EmailDeliveryError(
                "Rate limit exceeded after retries", "rate_limit",
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Email rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: object, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise EmailDeliveryError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error", context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient email error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None

    def _message_id(
        self, response: httpx.Response, context: ErrorContext | None,
    ) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise EmailDeliveryError(
                f"Unreadable success body (HTTP {response.status_code})",
                "invalid_response", context=context,
            )
        return str(body.get("id") or "")

    def _error_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}"


# Singleton (initialized on startup)
email_client: ResilientEmailClient | None = None


def init_email_client(api_key: str, **kwargs) -> ResilientEmailClient:
    global email_client
    email_client = ResilientEmailClient(api_key, **kwargs)
    return email_client


def get_email_client() -> ResilientEmailClient:
    """FastAPI dependency for the shared email client."""
    if not email_client:
        raise RuntimeError("Email client not initialized")
    return email_client
