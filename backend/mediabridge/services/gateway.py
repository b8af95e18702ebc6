"""Kie.ai upstream gateway — generation submission, status checks, upgrades.

All outbound traffic goes through one shared ``httpx.AsyncClient`` carrying
the bearer token and an explicit timeout. Failures are split in two:

- ``UpstreamTransportError``: the HTTP exchange itself failed (timeout,
  connection error, non-2xx status, body that is not a JSON envelope).
- ``ProviderAPIError``: the exchange worked but the envelope ``code`` reports
  a semantic failure (bad key, no credits, content policy, ...).

The gateway never retries. Status probing order and fallback live in the
task resolver.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from mediabridge.config import Settings, mask_key
from mediabridge.models.task import ProviderTag
from mediabridge.schemas.upstream import (
    KieEnvelope,
    StatusRecord,
    parse_status_record,
)
from mediabridge.services.endpoint_registry import EndpointCandidate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

SUBMISSION_PATHS: dict[str, str] = {
    ProviderTag.NANO_BANANA.value: "/playground/createTask",
    ProviderTag.NANO_BANANA_EDIT.value: "/playground/createTask",
    ProviderTag.VEO3.value: "/veo/generate",
    ProviderTag.GPT4O_IMAGE.value: "/gpt4o-image/generate",
    ProviderTag.FLUX_KONTEXT_GENERATE.value: "/flux/kontext/generate",
    ProviderTag.FLUX_KONTEXT_EDIT.value: "/flux/kontext/edit",
    ProviderTag.MIDJOURNEY_IMAGE.value: "/midjourney/generate",
    ProviderTag.RUNWAY_ALEPH_VIDEO.value: "/runway/aleph/generate",
    ProviderTag.LUMA_VIDEO.value: "/luma/generate",
}

VEO_UPGRADE_PATH = "/veo/get-1080p-video"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

# Kie.ai envelope codes → stable category names.
PROVIDER_ERROR_CATEGORIES: dict[int, str] = {
    400: "content_policy",
    401: "unauthorized",
    402: "insufficient_credits",
    404: "not_found",
    422: "invalid_request",
    429: "rate_limited",
    455: "maintenance",
    500: "server_error",
    501: "generation_failed",
    505: "feature_disabled",
}


def classify_provider_code(code: int) -> str:
    return PROVIDER_ERROR_CATEGORIES.get(code, "provider_error")


class UpstreamError(Exception):
    """Base class for everything the gateway raises."""


class UpstreamTransportError(UpstreamError):
    """The HTTP exchange with the upstream did not complete usefully."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        status_code: int | None = None,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.timed_out = timed_out


class ProviderAPIError(UpstreamError):
    """The upstream answered, but reported a semantic failure."""

    def __init__(
        self,
        code: int,
        message: str,
        *,
        endpoint: str = "",
        category: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.endpoint = endpoint
        self.category = category or classify_provider_code(code)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a generation submission."""
    provider_tag: str
    task_id: str | None
    image_url: str | None
    envelope: KieEnvelope

    @property
    def raw(self) -> dict[str, Any]:
        return self.envelope.model_dump()


@dataclass(frozen=True)
class UpstreamStatus:
    """One completed status exchange, typed by provider family."""
    endpoint: str
    code: int
    msg: str
    record: StatusRecord | None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.code == 200

    @property
    def found(self) -> bool:
        return self.record is not None

    def to_dict(self) -> dict[str, Any]:
        record = self.record
        return {
            "endpoint": self.endpoint,
            "code": self.code,
            "msg": self.msg,
            "found": self.found,
            "family": record.family if record else None,
            "status": (
                status.value if record and (status := record.normalized_status()) else None
            ),
            "result_urls": record.result_urls() if record else [],
            "error_message": record.error_message() if record else None,
        }


@dataclass(frozen=True)
class UpgradeResult:
    """A higher-quality rendition of a completed task."""
    task_id: str
    index: int | None
    result_url: str
    raw: dict[str, Any]


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class KieGateway:
    """Thin async client for the Kie.ai REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Kie.ai API key is required")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._total_calls = 0
        self._total_errors = 0
        self._total_latency_ms = 0
        logger.info(
            "Kie gateway ready: base_url=%s key=%s timeout=%ss",
            self.base_url, mask_key(api_key), timeout,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> KieGateway:
        return cls(
            api_key=settings.KIE_AI_API_KEY,
            base_url=settings.KIE_AI_BASE_URL,
            timeout=settings.KIE_AI_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- core exchange -----------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        endpoint: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> KieEnvelope:
        """Perform one HTTP exchange and return the parsed envelope.

        Raises:
            UpstreamTransportError: On timeout, network failure, non-2xx
                status, or a body that is not a ``{code, msg, data}`` object.
        """
        self._total_calls += 1
        start = time.monotonic()
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            self._total_errors += 1
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise UpstreamTransportError(
                f"Request to {path} timed out after {self.timeout}s",
                endpoint=endpoint,
                timed_out=True,
            ) from e
        except httpx.HTTPError as e:
            self._total_errors += 1
            logger.warning("%s %s failed: %s", method, path, e)
            raise UpstreamTransportError(
                f"Request to {path} failed: {e}", endpoint=endpoint,
            ) from e
        finally:
            self._total_latency_ms += int((time.monotonic() - start) * 1000)

        if not response.is_success:
            self._total_errors += 1
            detail = _error_detail(response)
            logger.warning("%s %s -> HTTP %d: %s", method, path, response.status_code, detail)
            raise UpstreamTransportError(
                f"HTTP {response.status_code}: {detail}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        try:
            return KieEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            self._total_errors += 1
            logger.warning("%s %s returned a malformed body", method, path)
            raise UpstreamTransportError(
                f"Malformed response from {path}",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from e

    # -- operations --------------------------------------------------------

    async def submit(self, provider_tag: str, payload: dict[str, Any]) -> SubmissionResult:
        """Submit a generation job for ``provider_tag``.

        Raises:
            ValueError: If no submission route is known for the tag.
            UpstreamTransportError: If the exchange failed.
            ProviderAPIError: If the provider rejected the job.
        """
        path = SUBMISSION_PATHS.get(provider_tag)
        if path is None:
            raise ValueError(f"No submission route for provider {provider_tag!r}")

        envelope = await self._request("POST", path, endpoint=provider_tag, json=payload)
        if not envelope.ok:
            logger.warning(
                "Submission to %s rejected: code=%s msg=%s", provider_tag, envelope.code, envelope.msg,
            )
            raise ProviderAPIError(envelope.code, envelope.msg or "Generation request rejected", endpoint=provider_tag)

        data = envelope.data if isinstance(envelope.data, dict) else {}
        task_id = data.get("taskId")
        image_url = data.get("imageUrl")
        logger.info("Submission accepted: provider=%s task=%s", provider_tag, task_id)
        return SubmissionResult(
            provider_tag=provider_tag,
            task_id=str(task_id) if task_id else None,
            image_url=image_url if isinstance(image_url, str) else None,
            envelope=envelope,
        )

    async def check_status(self, candidate: EndpointCandidate, task_id: str) -> UpstreamStatus:
        """Ask one candidate endpoint about ``task_id``.

        Any well-formed envelope counts as an answer, including provider error
        codes and empty data.

        Raises:
            UpstreamTransportError: If the exchange itself failed.
        """
        method, path, params = candidate.request_for(task_id)
        envelope = await self._request(method, path, endpoint=candidate.name, params=params)
        record = parse_status_record(candidate.response_hint.value, envelope.data)
        logger.debug(
            "Status %s via %s: code=%s found=%s", task_id, candidate.name, envelope.code, record is not None,
        )
        return UpstreamStatus(
            endpoint=candidate.name,
            code=envelope.code,
            msg=envelope.msg,
            record=record,
            raw=envelope.model_dump(),
        )

    async def fetch_upgrade(self, task_id: str, index: int | None = None) -> UpgradeResult:
        """Request the 1080p rendition of a completed Veo3 video.

        Raises:
            UpstreamTransportError: If the exchange failed.
            ProviderAPIError: If the provider has no upgrade for this task,
                e.g. videos produced in fallback mode.
        """
        params: dict[str, Any] = {"taskId": task_id}
        if index is not None:
            params["index"] = index

        envelope = await self._request("GET", VEO_UPGRADE_PATH, endpoint="veo.1080p", params=params)
        if not envelope.ok:
            raise ProviderAPIError(
                envelope.code, envelope.msg or "1080p video unavailable", endpoint="veo.1080p",
            )

        data = envelope.data if isinstance(envelope.data, dict) else {}
        result_url = data.get("resultUrl") or data.get("videoUrl")
        if not result_url:
            raise ProviderAPIError(
                envelope.code,
                f"No 1080p rendition available for task {task_id}",
                endpoint="veo.1080p",
                category="upgrade_unavailable",
            )
        return UpgradeResult(task_id=task_id, index=index, result_url=result_url, raw=envelope.model_dump())

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for the upstream connection."""
        return {
            "service": "kie_gateway",
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "error_rate": round(self._total_errors / max(self._total_calls, 1), 3),
            "avg_latency_ms": round(self._total_latency_ms / max(self._total_calls, 1)),
        }


def _error_detail(response: httpx.Response) -> str:
    """Best-effort message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "Unknown error"
    if isinstance(body, dict) and body.get("msg"):
        return str(body["msg"])
    return response.reason_phrase or "Unknown error"
