"""Declarative registry of upstream status-check endpoints.

Maps a provider tag to the ordered list of Kie.ai routes that can answer
"what happened to task X". Providers expose status checks at different paths,
and several of those paths have never been confirmed against the live API, so
every lookup ends with a shared set of fallbacks instead of failing outright.

Usage:
    from mediabridge.services.endpoint_registry import build_endpoint_registry
    registry = build_endpoint_registry()
    plan = registry.candidates_for("veo3")       # veo first, then defaults
    plan = registry.candidates_for(None)          # defaults only
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from mediabridge.models.task import ProviderTag

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class ResponseHint(str, enum.Enum):
    """Shape of the ``data`` object a status endpoint returns."""

    PLAYGROUND = "playground"    # {state, resultJson, failMsg, ...}
    VEO = "veo"                  # {successFlag, response.resultUrls, ...}
    SUCCESS_FLAG = "success_flag"  # generic {successFlag, response, errorMessage}


@dataclass(frozen=True)
class EndpointCandidate:
    """One upstream route eligible to answer a status query."""
    name: str
    path: str
    method: str = "GET"
    task_id_param: str = "taskId"
    response_hint: ResponseHint = ResponseHint.SUCCESS_FLAG
    verified: bool = True

    def request_for(self, task_id: str) -> tuple[str, str, dict[str, str]]:
        """Return ``(method, path, query_params)`` for ``task_id``."""
        return self.method, self.path, {self.task_id_param: task_id}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "method": self.method,
            "path": self.path,
            "task_id_param": self.task_id_param,
            "response_hint": self.response_hint.value,
            "verified": self.verified,
        }


CandidatePlan = tuple[EndpointCandidate, ...]


# ---------------------------------------------------------------------------
# Registry class
# ---------------------------------------------------------------------------

class EndpointRegistry:
    """Provider tag → ordered endpoint candidates, plus shared fallbacks."""

    def __init__(self, defaults: Iterable[EndpointCandidate] = ()) -> None:
        self._defaults: CandidatePlan = tuple(defaults)
        self._by_tag: dict[str, CandidatePlan] = {}

    def register(self, provider_tag: str, *candidates: EndpointCandidate) -> None:
        key = provider_tag.value if isinstance(provider_tag, ProviderTag) else provider_tag
        self._by_tag[key] = self._by_tag.get(key, ()) + candidates

    def candidates_for(self, provider_tag: str | None = None) -> CandidatePlan:
        """Return the probe order for ``provider_tag``.

        Canonical endpoints for a known tag come first and the shared defaults
        always come last. A missing or unrecognized tag yields the defaults.
        Duplicates are dropped, keeping the first position.
        """
        key = provider_tag.value if isinstance(provider_tag, ProviderTag) else provider_tag
        primary = self._by_tag.get(key, ()) if key else ()
        if key and not primary:
            logger.info("No status endpoints registered for provider %r, using defaults", key)

        plan: list[EndpointCandidate] = []
        seen: set[str] = set()
        for candidate in (*primary, *self._defaults):
            if candidate.name in seen:
                continue
            seen.add(candidate.name)
            plan.append(candidate)
        return tuple(plan)

    def list_provider_tags(self) -> list[str]:
        return sorted(self._by_tag.keys())

    def to_dict_list(self) -> list[dict[str, Any]]:
        """Serialize the registry for diagnostics."""
        result = [
            {"provider_tag": tag, "candidates": [c.to_dict() for c in self.candidates_for(tag)]}
            for tag in self.list_provider_tags()
        ]
        result.append({
            "provider_tag": None,
            "candidates": [c.to_dict() for c in self._defaults],
        })
        return result


# ---------------------------------------------------------------------------
# Kie.ai catalogue
# ---------------------------------------------------------------------------

PLAYGROUND_RECORD = EndpointCandidate(
    "playground.recordInfo", "/playground/recordInfo", response_hint=ResponseHint.PLAYGROUND,
)
VEO_RECORD = EndpointCandidate(
    "veo.record-info", "/veo/record-info", response_hint=ResponseHint.VEO,
)

# Routes below follow the provider naming pattern but are unconfirmed.
GPT4O_RECORD = EndpointCandidate("gpt4o-image.record-info", "/gpt4o-image/record-info", verified=False)
FLUX_KONTEXT_RECORD = EndpointCandidate("flux-kontext.record-info", "/flux/kontext/record-info", verified=False)
MIDJOURNEY_RECORD = EndpointCandidate("midjourney.record-info", "/mj/record-info", verified=False)
RUNWAY_ALEPH_RECORD = EndpointCandidate("runway-aleph.record-info", "/aleph/record-info", verified=False)
LUMA_RECORD = EndpointCandidate("luma.record-info", "/modify/record-info", verified=False)

DEFAULT_FALLBACKS: CandidatePlan = (PLAYGROUND_RECORD, VEO_RECORD)


def build_endpoint_registry() -> EndpointRegistry:
    """Build the Kie.ai status endpoint catalogue."""
    registry = EndpointRegistry(defaults=DEFAULT_FALLBACKS)

    registry.register(ProviderTag.NANO_BANANA, PLAYGROUND_RECORD)
    registry.register(ProviderTag.NANO_BANANA_EDIT, PLAYGROUND_RECORD)
    registry.register(ProviderTag.VEO3, VEO_RECORD)
    registry.register(ProviderTag.GPT4O_IMAGE, GPT4O_RECORD)
    registry.register(ProviderTag.FLUX_KONTEXT_GENERATE, FLUX_KONTEXT_RECORD)
    registry.register(ProviderTag.FLUX_KONTEXT_EDIT, FLUX_KONTEXT_RECORD)
    registry.register(ProviderTag.MIDJOURNEY_IMAGE, MIDJOURNEY_RECORD)
    registry.register(ProviderTag.RUNWAY_ALEPH_VIDEO, RUNWAY_ALEPH_RECORD)
    registry.register(ProviderTag.LUMA_VIDEO, LUMA_RECORD)

    logger.info(
        "Endpoint registry initialized: %d provider tags, %d default fallbacks",
        len(registry.list_provider_tags()),
        len(DEFAULT_FALLBACKS),
    )
    return registry
