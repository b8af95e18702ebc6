from __future__ import annotations

from mediabridge.models.task import ProviderTag
from mediabridge.services.endpoint_registry import (
    DEFAULT_FALLBACKS,
    EndpointCandidate,
    EndpointRegistry,
    ResponseHint,
    build_endpoint_registry,
)


def _names(plan):
    return [candidate.name for candidate in plan]


def test_every_provider_tag_is_registered():
    registry = build_endpoint_registry()
    assert registry.list_provider_tags() == sorted(tag.value for tag in ProviderTag)


def test_veo3_probes_canonical_then_remaining_defaults():
    plan = build_endpoint_registry().candidates_for("veo3")
    assert _names(plan) == ["veo.record-info", "playground.recordInfo"]


def test_unverified_route_is_followed_by_both_defaults():
    plan = build_endpoint_registry().candidates_for(ProviderTag.GPT4O_IMAGE)

    assert _names(plan) == ["gpt4o-image.record-info", "playground.recordInfo", "veo.record-info"]
    assert plan[0].verified is False


def test_missing_or_unknown_tag_falls_back_to_defaults():
    registry = build_endpoint_registry()

    assert registry.candidates_for(None) == DEFAULT_FALLBACKS
    assert registry.candidates_for("retired-provider") == DEFAULT_FALLBACKS


def test_candidates_are_deduplicated_by_name():
    shared = EndpointCandidate("shared", "/shared")
    registry = EndpointRegistry(defaults=(shared, EndpointCandidate("other", "/other")))
    registry.register("x", EndpointCandidate("own", "/own"), shared)

    assert _names(registry.candidates_for("x")) == ["own", "shared", "other"]


def test_request_for_uses_configured_parameter():
    candidate = EndpointCandidate("custom", "/custom", method="GET", task_id_param="id")
    assert candidate.request_for("t1") == ("GET", "/custom", {"id": "t1"})


def test_to_dict_list_ends_with_defaults():
    listing = build_endpoint_registry().to_dict_list()

    assert listing[-1]["provider_tag"] is None
    assert [c["name"] for c in listing[-1]["candidates"]] == _names(DEFAULT_FALLBACKS)
    veo = next(entry for entry in listing if entry["provider_tag"] == "veo3")
    assert veo["candidates"][0]["response_hint"] == ResponseHint.VEO.value
