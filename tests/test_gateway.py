from __future__ import annotations

import json

import httpx
import pytest

from conftest import BASE_URL, TEST_API_KEY, envelope, json_route, text_route, timeout_route
from mediabridge.models.task import TaskStatus
from mediabridge.schemas.upstream import FlagRecord, PlaygroundRecord, VeoRecord
from mediabridge.services.endpoint_registry import PLAYGROUND_RECORD, VEO_RECORD
from mediabridge.services.gateway import (
    KieGateway,
    ProviderAPIError,
    UpstreamTransportError,
    classify_provider_code,
)

pytestmark = pytest.mark.anyio


def test_gateway_requires_api_key():
    with pytest.raises(ValueError):
        KieGateway(api_key="", base_url=BASE_URL)


def test_classify_provider_code():
    assert classify_provider_code(401) == "unauthorized"
    assert classify_provider_code(402) == "insufficient_credits"
    assert classify_provider_code(455) == "maintenance"
    assert classify_provider_code(999) == "provider_error"


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------

async def test_submit_returns_task_id_and_sends_bearer_token(kie, gateway):
    kie.on("/veo/generate", json_route(envelope({"taskId": "veo_abc"})))

    result = await gateway.submit("veo3", {"prompt": "a cat surfing", "model": "veo3"})

    assert result.task_id == "veo_abc"
    assert result.image_url is None
    assert result.raw["code"] == 200
    request = kie.requests[-1]
    assert request.method == "POST"
    assert request.headers["Authorization"] == f"Bearer {TEST_API_KEY}"
    assert kie.last_json() == {"prompt": "a cat surfing", "model": "veo3"}


async def test_submit_keeps_inline_image_url(kie, gateway):
    kie.on("/gpt4o-image/generate", json_route(envelope({"taskId": 77, "imageUrl": "https://cdn.test/i.png"})))

    result = await gateway.submit("gpt4o-image", {"prompt": "x"})

    assert result.task_id == "77"
    assert result.image_url == "https://cdn.test/i.png"


async def test_submit_provider_rejection(kie, gateway):
    kie.on("/veo/generate", json_route(envelope(None, code=402, msg="Insufficient credits")))

    with pytest.raises(ProviderAPIError) as exc:
        await gateway.submit("veo3", {"prompt": "x"})

    assert exc.value.code == 402
    assert exc.value.category == "insufficient_credits"
    assert "Insufficient credits" in str(exc.value)


async def test_submit_unknown_provider_tag(gateway):
    with pytest.raises(ValueError):
        await gateway.submit("dall-e", {"prompt": "x"})


async def test_http_error_status_is_transport_error(kie, gateway):
    kie.on("/veo/generate", json_route({"code": 500, "msg": "upstream down"}, status_code=500))

    with pytest.raises(UpstreamTransportError) as exc:
        await gateway.submit("veo3", {"prompt": "x"})

    assert exc.value.status_code == 500
    assert exc.value.timed_out is False
    assert "upstream down" in str(exc.value)


async def test_timeout_is_transport_error(kie, gateway):
    kie.on("/veo/generate", timeout_route())

    with pytest.raises(UpstreamTransportError) as exc:
        await gateway.submit("veo3", {"prompt": "x"})

    assert exc.value.timed_out is True
    assert exc.value.endpoint == "veo3"


async def test_connection_error_is_transport_error(gateway, kie):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    kie.on("/veo/generate", refuse)

    with pytest.raises(UpstreamTransportError) as exc:
        await gateway.submit("veo3", {"prompt": "x"})
    assert exc.value.timed_out is False


async def test_malformed_body_is_transport_error(kie, gateway):
    kie.on("/veo/generate", text_route("<html>bad gateway</html>"))

    with pytest.raises(UpstreamTransportError, match="Malformed"):
        await gateway.submit("veo3", {"prompt": "x"})


async def test_body_without_envelope_fields_is_transport_error(kie, gateway):
    kie.on("/veo/generate", json_route(["not", "an", "envelope"]))

    with pytest.raises(UpstreamTransportError):
        await gateway.submit("veo3", {"prompt": "x"})


# ---------------------------------------------------------------------------
# check_status
# ---------------------------------------------------------------------------

async def test_check_status_parses_veo_record(kie, gateway):
    kie.on("/veo/record-info", json_route(envelope({
        "taskId": "veo_abc",
        "successFlag": 1,
        "response": {"resultUrls": ["https://cdn.test/v.mp4"]},
    })))

    status = await gateway.check_status(VEO_RECORD, "veo_abc")

    assert status.ok and status.found
    assert isinstance(status.record, VeoRecord)
    assert status.record.normalized_status() == TaskStatus.COMPLETED
    assert status.record.result_urls() == ["https://cdn.test/v.mp4"]
    assert kie.requests[-1].url.params["taskId"] == "veo_abc"
    assert status.to_dict()["status"] == "completed"


async def test_check_status_parses_playground_record(kie, gateway):
    kie.on("/playground/recordInfo", json_route(envelope({
        "taskId": "nb_1",
        "state": "success",
        "resultJson": json.dumps({"resultUrls": ["https://cdn.test/a.png"]}),
    })))

    status = await gateway.check_status(PLAYGROUND_RECORD, "nb_1")

    assert isinstance(status.record, PlaygroundRecord)
    assert status.record.normalized_status() == TaskStatus.COMPLETED
    assert status.record.result_urls() == ["https://cdn.test/a.png"]


async def test_check_status_empty_data_is_not_found(kie, gateway):
    kie.on("/playground/recordInfo", json_route(envelope(None)))

    status = await gateway.check_status(PLAYGROUND_RECORD, "nope")

    assert status.ok
    assert status.found is False
    assert status.to_dict()["status"] is None


async def test_check_status_provider_error_is_still_an_answer(kie, gateway):
    kie.on("/veo/record-info", json_route(envelope(None, code=404, msg="record not found")))

    status = await gateway.check_status(VEO_RECORD, "nope")

    assert status.ok is False
    assert status.code == 404
    assert status.msg == "record not found"


# ---------------------------------------------------------------------------
# fetch_upgrade
# ---------------------------------------------------------------------------

async def test_fetch_upgrade_passes_index(kie, gateway):
    kie.on("/veo/get-1080p-video", json_route(envelope({"resultUrl": "https://cdn.test/1080.mp4"})))

    result = await gateway.fetch_upgrade("veo_abc", 0)

    assert result.result_url == "https://cdn.test/1080.mp4"
    params = kie.requests[-1].url.params
    assert params["taskId"] == "veo_abc"
    assert params["index"] == "0"


async def test_fetch_upgrade_without_url_is_unavailable(kie, gateway):
    kie.on("/veo/get-1080p-video", json_route(envelope({})))

    with pytest.raises(ProviderAPIError) as exc:
        await gateway.fetch_upgrade("veo_fallback")
    assert exc.value.category == "upgrade_unavailable"
    assert "index" not in kie.requests[-1].url.params


async def test_fetch_upgrade_provider_error(kie, gateway):
    kie.on("/veo/get-1080p-video", json_route(envelope(None, code=422, msg="not ready")))

    with pytest.raises(ProviderAPIError) as exc:
        await gateway.fetch_upgrade("veo_abc")
    assert exc.value.category == "invalid_request"


async def test_metrics_count_calls_and_errors(kie, gateway):
    kie.on("/veo/record-info", json_route(envelope({"taskId": "a", "successFlag": 0})))
    kie.on("/playground/recordInfo", timeout_route())

    await gateway.check_status(VEO_RECORD, "a")
    with pytest.raises(UpstreamTransportError):
        await gateway.check_status(PLAYGROUND_RECORD, "a")

    metrics = gateway.get_metrics()
    assert metrics["total_calls"] == 2
    assert metrics["total_errors"] == 1
    assert metrics["error_rate"] == 0.5


def test_flag_record_collects_urls_from_every_layout():
    record = FlagRecord.model_validate({
        "taskId": "r1",
        "successFlag": 1,
        "response": {"resultImageUrl": "https://cdn.test/a.png"},
        "resultInfoJson": {"resultUrls": [{"resultUrl": "https://cdn.test/b.png"}]},
        "videoInfo": {"videoUrl": "https://cdn.test/c.mp4"},
    })

    assert record.result_urls() == [
        "https://cdn.test/a.png",
        "https://cdn.test/b.png",
        "https://cdn.test/c.mp4",
    ]
