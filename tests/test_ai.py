import json
import threading
from unittest.mock import MagicMock

import pytest

from conftest import fake_genai_client
from textile_ledger.ai import (
    EMPTY_REPLY_MESSAGE,
    NO_RECORDS_MESSAGE,
    UNAVAILABLE_MESSAGE,
    InsightService,
    InsightSlot,
    parse_extraction,
    summary_payload,
)
from textile_ledger.config import Settings
from textile_ledger.errors import InsightBusy
from textile_ledger.records import TextileRecord

GOOD_JSON = json.dumps({
    "doriDetail": "40s cotton",
    "warpinDetail": "Beam 7",
    "bheemDetail": "Bheem 2",
    "deliveryDetail": "Truck to Surat",
})


@pytest.fixture
def settings():
    return Settings(api_key="test-key", model="gemini-test")


def _records():
    return [
        TextileRecord("secret1", "Dori A", "Warp A", "Bheem A", "Del A", "2024-10-25", "user_hidden", 111, 222),
        TextileRecord("secret2", "Dori B", "Warp B", "Bheem B", "Del B", "2024-10-26", "user_hidden", 333, 444),
    ]


def test_summarize_empty_never_calls_out(settings):
    client = MagicMock()
    client.models.generate_content.side_effect = AssertionError("network must not be used")
    assert InsightService(settings, client=client).summarize([]) == NO_RECORDS_MESSAGE
    client.models.generate_content.assert_not_called()


def test_summarize_empty_without_key_still_answers():
    assert InsightService(Settings(api_key=None)).summarize([]) == NO_RECORDS_MESSAGE


def test_summarize_sends_only_detail_fields(settings):
    client = fake_genai_client(text="Flow is steady.")
    out = InsightService(settings, client=client).summarize(_records())

    assert out == "Flow is steady."
    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    prompt = kwargs["contents"]
    assert "Dori A" in prompt and "Del B" in prompt
    for leaked in ("secret1", "user_hidden", "111", "2024-10-25"):
        assert leaked not in prompt


def test_summary_payload_shape():
    assert summary_payload(_records()[:1]) == [
        {"dori": "Dori A", "warpin": "Warp A", "bheem": "Bheem A", "delivery": "Del A"}
    ]


def test_summarize_failure_becomes_fallback(settings):
    client = fake_genai_client(error=RuntimeError("401 unauthorized"))
    assert InsightService(settings, client=client).summarize(_records()) == UNAVAILABLE_MESSAGE


def test_summarize_without_api_key_is_unavailable():
    assert InsightService(Settings(api_key=None)).summarize(_records()) == UNAVAILABLE_MESSAGE


def test_summarize_empty_reply(settings):
    client = fake_genai_client(text="")
    assert InsightService(settings, client=client).summarize(_records()) == EMPTY_REPLY_MESSAGE


def test_extract_success(settings):
    client = fake_genai_client(text=GOOD_JSON)
    out = InsightService(settings, client=client).extract("cotton on beam 7, truck to surat")
    assert out == {
        "dori_detail": "40s cotton",
        "warpin_detail": "Beam 7",
        "bheem_detail": "Bheem 2",
        "delivery_detail": "Truck to Surat",
    }
    config = client.models.generate_content.call_args.kwargs["config"]
    assert config.response_mime_type == "application/json"


def test_extract_missing_field_is_none(settings):
    partial = json.dumps({"doriDetail": "x", "warpinDetail": "y", "bheemDetail": "z"})
    client = fake_genai_client(text=partial)
    assert InsightService(settings, client=client).extract("note") is None


@pytest.mark.parametrize("text", [None, "", "not json", "[1, 2]", json.dumps({"doriDetail": 1})])
def test_extract_unusable_reply_is_none(settings, text):
    client = fake_genai_client(text=text)
    assert InsightService(settings, client=client).extract("note") is None


def test_extract_network_error_is_none(settings):
    client = fake_genai_client(error=ConnectionError("offline"))
    assert InsightService(settings, client=client).extract("note") is None


def test_parse_extraction_tolerates_code_fences():
    fenced = "```json\n" + GOOD_JSON + "\n```"
    assert parse_extraction(fenced)["warpin_detail"] == "Beam 7"


def test_slot_rejects_second_request_while_busy():
    slot = InsightSlot()
    started = threading.Event()
    release = threading.Event()
    results = []

    def slow():
        started.set()
        release.wait(5)
        return "done"

    t = threading.Thread(target=lambda: results.append(slot.run(slow)))
    t.start()
    assert started.wait(5)
    assert slot.busy
    with pytest.raises(InsightBusy):
        slot.run(lambda: "second")
    release.set()
    t.join(5)

    assert results == ["done"]
    assert not slot.busy
    assert slot.run(lambda: "again") == "again"


def test_slot_releases_after_error():
    slot = InsightSlot()
    with pytest.raises(ValueError):
        slot.run(lambda: (_ for _ in ()).throw(ValueError("boom")))
    assert not slot.busy
