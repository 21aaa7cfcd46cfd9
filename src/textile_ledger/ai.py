"""Gemini-backed helpers: trend summary over the ledger and note-to-fields extraction.

Both calls are best-effort. Every failure (missing key, network, auth, bad
payload) is logged and turned into a fixed fallback value; nothing raises past
InsightService.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional, Sequence, TypeVar

from google import genai
from google.genai import types

from textile_ledger.config import Settings
from textile_ledger.errors import ExternalServiceFailure, InsightBusy
from textile_ledger.records import DETAIL_FIELDS, TextileRecord

log = logging.getLogger(__name__)

T = TypeVar("T")

NO_RECORDS_MESSAGE = "No records to analyze."
UNAVAILABLE_MESSAGE = "Insights are currently unavailable."
EMPTY_REPLY_MESSAGE = "Summary generated successfully."

SUMMARY_PROMPT = (
    "Analyze these textile stock records and provide a brief summary of production flow.\n"
    "Records: {records}"
)
EXTRACT_PROMPT = (
    "From the following textile note, extract: Dori Detail, Warpin Detail, Bheem Detail, "
    "and Delivery Detail.\n"
    'Note: "{note}"'
)

EXTRACT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={key: types.Schema(type=types.Type.STRING) for _attr, key, _label in DETAIL_FIELDS},
    required=[key for _attr, key, _label in DETAIL_FIELDS],
)


def summary_payload(records: Sequence[TextileRecord]) -> list[dict[str, str]]:
    """Projection sent to the service: detail fields only, no ids, owners or timestamps."""
    return [
        {
            "dori": r.dori_detail,
            "warpin": r.warpin_detail,
            "bheem": r.bheem_detail,
            "delivery": r.delivery_detail,
        }
        for r in records
    ]


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3].strip()
    return text


def parse_extraction(text: Optional[str]) -> Optional[dict[str, str]]:
    """Parse the service's JSON reply into detail fields; None unless all four are present."""
    if not text:
        return None
    try:
        data = json.loads(_strip_fences(text))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    out: dict[str, str] = {}
    for attr, key, _label in DETAIL_FIELDS:
        v = data.get(key, data.get(attr))
        if not isinstance(v, str):
            return None
        out[attr] = v
    return out


class InsightService:
    def __init__(self, settings: Settings, client: Any = None):
        self.settings = settings
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.settings.api_key:
                raise ExternalServiceFailure("No Gemini API key configured (GEMINI_API_KEY).")
            self._client = genai.Client(api_key=self.settings.api_key)
        return self._client

    def summarize(self, records: Sequence[TextileRecord]) -> str:
        if not records:
            return NO_RECORDS_MESSAGE

        prompt = SUMMARY_PROMPT.format(records=json.dumps(summary_payload(records), ensure_ascii=False))
        try:
            response = self._get_client().models.generate_content(
                model=self.settings.model,
                contents=prompt,
                config=types.GenerateContentConfig(temperature=self.settings.temperature),
            )
            text = response.text
        except Exception as e:
            log.warning("AI analysis failed: %s", e)
            return UNAVAILABLE_MESSAGE

        if text is not None and not isinstance(text, str):
            log.warning("AI analysis returned a non-text reply: %r", type(text))
            return UNAVAILABLE_MESSAGE
        return text or EMPTY_REPLY_MESSAGE

    def extract(self, note: str) -> Optional[dict[str, str]]:
        """Suggest the four detail fields from a free-text note, or None."""
        try:
            response = self._get_client().models.generate_content(
                model=self.settings.model,
                contents=EXTRACT_PROMPT.format(note=note),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=EXTRACT_SCHEMA,
                ),
            )
            text = response.text
        except Exception as e:
            log.warning("AI extraction failed: %s", e)
            return None

        fields = parse_extraction(text if isinstance(text, str) else None)
        if fields is None:
            log.warning("AI extraction returned unusable content")
        return fields


class InsightSlot:
    """Single-slot guard: one AI request at a time, extra triggers are rejected.

    There is no queue and no cancellation; a rejected caller simply tries again
    after the running request finishes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if not self._lock.acquire(blocking=False):
            raise InsightBusy()
        try:
            return fn(*args, **kwargs)
        finally:
            self._lock.release()
