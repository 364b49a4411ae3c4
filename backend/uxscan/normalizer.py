"""
Turns Gemini's free text into audit records.

parse_audit_records() is strict and raises MalformedAuditResponse.
normalize_audit_response() never raises: a response that cannot be parsed is
replaced by a single fallback record, so the caller still gets the screenshots
plus one renderable critique. The fallback's score of 0 means "parsing
failed", not a real audit score.
"""

import json
import re

from pydantic import ValidationError

from uxscan.errors import MalformedAuditResponse
from uxscan.models import AuditRecord


FALLBACK_RECORD = {
    "imageIndex": 0,
    "section": "General",
    "score": 0,
    "level": "Critical",
    "analysis": ["AI response parsing failed."],
    "fix": ["Retry scan."],
    "impact": "System failure.",
}


def fallback_records() -> list[AuditRecord]:
    return [AuditRecord.model_validate(FALLBACK_RECORD)]


def strip_fences(text: str) -> str:
    """Remove markdown code fences; the model is asked for raw JSON but not always obedient."""
    text = (text or "").strip()
    text = re.sub(r"^```[a-zA-Z]*\s*", "", text)
    text = re.sub(r"\s*```$", "", text)
    return text.strip()


def parse_audit_records(text: str) -> list[AuditRecord]:
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedAuditResponse(f"Response is not JSON: {e}") from e

    if not isinstance(data, list):
        raise MalformedAuditResponse(f"Expected a JSON array, got {type(data).__name__}")
    if not data:
        raise MalformedAuditResponse("Response array is empty")

    records = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedAuditResponse(f"Item {i} is not an object")
        try:
            records.append(AuditRecord.model_validate(item))
        except ValidationError as e:
            raise MalformedAuditResponse(f"Item {i} does not match the audit schema: {e}") from e
    return records


def normalize_audit_response(text: str) -> list[AuditRecord]:
    try:
        records = parse_audit_records(text)
    except MalformedAuditResponse as e:
        print(f"  [normalize] JSON parse error ({e.message}). Raw response:\n{text}")
        return fallback_records()
    print(f"  [normalize] Parsed {len(records)} audit record(s)")
    return records
