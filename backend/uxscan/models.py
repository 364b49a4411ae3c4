"""
Request, frame, audit record and result types.
"""

import math
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from uxscan.devices import DESKTOP, normalize_device
from uxscan.errors import InvalidInput
from uxscan.image_utils import screenshot_to_b64, to_data_uri


SECTIONS = ("Hero", "Features", "Testimonials", "Footer", "General")
LEVELS = ("Critical", "Needs Improvement", "Optimal")


def _enum_key(value: str) -> str:
    return re.sub(r"[\s_\-]", "", value).lower()


_SECTION_LOOKUP = {_enum_key(s): s for s in SECTIONS}
_LEVEL_LOOKUP = {_enum_key(lv): lv for lv in LEVELS}


_HTTP_URL = TypeAdapter(AnyHttpUrl)

# Characters a URL host can never contain
_BAD_HOST_CHARS = re.compile(r"[\s<>\"`{}|\\^]")


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError when out of range or non-numeric
        _HTTP_URL.validate_python(url)
    except (ValueError, ValidationError):
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    return not _BAD_HOST_CHARS.search(parsed.hostname)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class ScanRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    delay: int = 1000  # ms between scroll and next capture
    device: str = DESKTOP

    @classmethod
    def from_payload(cls, payload, default_delay: int = 1000, max_delay: int = 10000) -> "ScanRequest":
        """Validate a raw JSON body. Raises InvalidInput, never touches a browser."""
        if not isinstance(payload, dict):
            raise InvalidInput("Valid URL required")

        url = payload.get("url")
        if not url or not isinstance(url, str):
            raise InvalidInput("Valid URL required")
        url = url.strip()
        if not is_http_url(url):
            raise InvalidInput("Invalid URL format")

        delay = payload.get("delay")
        if delay is None:
            delay = default_delay
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or not math.isfinite(delay):
            raise InvalidInput("delay must be a number of milliseconds")
        delay = int(delay)
        if delay < 0 or delay > max_delay:
            raise InvalidInput(f"delay must be between 0 and {max_delay} ms")

        return cls(url=url, delay=delay, device=normalize_device(payload.get("device", DESKTOP)))


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Frame:
    index: int  # 1-based capture order
    image_bytes: bytes
    encoding: str  # base64 of image_bytes

    @classmethod
    def from_bytes(cls, index: int, image_bytes: bytes) -> "Frame":
        return cls(index=index, image_bytes=image_bytes, encoding=screenshot_to_b64(image_bytes))

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.encoding)


# ---------------------------------------------------------------------------
# Audit records
# ---------------------------------------------------------------------------

class AuditRecord(BaseModel):
    """One critique entry, correlated to a frame by zero-based imageIndex.

    Values are normalised, not re-judged: known section/level spellings are
    canonicalised, unknown ones pass through as the model wrote them.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    image_index: int = Field(alias="imageIndex")
    section: str
    score: int
    level: str
    analysis: list[str]
    fix: list[str]
    impact: str

    @field_validator("section", mode="before")
    @classmethod
    def _canonical_section(cls, value):
        if isinstance(value, str):
            return _SECTION_LOOKUP.get(_enum_key(value), value)
        return value

    @field_validator("level", mode="before")
    @classmethod
    def _canonical_level(cls, value):
        if isinstance(value, str):
            return _LEVEL_LOOKUP.get(_enum_key(value), value)
        return value

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        if isinstance(value, bool):
            raise ValueError("score must be a number")
        if isinstance(value, str):
            value = float(value.strip())
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise ValueError("score must be finite")
            return max(0, min(100, int(round(value))))
        raise ValueError("score must be a number")

    @field_validator("analysis", "fix", mode="before")
    @classmethod
    def _wrap_single_string(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ScanResult:
    records: list[AuditRecord]
    frames: list[Frame]
    device: str
    success: bool = True
    folder: str | None = None

    def to_response(self) -> dict:
        body = {
            "success": self.success,
            "audit": [r.to_wire() for r in self.records],
            "screenshots": [f.data_uri for f in self.frames],
            "device": self.device,
        }
        if self.folder:
            body["folder"] = self.folder
        return body
