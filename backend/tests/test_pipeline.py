from __future__ import annotations

import asyncio
import json
import os

import pytest

from fakes import FakeAuditor, FakeLauncher, FakePage
from uxscan.cancellation import CancelToken
from uxscan.config import Settings
from uxscan.errors import AuditServiceUnavailable, NavigationFailed, NoFramesCaptured, ScanAborted
from uxscan.models import ScanRequest
from uxscan.normalizer import FALLBACK_RECORD
from uxscan.pipeline import run_scan
from uxscan.storage import LocalFrameSink


VALID_AUDIT = json.dumps([
    {
        "imageIndex": i,
        "section": section,
        "score": 70 + i,
        "level": "Optimal",
        "analysis": ["Clear hierarchy"],
        "fix": ["None required"],
        "impact": "Keeps bounce rate low.",
    }
    for i, section in enumerate(["Hero", "Features", "Footer"])
])


def _settings(**overrides) -> Settings:
    return Settings(gemini_api_key="", audit_dir="", **overrides)


def _run(scan: ScanRequest, launcher, auditor, token: CancelToken | None = None, sink=None, settings=None):
    async def scenario():
        return await run_scan(
            scan,
            token or CancelToken(),
            auditor,
            launcher=launcher,
            sink=sink,
            settings=settings or _settings(),
        )

    return asyncio.run(scenario())


def _scan(device: str = "desktop") -> ScanRequest:
    return ScanRequest(url="https://shop.example", delay=0, device=device)


def test_successful_scan_assembles_frames_and_records() -> None:
    launcher = FakeLauncher(FakePage(page_height=2500, viewport_height=900))
    auditor = FakeAuditor(text="```json\n" + VALID_AUDIT + "\n```")

    result = _run(_scan(), launcher, auditor)

    assert result.success is True
    assert result.device == "desktop"
    assert [f.index for f in result.frames] == [1, 2, 3]
    assert [r.section for r in result.records] == ["Hero", "Features", "Footer"]
    assert launcher.browser.close_calls == 1
    assert launcher.playwright.stop_calls == 1

    frames_sent, device_sent = auditor.calls[0]
    assert [f.index for f in frames_sent] == [1, 2, 3]
    assert device_sent == "desktop"

    body = result.to_response()
    assert set(body) == {"success", "audit", "screenshots", "device"}
    assert len(body["screenshots"]) == 3
    assert all(s.startswith("data:image/jpeg;base64,") for s in body["screenshots"])


def test_mobile_scan_uses_mobile_profile() -> None:
    launcher = FakeLauncher(FakePage(page_height=852, viewport_height=852))
    auditor = FakeAuditor(text=VALID_AUDIT)

    result = _run(_scan("mobile"), launcher, auditor)

    assert launcher.profiles[0].name == "mobile"
    assert launcher.profiles[0].has_touch is True
    assert result.device == "mobile"
    assert auditor.calls[0][1] == "mobile"


def test_goto_uses_configured_timeout() -> None:
    page = FakePage()
    _run(_scan(), FakeLauncher(page), FakeAuditor(text=VALID_AUDIT), settings=_settings(page_load_timeout=1234))

    assert page.goto_calls[0]["timeout"] == 1234


def test_frame_cap_bounds_long_pages() -> None:
    launcher = FakeLauncher(FakePage(page_height=100_000))
    result = _run(_scan(), launcher, FakeAuditor(text=VALID_AUDIT), settings=_settings(max_frames=10))

    assert len(result.frames) == 10
    assert [f.index for f in result.frames] == list(range(1, 11))


def test_abort_after_two_frames_discards_frames_and_closes_once() -> None:
    page = FakePage(page_height=50_000)
    launcher = FakeLauncher(page)
    auditor = FakeAuditor(text=VALID_AUDIT)
    token = CancelToken()

    def on_wheel(count: int) -> None:
        if count == 2:
            token.cancel()

    page.mouse.on_wheel = on_wheel

    with pytest.raises(ScanAborted):
        _run(_scan(), launcher, auditor, token=token)
    assert len(page.screenshot_calls) == 2
    assert auditor.calls == []
    assert launcher.browser.close_calls == 1
    assert launcher.playwright.stop_calls == 1


def test_cancelled_before_start_never_launches_browser() -> None:
    launcher = FakeLauncher(FakePage())
    token = CancelToken()
    token.cancel()

    with pytest.raises(ScanAborted):
        _run(_scan(), launcher, FakeAuditor(), token=token)
    assert launcher.profiles == []


def test_cancel_during_audit_request_aborts() -> None:
    token = CancelToken()

    class _SlowAuditor:
        async def request_audit(self, frames, device):
            token.cancel()
            await asyncio.sleep(3600)

    launcher = FakeLauncher(FakePage())
    with pytest.raises(ScanAborted):
        _run(_scan(), launcher, _SlowAuditor(), token=token)
    assert launcher.browser.close_calls == 1


def test_navigation_failure_closes_browser_once() -> None:
    launcher = FakeLauncher(FakePage(goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED")))
    auditor = FakeAuditor()

    with pytest.raises(NavigationFailed, match="ERR_NAME_NOT_RESOLVED"):
        _run(_scan(), launcher, auditor)
    assert launcher.browser.close_calls == 1
    assert launcher.playwright.stop_calls == 1
    assert auditor.calls == []


def test_zero_frames_is_a_hard_failure() -> None:
    launcher = FakeLauncher(FakePage(screenshot_error_at=1))
    auditor = FakeAuditor()

    with pytest.raises(NoFramesCaptured):
        _run(_scan(), launcher, auditor)
    assert auditor.calls == []
    assert launcher.browser.close_calls == 1


def test_scroll_failure_still_audits_captured_frames() -> None:
    page = FakePage(page_height=5000)
    page.mouse.error = RuntimeError("Target page, context or browser has been closed")
    launcher = FakeLauncher(page)
    auditor = FakeAuditor(text=VALID_AUDIT)

    result = _run(_scan(), launcher, auditor)

    assert [f.index for f in result.frames] == [1]
    assert [f.index for f in auditor.calls[0][0]] == [1]
    assert launcher.browser.close_calls == 1


def test_audit_service_failure_propagates() -> None:
    launcher = FakeLauncher(FakePage())
    auditor = FakeAuditor(error=AuditServiceUnavailable("Gemini request failed: 503"))

    with pytest.raises(AuditServiceUnavailable):
        _run(_scan(), launcher, auditor)


def test_unparseable_audit_still_returns_frames() -> None:
    launcher = FakeLauncher(FakePage(page_height=2500))
    result = _run(_scan(), launcher, FakeAuditor(text="I could not produce JSON today."))

    assert len(result.frames) == 3
    assert [r.to_wire() for r in result.records] == [FALLBACK_RECORD]


def test_frame_sink_persists_frames(tmp_path) -> None:
    launcher = FakeLauncher(FakePage(page_height=2500))
    sink = LocalFrameSink(str(tmp_path))

    result = _run(_scan(), launcher, FakeAuditor(text=VALID_AUDIT), sink=sink)

    assert result.folder is not None
    folder = tmp_path / result.folder
    assert sorted(os.listdir(folder)) == ["viewport-1.jpg", "viewport-2.jpg", "viewport-3.jpg"]
    assert (folder / "viewport-2.jpg").read_bytes() == result.frames[1].image_bytes
    assert result.to_response()["folder"] == result.folder
