"""
Scan pipeline orchestrator.

Pipeline: resolve device → launch + navigate → scroll/capture loop →
          close browser → one Gemini call → normalize → assemble result

Everything before "frames captured" fails loudly. Everything after is masked
by the normalizer's fallback record so the screenshots always come back.
"""

import asyncio
import time

from uxscan.browser import launch_session, navigate
from uxscan.cancellation import CancelToken
from uxscan.capture import capture_frames
from uxscan.config import get_settings
from uxscan.devices import resolve_profile
from uxscan.errors import NoFramesCaptured
from uxscan.models import AuditRecord, Frame, ScanRequest, ScanResult
from uxscan.normalizer import normalize_audit_response


def assemble_result(records: list[AuditRecord], frames: list[Frame], device: str,
                    folder: str | None = None) -> ScanResult:
    return ScanResult(records=records, frames=frames, device=device, success=True, folder=folder)


async def run_scan(scan: ScanRequest, cancel: CancelToken, auditor, launcher=launch_session,
                   sink=None, settings=None) -> ScanResult:
    """
    Run one scan end to end. Raises ScanAborted, NavigationFailed,
    NoFramesCaptured or AuditServiceUnavailable. The browser session is
    closed exactly once on every path.
    """
    settings = settings or get_settings()
    t0 = time.time()
    profile = resolve_profile(scan.device)
    print(f"[scan] {scan.url} ({profile.name}, delay={scan.delay}ms)")

    cancel.raise_if_cancelled()
    session = await launcher(profile)
    try:
        await navigate(session, scan.url, cancel, timeout_ms=settings.page_load_timeout)
        frames = await capture_frames(
            session.page,
            profile,
            cancel,
            delay_ms=scan.delay,
            max_frames=settings.max_frames,
            quality=settings.jpeg_quality,
            max_width=settings.max_frame_width,
        )
    finally:
        await session.close()

    if not frames:
        raise NoFramesCaptured()
    print(f"[scan] Captured {len(frames)} frame(s) in {time.time() - t0:.1f}s")

    cancel.raise_if_cancelled()
    raw_text = await cancel.race(auditor.request_audit(frames, profile.name))
    records = normalize_audit_response(raw_text)

    folder = None
    if sink is not None:
        try:
            folder = await asyncio.to_thread(sink.save, frames)
        except OSError as e:
            print(f"[scan] Frame persistence failed (continuing without folder): {e}")

    print(f"[scan] Done in {time.time() - t0:.1f}s: {len(records)} record(s)")
    return assemble_result(records, frames, profile.name, folder)
