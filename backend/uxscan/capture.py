"""
Scroll-and-capture loop.

Takes a viewport screenshot, checks whether the viewport has reached the end
of the document, and if not scrolls one device step and waits for lazy content
to settle. Stops at the bottom of the page or at the frame cap, whichever
comes first. Long pages are silently truncated at the cap.
"""

from uxscan.cancellation import CancelToken
from uxscan.devices import DeviceProfile
from uxscan.errors import ScanAborted
from uxscan.image_utils import optimize_screenshot
from uxscan.models import Frame


# Absorbs sub-pixel rounding and sticky footers
BOTTOM_SLACK_PX = 50

SCROLL_METRICS_JS = '''() => ({
    scrollTop: window.pageYOffset,
    viewportHeight: window.innerHeight,
    scrollHeight: document.documentElement.scrollHeight
})'''


def is_at_bottom(metrics: dict, slack: int = BOTTOM_SLACK_PX) -> bool:
    scroll_top = metrics.get("scrollTop") or 0
    viewport_height = metrics.get("viewportHeight") or 0
    scroll_height = metrics.get("scrollHeight") or 0
    return scroll_top + viewport_height >= scroll_height - slack


async def capture_frames(
    page,
    profile: DeviceProfile,
    cancel: CancelToken,
    delay_ms: int = 1000,
    max_frames: int = 10,
    quality: int = 40,
    max_width: int = 1440,
) -> list[Frame]:
    frames: list[Frame] = []
    index = 1
    at_bottom = False

    while not at_bottom and index <= max_frames:
        cancel.raise_if_cancelled()

        try:
            image = await cancel.race(
                page.screenshot(type="jpeg", quality=quality, full_page=False)
            )
            frames.append(Frame.from_bytes(index, optimize_screenshot(image, max_width, quality)))
            metrics = await page.evaluate(SCROLL_METRICS_JS)
        except ScanAborted:
            print(f"  [capture] Aborted after {len(frames)} frame(s)")
            raise
        except Exception as e:
            # Keep what we have; an empty list becomes NoFramesCaptured upstream
            print(f"  [capture] Frame {index} failed, stopping: {e}")
            break

        if is_at_bottom(metrics):
            at_bottom = True
            print(f"  [capture] Reached bottom at frame {index}")
        elif index == max_frames:
            print(f"  [capture] Frame cap ({max_frames}) reached, truncating page")
            break
        else:
            try:
                await page.mouse.wheel(0, profile.scroll_step_px)
            except Exception as e:
                print(f"  [capture] Scroll after frame {index} failed, stopping: {e}")
                break
            await cancel.sleep(delay_ms / 1000)
            index += 1

    return frames
