"""
Headless Chromium session for one scan.

One Playwright instance, one browser, one context, one page per scan. Nothing
is shared between concurrent scans. BrowserSession.close() is safe to call on
every exit path; only the first call does any work.
"""

from playwright.async_api import async_playwright

from uxscan.cancellation import CancelToken
from uxscan.devices import DeviceProfile
from uxscan.errors import NavigationFailed, ScanAborted


LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserSession:
    def __init__(self, page, browser=None, playwright=None):
        self.page = page
        self._browser = browser
        self._playwright = playwright
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            if self._browser is not None:
                await self._browser.close()
        except Exception as e:
            print(f"  [navigate] Browser close failed: {e}")
        finally:
            if self._playwright is not None:
                await self._playwright.stop()


async def launch_session(profile: DeviceProfile) -> BrowserSession:
    """Start Chromium and open a page emulating `profile`."""
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
        context = await browser.new_context(
            viewport=profile.viewport,
            user_agent=profile.user_agent,
            is_mobile=profile.is_mobile,
            has_touch=profile.has_touch,
            device_scale_factor=profile.device_scale_factor,
        )
        page = await context.new_page()
    except BaseException:
        await playwright.stop()
        raise
    print(f"  [navigate] Launched Chromium ({profile.name} "
          f"{profile.viewport_width}x{profile.viewport_height})")
    return BrowserSession(page, browser=browser, playwright=playwright)


async def navigate(session: BrowserSession, url: str, cancel: CancelToken, timeout_ms: int = 60000):
    """
    Load `url` and wait for network quiescence, racing the cancel token.
    The session is closed before either failure is raised.
    """
    try:
        await cancel.race(
            session.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        )
    except ScanAborted:
        print(f"  [navigate] Aborted while loading {url}")
        await session.close()
        raise
    except Exception as e:
        print(f"  [navigate] Failed to load {url}: {e}")
        await session.close()
        raise NavigationFailed(f"Failed to load {url}: {e}") from e
    print(f"  [navigate] Loaded {url}")
