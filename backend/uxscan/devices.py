"""Device profiles: the browsing context each scan emulates."""

from dataclasses import dataclass


DESKTOP = "desktop"
MOBILE = "mobile"
DEVICES = (DESKTOP, MOBILE)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    user_agent: str
    viewport_width: int
    viewport_height: int
    is_mobile: bool
    has_touch: bool
    scroll_step_px: int
    # 1x keeps screenshots (and Gemini image tokens) small
    device_scale_factor: int = 1

    @property
    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}


DESKTOP_PROFILE = DeviceProfile(
    name=DESKTOP,
    user_agent=DESKTOP_USER_AGENT,
    viewport_width=1440,
    viewport_height=900,
    is_mobile=False,
    has_touch=False,
    scroll_step_px=800,
)

# iPhone 15 Pro. A swipe moves less of the page than a wheel tick.
MOBILE_PROFILE = DeviceProfile(
    name=MOBILE,
    user_agent=MOBILE_USER_AGENT,
    viewport_width=393,
    viewport_height=852,
    is_mobile=True,
    has_touch=True,
    scroll_step_px=750,
)


def normalize_device(device) -> str:
    """Anything other than "mobile" scans as desktop."""
    if isinstance(device, str) and device.strip().lower() == MOBILE:
        return MOBILE
    return DESKTOP


def resolve_profile(device) -> DeviceProfile:
    if normalize_device(device) == MOBILE:
        return MOBILE_PROFILE
    return DESKTOP_PROFILE
