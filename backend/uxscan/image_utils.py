"""Screenshot helpers: downscale oversized frames, base64 / data-URI encoding."""
from PIL import Image
import io
import base64


JPEG_MEDIA_TYPE = "image/jpeg"


def optimize_screenshot(screenshot_bytes: bytes, max_width: int = 1440, quality: int = 40) -> bytes:
    """
    Downscale a screenshot wider than max_width and re-encode as JPEG.
    Frames already within max_width are returned untouched, so the normal
    1x-scale capture path never pays for a decode.
    """
    img = Image.open(io.BytesIO(screenshot_bytes))

    w, h = img.size
    if w <= max_width:
        return screenshot_bytes

    ratio = max_width / w
    img = img.resize((max_width, int(h * ratio)), Image.LANCZOS)

    # Convert RGBA to RGB (JPEG doesn't support alpha)
    if img.mode == 'RGBA':
        bg = Image.new('RGB', img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[3])
        img = bg
    elif img.mode != 'RGB':
        img = img.convert('RGB')

    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality, optimize=True)
    return buf.getvalue()


def screenshot_to_b64(screenshot_bytes: bytes) -> str:
    return base64.b64encode(screenshot_bytes).decode()


def to_data_uri(b64: str, media_type: str = JPEG_MEDIA_TYPE) -> str:
    return f"data:{media_type};base64,{b64}"
