"""
Gemini UX audit request.

All captured frames go to Gemini in a single generate_content call: the prompt
text first, then one inline JPEG per frame in capture order. The client is
passed in, so tests can hand over a fake with the same `aio.models` surface.
"""

import asyncio

from google import genai
from google.genai import types

from uxscan.devices import MOBILE, normalize_device
from uxscan.errors import AuditServiceUnavailable
from uxscan.image_utils import JPEG_MEDIA_TYPE
from uxscan.models import Frame


DEFAULT_MODEL = "gemini-2.5-flash"

MOBILE_CONTEXT = (
    "MOBILE VIEWPORT (iPhone 15 Pro context). Focus on: Thumb-friendly touch "
    "targets (min 44px), readable font sizes (min 16px), hamburger menu "
    "accessibility, and stacked layout logic."
)
DESKTOP_CONTEXT = (
    "DESKTOP VIEWPORT (1440p context). Focus on: Efficient use of horizontal "
    "space, hover states, F-pattern scanning, and navigation information "
    "architecture."
)

# Screenshots of ordinary commercial sites must never be blocked by moderation
SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]

AUDIT_PROMPT = """
You are a Senior UX Architect and CRO Specialist.
Analyze these {frame_count} screenshots as a continuous user journey on a **{device_context}**.

For each screenshot, provide a structured audit following these SPECIFIC quality standards:

1. **Analysis (The Diagnosis)**:
   - Identify friction specific to {device} usage.
   - Reference specific UI patterns (e.g., {pattern_example}, "Contrast ratio").

2. **Fix (The Blueprint)**:
   - Must be technical (CSS/Design terminology).
   - Example: {fix_example}.

3. **Impact (The ROI)**:
   - Connect the fix to a specific business metric (Conversion Rate, Bounce Rate, etc.).

4. **Score**:
   - 0-100. Be strict.

STRICT JSON OUTPUT FORMAT (Array of Objects):
[
  {{
    "imageIndex": number (0 to {last_index}),
    "section": "Hero" | "Features" | "Testimonials" | "Footer" | "General",
    "score": number,
    "level": "Critical" | "Needs Improvement" | "Optimal",
    "analysis": ["Point 1", "Point 2"],
    "fix": ["Fix 1", "Fix 2"],
    "impact": "Business Value statement"
  }}
]
Return ONLY raw JSON. No markdown formatting.
"""


def build_audit_prompt(frame_count: int, device: str) -> str:
    device = normalize_device(device)
    mobile = device == MOBILE
    return AUDIT_PROMPT.format(
        frame_count=frame_count,
        device_context=MOBILE_CONTEXT if mobile else DESKTOP_CONTEXT,
        device=device,
        pattern_example='"Touch target too small"' if mobile else '"White space misuse"',
        fix_example='"Increase padding to 1.5rem for touch"' if mobile else '"Use a max-width container of 1200px"',
        last_index=max(frame_count - 1, 0),
    )


def build_gemini_client(api_key: str):
    """Returns None without a key; GeminiAuditor reports that per request."""
    if not api_key:
        return None
    return genai.Client(api_key=api_key)


class GeminiAuditor:
    def __init__(self, client, model: str = DEFAULT_MODEL, timeout: float = 180):
        self.client = client
        self.model = model
        self.timeout = timeout

    def build_contents(self, frames: list[Frame], device: str) -> list:
        contents: list = [build_audit_prompt(len(frames), device)]
        for frame in frames:
            contents.append(types.Part.from_bytes(data=frame.image_bytes, mime_type=JPEG_MEDIA_TYPE))
        return contents

    async def request_audit(self, frames: list[Frame], device: str) -> str:
        """One Gemini call, no retry. Returns the raw response text."""
        if self.client is None:
            raise AuditServiceUnavailable("GEMINI_API_KEY is not configured")

        print(f"  [audit] Sending {len(frames)} frame(s) to {self.model} ({device})...")
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=self.build_contents(frames, device),
                    config=types.GenerateContentConfig(safety_settings=SAFETY_SETTINGS),
                ),
                timeout=self.timeout,
            )
            text = response.text or ""
        except asyncio.TimeoutError as e:
            raise AuditServiceUnavailable(f"Gemini timed out after {self.timeout}s") from e
        except Exception as e:
            raise AuditServiceUnavailable(f"Gemini request failed: {e}") from e

        print(f"  [audit] Received {len(text)} chars")
        return text
