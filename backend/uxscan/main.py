from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import asyncio
import httpx
import uvicorn

from uxscan.auditor import GeminiAuditor, build_gemini_client
from uxscan.browser import launch_session
from uxscan.cancellation import CancelToken, watch_disconnect
from uxscan.config import get_settings
from uxscan.errors import InvalidInput, ScanAborted, ScanError
from uxscan.models import ScanRequest
from uxscan.pipeline import run_scan
from uxscan.storage import get_frame_sink


GEMINI_MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"

# Scan-speed presets offered by the UI (delay between scroll and capture)
SCAN_MODES = [
    {"id": "fast", "label": "Fast", "desc": "Quick scan for static sites", "delay": 400},
    {"id": "moderate", "label": "Moderate", "desc": "Balanced scan", "delay": 800},
    {"id": "heavy", "label": "Heavy", "desc": "Thorough scan", "delay": 1600},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if not settings.gemini_api_key:
        print("[startup] GEMINI_API_KEY not set, scans will fail at the audit step")
    print(f"[startup] model={settings.gemini_model} max_frames={settings.max_frames} "
          f"audit_dir={settings.audit_dir or '-'}")
    yield


app = FastAPI(title="UX Scan API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

@lru_cache()
def get_auditor() -> GeminiAuditor:
    settings = get_settings()
    return GeminiAuditor(
        build_gemini_client(settings.gemini_api_key),
        model=settings.gemini_model,
        timeout=settings.audit_timeout,
    )


def get_launcher():
    return launch_session


def get_sink():
    return get_frame_sink(get_settings().audit_dir)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    return {"message": "UX Scan backend is running"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/scan/modes")
async def scan_modes():
    return {"modes": SCAN_MODES, "default_delay": get_settings().default_delay}


@app.post("/scan")
async def scan_endpoint(
    request: Request,
    auditor=Depends(get_auditor),
    launcher=Depends(get_launcher),
    sink=Depends(get_sink),
):
    """
    Scroll through a page, screenshot each viewport and have Gemini audit the
    screenshots. Answers 499 if the client disconnects mid-scan.
    """
    settings = get_settings()

    try:
        payload = await request.json()
    except ValueError:
        payload = None

    try:
        scan = ScanRequest.from_payload(
            payload,
            default_delay=settings.default_delay,
            max_delay=settings.max_delay,
        )
    except InvalidInput as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)

    cancel = CancelToken()
    watcher = asyncio.create_task(
        watch_disconnect(request, cancel, settings.disconnect_poll_interval)
    )
    try:
        result = await run_scan(scan, cancel, auditor, launcher=launcher, sink=sink, settings=settings)
    except ScanAborted as e:
        return PlainTextResponse(e.message, status_code=e.status_code)
    except ScanError as e:
        print(f"[scan] Failed: {e.message}")
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception as e:
        print(f"[scan] Server error: {e}")
        return JSONResponse({"error": str(e) or "Internal Server Error"}, status_code=500)
    finally:
        watcher.cancel()

    return result.to_response()


@app.get("/models")
async def list_models():
    """List the Gemini models available to the configured key."""
    api_key = get_settings().gemini_api_key
    if not api_key:
        return {"error": "No API Key found"}

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.get(GEMINI_MODELS_URL, params={"key": api_key})
            return resp.json()
    except (httpx.HTTPError, ValueError) as e:
        print(f"[models] Failed to fetch models: {e}")
        return {"error": "Failed to fetch models"}


def run():
    """Console entry point: serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run("uxscan.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
