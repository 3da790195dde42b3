from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from adops import __version__
from adops.api.routes import limiter, router
from adops.api.settings import get_api_settings
from adops.refresh.broadcast import RefreshBroadcaster
from adops.utils.logger import get_logger

log = get_logger(__name__)

WRITABLE_PATHS = {"/api/refresh"}

app = FastAPI(
    title="AdOps Analytics API",
    description="Mock ad operations telemetry, creative, geo and pacing data",
    version=__version__,
)
app.state.limiter = limiter
app.state.broadcaster = RefreshBroadcaster()
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.on_event("startup")
async def startup_event():
    await app.state.broadcaster.start()


@app.on_event("shutdown")
async def shutdown_event():
    await app.state.broadcaster.stop()


@app.middleware("http")
async def enforce_read_only(request: Request, call_next):
    if request.method in {"GET", "HEAD", "OPTIONS"}:
        return await call_next(request)

    if request.method == "POST" and request.url.path in WRITABLE_PATHS:
        return await call_next(request)

    return JSONResponse(status_code=405, content={"detail": "AdOps API is read-only. Use GET endpoints."})


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_api_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

app.include_router(router, prefix="/api", tags=["Analytics"])


def _refresh_payload(broadcaster: RefreshBroadcaster) -> dict:
    return {
        "lastRefresh": broadcaster.last_refresh.isoformat(),
        "intervalSeconds": broadcaster.interval,
        "running": broadcaster.running,
    }


@app.get("/api/refresh", tags=["Refresh"])
async def get_last_refresh(request: Request):
    return _refresh_payload(request.app.state.broadcaster)


@app.post("/api/refresh", tags=["Refresh"])
async def trigger_refresh(request: Request):
    broadcaster: RefreshBroadcaster = request.app.state.broadcaster
    await broadcaster.manual_refresh()
    return _refresh_payload(broadcaster)


@app.get("/health")
def health():
    return {"status": "ok", "env": get_api_settings().env, "version": __version__}
