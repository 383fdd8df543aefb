import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.api.deps import close_clients
from portal.api.routes.me import router as me_router
from portal.api.routes.metrics import router as metrics_router
from portal.api.routes.reports import router as reports_router
from portal.api.routes.stats import router as stats_router
from portal.core.config import settings
from portal.core.errors import (
    AuthorizationDenied,
    NotFound,
    PortalError,
    RateLimitExceeded,
    TransportError,
    ValidationError,
)
from portal.metrics.prometheus import api_request_latency_seconds

app = FastAPI(
    title="Incident Portal API",
    version="1.0.0",
    description="Security incident reporting and triage portal",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS_CODES: list[tuple[type[PortalError], int]] = [
    (TransportError, 502),
    (AuthorizationDenied, 403),
    (ValidationError, 422),
    (NotFound, 404),
    (RateLimitExceeded, 429),
]


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    status_code = next((code for cls, code in ERROR_STATUS_CODES if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status_code, content={"detail": exc.safe_message})


@app.on_event("shutdown")
async def on_shutdown():
    await close_clients()


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
        return response
    finally:
        dt = time.perf_counter() - start
        route = request.url.path
        method = request.method
        status = "unknown"
        try:
            status = str(getattr(response, "status_code", "unknown"))
        except Exception:
            status = "unknown"
        api_request_latency_seconds.labels(route=route, method=method, status=status).observe(dt)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(me_router)
app.include_router(reports_router)
app.include_router(stats_router)
app.include_router(metrics_router)
