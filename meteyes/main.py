"""MetEyes insight proxy — FastAPI application entry point.

Provides POST /api/gemini for the gallery client; the text-generation
credential never leaves the server.
"""

import logging
import time
from collections import defaultdict
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError

from meteyes.config import settings
from meteyes.schemas import InsightRequest, InsightResponse
from meteyes.services.insight_service import InsightService, InsightServiceError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("meteyes")


# ═══════════════ RATE LIMITER ═══════════════

class RateLimiter:
    """Sliding-window rate limiter by IP.

    IPs with no hits inside the window are swept at most once per window,
    so the table only holds recently active clients.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60, timer=time.monotonic):
        self.max_requests = max_requests
        self.window = window_seconds
        self._timer = timer
        self._hits: dict[str, list[float]] = defaultdict(list)
        self._last_sweep = timer()

    def is_limited(self, ip: str) -> bool:
        now = self._timer()
        window_start = now - self.window
        if now - self._last_sweep >= self.window:
            self._sweep(window_start)
            self._last_sweep = now

        hits = [t for t in self._hits[ip] if t > window_start]
        self._hits[ip] = hits
        if len(hits) >= self.max_requests:
            return True
        hits.append(now)
        return False

    def _sweep(self, window_start: float) -> None:
        idle = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for ip in idle:
            del self._hits[ip]

    def __len__(self) -> int:
        return len(self._hits)


rate_limiter = RateLimiter(settings.rate_limit_per_minute)
insight_service = InsightService()


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "MetEyes proxy starting | has_key=%s | cache_ttl=%ds | cache_size=%d",
        settings.has_anthropic_key, settings.insight_cache_ttl_seconds, settings.insight_cache_maxsize,
    )
    yield
    insight_service.cache.clear()
    logger.info("MetEyes proxy shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="MetEyes Insight Proxy",
    description="AI commentary for Met Museum artworks",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "has_anthropic": settings.has_anthropic_key,
        "cache_entries": len(insight_service.cache),
    }


def _client_ip(request: Request) -> str:
    client_ip = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return client_ip


@app.post("/api/gemini")
async def gemini_proxy(request: Request):
    """Generate (or return cached) commentary for one prompt."""
    client_ip = _client_ip(request)
    if rate_limiter.is_limited(client_ip):
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests. Please wait a minute."},
        )

    try:
        body = await request.json()
        insight_req = InsightRequest.model_validate(body)
    except (ValueError, PydanticValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request: body must be a JSON object"},
        )

    start = time.monotonic()
    try:
        result = await insight_service.generate(insight_req.clean_prompt(), insight_req.objectID)
    except InsightServiceError as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("Insight failed | status=%d | %dms | ip=%s", e.status, elapsed_ms, client_ip)
        return JSONResponse(status_code=e.status, content={"error": e.message})

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        "Insight served | id=%s | cached=%s | %dms | ip=%s",
        insight_req.objectID, result.cached, elapsed_ms, client_ip,
    )
    response = InsightResponse(text=result.text, cached=True if result.cached else None)
    return JSONResponse(content=response.model_dump(exclude_none=True))


@app.api_route("/api/gemini", methods=["GET", "PUT", "PATCH", "DELETE"])
async def gemini_proxy_method_not_allowed():
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed. Use POST."},
        headers={"Allow": "POST"},
    )
