"""
GATE Practice Backend - FastAPI application entry point.

This module:
1. Sets up structured JSON logging
2. Creates tables directly when running on SQLite
3. Adds CORS and request ID middleware (X-Request-ID header)
4. Registers the API routers and the health endpoint

Layout:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: normalizer, evaluator, scoring, session lock, timer,
  sessions, question bank, analytics
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gateprep.config import CORS_ORIGINS
from gateprep.logging_config import (
    setup_logging, get_logger, log_with_context, timed,
    request_id_var, generate_request_id
)
from gateprep.routes import analytics, evaluate, questions, sessions
from gateprep.database import DATABASE_URL, create_tables

setup_logging()
logger = get_logger("http")

if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="GATE Practice Backend",
    description=(
        "Question bank, timed test sessions and deterministic evaluation of "
        "MCQ, MSQ and NAT answers with GATE-style negative marking."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Tag every request with a UUID.

    The ID goes into the request_id context variable (picked up by every log
    entry) and back to the client in X-Request-ID. Start and completion are
    logged with latency.
    """
    req_id = request.headers.get("X-Request-ID") or generate_request_id()
    request_id_var.set(req_id)

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    with timed() as elapsed:
        response = await call_next(request)

    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        extra_data={
            "duration_ms": elapsed(),
            "status_code": response.status_code
        })

    return response


app.include_router(evaluate.router, tags=["Evaluation"])
app.include_router(questions.router, tags=["Questions"])
app.include_router(sessions.router, tags=["Sessions"])
app.include_router(analytics.router, tags=["Analytics"])


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "healthy", "service": "gateprep-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "GATE Practice Backend",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "evaluate": "POST /api/evaluate",
            "import_questions": "POST /api/questions/import",
            "start_session": "POST /api/sessions",
            "active_session": "GET /api/sessions/active",
            "autosave": "POST /api/sessions/{id}/autosave",
            "submit": "POST /api/sessions/{id}/submit",
            "review": "GET /api/sessions/{id}/review",
            "history": "GET /api/sessions/history",
            "analytics": "GET /api/analytics/{overview|weakness|recommendations}"
        }
    }
