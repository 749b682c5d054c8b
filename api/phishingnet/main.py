import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .dependencies import get_brands, get_weights
from .errors import ValidationError
from .routers import analyze, health
from .schemas import ApiError, ApiResponse

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# API metadata for OpenAPI documentation
description = """
## PhishingNet Sender Verdict API

Decides whether an email sender is authentic and likely malicious by combining
DNS-published sender authentication with lookalike detection and an optional
AI content signal.

### Key Features

* **Authentication:** SPF, DKIM (key-record presence) and DMARC policy lookups, run concurrently
* **Impersonation:** Edit-distance lookalike detection against a brand reference list
* **AI Signal (optional):** Content scoring via Groq or OpenAI; degrades to off on timeout or error
* **Explainable:** Fixed weight table, deterministic explanation and machine-readable warnings

### Quick Start

1. **Health Check:** `GET /health`
2. **Address Scan:** `POST /analyze/email`
3. **Header Scan:** `POST /analyze/headers` (AI step needs GROQ_API_KEY or OPENAI_API_KEY)

### Documentation

* **Interactive API Docs:** [/docs](/docs) (Swagger UI)
* **Alternative Docs:** [/redoc](/redoc) (ReDoc)
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Policy inputs are loaded up front so a bad weight table or brand list stops startup.
    weights = get_weights()
    brands = get_brands()
    logger.info(f"Weight table v{weights.version}, {len(brands)} reference brands")
    yield


app = FastAPI(
    title="PhishingNet Sender Verdict API",
    description=description,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Service health, database connectivity and AI availability",
        },
        {
            "name": "analyze",
            "description": "Sender authentication verdicts for an address or a raw header block",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    envelope = ApiResponse(status="error", error=ApiError(code=code, message=message))
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", by_alias=True, exclude={"data"}),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, "VALIDATION_ERROR", message)


@app.exception_handler(ValidationError)
async def input_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    code = "INVALID_HEADERS" if exc.field == "headers" else "INVALID_EMAIL"
    return error_response(400, code, exc.message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}")
    return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(analyze.router, prefix="/analyze", tags=["analyze"])
