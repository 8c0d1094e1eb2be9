import logging
import re
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.errors import DefinitionError, FormqoError
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.DEBUG)
app = FastAPI(title="Formqo API")

# Published forms are embedded on arbitrary sites; auth travels as a bearer header, not cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.BACKEND_CORS_ORIGINS else [str(o).rstrip("/") for o in settings.BACKEND_CORS_ORIGINS],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class SensitiveDataFilter(logging.Filter):
    SENSITIVE_KEYWORDS = ["authorization", "csrf_token", "csrftoken", "token", "password"]
    PATTERN = re.compile(
        r"(?i)(['\"]?(?:" + "|".join(SENSITIVE_KEYWORDS) + r")['\"]?\s*[:=]\s*['\"]?)([^\s,'\"}]+)"
    )

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self.sanitize_message(record.msg)
        return True

    def sanitize_message(self, message: str) -> str:
        return self.PATTERN.sub(r"\1[REDACTED]", message)


logging.getLogger().addFilter(SensitiveDataFilter())


def sanitize_headers(headers):
    return {k: (v[:10] + '...') if k.lower() == 'authorization' else v for k, v in headers.items()}


# Middleware for Logging Requests and Responses
@app.middleware("http")
async def log_request(request: Request, call_next):
    logging.info(f"Received request: {request.method} {request.url.path}")
    logging.debug(f"Request headers: {sanitize_headers(request.headers)}")
    response = await call_next(request)
    logging.info(f"Response status code: {response.status_code}")
    return response


@app.exception_handler(FormqoError)
async def formqo_error_handler(request: Request, exc: FormqoError):
    logging.warning(f"{request.method} {request.url.path} failed with {exc.kind}: {exc.message}")
    content = {"error": exc.message, "kind": exc.kind}
    if isinstance(exc, DefinitionError):
        content["problems"] = exc.problems
    return JSONResponse(status_code=exc.status_code, content=content)


# Include API Router
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Welcome to the Formqo API"}


@app.get("/health")
async def health():
    return {"status": "ok"}
