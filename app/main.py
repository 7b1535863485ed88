"""FastAPI entrypoint exposing the report parsing routes.

This module wires the router, maps pipeline errors to JSON responses,
provides a simple health endpoint, and exposes a Mangum handler for AWS
Lambda compatibility.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from mangum import Mangum

from app.errors import ReportParserError
from app.logging_config import configure_logging
from app.settings import get_settings
from reportroutes import reportrouter

CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("medical_report.api")

app = FastAPI(title=settings.app_name, version="1.0.0")


# Must stay inside CORSMiddleware so these responses carry the CORS headers.
@app.middleware("http")
async def catch_unexpected_errors(request: Request, call_next):
    if request.method == "OPTIONS":
        return PlainTextResponse("ok")
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=CORS_ALLOWED_HEADERS,
)


@app.exception_handler(ReportParserError)
async def report_error_handler(request: Request, exc: ReportParserError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("%s %s rejected: invalid request", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": {"errors": jsonable_encoder(exc.errors())}},
    )


app.include_router(reportrouter, prefix="/reports")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# AWS Lambda handler
handler = Mangum(app)
