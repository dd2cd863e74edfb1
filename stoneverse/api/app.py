"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stoneverse.api.routes import analysis, fiscal, loans
from stoneverse.config import settings
from stoneverse.exceptions import StoneverseError
from stoneverse.logging import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Stoneverse",
    description="Fiscal and financial engine for rental property portfolios",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(fiscal.router)
app.include_router(loans.router)
app.include_router(analysis.router)


@app.exception_handler(StoneverseError)
async def stoneverse_error_handler(request: Request, exc: StoneverseError):
    logger.info("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=400,
        content={"code": exc.code, "field": exc.field, "message": exc.message},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}
