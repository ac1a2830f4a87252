"""Greeting and health endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

router = APIRouter(tags=["general"])

GREETING = "Hello From Version Four"


@router.get("/", response_class=PlainTextResponse)
async def home():
    """Fixed greeting."""
    return PlainTextResponse(GREETING)


@router.get("/health")
async def health_check():
    """Liveness check. Answers 503 like every other route once draining."""
    return JSONResponse(status_code=200, content={"status": "OK"})
