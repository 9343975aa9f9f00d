"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.config import get_settings

settings = get_settings()

app = FastAPI(
    title=settings.SERVICE_NAME,
    description="Phase gating and progression rules for the AI governance workflow",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix=settings.API_PREFIX, tags=["v1"])
