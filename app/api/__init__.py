"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import phase_gating

router = APIRouter()

# Phase gating: exit criteria evaluation and progression checks
router.include_router(phase_gating.router, prefix="/phase-gating", tags=["phase_gating"])
