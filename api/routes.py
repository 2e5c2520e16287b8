"""
Top-level API routes.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

API_VERSION = "1.0.0"

router = APIRouter()


@router.get("/")
async def root() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "Welcome to the Auth Boilerplate API",
        "version": API_VERSION,
        "endpoints": {
            "auth": "/api/auth",
            "docs": "/api-docs",
        },
    }
