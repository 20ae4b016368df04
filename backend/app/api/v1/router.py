"""
API router aggregating all endpoint routers.

Combines the bill, complaint and voice routers into a single router
mounted under the API prefix.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import bills, complaints, voice

api_router = APIRouter()

# ============================================
# Bill Audit
# ============================================

api_router.include_router(
    bills.router,
    tags=["Bills"],
)

# ============================================
# Complaints
# ============================================

api_router.include_router(
    complaints.router,
    tags=["Complaints"],
)
api_router.include_router(
    voice.router,
    tags=["Voice"],
)
