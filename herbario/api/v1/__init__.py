"""
API routes.
"""

from fastapi import APIRouter

from herbario.api.v1 import auth, plants

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(plants.router, prefix="/plants", tags=["Plants"])
