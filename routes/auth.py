from fastapi import APIRouter, Depends
import logging

from models.user import User
from services.auth_deps import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["authentication"])

@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)):
    """Identity carried by the bearer token (used to stamp created_by and lock ownership)"""
    return current_user
