"""User settings router for the stored OpenRouter API key."""

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_credential_db, get_current_user
from api.models import SettingsResponse, SettingsUpdate, SuccessResponse
from database.credential_store.credential_manager import CredentialManager
from database.credential_store.exceptions import InvalidCredentialError
from utils.logging import logger

router = APIRouter(prefix="/api/user", tags=["settings"])


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(
    user_id: str = Depends(get_current_user),
    db: CredentialManager = Depends(get_credential_db),
) -> SettingsResponse:
    """Report whether an API key is stored. The key itself is never returned."""
    try:
        return SettingsResponse(has_api_key=await db.has_secret(user_id))
    except Exception as e:
        logger.error(f"Failed to fetch user settings: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.patch("/settings", response_model=SuccessResponse)
async def update_settings(
    request: SettingsUpdate,
    user_id: str = Depends(get_current_user),
    db: CredentialManager = Depends(get_credential_db),
) -> SuccessResponse:
    """Store (or overwrite) the user's API key."""
    try:
        await db.set_secret(user_id, request.api_key)
        return SuccessResponse()
    except InvalidCredentialError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update user settings: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.delete("/settings", response_model=SuccessResponse)
async def delete_settings(
    user_id: str = Depends(get_current_user),
    db: CredentialManager = Depends(get_credential_db),
) -> SuccessResponse:
    """Remove the user's stored API key."""
    try:
        await db.delete_secret(user_id)
        return SuccessResponse()
    except Exception as e:
        logger.error(f"Failed to remove API key: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
