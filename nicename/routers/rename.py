import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.engine import Connection

from ..config import Settings
from ..deps import get_db, get_settings, require_admin
from ..errors import (
    InvalidNicenameError,
    NicenameError,
    RenameFailedError,
    SameNicenameError,
    SearchReplaceError,
    UserNotFoundError,
)
from ..rename import change_user_nicename
from ..schemas import RenameRequest, RenameResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/nicename", tags=["nicename"])

STATUS_BY_ERROR = {
    InvalidNicenameError: 400,
    SameNicenameError: 400,
    UserNotFoundError: 404,
    RenameFailedError: 500,
    SearchReplaceError: 502,
}


@router.post("/rename", response_model=RenameResult, dependencies=[Depends(require_admin)])
def rename_nicename(
    payload: RenameRequest,
    db: Connection = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Change a user's nicename. (Admin Only)"""
    try:
        return change_user_nicename(db, payload.old, payload.new, settings)
    except NicenameError as e:
        logger.error("Nicename rename %s -> %s failed: %s", payload.old, payload.new, e.message)
        raise HTTPException(status_code=STATUS_BY_ERROR.get(type(e), 500), detail=e.message)
