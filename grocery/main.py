from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from .config import Settings
from .dependencies import get_optional_user, get_settings
from .models import User
from .schemas import SuccessOut, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=Optional[UserOut])
def read_me(current_user: User | None = Depends(get_optional_user)):
    return current_user


@router.post("/logout", response_model=SuccessOut, status_code=status.HTTP_200_OK)
def logout_user(response: Response, settings: Settings = Depends(get_settings)):
    response.delete_cookie(settings.cookie_name, path="/")
    return {"success": True}
