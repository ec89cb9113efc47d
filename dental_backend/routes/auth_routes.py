from fastapi import APIRouter, Depends

from dental_backend.auth.dependencies import get_current_user
from dental_backend.models.user import User

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"id": current_user.id, "name": current_user.name, "email": current_user.email, "role": current_user.role}
