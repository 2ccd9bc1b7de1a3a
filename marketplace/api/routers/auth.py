# marketplace/api/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user
from marketplace.api.responses import ok
from marketplace.data.database import get_db
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import AuthOut, ChangePasswordIn, Envelope, LoginIn, UserOut
from marketplace.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Envelope[AuthOut])
def login(payload: LoginIn, db: Session = Depends(get_db)):
    """Login for any role, admins included."""
    return ok(AuthService(db).login(payload.email, payload.password), "Login successful")


@router.get("/me", response_model=Envelope[UserOut])
def me(user: UserModel = Depends(get_current_user)):
    return ok(user)


@router.put("/change-password", response_model=Envelope[None])
def change_password(
    payload: ChangePasswordIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    AuthService(db).change_password(user, payload.current_password, payload.new_password)
    return ok(message="Password changed")
