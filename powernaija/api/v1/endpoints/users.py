from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.models.user import User
from powernaija.schemas.common import envelope, paginated
from powernaija.schemas.user import DeviceTokenUpdate, UserUpdate, UserWithWalletResponse
from powernaija.services.users import UserService

router = APIRouter()


@router.get("/me")
def read_me(current_user: User = Depends(deps.get_current_user)):
    """Get the current user's profile and wallet."""
    return envelope(UserWithWalletResponse.model_validate(current_user))


@router.patch("/me")
def update_me(
    changes: UserUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    user = UserService(db).update_profile(current_user, **changes.model_dump(exclude_unset=True))
    return envelope(UserWithWalletResponse.model_validate(user), "Profile updated")


@router.put("/me/device-token")
def register_device_token(
    body: DeviceTokenUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Register the device that receives push notifications."""
    UserService(db).set_device_token(current_user, body.fcm_token)
    return envelope(None, "Device token registered")


@router.delete("/me/device-token")
def clear_device_token(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
):
    UserService(db).set_device_token(current_user, None)
    return envelope(None, "Device token removed")


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    admin: User = Depends(deps.get_current_admin),
):
    """List all users (admin only)."""
    users, total = UserService(db).list_users(page, limit)
    return paginated(
        [UserWithWalletResponse.model_validate(user) for user in users], page, limit, total
    )
