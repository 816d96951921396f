from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from stockroom.api.dependencies import get_current_user_id, get_user_service
from stockroom.api.routes.auth import UserResponse
from stockroom.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_user_id)],
)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


@router.get("", response_model=List[UserResponse])
async def list_users(users: UserService = Depends(get_user_service)):
    return users.list_users()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, users: UserService = Depends(get_user_service)):
    return users.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    users: UserService = Depends(get_user_service),
):
    """Update a user's name and/or email"""
    return users.update_user(user_id, name=payload.name, email=payload.email)


@router.delete("/{user_id}")
async def delete_user(user_id: int, users: UserService = Depends(get_user_service)):
    users.delete_user(user_id)
    return {"message": "User deleted successfully"}
