from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from stockroom.api.dependencies import get_auth_service, get_current_user_id, get_user_service
from stockroom.services.auth_service import AuthResult, AuthService
from stockroom.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    """Public projection of a user - the password hash never leaves the service"""
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(result.user), token=result.token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Register a new user and return a session token"""
    result = auth.register(payload.name.strip(), payload.email, payload.password)
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Login and get a session token"""
    result = auth.login(payload.email, payload.password)
    return _auth_response(result)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user_id: int = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    """Get current user information"""
    return users.get_user(user_id)
