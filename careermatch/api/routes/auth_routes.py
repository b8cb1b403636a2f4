"""
Authentication Routes (admin area)

POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info

There is no self-registration; the operator account is created at
startup from ADMIN_EMAIL / ADMIN_PASSWORD.
"""

from fastapi import APIRouter, HTTPException, Depends

from careermatch.core.auth import authenticate_user, create_access_token, get_current_user
from careermatch.schemas.schemas import LoginRequest, TokenResponse, UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = authenticate_user(request.email, request.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(data={"sub": str(user["user_id"]), "role": user["role"]})
    return TokenResponse(access_token=token, user_id=user["user_id"], role=user["role"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return UserResponse(**user)
