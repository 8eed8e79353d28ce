"""User profile endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reqflow.core.auth import get_current_user
from reqflow.core.database import get_db
from reqflow.models.user import User
from reqflow.repositories.user_repository import UserRepository
from reqflow.schemas.user import UserCreate, UserResponse, UserUpdate

router = APIRouter()


@router.post(
    "/",
    response_model=UserResponse,
    status_code=201,
    summary="Register user",
    responses={400: {"description": "Email already registered"}},
)
async def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
) -> User:
    repo = UserRepository(db)
    if repo.get_by_email(data.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    return repo.create(data)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses={404: {"description": "User not found"}},
)
async def get_me(
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> User:
    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update current user",
    responses={404: {"description": "User not found"}},
)
async def update_me(
    data: UserUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> User:
    """Update profile fields, including the email notification preference."""
    user = UserRepository(db).update(user_id, data)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
