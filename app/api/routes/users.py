from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserRead

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=UserRead,
    status_code=HTTPStatus.CREATED,
    summary="Create a new user",
    description=(
        "Register a user who can own events.\n\n"
        "Email addresses are unique; conflict detection is scoped per user."
    ),
    responses={
        201: {
            "description": "User successfully created.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 1,
                        "name": "Ada Lovelace",
                        "email": "ada@example.com",
                        "created_at": "2024-01-01T09:00:00",
                    }
                }
            },
        },
        400: {
            "description": "A user with the same email already exists.",
            "content": {
                "application/json": {
                    "example": {"detail": "User with email 'ada@example.com' already exists."}
                }
            },
        },
    },
)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """
    Create a new user, enforcing email uniqueness.
    """
    existing_stmt = select(User).where(User.email == payload.email)
    existing_result = await db.execute(existing_stmt)
    if existing_result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"User with email '{payload.email}' already exists.",
        )

    user = User(name=payload.name, email=payload.email)
    db.add(user)
    await db.commit()
    await db.refresh(user)

    return UserRead.model_validate(user)


@router.get(
    "",
    response_model=list[UserRead],
    summary="List all users",
)
async def list_users(db: AsyncSession = Depends(get_db)) -> list[UserRead]:
    result = await db.execute(select(User).order_by(User.id.asc()))
    return [UserRead.model_validate(u) for u in result.scalars().all()]


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get user details by ID",
    responses={
        404: {
            "description": "No user exists with the given ID.",
            "content": {
                "application/json": {"example": {"detail": "User with id 42 not found."}}
            },
        },
    },
)
async def get_user(
    user_id: int = Path(..., description="Numeric ID of the user.", ge=1, examples=[1]),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """
    Fetch a single user by ID.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"User with id {user_id} not found.",
        )

    return UserRead.model_validate(user)
