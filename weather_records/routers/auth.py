from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.core.config import Settings
from weather_records.core.db import get_db
from weather_records.core.deps import get_settings
from weather_records.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserOut
from weather_records.services.auth_service import AuthService, AuthValidationError, InvalidCredentialsError

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description=(
        "Creates a user and returns it with a signed access token valid for 7 days.\n\n"
        "- Username: 3-50 characters\n"
        "- Email: valid address, unique regardless of case\n"
        "- Password: at least 6 characters"
    ),
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    service = AuthService(db, config)
    try:
        result = await service.register(payload.username, payload.email, payload.password)
    except AuthValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AuthResponse(
        message="User created successfully",
        user=UserOut.model_validate(result.user),
        token=result.token,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in",
    description="Authenticate with a username or email and a password.",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    service = AuthService(db, config)
    try:
        result = await service.login(payload.username, payload.password)
    except AuthValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return AuthResponse(
        message="Login successful",
        user=UserOut.model_validate(result.user),
        token=result.token,
    )
