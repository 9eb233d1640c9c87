from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import Optional
import logging
from ..database import get_db
from ..errors import Forbidden, InvalidToken, Unauthorized
from ..services.credential_store import CredentialStore
from ..services.token_issuer import TokenClaims, TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)


# Pydantic models
class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str
    email: EmailStr
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        if len(v.encode('utf-8')) > 72:
            raise ValueError('Password is too long (max 72 bytes)')
        return v

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters long')
        if len(v) > 50:
            raise ValueError('Username is too long (max 50 characters)')
        return v

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserLogin(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class UserResponse(BaseModel):
    id: int
    username: str
    email: str


class RegisterResponse(BaseModel):
    message: str
    userId: int


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


# Dependencies
def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


async def get_current_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """Gate for protected routes: 401 without a bearer token, 403 for a bad one"""
    if credentials is None or not credentials.credentials:
        raise Unauthorized()

    try:
        claims = token_issuer.verify(credentials.credentials)
    except InvalidToken as e:
        logger.info(f"Rejected bearer token on {request.url.path}: {e}")
        raise Forbidden()

    request.state.user = claims
    return claims


# API Endpoints
@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, store: CredentialStore = Depends(get_credential_store)):
    """Register a new user"""
    user_id = await store.register(user_data.username, user_data.email, user_data.password)
    logger.info(f"👤 Registered user {user_data.username} (id={user_id})")
    return RegisterResponse(message="User registered successfully", userId=user_id)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: UserLogin,
    store: CredentialStore = Depends(get_credential_store),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Login user"""
    user = await store.verify(login_data.email, login_data.password)
    token = token_issuer.issue(user)

    return LoginResponse(
        token=token,
        user=UserResponse(id=user.id, username=user.username, email=user.email),
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    claims: TokenClaims = Depends(get_current_claims),
    store: CredentialStore = Depends(get_credential_store),
):
    """Get current user information"""
    user = await store.get(claims.id)
    return UserResponse(id=user.id, username=user.username, email=user.email)
