import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from passlib.context import CryptContext
from jose import jwt
from pymongo.errors import DuplicateKeyError

from config import settings
from database import get_db
from errors import ConflictError
from services.activity import log_activity
import models
from utils.dependencies import get_current_user

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)
router = APIRouter(prefix="/auth", tags=["Auth"])


def hash_password(password: str):
    return pwd_context.hash(password)


def verify_password(plain, hashed):
    return pwd_context.verify(plain, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def token_for(user: dict) -> str:
    return create_access_token(
        {"sub": str(user["_id"]), "role": user["role"], "email": user["email"], "name": user["name"]},
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def user_out(user: dict) -> dict:
    """Public view of a stored user; the password hash never leaves here."""
    out = {k: v for k, v in user.items() if k not in ("_id", "password")}
    out["id"] = str(user["_id"])
    out["favorites"] = [str(f) for f in user.get("favorites", [])]
    return out


async def insert_user(db, name: str, email: str, password: str, role: str) -> dict:
    if await db.users.find_one({"email": email}):
        raise ConflictError("Email already in use")

    now = datetime.now(timezone.utc)
    new_user = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "role": role,
        "favorites": [],
        "created_at": now,
        "updated_at": now,
    }
    try:
        result = await db.users.insert_one(new_user)
    except DuplicateKeyError:
        raise ConflictError("Email already in use")
    new_user["_id"] = result.inserted_id
    return new_user


@router.post("/register", status_code=201, response_model=models.DataResponse[models.AuthResponse])
async def register(user: models.UserRegister, db=Depends(get_db)):
    created = await insert_user(db, user.name, user.email, user.password, models.Role.USER.value)
    logger.info("User %s registered", created["_id"])
    await log_activity(db, models.ActivityType.USER_REGISTERED, str(created["_id"]), email=user.email)
    return {"data": {**user_out(created), "token": token_for(created)}}


@router.post("/login", response_model=models.Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    user = await db.users.find_one({"email": form_data.username})

    if not user or not verify_password(form_data.password, user["password"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    await log_activity(db, models.ActivityType.USER_LOGIN, str(user["_id"]), email=user["email"])
    return models.Token(access_token=token_for(user))


@router.get("/me", response_model=models.DataResponse[models.UserResponse])
async def get_current_user_info(current_user: dict = Depends(get_current_user)):
    """Get current user information"""
    return {"data": user_out(current_user)}
