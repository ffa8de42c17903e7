from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from .. import store
from ..models import AuthUser, AuthSession, utcnow
from ..schemas import CamelModel, Language

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
# Same scheme, but a missing header yields None instead of a 401
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	username: str


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
	row = db.get(AuthUser, username.strip())
	if row is None or not pwd_context.verify(password, row.password_hash):
		return None
	return User(username=row.username)


def token_lifetime() -> timedelta:
	minutes = settings.access_token_expire_minutes
	# Non-positive setting means long-lived learner tokens
	return timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)


def create_access_token(username: str, session_id: str, lifetime: Optional[timedelta] = None) -> str:
	claims = {
		"sub": username,
		"jti": session_id,
		"exp": datetime.now(timezone.utc) + (lifetime or token_lifetime()),
	}
	return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_token(db: Session, username: str) -> str:
	"""Open a revocable server-side session for `username` and return its bearer token."""
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, username=username))
	db.commit()
	return create_access_token(username, session_id)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if user is None:
		raise HTTPException(status_code=401, detail="Incorrect username or password", headers={"WWW-Authenticate": "Bearer"})
	logger.info("User %s signed in", user.username)
	return Token(access_token=issue_token(db, user.username))


def _user_from_token(token: str, db: Session) -> Optional[User]:
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		return None
	username: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if username is None or jti is None:
		return None
	# The session row must still exist; deleting it revokes the token
	row = db.get(AuthSession, jti)
	if not row or row.username != username:
		return None
	row.last_activity_at = utcnow()
	db.commit()
	return User(username=username)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	user = _user_from_token(token, db)
	if user is None:
		raise HTTPException(status_code=401, detail="Could not validate credentials", headers={"WWW-Authenticate": "Bearer"})
	logger.debug("Authenticated user: %s", user.username)
	return user


def get_optional_user(token: Optional[str] = Depends(optional_oauth2_scheme), db: Session = Depends(get_db)) -> Optional[User]:
	"""Attach the user when a valid bearer token is present; anonymous otherwise."""
	if not token:
		return None
	user = _user_from_token(token, db)
	if user is None:
		logger.debug("Optional auth: invalid token, continuing without auth")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class RegisterRequest(CamelModel):
	username: str = Field(min_length=3, max_length=128, pattern=r"^\s*\S+\s*$")
	password: str = Field(min_length=6, max_length=72)
	email: Optional[str] = Field(default=None, max_length=256)
	name: Optional[str] = Field(default=None, max_length=100)
	language_preference: Language = "en"


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = req.username.strip()
	if db.get(AuthUser, username) is not None:
		raise HTTPException(status_code=409, detail="Username is already taken")
	db.add(AuthUser(username=username, password_hash=pwd_context.hash(req.password), email=(req.email or "").strip() or None))
	# Every learner starts with a profile so daily plans and roadmaps have defaults to read
	store.upsert_profile(db, username, name=(req.name or "").strip() or None, language_preference=req.language_preference)
	db.commit()
	logger.info("Registered user %s", username)
	return {"success": True, "data": {"username": username, "accessToken": issue_token(db, username), "tokenType": "bearer"}}
