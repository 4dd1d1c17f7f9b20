"""Login sessions.

A successful login stores a session record (random ``sid`` -> user id, with an
expiry) in the backend's session store and hands the client a signed token
carrying that ``sid``. The token travels in an HTTP-only cookie or as a bearer
header. Logging out destroys the record, which invalidates the token even
before it expires.
"""
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import Settings
from dependencies import get_app_settings, get_storage
from schemas import User, UserCreate, UserProfile
from sessions import utcnow
from storage import Storage

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/token", auto_error=False)

router = APIRouter(prefix="/api", tags=["auth"])


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    username: str
    password: str


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def start_session(storage: Storage, user: User, settings: Settings) -> str:
    """Open a session for ``user`` and return the signed token that names it."""
    sid = secrets.token_urlsafe(32)
    expires_at = utcnow() + timedelta(minutes=settings.session_max_age_minutes)
    storage.session_store.set(sid, user.id, expires_at)
    claims = {"sub": str(user.id), "sid": sid, "exp": expires_at}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def _read_token(token: str, settings: Settings) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if not payload.get("sid") or not payload.get("sub"):
        return None
    return payload


def _request_token(request: Request, bearer: Optional[str], settings: Settings) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name) or bearer


def get_optional_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> Optional[User]:
    """The logged-in user, or None for anonymous requests."""
    token = _request_token(request, bearer, settings)
    if not token:
        return None
    payload = _read_token(token, settings)
    if payload is None:
        return None
    session = storage.session_store.get(payload["sid"])
    if session is None or str(session.user_id) != payload["sub"]:
        return None
    return storage.get_user(session.user_id)


def require_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


@router.post("/register", response_model=UserProfile, status_code=201)
def register(
    payload: UserCreate,
    response: Response,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    if storage.get_user_by_username(payload.username):
        raise HTTPException(400, "Username already exists")
    if storage.get_user_by_email(payload.email):
        raise HTTPException(400, "Email already registered")
    user = storage.create_user(payload.model_copy(update={"password": get_password_hash(payload.password)}))
    _set_session_cookie(response, start_session(storage, user, settings), settings)
    logger.info("Registered user %s (id=%d)", user.username, user.id)
    return user


def _authenticate(storage: Storage, username: str, password: str) -> User:
    user = storage.get_user_by_username(username)
    if user is None or not verify_password(password, user.password):
        logger.info("Failed login for %s", username)
        raise HTTPException(401, "Invalid username or password")
    return user


@router.post("/login", response_model=UserProfile)
def login(
    credentials: LoginRequest,
    response: Response,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    user = _authenticate(storage, credentials.username, credentials.password)
    _set_session_cookie(response, start_session(storage, user, settings), settings)
    logger.info("User %s logged in", user.username)
    return user


@router.post("/token", response_model=Token)
def issue_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    user = _authenticate(storage, form_data.username, form_data.password)
    return Token(access_token=start_session(storage, user, settings))


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    bearer: Optional[str] = Depends(oauth2_scheme),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    token = _request_token(request, bearer, settings)
    payload = _read_token(token, settings) if token else None
    if payload is not None:
        storage.session_store.destroy(payload["sid"])
        logger.info("Session for user %s closed", payload["sub"])
    response.delete_cookie(settings.session_cookie_name)
    return {"ok": True}


@router.get("/user", response_model=UserProfile)
def current_user(user: User = Depends(require_user)):
    return user
