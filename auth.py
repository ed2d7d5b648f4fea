"""
Admin authentication: bcrypt password hashes and signed JWT session tokens.

The server keeps no session table. Logging out only clears the cookie on the
client; a copied token stays valid until it expires.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings
from database import create_document, utcnow
from errors import InvalidCredentials, Unauthenticated
from schemas import Admin, AdminCredentials

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
ALGORITHM = "HS256"

router = APIRouter(prefix="/auth", tags=["auth"])


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return request.app.state.db


def hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def issue_token(admin: Dict[str, Any], settings: Settings) -> str:
    payload = {
        "id": str(admin["_id"]),
        "username": admin["username"],
        "exp": utcnow() + timedelta(hours=settings.token_ttl_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Session expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")


def token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    token = token_from_request(request)
    if not token:
        raise Unauthenticated("Not logged in")
    return verify_token(token, settings)


# --------- Routes ---------

@router.post("/seed-admin")
def seed_admin(payload: AdminCredentials, db: Database = Depends(get_db),
               settings: Settings = Depends(get_settings)):
    if not payload.username or not payload.password:
        raise HTTPException(status_code=400, detail="Username and password are required")
    if db["admin"].find_one({"username": payload.username}):
        raise HTTPException(status_code=400, detail="Admin already exists")
    admin = Admin(username=payload.username, password_hash=hash_password(payload.password, settings.bcrypt_rounds))
    try:
        create_document(db, "admin", admin)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Admin already exists")
    logger.info("Admin %s created", payload.username)
    return {"message": "Admin created"}


@router.post("/login")
def login(payload: AdminCredentials, response: Response, db: Database = Depends(get_db),
          settings: Settings = Depends(get_settings)):
    admin = db["admin"].find_one({"username": payload.username}) if payload.username else None
    if not admin or not check_password(payload.password, admin["password_hash"]):
        logger.warning("Failed login for %r", payload.username)
        raise InvalidCredentials()
    token = issue_token(admin, settings)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        max_age=settings.token_ttl_hours * 3600,
    )
    logger.info("Admin %s logged in", admin["username"])
    return {"message": "Login successful", "username": admin["username"], "token": token}


@router.get("/me")
def me(request: Request, settings: Settings = Depends(get_settings)):
    token = token_from_request(request)
    if not token:
        return {"loggedIn": False}
    try:
        data = verify_token(token, settings)
    except Unauthenticated:
        return {"loggedIn": False}
    return {"loggedIn": True, "username": data.get("username")}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return {"message": "Logged out"}
