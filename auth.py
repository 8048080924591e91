import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext

from context import ServiceContext, get_context
from database import parse_object_id, serialize_doc

logger = logging.getLogger(__name__)

# JWT Config
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days
DEFAULT_BCRYPT_ROUNDS = 12


def make_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(pwd_context: CryptContext, password: str) -> str:
    return pwd_context.hash(password)


def verify_password(pwd_context: CryptContext, plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # stored value is not a recognizable hash
        return False


def create_access_token(user_id: str, secret: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": user_id, "exp": expire}, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> dict:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    user = serialize_doc(doc)
    # Never send password hash
    user.pop("password", None)
    return user


# Dependencies

def get_current_user(
    authorization: Optional[str] = Header(default=None),
    ctx: ServiceContext = Depends(get_context),
) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    payload = decode_token(token, ctx.settings.jwt_secret)
    user_id = parse_object_id(payload.get("sub") or "")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = ctx.db["user"].find_one({"_id": user_id}, projection={"password": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return public_user(user)


def require_supplier(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != "supplier":
        logger.info("User %s denied supplier-only access", current_user.get("id"))
        raise HTTPException(status_code=403, detail="Suppliers only")
    return current_user
