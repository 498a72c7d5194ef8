import logging
import uuid
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError

from database import RecordStore, is_duplicate_key
from errors import AuthenticationError, ConflictError, NotFoundError
from schemas import Credentials, UserCreate

logger = logging.getLogger(__name__)


def build_pwd_context(schemes) -> CryptContext:
    return CryptContext(schemes=list(schemes), deprecated="auto")


def hash_password(password: str, context: CryptContext) -> str:
    return context.hash(password)


def verify_password(password: str, hashed: str, context: CryptContext) -> bool:
    if not hashed:
        return False
    return context.verify(password, hashed)


def _public(user: dict) -> dict:
    user = dict(user)
    user.pop("password", None)
    return user


def register(store: RecordStore, payload: UserCreate, context: CryptContext, role: str = "user") -> dict:
    taken = ConflictError("Admin already exists" if role == "admin" else "User already exists")
    if store.fetch_one("users", {"email": payload.email}):
        raise taken

    user_id = str(uuid.uuid4())
    try:
        store.create("users", {
            "id": user_id,
            "firstName": payload.firstName,
            "lastName": payload.lastName,
            "email": payload.email,
            "password": hash_password(payload.password, context),
            "role": role,
        })
    except IntegrityError as e:
        # emails of soft-deleted accounts stay reserved
        if is_duplicate_key(e):
            raise taken from e
        raise
    logger.info("Registered %s %s", role, user_id)
    return _public(store.fetch_one("users", user_id))


def register_admin(store: RecordStore, payload: UserCreate, context: CryptContext) -> dict:
    return register(store, payload, context, role="admin")


def authenticate(store: RecordStore, credentials: Credentials, context: CryptContext,
                 role: Optional[str] = None) -> dict:
    """Returns the user (without password) or raises AuthenticationError."""
    lookup = {"email": credentials.email}
    if role:
        lookup["role"] = role
    user = store.fetch_one("users", lookup)
    if not user or not verify_password(credentials.password, user.get("password", ""), context):
        raise AuthenticationError()
    return _public(user)


def get_user(store: RecordStore, user_id: str) -> dict:
    user = store.fetch_one("users", user_id)
    if not user:
        raise NotFoundError("User not found")
    return _public(user)
