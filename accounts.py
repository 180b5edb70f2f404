import sys
from typing import Optional

from fastapi import APIRouter, Depends
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from auth import get_current_user, require_admin
from config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME
from database import create_document, get_db, get_documents, serialize, utcnow
from errors import Unauthorized, ValidationError
from logging_config import get_logger
from schemas import User as UserSchema

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


def _public(doc: dict) -> dict:
    data = serialize(doc)
    data.pop("password_hash", None)
    return data


@auth_router.post("/register", status_code=201)
def register(user: UserCreate):
    email = user.email.lower()
    username = user.username.strip()
    existing = get_db()["user"].find_one({"$or": [{"email": email}, {"username": username}]})
    if existing:
        raise ValidationError("User already exists")
    password_hash = pwd_context.hash(user.password)
    user_doc = UserSchema(username=username, email=email, password_hash=password_hash)
    try:
        user_id = create_document("user", user_doc)
    except DuplicateKeyError:
        raise ValidationError("User already exists")
    logger.info("user_registered", user_id=user_id, username=username)
    return {"user_id": user_id, "username": username, "email": email, "role": "buyer"}


@auth_router.post("/login")
def login(creds: UserLogin):
    doc = get_db()["user"].find_one({"email": creds.email.lower()})
    if not doc or not pwd_context.verify(creds.password, doc.get("password_hash", "")):
        raise Unauthorized("Invalid credentials")
    return {
        "user_id": str(doc["_id"]),
        "username": doc.get("username"),
        "email": doc.get("email"),
        "role": doc.get("role", "buyer"),
    }


@auth_router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return user


@users_router.get("")
def list_users(admin: dict = Depends(require_admin)):
    return [_public(d) for d in get_documents("user", sort=[("created_at", -1)])]


def ensure_admin(username: str = ADMIN_USERNAME, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD) -> bool:
    """Create the default admin account unless its username or email is already taken.

    Returns True when an account was created. Safe to call on every start.
    """
    users = get_db()["user"]
    email = email.lower()
    existing = users.find_one({"$or": [{"username": username}, {"email": email}]})
    if existing:
        if existing.get("username") != username:
            logger.warning("admin_email_taken", username=username, email=email, holder=existing.get("username"))
        else:
            logger.debug("admin_present", username=username)
        return False
    admin = UserSchema(
        username=username,
        email=email,
        password_hash=pwd_context.hash(password),
        role="admin",
    )
    try:
        create_document("user", admin)
    except DuplicateKeyError:
        # Another worker created it between the lookup and the insert
        logger.debug("admin_present", username=username)
        return False
    logger.info("admin_created", username=username)
    return True



def upsert_admin(username: str, email: Optional[str] = None, password: Optional[str] = None) -> None:
    """Create the admin, or refresh email/password of an existing one.

    Raises ValidationError when the email belongs to a different account.
    """
    users = get_db()["user"]
    existing = users.find_one({"username": username})
    email = email.lower() if email else None
    if email:
        holder = users.find_one({"email": email})
        if holder and (existing is None or holder["_id"] != existing["_id"]):
            raise ValidationError(f"Email {email} is already used by {holder.get('username')}")
    if not existing:
        ensure_admin(username, email or ADMIN_EMAIL, password or ADMIN_PASSWORD)
        return
    changes = {"role": "admin", "updated_at": utcnow()}
    if password:
        changes["password_hash"] = pwd_context.hash(password)
    if email:
        changes["email"] = email
    try:
        users.update_one({"_id": existing["_id"]}, {"$set": changes})
    except DuplicateKeyError:
        raise ValidationError(f"Email {email} is already used by another account")
    logger.info("admin_updated", username=username)



if __name__ == "__main__":
    from logging_config import configure_logging

    configure_logging()
    args = sys.argv[1:]
    try:
        upsert_admin(
            args[0] if len(args) > 0 else ADMIN_USERNAME,
            args[1] if len(args) > 1 else ADMIN_EMAIL,
            args[2] if len(args) > 2 else ADMIN_PASSWORD,
        )
    except ValidationError as exc:
        sys.exit(exc.message)
