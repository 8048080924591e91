import logging
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from auth import (
    create_access_token,
    get_current_user,
    hash_password,
    public_user,
    require_supplier,
    verify_password,
)
from context import ServiceContext, get_context
from database import create_document, get_documents, parse_object_id, update_document
from schemas import LoginInput, ProfileUpdate, RegisterInput, User, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_TAKEN = "Email already registered"


def _user_id(user_id: str) -> ObjectId:
    oid = parse_object_id(user_id)
    if oid is None:
        raise HTTPException(status_code=400, detail="Invalid user id")
    return oid


def _create_user(ctx: ServiceContext, payload: RegisterInput) -> Dict[str, Any]:
    email = payload.email.lower()
    if ctx.db["user"].find_one({"email": email}):
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
    user = User(
        name=payload.name,
        email=email,
        password=hash_password(ctx.pwd_context, payload.password),
        role=payload.role,
    )
    try:
        user_id = create_document(ctx.db, "user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
    logger.info("Registered %s user %s", user.role, email)
    return ctx.db["user"].find_one({"_id": ObjectId(user_id)})


def _update_user(ctx: ServiceContext, oid: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        clash = ctx.db["user"].find_one({"email": changes["email"], "_id": {"$ne": oid}})
        if clash:
            raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
    if "password" in changes:
        changes["password"] = hash_password(ctx.pwd_context, changes["password"])
    try:
        updated = update_document(ctx.db, "user", {"_id": oid}, changes)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return updated


# Auth

@router.post("/auth/register")
def register(payload: RegisterInput, ctx: ServiceContext = Depends(get_context)):
    user = _create_user(ctx, payload)
    token = create_access_token(str(user["_id"]), ctx.settings.jwt_secret)
    return {"success": 1, "user": public_user(user), "token": token}


@router.post("/auth/login")
def login(payload: LoginInput, ctx: ServiceContext = Depends(get_context)):
    user = ctx.db["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(ctx.pwd_context, payload.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = create_access_token(str(user["_id"]), ctx.settings.jwt_secret)
    return {"success": 1, "user": public_user(user), "token": token}


# Profile

@router.get("/users/me")
def get_profile(current_user: dict = Depends(get_current_user)):
    return {"success": 1, "user": current_user}


@router.put("/users/me")
def update_profile(
    payload: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    ctx: ServiceContext = Depends(get_context),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    updated = _update_user(ctx, ObjectId(current_user["id"]), changes)
    return {"success": 1, "user": public_user(updated)}


# User administration

@router.get("/users")
def list_users(_: dict = Depends(require_supplier), ctx: ServiceContext = Depends(get_context)):
    users = get_documents(ctx.db, "user", {}, sort=[("createdAt", 1), ("_id", 1)])
    return {"success": 1, "users": [public_user(u) for u in users]}


@router.post("/users")
def create_user(
    payload: RegisterInput,
    _: dict = Depends(require_supplier),
    ctx: ServiceContext = Depends(get_context),
):
    return {"success": 1, "user": public_user(_create_user(ctx, payload))}


@router.get("/users/{user_id}")
def get_user(user_id: str, _: dict = Depends(require_supplier), ctx: ServiceContext = Depends(get_context)):
    user = ctx.db["user"].find_one({"_id": _user_id(user_id)})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": 1, "user": public_user(user)}


@router.put("/users/{user_id}")
def update_user(
    user_id: str,
    payload: UserUpdate,
    _: dict = Depends(require_supplier),
    ctx: ServiceContext = Depends(get_context),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    updated = _update_user(ctx, _user_id(user_id), changes)
    return {"success": 1, "user": public_user(updated)}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, _: dict = Depends(require_supplier), ctx: ServiceContext = Depends(get_context)):
    deleted = ctx.db["user"].find_one_and_delete({"_id": _user_id(user_id)})
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Removed user %s", deleted.get("email"))
    return {"success": 1, "message": "User removed successfully", "user": public_user(deleted)}
