import logging
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user, require_supplier
from context import ServiceContext, get_context
from database import create_document, get_documents, parse_object_id, serialize_doc, update_document
from schemas import Order, OrderIn, OrderStatusUpdate, OrderUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders")

NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


def _load_order(ctx: ServiceContext, order_id: str) -> Dict[str, Any]:
    oid = parse_object_id(order_id)
    if oid is None:
        raise HTTPException(status_code=400, detail="Invalid order id")
    order = ctx.db["order"].find_one({"_id": oid})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _set_order_fields(ctx: ServiceContext, order_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    order = _load_order(ctx, order_id)
    updated = update_document(ctx.db, "order", {"_id": order["_id"]}, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="Order not found")
    return updated


@router.post("")
def create_order(
    payload: OrderIn,
    current_user: dict = Depends(get_current_user),
    ctx: ServiceContext = Depends(get_context),
):
    # Calculate totals server-side for trust
    total = round(sum(item.price * item.quantity for item in payload.items), 2)
    order = Order(user_id=current_user["id"], total=total, **payload.model_dump())
    data = order.to_document()
    data["userId"] = ObjectId(order.user_id)
    order_id = create_document(ctx.db, "order", data)
    logger.info("Order %s created by user %s, total %.2f", order_id, current_user["id"], total)
    created = ctx.db["order"].find_one({"_id": ObjectId(order_id)})
    return {"success": 1, "order": serialize_doc(created)}


@router.get("")
def list_orders(_: dict = Depends(require_supplier), ctx: ServiceContext = Depends(get_context)):
    orders = get_documents(ctx.db, "order", {}, sort=NEWEST_FIRST)
    return {"success": 1, "orders": [serialize_doc(o) for o in orders]}


@router.get("/my-orders")
def list_my_orders(current_user: dict = Depends(get_current_user), ctx: ServiceContext = Depends(get_context)):
    orders = get_documents(ctx.db, "order", {"userId": ObjectId(current_user["id"])}, sort=NEWEST_FIRST)
    return {"success": 1, "orders": [serialize_doc(o) for o in orders]}


@router.get("/{order_id}")
def get_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    ctx: ServiceContext = Depends(get_context),
):
    order = _load_order(ctx, order_id)
    if str(order.get("userId")) != current_user["id"] and current_user.get("role") != "supplier":
        raise HTTPException(status_code=403, detail="Not allowed to view this order")
    return {"success": 1, "order": serialize_doc(order)}


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    current_user: dict = Depends(require_supplier),
    ctx: ServiceContext = Depends(get_context),
):
    updated = _set_order_fields(ctx, order_id, {"status": payload.status})
    logger.info("Order %s set to %s by %s", order_id, payload.status, current_user["id"])
    return {"success": 1, "order": serialize_doc(updated)}


@router.patch("/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    _: dict = Depends(require_supplier),
    ctx: ServiceContext = Depends(get_context),
):
    changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = _set_order_fields(ctx, order_id, changes)
    return {"success": 1, "order": serialize_doc(updated)}


@router.delete("/{order_id}")
def delete_order(order_id: str, _: dict = Depends(require_supplier), ctx: ServiceContext = Depends(get_context)):
    order = _load_order(ctx, order_id)
    ctx.db["order"].delete_one({"_id": order["_id"]})
    logger.info("Removed order %s", order_id)
    return {"success": 1, "message": "Order removed successfully", "order": serialize_doc(order)}
