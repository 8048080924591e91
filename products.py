import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from context import ServiceContext, get_context
from database import get_documents, insert_product, serialize_doc, update_document
from schemas import MAX_INT64, Product, ProductIn, ProductRef, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

BY_ID = [("id", 1)]


@router.post("/addproduct")
def add_product(payload: ProductIn, ctx: ServiceContext = Depends(get_context)):
    product = insert_product(ctx.db, payload)
    logger.info("Product added: %s (id %s)", product["title"], product["id"])
    return {"success": 1, "product": serialize_doc(product)}


@router.post("/removeproduct")
def remove_product(payload: ProductRef, ctx: ServiceContext = Depends(get_context)):
    deleted = ctx.db["product"].find_one_and_delete({"id": payload.id})
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Product removed: %s", deleted.get("title"))
    return {"success": 1, "message": "Product removed successfully", "product": serialize_doc(deleted)}


@router.get("/allproducts")
def list_products(ctx: ServiceContext = Depends(get_context)):
    products = get_documents(ctx.db, "product", {}, sort=BY_ID)
    return {"success": 1, "products": [serialize_doc(p) for p in products]}


@router.get("/products/{category}")
def list_products_by_category(category: str, ctx: ServiceContext = Depends(get_context)):
    products = get_documents(ctx.db, "product", {"category": category}, sort=BY_ID)
    return {"success": 1, "products": [serialize_doc(p) for p in products]}


@router.get("/product/{product_id}")
def get_product(product_id: int = Path(..., le=MAX_INT64), ctx: ServiceContext = Depends(get_context)):
    product = ctx.db["product"].find_one({"id": product_id})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": 1, "product": serialize_doc(product)}


@router.post("/updateproduct")
def update_product(payload: ProductUpdate, ctx: ServiceContext = Depends(get_context)):
    existing = ctx.db["product"].find_one({"id": payload.id})
    if not existing:
        raise HTTPException(status_code=404, detail="Product not found")
    merged = Product.model_validate(existing).model_dump()
    merged.update(payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"}))
    # re-validate the whole document, not just the changed fields
    product = Product.model_validate(merged)
    updated = update_document(ctx.db, "product", {"id": product.id}, product.to_document(exclude={"id"}))
    if not updated:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": 1, "product": serialize_doc(updated)}
