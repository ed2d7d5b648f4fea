"""
Product catalog and category discounts.

Reads are public; every write needs an admin session.
"""
import logging
import os
import re
import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import get_db, get_settings, require_admin
from config import Settings
from database import create_document, get_documents, serialize_doc, to_object_id, utcnow
from errors import InvalidRequest
from schemas import Discount, Product, StockUpdate

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"

router = APIRouter(tags=["catalog"])


# --------- Image storage ---------

def save_image(upload: UploadFile, settings: Settings) -> str:
    """Store an uploaded image and return its public /uploads/... path."""
    if not (upload.content_type or "").startswith("image/"):
        raise InvalidRequest("Only image files are allowed")
    data = upload.file.read(settings.max_image_bytes + 1)
    if len(data) > settings.max_image_bytes:
        raise InvalidRequest("Image is too large")

    base, ext = os.path.splitext(os.path.basename(upload.filename or "image"))
    base = re.sub(r"\s+", "_", base).lower() or "image"
    filename = f"{base}_{int(time.time() * 1000)}{ext.lower()}"

    os.makedirs(settings.upload_dir, exist_ok=True)
    with open(os.path.join(settings.upload_dir, filename), "wb") as fh:
        fh.write(data)
    return UPLOAD_URL_PREFIX + filename


def delete_image(image_url: Optional[str], settings: Settings) -> None:
    if not image_url or not image_url.startswith(UPLOAD_URL_PREFIX):
        return
    path = os.path.join(settings.upload_dir, os.path.basename(image_url))
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception("Could not remove image %s", path)


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


def _find_product(db: Database, product_id: str) -> dict:
    oid = to_object_id(product_id)
    doc = db["product"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return doc


# --------- Products ---------

@router.get("/products")
def list_products(q: Optional[str] = Query(None, description="search query"),
                  category: Optional[str] = None, db: Database = Depends(get_db)):
    filt = {}
    if q:
        filt["$or"] = [
            {"name": {"$regex": re.escape(q), "$options": "i"}},
            {"description": {"$regex": re.escape(q), "$options": "i"}},
        ]
    if category:
        filt["category"] = category
    return [serialize_doc(d) for d in get_documents(db, "product", filt)]


@router.get("/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return serialize_doc(_find_product(db, product_id))


@router.post("/products", status_code=201, dependencies=[Depends(require_admin)])
def create_product(
    name: str = Form(...),
    category: str = Form(...),
    price: int = Form(..., ge=0),
    stock: int = Form(0, ge=0),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    product = Product(name=name, category=category, price=price, stock=stock, description=description)
    if _has_file(image):
        product.image_url = save_image(image, settings)
    try:
        inserted_id = create_document(db, "product", product)
    except Exception:
        delete_image(product.image_url, settings)
        raise
    logger.info("Product %s created (%s)", inserted_id, product.name)
    return serialize_doc(db["product"].find_one({"_id": to_object_id(inserted_id)}))


@router.put("/products/{product_id}", dependencies=[Depends(require_admin)])
def update_product(
    product_id: str,
    name: str = Form(...),
    category: str = Form(...),
    price: int = Form(..., ge=0),
    stock: int = Form(..., ge=0),
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    existing = _find_product(db, product_id)
    updates = Product(name=name, category=category, price=price, stock=stock,
                      description=description).model_dump(exclude={"image_url"})
    if _has_file(image):
        updates["image_url"] = save_image(image, settings)
    updates["updated_at"] = utcnow()
    try:
        doc = db["product"].find_one_and_update(
            {"_id": existing["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except Exception:
        delete_image(updates.get("image_url"), settings)
        raise
    if doc is None:
        delete_image(updates.get("image_url"), settings)
        raise HTTPException(status_code=404, detail="Product not found")
    if "image_url" in updates:
        delete_image(existing.get("image_url"), settings)
    logger.info("Product %s updated", product_id)
    return serialize_doc(doc)


@router.patch("/products/{product_id}/stock", dependencies=[Depends(require_admin)])
def update_stock(product_id: str, payload: StockUpdate, db: Database = Depends(get_db)):
    oid = to_object_id(product_id)
    doc = db["product"].find_one_and_update(
        {"_id": oid},
        {"$set": {"stock": payload.stock, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    ) if oid else None
    if doc is None:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Stock of %s set to %d", product_id, payload.stock)
    return serialize_doc(doc)


@router.delete("/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    oid = to_object_id(product_id)
    doc = db["product"].find_one_and_delete({"_id": oid}) if oid else None
    if doc is None:
        raise HTTPException(status_code=404, detail="Product not found")
    delete_image(doc.get("image_url"), settings)
    logger.info("Product %s deleted", product_id)
    return {"message": "Product deleted"}


# --------- Discounts ---------

@router.get("/discounts")
def list_discounts(db: Database = Depends(get_db)):
    return [serialize_doc(d) for d in get_documents(db, "discount", {"active": True})]


@router.post("/discounts", dependencies=[Depends(require_admin)])
def upsert_discount(payload: Discount, db: Database = Depends(get_db)):
    now = utcnow()
    doc = db["discount"].find_one_and_update(
        {"category": payload.category},
        {"$set": {**payload.model_dump(), "updated_at": now}, "$setOnInsert": {"created_at": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Discount for %s set to %s%% (active=%s)", payload.category, payload.percent, payload.active)
    return serialize_doc(doc)
