import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import get_db, get_settings, require_admin
from checkout import checkout
from config import Settings
from database import get_documents, serialize_doc, to_object_id, utcnow
from errors import InvalidRequest
from schemas import CheckoutRequest, OrderStatus, OrderStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


def _order_filter(order_id: str) -> dict:
    oid = to_object_id(order_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"_id": oid}


# --------- Checkout ---------

@router.post("/checkout")
def create_checkout(payload: CheckoutRequest, db: Database = Depends(get_db),
                    settings: Settings = Depends(get_settings)):
    result = checkout(db, payload.customer, payload.items, settings)
    return {
        "success": True,
        "message": "Checkout successful, stock updated",
        "invoiceCode": result.invoice_code,
    }


# --------- Orders (admin) ---------

@router.get("/orders", dependencies=[Depends(require_admin)])
def list_orders(status: Optional[str] = None, db: Database = Depends(get_db)):
    filt = {}
    if status:
        filt["status"] = status
    return [serialize_doc(d) for d in get_documents(db, "order", filt)]


@router.get("/orders/invoice/{invoice_code}", dependencies=[Depends(require_admin)])
def get_order_by_invoice(invoice_code: str, db: Database = Depends(get_db)):
    doc = db["order"].find_one({"invoice_code": invoice_code})
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    return serialize_doc(doc)


@router.get("/orders/{order_id}", dependencies=[Depends(require_admin)])
def get_order(order_id: str, db: Database = Depends(get_db)):
    doc = db["order"].find_one(_order_filter(order_id))
    if not doc:
        raise HTTPException(status_code=404, detail="Order not found")
    return serialize_doc(doc)


@router.patch("/orders/{order_id}/status", dependencies=[Depends(require_admin)])
def update_order_status(order_id: str, payload: OrderStatusUpdate, db: Database = Depends(get_db)):
    if payload.status not in {s.value for s in OrderStatus}:
        raise InvalidRequest("Invalid status")
    doc = db["order"].find_one_and_update(
        _order_filter(order_id),
        {"$set": {"status": payload.status, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info("Order %s -> %s", doc["invoice_code"], payload.status)
    return serialize_doc(doc)


@router.delete("/orders/{order_id}", dependencies=[Depends(require_admin)])
def delete_order(order_id: str, db: Database = Depends(get_db)):
    res = db["order"].delete_one(_order_filter(order_id))
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info("Order %s deleted", order_id)
    return {"message": "Order deleted"}
