"""
Checkout: validate a cart, price it, reserve stock and record the order.

The flow is split in two so that the race between validating a cart and
committing it stays visible:

* ``prepare_order`` reads products and discounts in one batch each, runs every
  validation step and freezes the priced lines into an ``OrderDraft``. It
  never writes.
* ``commit_order`` reserves stock with one conditional decrement per line,
  allocates an invoice code and inserts the order. Anything that fails after
  stock was reserved is compensated by putting the units back.
"""
import logging
import random
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import Settings
from database import create_document, to_object_id, utcnow
from errors import (
    InsufficientStock,
    InternalFailure,
    InvalidQuantity,
    InvalidRequest,
    ProductNotFound,
)
from pricing import discount_map, resolve_price
from schemas import CartItem, CustomerInfo, Order, OrderItem, OrderStatus

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"


@dataclass(frozen=True)
class OrderDraft:
    customer: CustomerInfo
    items: Tuple[OrderItem, ...]
    total: int


@dataclass(frozen=True)
class CheckoutResult:
    invoice_code: str
    order_id: str
    total: int


def generate_invoice_code(now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    return f"{INVOICE_PREFIX}-{now:%Y%m%d}-{random.randint(1000, 9999)}"


def _validate_request(customer: CustomerInfo, items: Sequence[CartItem]) -> None:
    if not items:
        raise InvalidRequest("No items to check out")
    if not (customer.name.strip() and customer.phone.strip() and customer.address.strip()):
        raise InvalidRequest("Customer details are incomplete")


def _load_products(db: Database, items: Sequence[CartItem]) -> Dict[str, dict]:
    ids = [oid for oid in (to_object_id(it.product_id) for it in items) if oid is not None]
    products = db["product"].find({"_id": {"$in": ids}}) if ids else []
    return {str(p["_id"]): p for p in products}


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def prepare_order(db: Database, customer: CustomerInfo, items: Sequence[CartItem]) -> OrderDraft:
    _validate_request(customer, items)

    products = _load_products(db, items)
    for it in items:
        if it.product_id not in products:
            raise ProductNotFound(it.product_id)

    for it in items:
        if not _is_positive_int(it.qty):
            raise InvalidQuantity(products[it.product_id]["name"])

    # the same product may appear on several lines
    requested: Dict[str, int] = OrderedDict()
    for it in items:
        requested[it.product_id] = requested.get(it.product_id, 0) + it.qty
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.get("stock", 0) < qty:
            raise InsufficientStock(product["name"], product.get("stock", 0), qty)

    discounts = discount_map(db["discount"].find({"active": True}))

    total = 0
    lines: List[OrderItem] = []
    for it in items:
        product = products[it.product_id]
        final_price, promo = resolve_price(product["price"], discounts.get(product["category"]))
        total += final_price * it.qty
        lines.append(OrderItem(
            product_id=it.product_id,
            name=product["name"],
            qty=it.qty,
            price=product["price"],
            final_price=final_price,
            promo_name=promo,
        ))

    return OrderDraft(customer=customer, items=tuple(lines), total=total)


def restock(db: Database, reserved: Sequence[Tuple[str, int]]) -> None:
    """Give back units taken by reserve_stock."""
    for product_id, qty in reserved:
        try:
            db["product"].update_one(
                {"_id": to_object_id(product_id)},
                {"$inc": {"stock": qty}, "$set": {"updated_at": utcnow()}},
            )
        except PyMongoError:
            logger.exception("Restock of %s x%d failed; manual correction needed", product_id, qty)
            raise
        logger.warning("Restocked %s x%d", product_id, qty)


def reserve_stock(db: Database, items: Sequence[OrderItem]) -> List[Tuple[str, int]]:
    """Atomically take stock for each line, all or nothing.

    Each decrement only matches while ``stock >= qty`` so concurrent checkouts
    can never drive a product negative. Returns the (product_id, qty) pairs taken.
    """
    reserved: List[Tuple[str, int]] = []
    for item in items:
        oid = to_object_id(item.product_id)
        try:
            updated = db["product"].find_one_and_update(
                {"_id": oid, "stock": {"$gte": item.qty}},
                {"$inc": {"stock": -item.qty}, "$set": {"updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            restock(db, reserved)
            raise InternalFailure("Failed to update stock") from exc
        if updated is None:
            restock(db, reserved)
            current = db["product"].find_one({"_id": oid}, {"stock": 1})
            available = current.get("stock", 0) if current else 0
            raise InsufficientStock(item.name, available, item.qty)
        reserved.append((item.product_id, item.qty))
    return reserved


def _insert_order(db: Database, draft: OrderDraft, max_attempts: int) -> Tuple[str, str]:
    for _ in range(max_attempts):
        code = generate_invoice_code()
        if db["order"].find_one({"invoice_code": code}, {"_id": 1}):
            continue
        order = Order(
            invoice_code=code,
            items=list(draft.items),
            total=draft.total,
            customer=draft.customer,
            status=OrderStatus.PROCESSING,
        )
        try:
            order_id = create_document(db, "order", order)
        except DuplicateKeyError:
            continue
        return code, order_id
    raise InternalFailure("Could not allocate a unique invoice code")


def commit_order(db: Database, draft: OrderDraft, settings: Settings) -> CheckoutResult:
    reserved = reserve_stock(db, draft.items)
    try:
        code, order_id = _insert_order(db, draft, settings.invoice_max_attempts)
    except InternalFailure:
        restock(db, reserved)
        raise
    except PyMongoError as exc:
        logger.exception("Saving order failed")
        restock(db, reserved)
        raise InternalFailure("Failed to process checkout") from exc
    return CheckoutResult(invoice_code=code, order_id=order_id, total=draft.total)


def checkout(db: Database, customer: CustomerInfo, items: Sequence[CartItem],
             settings: Settings) -> CheckoutResult:
    draft = prepare_order(db, customer, items)
    result = commit_order(db, draft, settings)
    logger.info("Checkout %s: %d line(s), total %d", result.invoice_code, len(draft.items), result.total)
    return result
