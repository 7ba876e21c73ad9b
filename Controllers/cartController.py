import logging
from datetime import datetime
from numbers import Number

from bson import ObjectId
from flask import jsonify
from mongoengine import NotUniqueError

from Models.cartModel import Cart, CartStatus
from Models.productModel import Product
from Utils.appError import AppError
from Utils.request_body import json_body
from Utils.auth_decorator import token_required

logger = logging.getLogger(__name__)


# ============================
# Helpers
# ============================
def ensure_cart(user_id):
    """Fetch the user's cart, creating an empty active one on first access."""
    try:
        return Cart.objects(user=user_id).modify(
            upsert=True,
            new=True,
            set_on_insert__status=CartStatus.ACTIVE.value,
            set_on_insert__created_at=datetime.utcnow(),
            set_on_insert__updated_at=datetime.utcnow(),
        )
    except NotUniqueError:
        # A concurrent request created it first
        return Cart.objects.get(user=user_id)


def _cart_response(cart, message=None, status_code=200):
    product_ids = [item.product for item in cart.items]
    products = {p.id: p for p in Product.objects(id__in=product_ids)} if product_ids else {}
    body = {
        "success": True,
        "data": cart.to_json(products),
        "meta": cart.meta_totals(),
    }
    if message:
        body["message"] = message
    return jsonify(body), status_code


def _product_id(raw):
    if not raw or not ObjectId.is_valid(str(raw)):
        raise AppError("A valid product id is required.", 400)
    return ObjectId(str(raw))


def _number(value, field, allow_none=True):
    if value is None and allow_none:
        return None
    if isinstance(value, bool) or not isinstance(value, Number):
        raise AppError(f"{field} must be a number.", 400)
    return value


def _collection():
    return Cart._get_collection()


def _reload(cart):
    return Cart.objects.get(id=cart.id)


# ============================
# GET /api/cart
# ============================
@token_required
def get_cart(user):
    cart = ensure_cart(user.id)
    return _cart_response(cart)


# ============================
# POST /api/cart/items
# ============================
@token_required
def add_item(user):
    data = json_body()
    product_id = _product_id(data.get("productId"))
    quantity = _number(data.get("quantity", 1), "quantity", allow_none=False)
    price_snapshot = _number(data.get("priceSnapshot"), "priceSnapshot")
    checked = data.get("checked")

    if quantity <= 0 or int(quantity) != quantity:
        raise AppError("Quantity must be a whole number of at least 1.", 400)
    quantity = int(quantity)
    if price_snapshot is not None and price_snapshot < 0:
        raise AppError("priceSnapshot must be 0 or more.", 400)

    product = Product.objects(id=product_id).first()
    if not product:
        raise AppError("Product not found.", 404)

    cart = ensure_cart(user.id)
    now = datetime.utcnow()

    merge = {"$inc": {"items.$.quantity": quantity}, "$set": {"updated_at": now}}
    if checked is not None:
        merge["$set"]["items.$.checked"] = bool(checked)
    if price_snapshot is not None:
        merge["$set"]["items.$.price_snapshot"] = price_snapshot

    # Merge into an existing line, else append one; retry once if a
    # concurrent request appended the same product in between.
    for _ in range(2):
        result = _collection().update_one({"_id": cart.id, "items.product": product_id}, merge)
        if result.matched_count:
            if price_snapshot is None:
                # Lines saved without a unit price pick up the catalog price
                _collection().update_one(
                    {"_id": cart.id, "items": {"$elemMatch": {"product": product_id, "price_snapshot": {"$in": [None, 0]}}}},
                    {"$set": {"items.$.price_snapshot": product.price}},
                )
            break
        result = _collection().update_one(
            {"_id": cart.id, "items.product": {"$ne": product_id}},
            {
                "$push": {"items": {
                    "product": product_id,
                    "quantity": quantity,
                    "price_snapshot": price_snapshot if price_snapshot is not None else product.price,
                    "checked": bool(checked) if checked is not None else True,
                }},
                "$set": {"updated_at": now},
            },
        )
        if result.matched_count:
            break

    cart = _reload(cart)
    logger.info(f"🛒 {user.email} added {quantity} x {product.sku}")
    return _cart_response(cart, "Item added to cart.", 201)


# ============================
# PATCH /api/cart/items/<product_id>
# ============================
@token_required
def update_item(user, product_id):
    product_id = _product_id(product_id)
    data = json_body()
    quantity = _number(data.get("quantity"), "quantity")
    price_snapshot = _number(data.get("priceSnapshot"), "priceSnapshot")
    checked = data.get("checked")

    if price_snapshot is not None and price_snapshot < 0:
        raise AppError("priceSnapshot must be 0 or more.", 400)
    if quantity is not None and quantity > 0 and int(quantity) != quantity:
        raise AppError("Quantity must be a whole number.", 400)

    cart = ensure_cart(user.id)
    if not cart.find_item(product_id):
        raise AppError("That product is not in the cart.", 404)

    now = datetime.utcnow()
    if quantity is not None and quantity <= 0:
        # Zero or less removes the line
        result = _collection().update_one(
            {"_id": cart.id, "items.product": product_id},
            {"$pull": {"items": {"product": product_id}}, "$set": {"updated_at": now}},
        )
        if not result.matched_count:
            raise AppError("That product is not in the cart.", 404)
        return _cart_response(_reload(cart), "Cart item updated.")

    updates = {"updated_at": now}
    if quantity is not None:
        updates["items.$.quantity"] = int(quantity)
    if checked is not None:
        updates["items.$.checked"] = bool(checked)
    if price_snapshot is not None:
        updates["items.$.price_snapshot"] = price_snapshot

    result = _collection().update_one({"_id": cart.id, "items.product": product_id}, {"$set": updates})
    if not result.matched_count:
        raise AppError("That product is not in the cart.", 404)

    return _cart_response(_reload(cart), "Cart item updated.")


# ============================
# DELETE /api/cart/items/<product_id>
# ============================
@token_required
def remove_item(user, product_id):
    product_id = _product_id(product_id)
    cart = ensure_cart(user.id)

    result = _collection().update_one(
        {"_id": cart.id, "items.product": product_id},
        {"$pull": {"items": {"product": product_id}}, "$set": {"updated_at": datetime.utcnow()}},
    )
    if not result.matched_count:
        raise AppError("That product is not in the cart.", 404)

    return _cart_response(_reload(cart), "Item removed from cart.")


# ============================
# DELETE /api/cart
# ============================
@token_required
def clear_cart(user):
    cart = ensure_cart(user.id)
    _collection().update_one(
        {"_id": cart.id},
        {
            "$set": {"items": [], "status": CartStatus.ACTIVE.value, "updated_at": datetime.utcnow()},
            "$unset": {"memo": ""},
        },
    )
    return _cart_response(_reload(cart), "Cart cleared.")
