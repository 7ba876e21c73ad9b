import logging
from datetime import datetime
from numbers import Number

from bson import ObjectId
from flask import request, jsonify, current_app
from mongoengine import NotUniqueError, Q

from Models.orderModel import (
    Order, OrderItem, PaymentInfo, Recipient, ShippingAddress, Discounts,
    OrderStatus, build_history_entry
)
from Models.productModel import Product
from Models.userModel import User
from Utils.appError import AppError
from Utils.request_body import json_body
from Utils.auth_decorator import token_required, token_optional, roles_required, is_admin
from Utils.payment_gateway import PaymentVerificationError, normalize_payment

logger = logging.getLogger("orders")

DUPLICATE_ORDER_MESSAGE = "This order has already been processed."


# ============================
# Request parsing
# ============================
def _number(value, field):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (Number, str)):
        raise AppError(f"{field} must be a number.", 400)
    try:
        return float(value)
    except ValueError:
        raise AppError(f"{field} must be a number.", 400)


def _stripped(value):
    # Non-strings pass through so field validation can reject them
    return (value.strip() or None) if isinstance(value, str) else value


def _build_items(raw_items):
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise AppError(f"items[{index}] must be an object.", 400)
        product_id = raw.get("productId")
        if not product_id or not ObjectId.is_valid(str(product_id)):
            raise AppError(f"items[{index}].productId must be a valid id.", 400)
        items.append(OrderItem(
            product_id=ObjectId(str(product_id)),
            product_name=_stripped(raw.get("productName")),
            variant=raw.get("variant"),
            sku_id=raw.get("skuId"),
            quantity=raw.get("quantity"),
            unit_price=_number(raw.get("unitPrice"), f"items[{index}].unitPrice"),
            line_total=_number(raw.get("lineTotal"), f"items[{index}].lineTotal"),
        ))
    return items


def _embedded(cls, raw, mapping):
    raw = raw if isinstance(raw, dict) else {}
    values = {attr: raw.get(key) for key, attr in mapping.items()}
    return cls(**{k: _stripped(v) for k, v in values.items()})


def _validate_create_request(data):
    order_id = data.get("orderId")
    items = data.get("items")
    payment = data.get("payment")

    if not isinstance(order_id, str) or not order_id.strip() or not isinstance(items, list) or not items:
        raise AppError("orderId and at least one order item are required.", 400)

    user_id = data.get("userId")
    if user_id and not ObjectId.is_valid(str(user_id)):
        raise AppError("userId must be a valid id.", 400)

    if not isinstance(payment, dict) or not payment.get("transactionId"):
        raise AppError("payment.transactionId (imp_uid) is required to verify the payment.", 400)

    return order_id.strip(), items, payment


def _find_duplicate(order_id, transaction_id):
    """Advisory pre-insert lookup; the unique indexes are the real guard."""
    return Order.objects(Q(order_id=order_id) | Q(payment__transaction_id=transaction_id)).first()


def _lookup_order(identifier):
    """Business order id first, then the internal ObjectId."""
    order = Order.objects(order_id=identifier).first()
    if not order and ObjectId.is_valid(identifier):
        order = Order.objects(id=identifier).first()
    return order


def _actor(user):
    return str(user.id) if user else "system"


# ============================
# Create
# ============================
@token_optional
def create_order(user):
    data = json_body()
    order_id, raw_items, payment = _validate_create_request(data)
    transaction_id = str(payment["transactionId"]).strip()

    if user and not is_admin(user) and data.get("userId") and str(data["userId"]) != str(user.id):
        raise AppError("You cannot place an order for another user.", 403)

    grand_total = _number(data.get("grandTotal"), "grandTotal")
    client_amount = _number(payment.get("amount"), "payment.amount")
    expected_amount = grand_total if grand_total is not None else client_amount
    discounts = data.get("discounts") if isinstance(data.get("discounts"), dict) else {}

    order = Order(
        order_id=order_id,
        user=ObjectId(str(data["userId"])) if data.get("userId") else (user.id if user else None),
        status=OrderStatus.PENDING.value,
        items=_build_items(raw_items),
        # Provisional until the gateway answers
        payment=PaymentInfo(
            method=payment.get("method") or "card",
            amount=expected_amount or 0,
            transaction_id=transaction_id,
        ),
        recipient=_embedded(Recipient, data.get("recipient"), {"name": "name", "contactNumber": "contact_number"}),
        address=_embedded(ShippingAddress, data.get("address"), {
            "postalCode": "postal_code", "address1": "address1", "address2": "address2"
        }),
        delivery_message=data.get("deliveryMessage"),
        discounts=Discounts(
            coupon_code=discounts.get("couponCode"),
            coupon_discount=_number(discounts.get("couponDiscount"), "discounts.couponDiscount") or 0,
            used_points=_number(discounts.get("usedPoints"), "discounts.usedPoints") or 0,
        ),
        grand_total=expected_amount or 0,
        earned_points=_number(data.get("earnedPoints"), "earnedPoints") or 0,
        source=data.get("source") or "web",
        notes=data.get("notes"),
        ip_address=data.get("ipAddress") or request.remote_addr,
        user_agent=data.get("userAgent") or request.headers.get("User-Agent"),
    )
    # Reject malformed documents before spending a gateway round trip
    order.validate()

    if _find_duplicate(order_id, transaction_id):
        logger.warning(f"🔁 Duplicate order rejected before verification: {order_id} / {transaction_id}")
        raise AppError(DUPLICATE_ORDER_MESSAGE, 409)

    verifier = current_app.extensions["payment_verifier"]
    try:
        verified = verifier.verify(
            transaction_id,
            expected_amount=expected_amount,
            expected_order_id=order_id,
        )
    except PaymentVerificationError as e:
        logger.warning(f"💳 Payment verification failed for {order_id}: {e}")
        raise AppError(str(e) or "Payment verification failed.", 400)

    initial_status = OrderStatus.PAID.value if verified.get("status") == "paid" else OrderStatus.PENDING.value
    order.status = initial_status
    order.payment = PaymentInfo(**normalize_payment(verified, payment))
    order.grand_total = grand_total if grand_total is not None else verified.get("amount")
    order.history = [build_history_entry(initial_status, _actor(user))]

    try:
        order.save(force_insert=True)
    except NotUniqueError:
        # Lost the race against a concurrent submission of the same order
        logger.warning(f"🔁 Duplicate order rejected at insert: {order_id} / {transaction_id}")
        raise AppError(DUPLICATE_ORDER_MESSAGE, 409)

    logger.info(f"🧾 Order {order.order_id} created ({order.status}, {order.payment.amount}) by {_actor(user)}")

    if order.user:
        # The order is already stored; a scheduling failure must not change the response
        try:
            current_app.extensions["cart_reconciler"].submit(
                order.user, [item.to_json() for item in order.items], order_id=order.order_id
            )
        except Exception:
            logger.exception(f"🛒 Could not schedule cart reconciliation for order {order.order_id}")

    return jsonify({
        "success": True,
        "message": "Order created.",
        "data": order.to_json()
    }), 201


# ============================
# Read
# ============================
def _with_product_info(orders):
    """Join product summaries and buyer details into serialized orders."""
    product_ids = {item.product_id for order in orders for item in order.items}
    products = {p.id: p for p in Product.objects(id__in=list(product_ids))} if product_ids else {}
    user_ids = {order.user for order in orders if order.user}
    users = {u.id: u for u in User.objects(id__in=list(user_ids))} if user_ids else {}

    result = []
    for order in orders:
        body = order.to_json()
        for item, raw in zip(body["items"], order.items):
            product = products.get(raw.product_id)
            if product:
                item["product"] = product.to_summary()
                item["productImage"] = product.image
                item["productName"] = item["productName"] or product.name
        buyer = users.get(order.user)
        body["user"] = buyer.to_summary() if buyer else None
        result.append(body)
    return result


@token_required
def get_orders(user):
    status = request.args.get("status")
    query = {}

    if not is_admin(user):
        query["user"] = user.id
    elif request.args.get("userId"):
        user_id = request.args.get("userId")
        if not ObjectId.is_valid(user_id):
            raise AppError("userId must be a valid id.", 400)
        query["user"] = ObjectId(user_id)

    if status:
        query["status"] = status

    orders = list(Order.objects(**query).order_by("-order_date"))
    return jsonify({"success": True, "count": len(orders), "data": _with_product_info(orders)}), 200


@token_required
def get_order_by_id(user, order_id):
    order = _lookup_order(order_id)
    if not order or (not is_admin(user) and order.user != user.id):
        raise AppError("Order not found.", 404)
    return jsonify({"success": True, "data": _with_product_info([order])[0]}), 200


# ============================
# Status update (admin)
# ============================
@roles_required("admin")
def update_order_status(user, order_id):
    data = json_body()
    status = data.get("status")
    memo = data.get("memo")

    if not status:
        raise AppError("A new order status is required.", 400)
    if status not in OrderStatus.values():
        raise AppError(f"Invalid order status. Use one of: {', '.join(OrderStatus.values())}.", 400)

    order = _lookup_order(order_id)
    if not order:
        raise AppError("Order not found.", 404)

    now = datetime.utcnow()
    entry = build_history_entry(status, _actor(user), memo)
    updates = {"set__status": status, "set__updated_at": now, "push__history": entry}

    updated = None
    if status == OrderStatus.PAID.value:
        # Stamp paid_at only while it is still empty, within the same update
        updated = Order.objects(id=order.id, payment__paid_at=None).modify(
            new=True, set__payment__paid_at=now, **updates
        )
    if updated is None:
        updated = Order.objects(id=order.id).modify(new=True, **updates)
    if updated is None:
        raise AppError("Order not found.", 404)

    logger.info(f"📦 Order {updated.order_id} status {order.status} → {status} by {_actor(user)}")
    return jsonify({
        "success": True,
        "message": "Order status updated.",
        "data": updated.to_json()
    }), 200
