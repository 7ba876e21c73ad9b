import logging
import math

from bson import ObjectId
from flask import request, jsonify
from mongoengine import Q, NotUniqueError

from Models.productModel import Product
from Utils.appError import AppError
from Utils.request_body import json_body
from Utils.auth_decorator import roles_required

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("sku", "name", "price", "category", "image")
EDITABLE_FIELDS = ("sku", "name", "price", "category", "image", "description")
DUPLICATE_SKU_MESSAGE = "A product with this SKU already exists."


def _positive_int(value, default):
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return default


def _get_product_or_404(product_id):
    if not ObjectId.is_valid(product_id):
        raise AppError("Product not found.", 404)
    product = Product.objects(id=product_id).first()
    if not product:
        raise AppError("Product not found.", 404)
    return product


def _sku_taken(sku, exclude_id=None):
    query = Product.objects(sku=sku.strip().upper())
    if exclude_id:
        query = query.filter(id__ne=exclude_id)
    return query.first() is not None


# =============================
# Public catalog
# =============================
def get_products():
    page = _positive_int(request.args.get("page"), 1)
    limit = _positive_int(request.args.get("limit"), 12)
    keyword = (request.args.get("keyword") or "").strip()

    query = Product.objects
    if keyword:
        query = query.filter(
            Q(name__icontains=keyword) | Q(sku__icontains=keyword) | Q(category__icontains=keyword)
        )

    total = query.count()
    products = list(query.order_by("-created_at").skip((page - 1) * limit).limit(limit))
    total_pages = max(math.ceil(total / limit), 1)

    return jsonify({
        "success": True,
        "pagination": {
            "page": page,
            "limit": limit,
            "totalPages": total_pages,
            "totalItems": total,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
            "keyword": keyword or None,
        },
        "count": len(products),
        "data": [p.to_json() for p in products],
    }), 200


def get_product(product_id):
    product = _get_product_or_404(product_id)
    return jsonify({"success": True, "data": product.to_json()}), 200


# =============================
# Admin management
# =============================
@roles_required("admin")
def create_product(user):
    data = json_body()
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise AppError(f"Missing required fields: {', '.join(missing)}.", 400)

    if _sku_taken(str(data["sku"])):
        raise AppError(DUPLICATE_SKU_MESSAGE, 409)

    product = Product(**{f: data.get(f) for f in EDITABLE_FIELDS})
    try:
        product.save()
    except NotUniqueError:
        raise AppError(DUPLICATE_SKU_MESSAGE, 409)

    logger.info(f"🏷️ Product {product.sku} created by {user.email}")
    return jsonify({
        "success": True,
        "message": "Product created.",
        "data": product.to_json()
    }), 201


@roles_required("admin")
def update_product(user, product_id):
    product = _get_product_or_404(product_id)
    data = json_body()

    if data.get("sku") and _sku_taken(str(data["sku"]), exclude_id=product.id):
        raise AppError(DUPLICATE_SKU_MESSAGE, 409)

    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(product, field, data[field])

    try:
        product.save()
    except NotUniqueError:
        raise AppError(DUPLICATE_SKU_MESSAGE, 409)

    logger.info(f"🏷️ Product {product.sku} updated by {user.email}")
    return jsonify({
        "success": True,
        "message": "Product updated.",
        "data": product.to_json()
    }), 200


@roles_required("admin")
def delete_product(user, product_id):
    product = _get_product_or_404(product_id)
    summary = {"id": str(product.id), "sku": product.sku, "name": product.name}
    product.delete()

    logger.info(f"🗑️ Product {summary['sku']} deleted by {user.email}")
    return jsonify({
        "success": True,
        "message": "Product deleted.",
        "data": summary
    }), 200
