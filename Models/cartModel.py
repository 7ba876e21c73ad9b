from mongoengine import (
    Document, EmbeddedDocument, EmbeddedDocumentListField, ObjectIdField,
    IntField, FloatField, BooleanField, StringField, DateTimeField
)
from datetime import datetime
from enum import Enum


class CartStatus(Enum):
    ACTIVE = "active"
    CONVERTED = "converted"


class CartItem(EmbeddedDocument):
    product = ObjectIdField(required=True)
    quantity = IntField(required=True, min_value=1, default=1)
    price_snapshot = FloatField(min_value=0, default=0)  # unit price when added
    checked = BooleanField(default=True)  # selected for checkout

    def to_json(self, products: dict | None = None) -> dict:
        product = (products or {}).get(self.product)
        return {
            'product': product.to_summary() if product else str(self.product),
            'productId': str(self.product),
            'quantity': self.quantity,
            'priceSnapshot': self.price_snapshot,
            'checked': self.checked,
        }


class Cart(Document):
    user = ObjectIdField(required=True, unique=True)
    items = EmbeddedDocumentListField(CartItem, default=list)
    status = StringField(choices=[(e.value, e.value) for e in CartStatus], default=CartStatus.ACTIVE.value)
    memo = StringField(max_length=500)
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'carts',
        'indexes': [('user', 'status')]
    }

    # =====================================
    #  DERIVED TOTALS
    # =====================================
    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> float:
        # Over every line, selected or not
        return sum((item.price_snapshot or 0) * item.quantity for item in self.items)

    @property
    def checked_amount(self) -> float:
        return sum((item.price_snapshot or 0) * item.quantity for item in self.items if item.checked)

    def find_item(self, product_id):
        for item in self.items:
            if item.product == product_id:
                return item
        return None

    def meta_totals(self) -> dict:
        return {
            'totalQuantity': self.total_quantity,
            'totalAmount': self.total_amount,
            'checkedAmount': self.checked_amount,
        }

    def to_json(self, products: dict | None = None) -> dict:
        return {
            'id': str(self.id),
            'user': str(self.user),
            'items': [item.to_json(products) for item in self.items],
            'status': self.status,
            'memo': self.memo,
            'totalQuantity': self.total_quantity,
            'totalAmount': self.total_amount,
            'checkedAmount': self.checked_amount,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
