from mongoengine import (
    Document, EmbeddedDocument, EmbeddedDocumentField, EmbeddedDocumentListField,
    StringField, IntField, FloatField, DateTimeField, ObjectIdField, ValidationError
)
from datetime import datetime
from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls):
        return [e.value for e in cls]


def _iso(value):
    return value.isoformat() if value else None


# =====================================
#  EMBEDDED DOCUMENTS
# =====================================
class OrderItem(EmbeddedDocument):
    product_id = ObjectIdField(required=True)
    product_name = StringField(required=True, max_length=200)
    variant = StringField(max_length=100)
    sku_id = StringField(max_length=64)
    quantity = IntField(required=True, min_value=1)
    unit_price = FloatField(required=True, min_value=0)
    line_total = FloatField(required=True, min_value=0)

    def to_json(self) -> dict:
        return {
            'productId': str(self.product_id),
            'productName': self.product_name,
            'variant': self.variant,
            'skuId': self.sku_id,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'lineTotal': self.line_total,
        }


class PaymentInfo(EmbeddedDocument):
    method = StringField(required=True, max_length=50)
    amount = FloatField(required=True, min_value=0)
    paid_at = DateTimeField()
    transaction_id = StringField(max_length=100)

    def to_json(self) -> dict:
        return {
            'method': self.method,
            'amount': self.amount,
            'paidAt': _iso(self.paid_at),
            'transactionId': self.transaction_id,
        }


class Recipient(EmbeddedDocument):
    name = StringField(required=True, max_length=100)
    contact_number = StringField(required=True, max_length=30)

    def to_json(self) -> dict:
        return {'name': self.name, 'contactNumber': self.contact_number}


class ShippingAddress(EmbeddedDocument):
    postal_code = StringField(required=True, max_length=20)
    address1 = StringField(required=True, max_length=200)
    address2 = StringField(max_length=200)

    def to_json(self) -> dict:
        return {'postalCode': self.postal_code, 'address1': self.address1, 'address2': self.address2}


class DeliveryInfo(EmbeddedDocument):
    provider = StringField(max_length=100)
    tracking_number = StringField(max_length=100)
    shipped_date = DateTimeField()
    delivered_date = DateTimeField()

    def to_json(self) -> dict:
        return {
            'provider': self.provider,
            'trackingNumber': self.tracking_number,
            'shippedDate': _iso(self.shipped_date),
            'deliveredDate': _iso(self.delivered_date),
        }


class Discounts(EmbeddedDocument):
    coupon_code = StringField(max_length=50)
    coupon_discount = FloatField(min_value=0, default=0)
    used_points = FloatField(min_value=0, default=0)

    def to_json(self) -> dict:
        return {
            'couponCode': self.coupon_code,
            'couponDiscount': self.coupon_discount,
            'usedPoints': self.used_points,
        }


class OrderHistory(EmbeddedDocument):
    status = StringField(required=True)
    changed_at = DateTimeField(default=datetime.utcnow)
    changed_by = StringField(default="system")
    memo = StringField(max_length=500)

    def to_json(self) -> dict:
        return {
            'status': self.status,
            'changedAt': _iso(self.changed_at),
            'changedBy': self.changed_by,
            'memo': self.memo,
        }


def build_history_entry(status, changed_by="system", memo=None):
    return OrderHistory(
        status=status,
        changed_by=str(changed_by or "system"),
        memo=memo.strip() if isinstance(memo, str) and memo.strip() else None,
        changed_at=datetime.utcnow(),
    )


# =====================================
#  ORDER MODEL
# =====================================
class Order(Document):
    order_id = StringField(required=True, unique=True, max_length=100)
    user = ObjectIdField()
    status = StringField(choices=[(s, s) for s in OrderStatus.values()], default=OrderStatus.PENDING.value)
    order_date = DateTimeField(default=datetime.utcnow)
    items = EmbeddedDocumentListField(OrderItem, required=True)
    payment = EmbeddedDocumentField(PaymentInfo, required=True)
    recipient = EmbeddedDocumentField(Recipient, required=True)
    address = EmbeddedDocumentField(ShippingAddress, required=True)
    delivery_message = StringField(max_length=500)
    delivery = EmbeddedDocumentField(DeliveryInfo)
    discounts = EmbeddedDocumentField(Discounts, default=Discounts)
    grand_total = FloatField(required=True, min_value=0)
    earned_points = FloatField(min_value=0, default=0)
    history = EmbeddedDocumentListField(OrderHistory, default=list)
    notes = StringField(max_length=2000)
    source = StringField(max_length=50, default="web")
    ip_address = StringField(max_length=64)
    user_agent = StringField(max_length=512)
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'orders',
        'indexes': [
            {'fields': ['payment.transaction_id'], 'unique': True, 'sparse': True},
            ('user', '-order_date'),
            'status',
        ]
    }

    def clean(self):
        if self.order_id:
            self.order_id = self.order_id.strip()
        if not self.items:
            raise ValidationError(
                "An order needs at least one item.",
                errors={"items": "An order needs at least one item."}
            )

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super(Order, self).save(*args, **kwargs)

    def to_json(self) -> dict:
        return {
            'id': str(self.id),
            'orderId': self.order_id,
            'userId': str(self.user) if self.user else None,
            'status': self.status,
            'orderDate': _iso(self.order_date),
            'items': [item.to_json() for item in self.items],
            'payment': self.payment.to_json() if self.payment else None,
            'recipient': self.recipient.to_json() if self.recipient else None,
            'address': self.address.to_json() if self.address else None,
            'deliveryMessage': self.delivery_message,
            'delivery': self.delivery.to_json() if self.delivery else None,
            'discounts': self.discounts.to_json() if self.discounts else None,
            'grandTotal': self.grand_total,
            'earnedPoints': self.earned_points,
            'history': [entry.to_json() for entry in self.history],
            'notes': self.notes,
            'source': self.source,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
