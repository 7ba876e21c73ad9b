from mongoengine import Document, StringField, FloatField, DateTimeField
from datetime import datetime
from enum import Enum


class ProductCategory(Enum):
    TOP = "top"
    BOTTOM = "bottom"
    ACCESSORY = "accessory"
    SHOES = "shoes"


class Product(Document):
    sku = StringField(required=True, unique=True, max_length=64)
    name = StringField(required=True, max_length=200)
    price = FloatField(required=True, min_value=0)
    category = StringField(choices=[(e.value, e.value) for e in ProductCategory], required=True)
    image = StringField(required=True)
    description = StringField(max_length=2000)
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {
        'collection': 'products',
        'indexes': ['-created_at', 'category'],
        'ordering': ['-created_at']
    }

    def clean(self):
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.name:
            self.name = self.name.strip()
        if self.image:
            self.image = self.image.strip()
        if isinstance(self.description, str):
            self.description = self.description.strip()

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super(Product, self).save(*args, **kwargs)

    def to_json(self) -> dict:
        return {
            'id': str(self.id),
            'sku': self.sku,
            'name': self.name,
            'price': self.price,
            'category': self.category,
            'image': self.image,
            'description': self.description,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self) -> dict:
        """Fields joined into cart and order responses."""
        return {
            'id': str(self.id),
            'name': self.name,
            'price': self.price,
            'image': self.image,
            'sku': self.sku,
            'category': self.category,
        }
