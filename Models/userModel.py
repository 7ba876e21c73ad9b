from mongoengine import (
    Document, EmailField, StringField, DateTimeField, EnumField, ValidationError
)
from bcrypt import hashpw, gensalt, checkpw
from datetime import datetime
from enum import Enum

MIN_PASSWORD_LENGTH = 6
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


# =====================================
#  ROLE ENUM
# =====================================
class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


# =====================================
#  USER MODEL
# =====================================
class User(Document):
    email = EmailField(required=True, unique=True)
    name = StringField(required=True, max_length=100)
    password = StringField(required=True)
    role = EnumField(Role, default=Role.CUSTOMER)
    address = StringField(max_length=300)
    created_at = DateTimeField(default=datetime.utcnow)
    updated_at = DateTimeField(default=datetime.utcnow)

    meta = {'collection': 'users'}

    def clean(self):
        """Validate and normalize user input before saving."""
        if self.email:
            self.email = self.email.strip().lower()
        if self.name:
            self.name = self.name.strip()
        if self.address:
            self.address = self.address.strip()

        if self.password and not self.password.startswith(BCRYPT_PREFIXES):
            if len(self.password) < MIN_PASSWORD_LENGTH:
                raise ValidationError(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
                    errors={"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters."}
                )

    # =====================================
    #  SAVE OVERRIDE
    # =====================================
    def save(self, *args, **kwargs):
        """Hash the password when it changed and bump the update stamp."""
        self.clean()

        if self.password and not self.password.startswith(BCRYPT_PREFIXES):
            self.password = User.hash_password(self.password)

        self.updated_at = datetime.utcnow()
        return super(User, self).save(*args, **kwargs)

    # =====================================
    #  PASSWORD HELPERS
    # =====================================
    def correct_password(self, candidate_password: str) -> bool:
        """Check if provided password matches the stored hash."""
        if not candidate_password or not self.password:
            return False
        return checkpw(candidate_password.encode('utf-8'), self.password.encode('utf-8'))

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return hashpw(password.encode('utf-8'), gensalt(10)).decode('utf-8')

    @property
    def role_value(self) -> str:
        return self.role.value if isinstance(self.role, Role) else self.role

    # =====================================
    #  JSON SERIALIZER
    # =====================================
    def to_json(self) -> dict:
        """Convert user document to JSON-friendly dict (password excluded)."""
        return {
            'id': str(self.id),
            'email': self.email,
            'name': self.name,
            'role': self.role_value,
            'address': self.address or '',
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self) -> dict:
        return {'id': str(self.id), 'name': self.name, 'email': self.email}
