import enum

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class TriState(str, enum.Enum):
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    items = relationship("PantryItem", back_populates="owner")


class PantryItem(Base):
    __tablename__ = "pantry_items"
    # merge key: one row per (owner, barcode, expiration date)
    __table_args__ = (
        UniqueConstraint("owner_username", "barcode", "expiration_date", name="uq_pantry_merge_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_username = Column(String(30), ForeignKey("users.username"), index=True, nullable=False)
    # "" when the user entered no barcode / no date
    barcode = Column(String(64), nullable=False, default="")
    product_name = Column(String(255), nullable=False)
    image_url = Column(String(512), nullable=False)
    eco_score = Column(String(50), nullable=False)
    expiration_date = Column(String(10), nullable=False, default="")
    co2_estimate = Column(String(50), nullable=False)
    has_palm_oil = Column(String(10), nullable=False, default=TriState.UNKNOWN.value)
    is_vegan = Column(String(10), nullable=False, default=TriState.UNKNOWN.value)
    quantity = Column(Integer, nullable=False, default=0)

    owner = relationship("User", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_username": self.owner_username,
            "barcode": self.barcode,
            "product_name": self.product_name,
            "image_url": self.image_url,
            "eco_score": self.eco_score,
            "expiration_date": self.expiration_date or None,
            "co2_estimate": self.co2_estimate,
            "has_palm_oil": self.has_palm_oil,
            "is_vegan": self.is_vegan,
            "quantity": self.quantity,
        }
