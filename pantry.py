"""
Pantry storage: the atomic upsert used when a product is scanned, plus the
list / get / update / delete operations behind the dashboard.
"""

import logging

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import Conflict, FieldError, NotFound, StorageError, ValidationError
from models import PantryItem
from normalizer import ProductRecord, normalize
from schemas import MAX_QUANTITY, UpdateItemForm, parse_form

logger = logging.getLogger(__name__)

MERGE_KEY = ("owner_username", "barcode", "expiration_date")
REFRESHED_FIELDS = ("product_name", "image_url", "eco_score", "co2_estimate", "has_palm_oil", "is_vegan")

_ON_CONFLICT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _quantity_delta(value):
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError([FieldError("quantity", "Quantity must be a whole number")])
    if value < 0:
        raise ValidationError([FieldError("quantity", "Quantity cannot be negative")])
    if value > MAX_QUANTITY:
        raise ValidationError([FieldError("quantity", "Quantity is too large")])
    return value


def _upsert_statement(dialect_name, values):
    table = PantryItem.__table__

    if dialect_name in _ON_CONFLICT_INSERTS:
        stmt = _ON_CONFLICT_INSERTS[dialect_name](table).values(**values)
        updates = {name: stmt.excluded[name] for name in REFRESHED_FIELDS}
        updates["quantity"] = table.c.quantity + stmt.excluded.quantity
        return stmt.on_conflict_do_update(index_elements=list(MERGE_KEY), set_=updates)

    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(**values)
        updates = {name: stmt.inserted[name] for name in REFRESHED_FIELDS}
        updates["quantity"] = table.c.quantity + stmt.inserted.quantity
        return stmt.on_duplicate_key_update(**updates)

    raise StorageError(f"atomic upsert is not supported on {dialect_name}")


# ------------------------------------------------------------
# Upsert
# ------------------------------------------------------------

def upsert(db: Session, owner, barcode, expiration_date, quantity_delta, record: ProductRecord):
    """Insert the product for (owner, barcode, expiration_date) or merge into the existing row.

    Descriptive fields are replaced with ``record``; quantity is incremented
    server-side in the same statement, so concurrent scans of the same key
    never overwrite each other.
    """
    values = {
        "owner_username": owner,
        "barcode": barcode or "",
        "expiration_date": expiration_date or "",
        "product_name": record.product_name,
        "image_url": record.image_url,
        "eco_score": record.eco_score,
        "co2_estimate": record.co2_estimate,
        "has_palm_oil": record.has_palm_oil.value,
        "is_vegan": record.is_vegan.value,
        "quantity": _quantity_delta(quantity_delta),
    }
    stmt = _upsert_statement(db.get_bind().dialect.name, values)
    try:
        db.execute(stmt)
        db.commit()
    except (SQLAlchemyError, OverflowError) as exc:
        db.rollback()
        logger.exception("Upsert failed for %s / %s / %s", owner, values["barcode"], values["expiration_date"])
        raise StorageError(f"could not store pantry item: {exc}") from exc

    logger.info(
        "Upserted %s x%d for %s (expires %s)",
        values["barcode"] or "<no barcode>", values["quantity"], owner, values["expiration_date"] or "-",
    )


def add_product(db: Session, client, owner, barcode=None, expiration_date=None, quantity=None):
    """Look the barcode up, normalize the result and merge it into the owner's pantry."""
    lookup_result = client.lookup(barcode) if barcode else None
    record = normalize(barcode, lookup_result)
    upsert(db, owner, record.barcode, expiration_date, quantity, record)
    return record


# ------------------------------------------------------------
# Inventory CRUD
# ------------------------------------------------------------

def list_items(db: Session, owner):
    return (
        db.query(PantryItem)
        .filter(PantryItem.owner_username == owner)
        .order_by(PantryItem.id)
        .all()
    )


def get_item(db: Session, item_id, owner=None):
    query = db.query(PantryItem).filter(PantryItem.id == item_id)
    if owner is not None:
        query = query.filter(PantryItem.owner_username == owner)
    item = query.first()
    if item is None:
        raise NotFound([FieldError("id", "Item not found")])
    return item


def update_item(db: Session, item_id, product_name, quantity, expiration_date, image_url=None, owner=None):
    """Overwrite name, quantity and date; the image only changes when a non-blank one is given."""
    form = parse_form(
        UpdateItemForm,
        {
            "product_name": product_name,
            "quantity": quantity,
            "expiration_date": expiration_date,
            "image_url": image_url,
        },
    )
    item = get_item(db, item_id, owner=owner)

    item.product_name = form.product_name
    item.quantity = form.quantity
    item.expiration_date = form.expiration_date
    if form.image_url:
        item.image_url = form.image_url

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict([FieldError("expiration_date", "This product with that expiration date is already in your pantry")])
    except (SQLAlchemyError, OverflowError) as exc:
        db.rollback()
        logger.exception("Update failed for item %s", item_id)
        raise StorageError(f"could not update pantry item: {exc}") from exc

    logger.info('Your product "%s" has been successfully updated', form.product_name)
    return item


def delete_item(db: Session, item_id, owner=None):
    """Delete by id; a missing row is not an error."""
    query = db.query(PantryItem).filter(PantryItem.id == item_id)
    if owner is not None:
        query = query.filter(PantryItem.owner_username == owner)
    try:
        deleted = query.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Delete failed for item %s", item_id)
        raise StorageError(f"could not delete pantry item: {exc}") from exc
    if not deleted:
        logger.debug("Delete of item %s matched no row", item_id)
