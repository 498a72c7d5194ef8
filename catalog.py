"""
Categories and products.

Slugs are unique per product; a clash is reported by the database as a
duplicate key and turned into a ConflictError here.
"""

import json
import logging
import re
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from database import PopulateDirective, RecordStore, is_duplicate_key
from errors import ConflictError, NotFoundError, ValidationError
from schemas import CategoryCreate, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

WITH_CATEGORY = [PopulateDirective(field="category_id", table="categories", alias="category")]


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")


def _decode_images(product: dict) -> dict:
    raw = product.get("images")
    if isinstance(raw, str):
        try:
            product["images"] = json.loads(raw)
        except ValueError:
            logger.warning("Product %s has malformed images", product.get("id"))
            product["images"] = []
    elif raw is None:
        product["images"] = []
    return product


# Categories

def add_category(store: RecordStore, payload: CategoryCreate) -> dict:
    category_id = str(uuid.uuid4())
    store.create("categories", {"id": category_id, **payload.model_dump()})
    logger.info("Category %s created", category_id)
    return store.fetch_one("categories", category_id)


def list_categories(store: RecordStore) -> List[dict]:
    categories = store.fetch_many("categories", order_by="name")
    for cat in categories:
        cat["productCount"] = store.count("products", {"category_id": cat["id"]})
    return categories


def get_category(store: RecordStore, category_id: str) -> dict:
    category = store.fetch_one("categories", category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def delete_category(store: RecordStore, category_id: str) -> None:
    # products keep their category_id; populating it yields None afterwards
    if not store.soft_delete_one("categories", category_id):
        raise NotFoundError("Category not found")
    logger.info("Category %s deleted", category_id)


# Products

def add_product(store: RecordStore, payload: ProductCreate) -> dict:
    if not store.fetch_one("categories", payload.category_id):
        raise ValidationError("Category not found")

    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise ValidationError("Product name must contain letters or digits")

    product_id = str(uuid.uuid4())
    data = payload.model_dump(exclude={"slug", "images"})
    data.update(id=product_id, slug=slug, images=json.dumps(payload.images))
    try:
        store.create("products", data)
    except IntegrityError as e:
        if is_duplicate_key(e):
            raise ConflictError("Slug already exists") from e
        raise
    logger.info("Product %s created (%s)", product_id, slug)
    return get_product(store, product_id)


def list_products(store: RecordStore, category_id: Optional[str] = None) -> List[dict]:
    conditions = {"category_id": category_id} if category_id else None
    products = store.fetch_many("products", conditions, populate=WITH_CATEGORY)
    return [_decode_images(p) for p in products]


def get_product(store: RecordStore, product_id: str) -> dict:
    product = store.fetch_one("products", product_id, populate=WITH_CATEGORY)
    if not product:
        raise NotFoundError("Product not found")
    return _decode_images(product)


def get_product_by_slug(store: RecordStore, slug: str) -> dict:
    product = store.fetch_one("products", {"slug": slug}, populate=WITH_CATEGORY)
    if not product:
        raise NotFoundError("Product not found")
    return _decode_images(product)


def update_product(store: RecordStore, product_id: str, payload: ProductUpdate) -> None:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "slug" in changes:
        changes["slug"] = slugify(changes["slug"])
        if not changes["slug"]:
            raise ValidationError("Slug must contain letters or digits")
    if "images" in changes:
        changes["images"] = json.dumps(changes["images"])
    if "category_id" in changes and not store.fetch_one("categories", changes["category_id"]):
        raise ValidationError("Category not found")
    try:
        updated = store.update_live("products", product_id, changes)
    except IntegrityError as e:
        if is_duplicate_key(e):
            raise ConflictError("Slug already exists") from e
        raise
    if not updated:
        raise NotFoundError("Product not found or already deleted")


def delete_product(store: RecordStore, product_id: str) -> None:
    if not store.soft_delete_one("products", product_id):
        raise NotFoundError("Product not found")
    logger.info("Product %s deleted", product_id)
