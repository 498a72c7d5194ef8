import pydantic
import pytest

import catalog
from errors import ConflictError, NotFoundError, ValidationError
from schemas import CategoryCreate, ProductCreate, ProductUpdate


@pytest.mark.parametrize("text,slug", [
    ("Oak Chair", "oak-chair"),
    ("  Big -- Red   Sofa!! ", "big-red-sofa"),
    ("Café 2000", "caf-2000"),
    ("!!!", ""),
])
def test_slugify(text, slug):
    assert catalog.slugify(text) == slug


def test_add_product_generates_slug_and_populates_category(product, category):
    assert product["slug"] == "oak-chair"
    assert product["price"] == 49.5
    assert product["images"] == []
    assert product["category"]["id"] == category["id"]
    assert "category_id" not in product


def test_add_product_requires_live_category(store, category):
    catalog.delete_category(store, category["id"])
    with pytest.raises(ValidationError):
        catalog.add_product(store, ProductCreate(name="Stool", category_id=category["id"]))


def test_same_generated_slug_is_a_conflict(store, category, product):
    with pytest.raises(ConflictError) as excinfo:
        catalog.add_product(store, ProductCreate(name="oak  chair!", category_id=category["id"]))
    assert excinfo.value.message == "Slug already exists"
    assert len(catalog.list_products(store)) == 1


def test_slug_stays_taken_after_soft_delete(store, category, product):
    catalog.delete_product(store, product["id"])
    with pytest.raises(ConflictError):
        catalog.add_product(store, ProductCreate(name="Oak Chair", category_id=category["id"]))


def test_product_lookups(store, category, product):
    assert catalog.get_product(store, product["id"])["name"] == "Oak Chair"
    assert catalog.get_product_by_slug(store, "oak-chair")["id"] == product["id"]
    assert [p["id"] for p in catalog.list_products(store, category_id=category["id"])] == [product["id"]]
    assert catalog.list_products(store, category_id="other") == []
    with pytest.raises(NotFoundError):
        catalog.get_product_by_slug(store, "missing")


def test_images_round_trip(store, category):
    p = catalog.add_product(store, ProductCreate(name="Lamp", category_id=category["id"], images=["a.png", "b.png"]))
    assert p["images"] == ["a.png", "b.png"]


def test_update_product(store, product):
    catalog.update_product(store, product["id"], ProductUpdate(price=55, details="Solid oak"))
    p = catalog.get_product(store, product["id"])
    assert (p["price"], p["details"]) == (55, "Solid oak")


def test_update_product_rejects_blank_slug(store, product):
    with pytest.raises(ValidationError):
        catalog.update_product(store, product["id"], ProductUpdate(slug="!!!"))
    assert catalog.get_product(store, product["id"])["slug"] == "oak-chair"

    catalog.update_product(store, product["id"], ProductUpdate(slug="Oak Chair II"))
    assert catalog.get_product(store, product["id"])["slug"] == "oak-chair-ii"


def test_update_payload_rejects_blank_text():
    with pytest.raises(pydantic.ValidationError):
        ProductUpdate(name="")
    with pytest.raises(pydantic.ValidationError):
        ProductUpdate(category_id="")


def test_update_product_rejects_empty_and_deleted(store, product):
    with pytest.raises(ValidationError):
        catalog.update_product(store, product["id"], ProductUpdate())
    catalog.delete_product(store, product["id"])
    with pytest.raises(NotFoundError):
        catalog.update_product(store, product["id"], ProductUpdate(price=1))


def test_delete_product(store, product):
    catalog.delete_product(store, product["id"])
    with pytest.raises(NotFoundError):
        catalog.get_product(store, product["id"])
    with pytest.raises(NotFoundError):
        catalog.delete_product(store, "missing")


def test_list_categories_counts_live_products(store, category, product):
    other = catalog.add_product(store, ProductCreate(name="Pine Chair", category_id=category["id"]))
    catalog.delete_product(store, other["id"])
    catalog.add_category(store, CategoryCreate(name="Beds"))

    counts = {c["name"]: c["productCount"] for c in catalog.list_categories(store)}
    assert counts == {"Beds": 0, "Chairs": 1}


def test_deleting_category_does_not_cascade(store, category, product):
    catalog.delete_category(store, category["id"])

    p = catalog.get_product(store, product["id"])
    assert p["category"] is None
    assert [c["id"] for c in catalog.list_categories(store)] == []
    with pytest.raises(NotFoundError):
        catalog.get_category(store, category["id"])


def test_delete_missing_category(store):
    with pytest.raises(NotFoundError):
        catalog.delete_category(store, "missing")
