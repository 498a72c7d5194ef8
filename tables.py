"""
Table definitions.

Used to create the schema and as the identifier allow-list for RecordStore.
Related ids are plain columns (no FK constraints), so soft deletes never
cascade.
"""

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table, Text, func

from database import Database

_NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=_NAMING_CONVENTION)


def _common():
    return [
        Column("isDeleted", Integer, nullable=True, server_default="0"),
        Column("created_at", DateTime, nullable=False, server_default=func.now()),
        Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    ]


users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("firstName", String(100), nullable=False),
    Column("lastName", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("role", String(20), nullable=False, server_default="user"),
    *_common(),
)

categories = Table(
    "categories",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("image", String(500)),
    *_common(),
)

products = Table(
    "products",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("image", String(500)),
    Column("category_id", String(36), index=True),
    Column("details", Text),
    Column("images", Text),  # JSON list of urls
    Column("price", Float, nullable=False, server_default="0"),
    *_common(),
)

cart = Table(
    "cart",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("product_id", String(36), nullable=False),
    Column("quantity", Integer, nullable=False, server_default="1"),
    *_common(),
)

wishlist = Table(
    "wishlist",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("product_id", String(36), nullable=False),
    Column("note", Text),
    Column("priority", Integer),
    *_common(),
)

orders = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), index=True),
    Column("order_number", String(64), nullable=False, unique=True),
    Column("customer_name", String(255), nullable=False),
    Column("customer_email", String(255), nullable=False),
    Column("customer_phone", String(50)),
    Column("shipping_address", String(500)),
    Column("apartment", String(255)),
    Column("street", String(255)),
    Column("city", String(255)),
    Column("state", String(255)),
    Column("total_amount", Float, nullable=False, server_default="0"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("order_items", Text),  # JSON list of line items
    Column("notes", Text),
    *_common(),
)

blogs = Table(
    "blogs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("content", Text, nullable=False),
    Column("excerpt", Text),
    Column("author_id", String(36), index=True),
    Column("tags", Text),  # JSON list, older rows may hold "a, b"
    Column("featured_image", String(500)),
    Column("status", String(20), nullable=False, server_default="draft"),
    Column("meta_title", String(255)),
    Column("meta_description", String(500)),
    Column("views", Integer, nullable=False, server_default="0"),
    Column("published_at", DateTime),
    *_common(),
)


def create_tables(database: Database) -> None:
    """Create any missing tables. Safe to call repeatedly."""
    metadata.create_all(database.engine)
