import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List

from sqlalchemy.exc import IntegrityError

from catalog import slugify
from database import PopulateDirective, RecordStore, is_duplicate_key
from errors import ConflictError, NotFoundError, ValidationError
from orders import format_date
from schemas import BlogCreate, BlogUpdate

logger = logging.getLogger(__name__)

WITH_AUTHOR = [PopulateDirective(field="author_id", table="users", alias="author")]


def decode_tags(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return raw
    if not raw:
        return []
    try:
        tags = json.loads(raw)
        if isinstance(tags, list):
            return tags
    except ValueError:
        pass
    # older rows store "a, b, c"
    return [t.strip() for t in str(raw).split(",") if t.strip()]


def _author_name(blog: dict) -> str:
    author = blog.get("author")
    if not author:
        return "Unknown"
    return f"{author.get('firstName')} {author.get('lastName')}"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise ValidationError("Title must contain letters or digits")
    return slug


def _write(op, *args):
    # a soft-deleted post still holds its slug
    try:
        return op(*args)
    except IntegrityError as e:
        if is_duplicate_key(e):
            raise ConflictError("A blog post with this title already exists") from e
        raise


def create_blog(store: RecordStore, payload: BlogCreate, author_id: str) -> dict:
    slug = _slug_for(payload.title)
    if store.fetch_one("blogs", {"slug": slug}):
        raise ConflictError("A blog post with this title already exists")

    blog_id = str(uuid.uuid4())
    data = payload.model_dump(exclude={"tags"})
    data.update(
        id=blog_id,
        slug=slug,
        author_id=author_id,
        tags=json.dumps(payload.tags) if payload.tags else None,
        published_at=_now() if payload.status == "published" else None,
    )
    _write(store.create, "blogs", data)
    logger.info("Blog %s created (%s)", blog_id, slug)
    return {"id": blog_id, "slug": slug}


def list_blogs(store: RecordStore) -> List[dict]:
    blogs = store.fetch_many("blogs", populate=WITH_AUTHOR, order_by="created_at DESC")
    return [
        {
            "id": b["id"],
            "title": b["title"],
            "author": _author_name(b),
            "status": (b.get("status") or "").capitalize(),
            "date": format_date(b.get("created_at")),
            "views": b.get("views") or 0,
            "slug": b["slug"],
            "excerpt": b.get("excerpt"),
            "featured_image": b.get("featured_image"),
        }
        for b in blogs
    ]


def get_blog(store: RecordStore, blog_id: str) -> dict:
    blog = store.fetch_one("blogs", blog_id)
    if not blog:
        raise NotFoundError("Blog post not found")
    blog["tags"] = decode_tags(blog.get("tags"))
    return blog


def update_blog(store: RecordStore, blog_id: str, payload: BlogUpdate) -> None:
    blog = store.fetch_one("blogs", blog_id)
    if not blog:
        raise NotFoundError("Blog post not found")

    changes = payload.model_dump(exclude_unset=True)
    # NOT NULL columns; None means leave as is
    for key in ("title", "content", "status"):
        if changes.get(key) is None:
            changes.pop(key, None)
    if "title" in changes and changes["title"] != blog["title"]:
        slug = _slug_for(changes["title"])
        clash = store.fetch_one("blogs", {"slug": slug})
        if clash and clash["id"] != blog_id:
            raise ConflictError("A blog post with this title already exists")
        changes["slug"] = slug
    if "tags" in changes:
        changes["tags"] = json.dumps(changes["tags"]) if changes["tags"] is not None else None
    if changes.get("status") == "published" and blog.get("status") != "published":
        changes["published_at"] = _now()
    if not changes:
        raise ValidationError("No fields to update")

    _write(store.update_live, "blogs", blog_id, changes)


def delete_blog(store: RecordStore, blog_id: str) -> None:
    if not store.fetch_one("blogs", blog_id):
        raise NotFoundError("Blog post not found")
    store.soft_delete_one("blogs", blog_id)
    logger.info("Blog %s deleted", blog_id)


def list_published_blogs(store: RecordStore) -> List[dict]:
    blogs = store.fetch_many("blogs", {"status": "published"}, populate=WITH_AUTHOR,
                             order_by="published_at DESC")
    return [
        {
            "id": b["id"],
            "title": b["title"],
            "slug": b["slug"],
            "excerpt": b.get("excerpt"),
            "content": b.get("content"),
            "author": _author_name(b),
            "featured_image": b.get("featured_image"),
            "views": b.get("views") or 0,
            "published_at": b.get("published_at"),
            "tags": decode_tags(b.get("tags")),
        }
        for b in blogs
    ]


def get_published_blog_by_slug(store: RecordStore, slug: str) -> dict:
    blog = store.fetch_one("blogs", {"slug": slug, "status": "published"})
    if not blog:
        raise NotFoundError("Blog post not found")
    views = (blog.get("views") or 0) + 1
    store.update_live("blogs", blog["id"], {"views": views})
    blog["views"] = views
    blog["tags"] = decode_tags(blog.get("tags"))
    return blog
