import pydantic
import pytest

import blogs
from errors import ConflictError, NotFoundError, ValidationError
from schemas import BlogCreate, BlogUpdate

AUTHOR = "author-1"


@pytest.fixture
def author(store):
    store.create("users", {
        "id": AUTHOR, "firstName": "Grace", "lastName": "Hopper",
        "email": "grace@example.com", "password": "hash", "role": "admin",
    })


def test_create_blog_slugs_title(store, author):
    created = blogs.create_blog(store, BlogCreate(title="Caring for Oak!", content="Oil it."), AUTHOR)
    assert created["slug"] == "caring-for-oak"

    blog = blogs.get_blog(store, created["id"])
    assert blog["status"] == "draft"
    assert blog["published_at"] is None
    assert blog["tags"] == []


def test_duplicate_title_conflicts(store, author):
    blogs.create_blog(store, BlogCreate(title="Hello", content="x"), AUTHOR)
    with pytest.raises(ConflictError):
        blogs.create_blog(store, BlogCreate(title="hello!", content="y"), AUTHOR)


def test_title_of_deleted_blog_still_conflicts(store, author):
    created = blogs.create_blog(store, BlogCreate(title="Hello", content="x"), AUTHOR)
    blogs.delete_blog(store, created["id"])
    with pytest.raises(ConflictError):
        blogs.create_blog(store, BlogCreate(title="Hello", content="y"), AUTHOR)


def test_list_blogs_shows_author(store, author):
    blogs.create_blog(store, BlogCreate(title="One", content="x"), AUTHOR)
    blogs.create_blog(store, BlogCreate(title="Two", content="x"), "ghost")

    listed = {b["title"]: b for b in blogs.list_blogs(store)}
    assert listed["One"]["author"] == "Grace Hopper"
    assert listed["Two"]["author"] == "Unknown"
    assert listed["One"]["status"] == "Draft"
    assert listed["One"]["views"] == 0


def test_update_blog_renames_and_publishes(store, author):
    first = blogs.create_blog(store, BlogCreate(title="First", content="x"), AUTHOR)
    blogs.create_blog(store, BlogCreate(title="Second", content="x"), AUTHOR)

    with pytest.raises(ConflictError):
        blogs.update_blog(store, first["id"], BlogUpdate(title="Second"))

    blogs.update_blog(store, first["id"], BlogUpdate(title="First, revised", status="published", tags=["wood"]))
    blog = blogs.get_blog(store, first["id"])
    assert blog["slug"] == "first-revised"
    assert blog["status"] == "published"
    assert blog["published_at"] is not None
    assert blog["tags"] == ["wood"]


def test_update_blog_errors(store, author):
    with pytest.raises(NotFoundError):
        blogs.update_blog(store, "missing", BlogUpdate(title="x"))
    created = blogs.create_blog(store, BlogCreate(title="Keep", content="x"), AUTHOR)
    with pytest.raises(ValidationError):
        blogs.update_blog(store, created["id"], BlogUpdate(title="!!!"))
    with pytest.raises(pydantic.ValidationError):
        BlogUpdate(title="")


def test_delete_blog(store, author):
    created = blogs.create_blog(store, BlogCreate(title="Gone", content="x"), AUTHOR)
    blogs.delete_blog(store, created["id"])
    with pytest.raises(NotFoundError):
        blogs.get_blog(store, created["id"])
    with pytest.raises(NotFoundError):
        blogs.delete_blog(store, created["id"])


def test_published_blogs_and_views(store, author):
    blogs.create_blog(store, BlogCreate(title="Draft", content="x"), AUTHOR)
    blogs.create_blog(store, BlogCreate(title="Live", content="x", status="published", tags=["a", "b"]), AUTHOR)

    published = blogs.list_published_blogs(store)
    assert [b["slug"] for b in published] == ["live"]
    assert published[0]["tags"] == ["a", "b"]
    assert published[0]["author"] == "Grace Hopper"

    assert blogs.get_published_blog_by_slug(store, "live")["views"] == 1
    assert blogs.get_published_blog_by_slug(store, "live")["views"] == 2
    with pytest.raises(NotFoundError):
        blogs.get_published_blog_by_slug(store, "draft")


@pytest.mark.parametrize("raw,expected", [
    ('["a", "b"]', ["a", "b"]),
    ("oak, pine , ,teak", ["oak", "pine", "teak"]),
    (["x"], ["x"]),
    (None, []),
    ("", []),
])
def test_decode_tags(raw, expected):
    assert blogs.decode_tags(raw) == expected


def test_update_blog_ignores_null_status(store, author):
    created = blogs.create_blog(store, BlogCreate(title="Keep", content="x", status="published"), AUTHOR)
    with pytest.raises(ValidationError):
        blogs.update_blog(store, created["id"], BlogUpdate(status=None))

    blogs.update_blog(store, created["id"], BlogUpdate(status=None, content=None, excerpt="Short"))
    blog = blogs.get_blog(store, created["id"])
    assert blog["status"] == "published"
    assert blog["content"] == "x"
    assert blog["excerpt"] == "Short"
