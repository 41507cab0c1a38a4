"""
Mapper tests: identifier reconciliation, resolution, splitting,
relation recursion and assignment.
"""

import json

import pytest

from conftest import Author, Comment, Post, Tag
from starmapper import (
    ApplicationConfig, EntityNotFoundError, IdentifierConflictError, InvalidPayloadError,
    Mapper, MapperConfig, MappingDepthError,
)


class TestIdentifiers:

    def test_new_entity_without_identifier(self, mapper, store):
        post = mapper.map("Post", {"title": "Hello", "body": "World"})

        assert isinstance(post, Post)
        assert post.title == "Hello"
        assert post.body == "World"
        assert post.id is None
        assert not store.is_existing(post)

    def test_conflicting_identifiers_rejected_before_store_access(self, mapper, store, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("store must not be touched")

        monkeypatch.setattr(store, "find", fail)
        monkeypatch.setattr(store, "create", fail)

        with pytest.raises(IdentifierConflictError) as exc_info:
            mapper.map("Post", {"id": 2, "title": "x"}, id=1)

        assert exc_info.value.id == 1
        assert exc_info.value.data_id == 2
        assert isinstance(exc_info.value, ValueError)

    def test_conflict_leaves_existing_entity_untouched(self, mapper, store):
        existing = store.save(Post(id=1, title="Old"))

        with pytest.raises(IdentifierConflictError):
            mapper.map("Post", {"id": 2, "title": "New"}, id=1)

        assert existing.title == "Old"

    def test_matching_identifiers_accepted(self, mapper, store):
        existing = store.save(Post(id=1, title="Old"))

        post = mapper.map("Post", {"id": 1, "title": "New"}, id=1)

        assert post is existing
        assert post.title == "New"

    @pytest.mark.parametrize("data_id", [True, 1.0, "1"])
    def test_identifiers_compared_strictly(self, mapper, store, data_id):
        store.save(Post(id=1, title="Old"))

        with pytest.raises(IdentifierConflictError):
            mapper.map("Post", {"id": data_id, "title": "x"}, id=1)

    @pytest.mark.parametrize("data_id", [[1], {"id": 1}])
    def test_non_scalar_identifier_rejected(self, mapper, data_id):
        with pytest.raises(InvalidPayloadError):
            mapper.map("Post", {"id": data_id, "title": "x"})

    def test_explicit_identifier_not_found(self, mapper):
        with pytest.raises(EntityNotFoundError) as exc_info:
            mapper.map("Post", {"title": "x"}, id=99)

        assert exc_info.value.type_name == "Post"
        assert exc_info.value.id == 99

    def test_embedded_identifier_not_found(self, mapper, store):
        created = []
        mapper.resolver.factory = lambda name: created.append(name) or store.create(name)

        with pytest.raises(EntityNotFoundError):
            mapper.map("Post", {"id": 42, "title": "x"})

        assert created == []

    def test_embedded_identifier_resolves_existing(self, mapper, store):
        existing = store.save(Post(id=7, title="Old", body="kept"))

        post = mapper.map("Post", {"id": 7, "title": "New"})

        assert post is existing
        assert post.title == "New"
        assert post.body == "kept"

    def test_identifier_is_never_assigned(self, mapper, store):
        store.save(Post(id=3, title="Old"))
        assigned = []
        mapper.setters.register("Post", "id", lambda entity, value: assigned.append(value))

        mapper.map("Post", {"title": "New"}, id=3)

        assert assigned == []

    def test_input_data_is_not_mutated(self, mapper, store):
        store.save(Post(id=3, title="Old"))
        data = {"title": "New"}

        mapper.map("Post", data, id=3)

        assert data == {"title": "New"}


class TestSplitting:

    def test_unknown_keys_are_dropped(self, mapper):
        post = mapper.map("Post", {"title": "t", "bogus": 1, "author_name": "x"})

        assert post.title == "t"
        assert not hasattr(post, "bogus")

    def test_fields_without_setter_are_skipped(self, store):
        mapper = Mapper(store, config=MapperConfig(setter_prefix="assign_"))

        post = mapper.map("Post", {"title": "t"})

        assert post.title is None

    def test_scalars_assigned_in_data_order_then_relations(self, mapper):
        order = []
        for field in ("title", "body", "author", "comments"):
            mapper.setters.register(
                "Post", field, lambda entity, value, field=field: order.append(field)
            )

        mapper.map("Post", {
            "comments": [],
            "body": "b",
            "author": {"name": "Ada"},
            "title": "t",
        })

        assert order == ["body", "title", "comments", "author"]


class TestRelations:

    def test_to_one_relation_creates_child(self, mapper):
        post = mapper.map("Post", {"title": "t", "author": {"name": "Ada", "email": "ada@example.com"}})

        assert isinstance(post.author, Author)
        assert post.author.name == "Ada"
        assert post.author.email == "ada@example.com"

    def test_to_one_relation_resolves_existing_child(self, mapper, store):
        author = store.save(Author(id=5, name="Ada"))

        post = mapper.map("Post", {"title": "t", "author": {"id": 5}})

        assert post.author is author
        assert author.name == "Ada"

    def test_to_one_relation_updates_existing_child(self, mapper, store):
        author = store.save(Author(id=5, name="Ada"))

        post = mapper.map("Post", {"author": {"id": 5, "name": "Grace"}})

        assert post.author is author
        assert author.name == "Grace"

    def test_to_many_relation_preserves_order(self, mapper):
        post = mapper.map("Post", {
            "title": "t",
            "comments": [{"body": "first"}, {"body": "second"}, {"body": "third"}],
        })

        assert len(post.comments) == 3
        assert all(isinstance(comment, Comment) for comment in post.comments)
        assert [comment.body for comment in post.comments] == ["first", "second", "third"]

    def test_to_many_relation_mixes_new_and_existing(self, mapper, store):
        existing = store.save(Comment(id=1, body="old"))

        post = mapper.map("Post", {"comments": [{"body": "new"}, {"id": 1, "body": "edited"}]})

        assert post.comments[1] is existing
        assert existing.body == "edited"
        assert post.comments[0].id is None

    def test_missing_child_aborts_parent(self, mapper, store):
        existing = store.save(Post(id=1, title="Old"))

        with pytest.raises(EntityNotFoundError):
            mapper.map("Post", {"title": "New", "author": {"id": 404}}, id=1)

        assert existing.title == "Old"

    def test_relation_without_setter_is_not_mapped(self, mapper, store):
        created = []
        mapper.resolver.factory = lambda name: created.append(name) or store.create(name)

        post = mapper.map("Post", {"title": "t", "tags": [{"label": "python"}]})

        assert created == ["Post"]
        assert post.tags == []

    def test_null_relations_clear_values(self, mapper, store):
        existing = store.save(Post(id=1, author=Author(id=2), comments=[Comment(id=3)]))

        post = mapper.map("Post", {"author": None, "comments": None}, id=1)

        assert post is existing
        assert post.author is None
        assert post.comments == []

    @pytest.mark.parametrize("payload", [
        {"comments": {"body": "not a list"}},
        {"comments": ["not an object"]},
        {"comments": "text"},
        {"author": "Ada"},
        {"author": [{"name": "Ada"}]},
    ])
    def test_wrong_relation_shapes_are_rejected(self, mapper, payload):
        with pytest.raises(InvalidPayloadError):
            mapper.map("Post", payload)

    def test_children_assigned_before_parent(self, mapper):
        order = []
        mapper.setters.register("Author", "name", lambda entity, value: order.append("Author.name"))
        mapper.setters.register("Comment", "body", lambda entity, value: order.append(f"Comment.body:{value}"))
        mapper.setters.register("Post", "title", lambda entity, value: order.append("Post.title"))
        mapper.setters.register("Post", "author", lambda entity, value: order.append("Post.author"))
        mapper.setters.register("Post", "comments", lambda entity, value: order.append("Post.comments"))

        mapper.map("Post", {
            "title": "t",
            "author": {"name": "Ada"},
            "comments": [{"body": "a"}, {"body": "b"}],
        })

        assert order == [
            "Author.name",
            "Comment.body:a",
            "Comment.body:b",
            "Post.title",
            "Post.author",
            "Post.comments",
        ]


class TestRecursionDepth:

    def test_depth_limit_exceeded(self, store):
        mapper = Mapper(store, config=MapperConfig(max_depth=0))

        with pytest.raises(MappingDepthError) as exc_info:
            mapper.map("Post", {"author": {"name": "Ada"}})

        assert exc_info.value.max_depth == 0

    def test_depth_limit_allows_flat_payloads(self, store):
        mapper = Mapper(store, config=MapperConfig(max_depth=0))

        assert mapper.map("Post", {"title": "t"}).title == "t"

    def test_depth_limit_disabled(self, store):
        mapper = Mapper(store, config=MapperConfig(max_depth=None))

        post = mapper.map("Post", {"author": {"name": "Ada"}})

        assert post.author.name == "Ada"


class TestIdempotence:

    def test_mapping_existing_entity_twice_overwrites(self, mapper, store):
        store.save(Post(id=1, title="Old"))
        data = {"title": "New", "comments": [{"body": "a"}, {"body": "b"}]}

        first = mapper.map("Post", data, id=1)
        first_values = (first.title, [comment.body for comment in first.comments])
        second = mapper.map("Post", data, id=1)

        assert second is first
        assert (second.title, [comment.body for comment in second.comments]) == first_values
        assert len(second.comments) == 2


class TestJson:

    def test_map_json_matches_map(self, store):
        text = json.dumps({
            "title": "t",
            "body": "b",
            "author": {"name": "Ada"},
            "comments": [{"body": "x", "rating": 3}],
        })

        from_json = Mapper(store).map_json("Post", text)
        from_dict = Mapper(store).map("Post", json.loads(text))

        assert from_json.model_dump() == from_dict.model_dump()

    @pytest.mark.parametrize("text", ["[]", "1", '"post"', "null"])
    def test_map_json_requires_object(self, mapper, text):
        with pytest.raises(InvalidPayloadError):
            mapper.map_json("Post", text)

    def test_map_json_malformed(self, mapper):
        with pytest.raises(json.JSONDecodeError):
            mapper.map_json("Post", "{not json")


class TestConstruction:

    def test_custom_factory(self, store):
        created = []

        def factory(type_name):
            created.append(type_name)
            return store.get_class(type_name)(id=None)

        mapper = Mapper(store, factory=factory)
        post = mapper.map("Post", {"author": {"name": "Ada"}})

        assert created == ["Post", "Author"]
        assert post.author.name == "Ada"

    def test_from_config(self, store):
        config = ApplicationConfig.from_dict({"mapper": {"setter_prefix": "assign_", "max_depth": 4}})

        mapper = Mapper.from_config(store, config)

        assert mapper.config.max_depth == 4
        assert mapper.setter_name("title") == "assign_title"

    def test_attribute_setters(self, store):
        mapper = Mapper(store, config=MapperConfig(attribute_setters=True))

        post = mapper.map("Post", {"tags": [{"label": "python"}]})

        assert [tag.label for tag in post.tags] == ["python"]
        assert isinstance(post.tags[0], Tag)
