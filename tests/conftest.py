"""
Shared fixtures for the StarMapper test suite.

Provides a small blog domain of pydantic models, a memory store holding
them, a recording rule checker and a recording permission check.
"""

from typing import Any, Dict, List, Mapping, Optional

import pytest
from pydantic import BaseModel, Field

from starmapper import Mapper, MemoryMetadataStore, OnFailure, keeper, validation
from starmapper.auth import clear_auth_context
from starmapper.services import RuleChecker


class Author(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = Field(default=None, json_schema_extra=validation("required"))
    email: Optional[str] = Field(
        default=None,
        json_schema_extra=validation("required|email|unique:{static.entity},email,{this.identifier},{static.identifier}"),
    )

    def set_name(self, value):
        self.name = value

    def set_email(self, value):
        self.email = value


class Comment(BaseModel):
    id: Optional[int] = None
    body: Optional[str] = Field(default=None, json_schema_extra=validation("required"))
    rating: Optional[int] = None

    def set_body(self, value):
        self.body = value

    def set_rating(self, value):
        self.rating = value


class Tag(BaseModel):
    id: Optional[int] = None
    label: Optional[str] = None

    def set_label(self, value):
        self.label = value


class Post(BaseModel):
    id: Optional[int] = None
    title: Optional[str] = Field(default=None, json_schema_extra=validation("required|max:120"))
    body: Optional[str] = None
    status: Optional[str] = Field(default=None, json_schema_extra=keeper("publish"))
    owner_id: Optional[str] = Field(default=None, json_schema_extra=keeper("admin", OnFailure.RESTRICT))
    author: Optional[Author] = None
    comments: List[Comment] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)

    def set_title(self, value):
        self.title = value

    def set_body(self, value):
        self.body = value

    def set_status(self, value):
        self.status = value

    def set_owner_id(self, value):
        self.owner_id = value

    def set_author(self, value):
        self.author = value

    def set_comments(self, value):
        self.comments = value

    # no set_tags: tags only map with attribute setters


class RecordingChecker(RuleChecker):
    """
    Rule checker double understanding ``required`` and ``sometimes``.

    Every call is recorded; ``extra_failures`` are reported for any key that
    received a rule.
    """

    def __init__(self, extra_failures: Optional[Dict[str, List[str]]] = None):
        self.calls: List[tuple] = []
        self.extra_failures = extra_failures or {}

    def check(self, data: Mapping[str, Any], rules: Mapping[str, str]) -> Dict[str, List[str]]:
        self.calls.append((dict(data), dict(rules)))
        failures: Dict[str, List[str]] = {}
        for key, rule in rules.items():
            parts = rule.split("|")
            if "sometimes" in parts and key not in data:
                continue
            if "required" in parts and data.get(key) in (None, ""):
                failures.setdefault(key, []).append(f"The {key} field is required.")
            if key in self.extra_failures:
                failures.setdefault(key, []).extend(self.extra_failures[key])
        return failures

    @property
    def rules(self) -> List[Dict[str, str]]:
        return [rules for _, rules in self.calls]


class RecordingPermissions:
    """Permission check double granting a fixed set of abilities."""

    def __init__(self, granted=()):
        self.granted = set(granted)
        self.calls: List[tuple] = []

    def __call__(self, ability: str, entity: Any) -> bool:
        self.calls.append((ability, entity))
        return ability in self.granted


@pytest.fixture
def store():
    return MemoryMetadataStore([Author, Comment, Tag, Post])


@pytest.fixture
def checker():
    return RecordingChecker()


@pytest.fixture
def permissions():
    return RecordingPermissions()


@pytest.fixture
def mapper(store):
    return Mapper(store)


@pytest.fixture
def full_mapper(store, checker, permissions):
    return Mapper(store, permission_check=permissions, rule_checker=checker)


@pytest.fixture(autouse=True)
def _clean_auth_context():
    clear_auth_context()
    yield
    clear_auth_context()
