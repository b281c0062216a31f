"""Shared pytest fixtures for content-sync tests."""

from __future__ import annotations

from typing import Any

import pytest
from dotenv import load_dotenv

from content_sync.config import Config
from content_sync.sync.models import SourceAttachment, SourceContent
from content_sync.sync.schema import FieldGroupSchema, FieldSchema

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live source site",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live source site"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeDestination:
    """In-memory destination implementing every capability protocol.

    Fields in ``fields`` are visible to the primary lookup. Writing a
    selector listed in ``reveals`` makes more fields visible, which is how
    conditional visibility is simulated.
    """

    def __init__(
        self,
        fields: list[FieldSchema] | None = None,
        groups: list[FieldGroupSchema] | None = None,
        reveals: dict[str, list[FieldSchema]] | None = None,
        components: dict[tuple[str, ...], list[FieldSchema]] | None = None,
        content_types: dict[int, str] | None = None,
    ) -> None:
        self.visible: dict[str, FieldSchema] = {f.name: f for f in fields or []}
        self.groups: list[FieldGroupSchema] = groups or []
        self.reveals = reveals or {}
        self.components = components or {}
        self.content_types = content_types or {}

        self.written: dict[str, Any] = {}
        self.write_calls: list[tuple[str, Any, int]] = []
        self.import_calls: list[str] = []
        self.failing_urls: set[str] = set()
        self.raising_urls: set[str] = set()
        self.non_image_ids: set[int] = set()
        self.alt_texts: dict[int, str] = {}
        self.by_slug: dict[tuple[str, str], int] = {}
        self.by_title: dict[tuple[str, str], int] = {}
        self.slug_lookups: list[tuple[str, str]] = []
        self.title_lookups: list[tuple[str, str]] = []
        self.content_updates: list[tuple[int, dict[str, str]]] = []
        self.templates: dict[int, str] = {}
        self.featured: dict[int, int] = {}
        self.events: list[str] = []
        self._next_file_id = 100

    # SchemaRegistry
    def lookup_field_schema(self, name: str, context_id: int) -> FieldSchema | None:
        return self.visible.get(name)

    def lookup_field_group_schemas(self, context_id: int) -> list[FieldGroupSchema]:
        return list(self.groups)

    def lookup_component_schema(self, clone_keys: list[str]) -> list[FieldSchema] | None:
        return self.components.get(tuple(clone_keys))

    # FieldWriter
    def write_field(self, selector: str, value: Any, context_id: int) -> None:
        self.written[selector] = value
        self.write_calls.append((selector, value, context_id))
        self.events.append(f"field:{selector}")
        for revealed in self.reveals.get(selector, []):
            self.visible[revealed.name] = revealed

    # MediaStore
    def import_file(self, url: str, context_id: int) -> int | None:
        self.import_calls.append(url)
        if url in self.raising_urls:
            raise OSError(f"download failed: {url}")
        if url in self.failing_urls:
            return None
        self._next_file_id += 1
        return self._next_file_id

    def is_image(self, file_id: int) -> bool:
        return file_id not in self.non_image_ids

    def set_alt_text(self, file_id: int, text: str) -> None:
        self.alt_texts[file_id] = text

    # ContentFinder
    def find_content_by_slug(self, slug: str, content_type: str) -> int | None:
        self.slug_lookups.append((slug, content_type))
        return self.by_slug.get((slug, content_type))

    def find_content_by_title(self, title: str, content_type: str) -> int | None:
        self.title_lookups.append((title, content_type))
        return self.by_title.get((title, content_type))

    # ContentStore
    def get_content_type(self, item_id: int) -> str | None:
        return self.content_types.get(item_id)

    def update_content(self, item_id: int, fields: dict[str, str]) -> None:
        self.content_updates.append((item_id, fields))
        self.events.append("content")

    def set_template(self, item_id: int, template: str) -> None:
        self.templates[item_id] = template
        self.events.append(f"template:{template}")

    def set_featured_media(self, item_id: int, file_id: int) -> None:
        self.featured[item_id] = file_id
        self.events.append(f"featured:{file_id}")


class FakeSourceRepository:
    """Source-side attachments and content items keyed by id."""

    def __init__(
        self,
        attachments: list[SourceAttachment] | None = None,
        contents: list[SourceContent] | None = None,
    ) -> None:
        self.attachments = {a.id: a for a in attachments or []}
        self.contents = {c.id: c for c in contents or []}

    def get_attachment(self, attachment_id: int) -> SourceAttachment | None:
        return self.attachments.get(attachment_id)

    def get_content(self, content_id: int) -> SourceContent | None:
        return self.contents.get(content_id)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        source_url="https://source.example.com",
        username="editor",
        app_password="abcdefghijklmnop",
        insecure=False,
    )


@pytest.fixture
def destination():
    return FakeDestination()


@pytest.fixture
def source_repository():
    return FakeSourceRepository(
        attachments=[
            SourceAttachment(
                id=7,
                url="https://source.example.com/uploads/hero.jpg",
                alt="Hero",
                filename="hero.jpg",
            ),
            SourceAttachment(
                id=8,
                url="https://source.example.com/uploads/brochure.pdf",
                filename="brochure.pdf",
            ),
        ],
        contents=[
            SourceContent(id=21, content_type="page", slug="about-us", title="About Us"),
            SourceContent(id=22, content_type="page", slug="contact", title="Contact"),
        ],
    )
