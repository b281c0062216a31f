"""Tests for content_sync.sync.walker -- schema walk and retry driver."""

from unittest.mock import MagicMock

import pytest
from conftest import FakeDestination

from content_sync.sync.cache import ReferenceCache
from content_sync.sync.capabilities import ComponentSchemaRegistry
from content_sync.sync.mapper import ContentReferenceMapper
from content_sync.sync.media import MediaImporter
from content_sync.sync.models import FieldOutcome
from content_sync.sync.schema import (
    LAYOUT_TAG,
    ComponentField,
    ContentRefField,
    FieldGroupSchema,
    FileField,
    FlexibleField,
    GalleryField,
    GroupField,
    Layout,
    RepeaterField,
    ScalarField,
)
from content_sync.sync.walker import DEFAULT_MAX_RETRY_PASSES, FieldWalker

HERO_URL = "https://source.example.com/uploads/hero.jpg"
BROCHURE_URL = "https://source.example.com/uploads/brochure.pdf"

HERO = {"type": "attachment", "id": 7, "url": HERO_URL, "alt": "Hero"}
BROCHURE = {"type": "attachment", "id": 8, "url": BROCHURE_URL, "alt": ""}


def make_walker(destination, max_retry_passes=DEFAULT_MAX_RETRY_PASSES):
    media = MediaImporter(destination, ReferenceCache(), context_id=42)
    return FieldWalker(
        registry=destination,
        writer=destination,
        media=media,
        mapper=ContentReferenceMapper(destination),
        context_id=42,
        max_retry_passes=max_retry_passes,
    )


# -------------------------------------------------------------------------
# resolve(): leaf kinds
# -------------------------------------------------------------------------


class TestResolveLeaves:
    def test_scalar_passes_through(self, destination):
        walker = make_walker(destination)
        value = {"nested": [1, 2]}
        assert walker.resolve(value, ScalarField(name="raw")) == value

    def test_file_imports_and_sets_alt(self, destination):
        walker = make_walker(destination)
        assert walker.resolve(HERO, FileField(name="hero")) == 101
        assert destination.import_calls == [HERO_URL]
        assert destination.alt_texts == {101: "Hero"}

    def test_file_bare_id_is_not_a_reference(self, destination):
        """Source ids mean nothing on the destination."""
        walker = make_walker(destination)
        assert walker.resolve(7, FileField(name="hero")) == 0
        assert destination.import_calls == []

    def test_single_content_ref(self, destination):
        destination.by_slug[("about-us", "page")] = 55
        walker = make_walker(destination)
        value = {"type": "post", "id": 21, "slug": "about-us", "title": "About Us"}
        assert walker.resolve(value, ContentRefField(name="link")) == 55

    def test_content_ref_uses_first_declared_type(self, destination):
        destination.by_slug[("news-item", "post")] = 77
        walker = make_walker(destination)
        schema = ContentRefField(name="link", target_content_type=["post", "page"])
        assert walker.resolve({"slug": "news-item"}, schema) == 77
        assert destination.slug_lookups == [("news-item", "post")]

    def test_multiple_content_ref_drops_unresolved(self, destination):
        destination.by_slug[("about-us", "page")] = 55
        walker = make_walker(destination)
        schema = ContentRefField(name="related", multiple=True)
        value = [{"id": 1, "slug": "about-us"}, {"slug": "missing"}]
        assert walker.resolve(value, schema) == [55]

    def test_relationship_is_always_multiple(self, destination):
        destination.by_slug[("about-us", "page")] = 55
        destination.by_title[("Contact", "page")] = 56
        walker = make_walker(destination)
        schema = ContentRefField(name="related", always_multiple=True)
        value = [{"slug": "about-us"}, {"slug": "gone", "title": "Contact"}]
        assert walker.resolve(value, schema) == [55, 56]

    def test_single_value_on_multiple_field_narrows(self, destination):
        destination.by_slug[("about-us", "page")] = 55
        walker = make_walker(destination)
        schema = ContentRefField(name="related", multiple=True)
        assert walker.resolve({"slug": "about-us"}, schema) == 55

    def test_gallery_keeps_resolved_files_only(self, destination):
        walker = make_walker(destination)
        bad = {"type": "attachment", "url": "not a url"}
        result = walker.resolve([HERO, bad, BROCHURE, 12], GalleryField(name="photos"))
        assert result == [101, 102]

    def test_gallery_non_list_is_empty(self, destination):
        walker = make_walker(destination)
        assert walker.resolve(HERO, GalleryField(name="photos")) == []


# -------------------------------------------------------------------------
# resolve(): containers
# -------------------------------------------------------------------------


class TestResolveContainers:
    def test_repeater_omits_absent_sub_fields(self, destination):
        walker = make_walker(destination)
        schema = RepeaterField(
            name="rows",
            sub_fields=[ScalarField(name="label"), FileField(name="icon")],
        )
        value = [{"label": "x"}, "junk", {"label": "y", "icon": HERO}]
        assert walker.resolve(value, schema) == [
            {"label": "x"},
            {"label": "y", "icon": 101},
        ]

    def test_repeater_drops_undeclared_keys(self, destination):
        walker = make_walker(destination)
        schema = RepeaterField(name="rows", sub_fields=[ScalarField(name="label")])
        assert walker.resolve([{"label": "x", "stray": 1}], schema) == [{"label": "x"}]

    @pytest.mark.parametrize("value", [None, "text", {"label": "x"}])
    def test_repeater_shape_mismatch_is_empty(self, destination, value):
        walker = make_walker(destination)
        schema = RepeaterField(name="rows", sub_fields=[ScalarField(name="label")])
        assert walker.resolve(value, schema) == []

    def test_flexible_keeps_known_layouts_only(self, destination):
        walker = make_walker(destination)
        schema = FlexibleField(
            name="sections",
            layouts=[
                Layout(
                    name="hero",
                    sub_fields=[ScalarField(name="title"), FileField(name="image")],
                ),
                Layout(name="text", sub_fields=[ScalarField(name="body")]),
            ],
        )
        value = [
            {LAYOUT_TAG: "hero", "title": "T", "image": HERO},
            {LAYOUT_TAG: "unknown", "x": 1},
            {LAYOUT_TAG: "text", "body": "B"},
            {"body": "no layout"},
        ]
        assert walker.resolve(value, schema) == [
            {LAYOUT_TAG: "hero", "title": "T", "image": 101},
            {LAYOUT_TAG: "text", "body": "B"},
        ]

    def test_group_resolves_declared_sub_fields(self, destination):
        destination.by_slug[("about-us", "page")] = 55
        walker = make_walker(destination)
        schema = GroupField(
            name="cta",
            sub_fields=[ScalarField(name="label"), ContentRefField(name="link")],
        )
        value = {"label": "Read", "link": {"slug": "about-us"}, "extra": 1}
        assert walker.resolve(value, schema) == {"label": "Read", "link": 55}

    def test_group_non_mapping_is_empty(self, destination):
        walker = make_walker(destination)
        assert walker.resolve(["a"], GroupField(name="cta")) == {}

    def test_nested_containers(self, destination):
        walker = make_walker(destination)
        schema = RepeaterField(
            name="cards",
            sub_fields=[
                GroupField(name="media", sub_fields=[GalleryField(name="photos")])
            ],
        )
        value = [{"media": {"photos": [HERO, HERO]}}]
        assert walker.resolve(value, schema) == [{"media": {"photos": [101, 101]}}]
        assert destination.import_calls == [HERO_URL]

    def test_component_uses_external_schema(self):
        destination = FakeDestination(
            components={("group_cta",): [FileField(name="icon")]}
        )
        walker = make_walker(destination)
        schema = ComponentField(name="cta", clone=["group_cta"])
        assert walker.resolve({"icon": HERO, "other": 3}, schema) == {"icon": 101}

    def test_component_without_schema_passes_through(self, destination):
        walker = make_walker(destination)
        schema = ComponentField(name="cta", clone=["group_missing"])
        value = {"icon": HERO}
        assert walker.resolve(value, schema) == value

    def test_component_without_lookup_capability(self, destination):
        registry = MagicMock(spec=["lookup_field_schema", "lookup_field_group_schemas"])
        walker = FieldWalker(
            registry=registry,
            writer=destination,
            media=MediaImporter(destination, ReferenceCache()),
            mapper=ContentReferenceMapper(destination),
            context_id=42,
        )
        value = {"icon": HERO}
        assert walker.resolve(value, ComponentField(name="cta")) == value

    def test_component_registry_protocol(self, destination):
        assert isinstance(destination, ComponentSchemaRegistry)
        registry = MagicMock(spec=["lookup_field_schema", "lookup_field_group_schemas"])
        assert not isinstance(registry, ComponentSchemaRegistry)


# -------------------------------------------------------------------------
# apply()
# -------------------------------------------------------------------------


class TestApply:
    def test_writes_by_key(self):
        destination = FakeDestination(
            fields=[ScalarField(name="headline", key="field_abc123")]
        )
        walker = make_walker(destination)
        assert walker.apply("headline", "Hello") is True
        assert destination.write_calls == [("field_abc123", "Hello", 42)]
        assert walker.updated == ["headline"]

    def test_writes_by_name_without_key(self):
        destination = FakeDestination(fields=[ScalarField(name="headline")])
        walker = make_walker(destination)
        walker.apply("headline", "Hello")
        assert destination.written == {"headline": "Hello"}

    def test_schema_miss_is_skipped(self, destination):
        walker = make_walker(destination)
        assert walker.apply("ghost", 1) is False
        assert walker.skipped == ["ghost"]
        assert destination.write_calls == []

    def test_hidden_field_found_through_groups(self):
        """A field hidden by a visibility rule is still written."""
        destination = FakeDestination(
            groups=[
                FieldGroupSchema(
                    key="group_1",
                    fields=[ScalarField(name="hidden_note", key="field_hidden")],
                )
            ]
        )
        walker = make_walker(destination)
        assert walker.apply("hidden_note", "note") is True
        assert destination.written == {"field_hidden": "note"}

    def test_group_fallback_searches_layouts(self):
        destination = FakeDestination(
            groups=[
                FieldGroupSchema(
                    key="group_1",
                    fields=[
                        FlexibleField(
                            name="sections",
                            layouts=[
                                Layout(
                                    name="hero",
                                    sub_fields=[FileField(name="banner", key="field_b")],
                                )
                            ],
                        )
                    ],
                )
            ]
        )
        walker = make_walker(destination)
        walker.apply("banner", HERO)
        assert destination.written == {"field_b": 101}


# -------------------------------------------------------------------------
# apply_all(): retry driver
# -------------------------------------------------------------------------


class TestApplyAll:
    def test_all_resolved_in_first_pass(self):
        destination = FakeDestination(
            fields=[ScalarField(name="a"), ScalarField(name="b")]
        )
        report = make_walker(destination).apply_all({"a": 1, "b": 2})
        assert report.updated == ["a", "b"]
        assert report.skipped == []
        assert report.retry_passes == 0

    def test_revealed_field_resolves_on_retry(self):
        destination = FakeDestination(
            fields=[ScalarField(name="show_cta")],
            reveals={"show_cta": [ScalarField(name="cta_text")]},
        )
        report = make_walker(destination).apply_all(
            {"cta_text": "Go", "show_cta": True}
        )
        assert report.updated == ["show_cta", "cta_text"]
        assert report.skipped == []
        assert report.retry_passes == 1
        assert report.resolved_on_retry == ["cta_text"]
        assert destination.written == {"show_cta": True, "cta_text": "Go"}

    def test_chain_converges_in_two_passes(self):
        destination = FakeDestination(
            fields=[ScalarField(name="a")],
            reveals={
                "a": [ScalarField(name="b")],
                "b": [ScalarField(name="c")],
            },
        )
        report = make_walker(destination).apply_all({"c": 3, "b": 2, "a": 1})
        assert report.updated == ["a", "b", "c"]
        assert report.skipped == []
        assert report.retry_passes == 2
        assert report.resolved_on_retry == ["b", "c"]

    def test_unresolvable_field_stops_after_one_pass(self):
        destination = FakeDestination(fields=[ScalarField(name="a")])
        report = make_walker(destination).apply_all({"a": 1, "ghost": 2})
        assert report.skipped == ["ghost"]
        assert report.retry_passes == 1
        assert report.resolved_on_retry == []

    def test_pass_cap(self):
        destination = FakeDestination(
            fields=[ScalarField(name="a")],
            reveals={
                "a": [ScalarField(name="b")],
                "b": [ScalarField(name="c")],
            },
        )
        report = make_walker(destination, max_retry_passes=1).apply_all(
            {"c": 3, "b": 2, "a": 1}
        )
        assert report.retry_passes == 1
        assert report.updated == ["a", "b"]
        assert report.skipped == ["c"]

    def test_zero_passes_disables_retry(self):
        destination = FakeDestination(
            fields=[ScalarField(name="show_cta")],
            reveals={"show_cta": [ScalarField(name="cta_text")]},
        )
        report = make_walker(destination, max_retry_passes=0).apply_all(
            {"cta_text": "Go", "show_cta": True}
        )
        assert report.retry_passes == 0
        assert report.skipped == ["cta_text"]

    def test_skipped_name_absent_from_payload_is_not_retried(self, destination):
        walker = make_walker(destination)
        walker.apply("orphan", 1)
        destination.visible["headline"] = ScalarField(name="headline")
        report = walker.apply_all({"headline": "x"})
        assert report.retry_passes == 0
        assert report.skipped == ["orphan"]
        assert report.updated == ["headline"]

    def test_write_error_is_isolated(self):
        class ExplodingDestination(FakeDestination):
            def write_field(self, selector, value, context_id):
                if selector == "boom":
                    raise RuntimeError("write rejected")
                super().write_field(selector, value, context_id)

        destination = ExplodingDestination(
            fields=[ScalarField(name="boom"), ScalarField(name="ok")]
        )
        report = make_walker(destination).apply_all({"boom": 1, "ok": 2})
        assert report.failed == ["boom"]
        assert report.outcome("boom") is FieldOutcome.FAILED
        assert report.updated == ["ok"]
        assert report.skipped == []
        assert report.retry_passes == 0

    def test_media_failure_writes_empty_value(self):
        destination = FakeDestination(fields=[FileField(name="hero")])
        destination.raising_urls.add(HERO_URL)
        report = make_walker(destination).apply_all({"hero": HERO})
        assert report.updated == ["hero"]
        assert destination.written == {"hero": 0}

    def test_report_outcome(self):
        destination = FakeDestination(fields=[ScalarField(name="a")])
        report = make_walker(destination).apply_all({"a": 1, "ghost": 2})
        assert report.outcome("a") is FieldOutcome.UPDATED
        assert report.outcome("ghost") is FieldOutcome.SKIPPED
        assert report.outcome("never-seen") is None
