"""Destination field schema as a closed tagged union.

Each field kind is its own frozen Pydantic model discriminated by
``kind``; container kinds own an ordered list of child nodes:

- ``ScalarField``     -- anything passed through unchanged.
- ``FileField``       -- a single image/file reference.
- ``ContentRefField`` -- reference(s) to other content items.
- ``RepeaterField``   -- list of rows sharing ``sub_fields``.
- ``FlexibleField``   -- list of rows, each tagged with one of ``layouts``.
- ``GroupField``      -- one mapping of ``sub_fields``.
- ``ComponentField``  -- a mapping whose sub-schema lives in other field
  groups, referenced by ``clone`` keys.
- ``GalleryField``    -- list of image/file references.

``parse_field_schema()`` adapts raw ACF-style definition records (open
dicts keyed by a ``type`` string) into this union.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

LAYOUT_TAG = "acf_fc_layout"


class _FieldBase(BaseModel):
    """Attributes shared by every field kind.

    Attributes:
        name: Field name, unique within one schema level.
        key: Stable identifier used as the write selector. Falls back to
            ``name`` when the destination has no separate key.
        label: Display label (diagnostics only).
    """

    name: str
    key: str = ""
    label: str = ""

    model_config = {"frozen": True}

    @property
    def selector(self) -> str:
        return self.key or self.name


class ScalarField(_FieldBase):
    kind: Literal["scalar"] = "scalar"
    field_type: str = "text"


class FileField(_FieldBase):
    kind: Literal["file"] = "file"
    field_type: str = "image"


class ContentRefField(_FieldBase):
    """Reference to other content items.

    Attributes:
        target_content_type: Declared target type, or a list of allowed
            types of which the first is used.
        multiple: Whether the field stores a list of ids.
        always_multiple: Relationship-style fields are multi-valued
            regardless of ``multiple``.
    """

    kind: Literal["content_ref"] = "content_ref"
    target_content_type: str | list[str] | None = None
    multiple: bool = False
    always_multiple: bool = False

    @property
    def target_type(self) -> str:
        declared = self.target_content_type
        if isinstance(declared, list):
            return declared[0] if declared and declared[0] else "page"
        return declared or "page"

    @property
    def is_multiple(self) -> bool:
        return self.multiple or self.always_multiple


class RepeaterField(_FieldBase):
    kind: Literal["repeater"] = "repeater"
    sub_fields: list[FieldSchema] = []


class Layout(BaseModel):
    """One variant of a flexible-content field."""

    name: str
    key: str = ""
    label: str = ""
    sub_fields: list[FieldSchema] = []

    model_config = {"frozen": True}


class FlexibleField(_FieldBase):
    kind: Literal["flexible"] = "flexible"
    layouts: list[Layout] = []

    def layout(self, name: str) -> Layout | None:
        for layout in self.layouts:
            if layout.name == name:
                return layout
        return None


class GroupField(_FieldBase):
    kind: Literal["group"] = "group"
    sub_fields: list[FieldSchema] = []


class ComponentField(_FieldBase):
    """Container whose fields are defined by other field groups.

    Attributes:
        clone: Keys of the field groups (or fields) this component embeds.
        sub_fields: Inline copy of the embedded fields, when the definition
            record carries one. Used for lookups and encoding; the walker
            always resolves against the externally looked-up schema.
    """

    kind: Literal["component"] = "component"
    clone: list[str] = []
    sub_fields: list[FieldSchema] = []


class GalleryField(_FieldBase):
    kind: Literal["gallery"] = "gallery"


FieldSchema = Annotated[
    Union[
        ScalarField,
        FileField,
        ContentRefField,
        RepeaterField,
        FlexibleField,
        GroupField,
        ComponentField,
        GalleryField,
    ],
    Field(discriminator="kind"),
]

for _model in (RepeaterField, Layout, FlexibleField, GroupField, ComponentField):
    _model.model_rebuild()


class FieldGroupSchema(BaseModel):
    """One field-group definition active on the destination."""

    key: str
    title: str = ""
    fields: list[FieldSchema] = []

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def find_field_in_tree(fields: list[FieldSchema], name: str) -> FieldSchema | None:
    """Depth-first search for a field named *name*.

    Each node is checked itself, then its ``sub_fields``, then the
    ``sub_fields`` of each of its layouts. First match wins.
    """
    for field in fields:
        if field.name == name:
            return field
        children = getattr(field, "sub_fields", None)
        if children:
            found = find_field_in_tree(children, name)
            if found is not None:
                return found
        for layout in getattr(field, "layouts", []):
            found = find_field_in_tree(layout.sub_fields, name)
            if found is not None:
                return found
    return None


def find_field_in_groups(
    groups: list[FieldGroupSchema], name: str
) -> FieldSchema | None:
    for group in groups:
        found = find_field_in_tree(group.fields, name)
        if found is not None:
            return found
    return None


# ---------------------------------------------------------------------------
# ACF-style adapter
# ---------------------------------------------------------------------------

_FILE_TYPES = frozenset({"image", "file"})
_CONTENT_REF_TYPES = frozenset({"post_object", "page_link", "relationship"})


def _base_attrs(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": str(raw.get("name") or ""),
        "key": str(raw.get("key") or ""),
        "label": str(raw.get("label") or ""),
    }


def _parse_children(raw_children: Any) -> list[FieldSchema]:
    if not isinstance(raw_children, list):
        return []
    return [
        parse_field_schema(child)
        for child in raw_children
        if isinstance(child, dict) and child.get("name")
    ]


def parse_field_schema(raw: dict[str, Any]) -> FieldSchema:
    """Build a schema node from a raw ACF-style definition record.

    Unknown ``type`` strings become ``ScalarField`` keeping the raw type
    name, so the walker passes their values through.
    """
    field_type = str(raw.get("type") or "")
    attrs = _base_attrs(raw)

    if field_type in _FILE_TYPES:
        return FileField(field_type=field_type, **attrs)
    if field_type in _CONTENT_REF_TYPES:
        target = raw.get("post_type")
        if isinstance(target, list):
            target = [str(t) for t in target if t]
        elif target:
            target = str(target)
        else:
            target = None
        return ContentRefField(
            target_content_type=target,
            multiple=bool(raw.get("multiple")),
            always_multiple=field_type == "relationship",
            **attrs,
        )
    if field_type == "repeater":
        return RepeaterField(
            sub_fields=_parse_children(raw.get("sub_fields")), **attrs
        )
    if field_type == "flexible_content":
        raw_layouts = raw.get("layouts") or []
        if isinstance(raw_layouts, dict):
            raw_layouts = list(raw_layouts.values())
        layouts = [
            Layout(
                name=str(layout.get("name") or ""),
                key=str(layout.get("key") or ""),
                label=str(layout.get("label") or ""),
                sub_fields=_parse_children(layout.get("sub_fields")),
            )
            for layout in raw_layouts
            if isinstance(layout, dict) and layout.get("name")
        ]
        return FlexibleField(layouts=layouts, **attrs)
    if field_type == "group":
        return GroupField(
            sub_fields=_parse_children(raw.get("sub_fields")), **attrs
        )
    if field_type == "clone":
        clone = raw.get("clone") or []
        return ComponentField(
            clone=[str(c) for c in clone if c],
            sub_fields=_parse_children(raw.get("sub_fields")),
            **attrs,
        )
    if field_type == "gallery":
        return GalleryField(**attrs)

    return ScalarField(field_type=field_type or "text", **attrs)


def parse_field_group(raw: dict[str, Any]) -> FieldGroupSchema:
    return FieldGroupSchema(
        key=str(raw.get("key") or ""),
        title=str(raw.get("title") or ""),
        fields=_parse_children(raw.get("fields")),
    )
