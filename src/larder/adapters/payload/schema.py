"""Pydantic models describing the loosely-typed ingredient import payload.

Legacy exports spell the same logical field several ways. Each alias chain is resolved
explicitly, in order, skipping blank values, before validation sees the record.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final, cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

NAME_ALIASES: Final[tuple[str, ...]] = ("KEYNAME", "keyname", "Ingredient", "ingredient", "name")
DISPLAY_ALIASES: Final[tuple[str, ...]] = (
    "displayName",
    "DISPLAY",
    "display",
    "Description",
    "description",
)
CATEGORY_ALIASES: Final[tuple[str, ...]] = ("category", "CATEGORY", "Category")


def _present(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def resolve_alias(payload: Mapping[str, object], aliases: tuple[str, ...]) -> str | None:
    """Return the first non-blank value among ``aliases``, in order."""

    for alias in aliases:
        value = _present(payload.get(alias))
        if value is not None:
            return value
    return None


def _only_items_of(value: object, *types: type) -> object:
    if value is None:
        return None
    if not isinstance(value, list):
        return []
    items = cast(list[object], value)
    return [item for item in items if isinstance(item, types)]


class PayloadBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SectionPayload(PayloadBaseModel):
    type: str | None = None
    content: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _blank_type(cls, value: object) -> object:
        return _present(value)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: object) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class NotePayload(PayloadBaseModel):
    text: str = Field(default="", validation_alias=AliasChoices("TEXT", "text"))

    @model_validator(mode="before")
    @classmethod
    def _wrap_plain_string(cls, value: object) -> object:
        if isinstance(value, str):
            return {"TEXT": value}
        return value


class TestPayload(PayloadBaseModel):
    __test__ = False  # not a pytest class

    name: str = Field(default="", validation_alias=AliasChoices("name", "NAME"))
    variables: dict[str, object] = Field(
        default_factory=dict, validation_alias=AliasChoices("variables", "VARIABLES")
    )
    expected: str | None = Field(
        default=None, validation_alias=AliasChoices("expected", "expectedOutput", "EXPECTED")
    )

    @field_validator("name", "expected", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value


class IngredientPayload(PayloadBaseModel):
    keyname: str | None = None
    display_name: str | None = None
    category: str | None = None
    sections: list[SectionPayload] | None = None
    notes: list[NotePayload] | None = Field(
        default=None, validation_alias=AliasChoices("NOTE", "notes")
    )
    tests: list[TestPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("tests", "TESTS")
    )

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        payload = cast(Mapping[str, object], value)
        data: dict[str, object] = dict(payload)
        data["keyname"] = resolve_alias(payload, NAME_ALIASES)
        data["display_name"] = resolve_alias(payload, DISPLAY_ALIASES)
        data["category"] = resolve_alias(payload, CATEGORY_ALIASES)
        return data

    @field_validator("sections", mode="before")
    @classmethod
    def _section_items(cls, value: object) -> object:
        return _only_items_of(value, Mapping)

    @field_validator("notes", mode="before")
    @classmethod
    def _note_items(cls, value: object) -> object:
        return _only_items_of(value, Mapping, str)

    @field_validator("tests", mode="before")
    @classmethod
    def _test_items(cls, value: object) -> object:
        return _only_items_of(value, Mapping) or []
