"""Translate import payload records into domain drafts."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Final, cast

from pydantic import ValidationError as PayloadValidationError

from larder.domain.errors import ValidationError
from larder.domain.model import IngredientDraft, Section, SectionType, TestCase

from .schema import IngredientPayload, SectionPayload, TestPayload

DEFAULT_CATEGORY: Final[str] = "Other"
BATCH_KEY: Final[str] = "INGREDIENT"
_DYNAMIC_BLOCK = re.compile(r"\[f\((.*?)\)\]", re.DOTALL)


def extract_batch(payload: object) -> list[Mapping[str, object]]:
    """Return the record list from a bare list or a config carrying ``INGREDIENT``."""

    records: object = payload
    if isinstance(payload, Mapping):
        records = cast(Mapping[str, object], payload).get(BATCH_KEY)
    if not isinstance(records, list):
        return []
    return cast(list[Mapping[str, object]], records)


def translate_ingredient(
    payload: Mapping[str, object], *, index: int | None = None
) -> IngredientDraft:
    """Map one external record onto an :class:`IngredientDraft`."""

    label = f"Record {index}" if index is not None else "Record"
    if not isinstance(payload, Mapping):
        raise ValidationError(f"{label} is not an object", index=index)
    try:
        model = IngredientPayload.model_validate(payload)
    except PayloadValidationError as exc:
        raise ValidationError(f"{label} is malformed: {exc}", index=index) from exc
    if model.keyname is None:
        raise ValidationError(f"{label} has no resolvable name", index=index)

    if model.sections is not None:
        sections = _sections_from_payload(model.sections)
    elif model.notes is not None:
        sections = notes_to_sections(note.text for note in model.notes)
    else:
        sections = ()

    return IngredientDraft(
        keyname=model.keyname,
        display_name=model.display_name or model.keyname,
        category=model.category or DEFAULT_CATEGORY,
        sections=sections,
        tests=_tests_from_payload(model.tests),
        raw=dict(payload),
    )


def _sections_from_payload(items: Sequence[SectionPayload]) -> tuple[Section, ...]:
    return tuple(
        Section(type=item.type or SectionType.STATIC, content=item.content, order=position)
        for position, item in enumerate(items)
    )


def _tests_from_payload(items: Sequence[TestPayload]) -> tuple[TestCase, ...]:
    return tuple(
        TestCase(
            name=item.name or f"Test {position + 1}",
            variables=dict(item.variables),
            expected=item.expected,
        )
        for position, item in enumerate(items)
    )


def notes_to_sections(texts: Iterable[str]) -> tuple[Section, ...]:
    """Split legacy NOTE lines into static text and ``[f( ... )]`` dynamic sections.

    Lines are joined with newlines first, so a dynamic expression may span several
    NOTE entries. An unterminated ``[f(`` is kept as static text.
    """

    document = "\n".join(text for text in texts if text)
    blocks: list[tuple[str, str]] = []
    cursor = 0
    for match in _DYNAMIC_BLOCK.finditer(document):
        _append_static(blocks, document[cursor : match.start()])
        expression = match.group(1).strip()
        if expression:
            blocks.append((SectionType.DYNAMIC, expression))
        cursor = match.end()
    _append_static(blocks, document[cursor:])
    return tuple(
        Section(type=section_type, content=content, order=position)
        for position, (section_type, content) in enumerate(blocks)
    )


def _append_static(blocks: list[tuple[str, str]], text: str) -> None:
    stripped = text.strip()
    if stripped:
        blocks.append((SectionType.STATIC, stripped))


if TYPE_CHECKING:
    from larder.domain.ports import RecordTranslator

    _translator_check: RecordTranslator = translate_ingredient
