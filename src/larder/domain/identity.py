"""Stable record ids derived from ingredient names."""

from __future__ import annotations

import re

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def slugify_record_id(name: str) -> str:
    """Lowercase hyphen-separated slug.

    ``"Potassium Chloride (KCl)"`` becomes ``"potassium-chloride-kcl"``.
    """

    return _NON_ALNUM_RUN.sub("-", name.lower()).strip("-")
