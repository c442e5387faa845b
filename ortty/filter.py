"""Predicate filters over inscription records."""

from __future__ import annotations

from enum import Enum
from typing import Collection, Iterable, List

from ortty.inscription import InscriptionRecord


class FilterError(ValueError):
    """Raised when a filter name is not recognised."""


class InscriptionFilter(str, Enum):
    TEXT = "text"
    JSON = "json"
    BRC20 = "brc20"
    IMAGE = "image"
    HTML = "html"

    def matches(self, record: InscriptionRecord) -> bool:
        if self is InscriptionFilter.TEXT:
            return record.is_text_like
        if self is InscriptionFilter.JSON:
            return record.is_json
        if self is InscriptionFilter.BRC20:
            return record.is_brc20
        if self is InscriptionFilter.IMAGE:
            return record.is_image
        return record.is_html


_ALIASES = {
    "text": InscriptionFilter.TEXT,
    "json": InscriptionFilter.JSON,
    "brc20": InscriptionFilter.BRC20,
    "brc-20": InscriptionFilter.BRC20,
    "image": InscriptionFilter.IMAGE,
    "html": InscriptionFilter.HTML,
}


def parse_filter(name: str) -> InscriptionFilter:
    try:
        return _ALIASES[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(_ALIASES))
        raise FilterError(f"Unknown filter type {name!r} (expected one of: {known})") from None


def matches(record: InscriptionRecord, filters: Collection[InscriptionFilter]) -> bool:
    """An empty filter set matches everything; otherwise any filter may match."""

    if not filters:
        return True
    return any(f.matches(record) for f in filters)


def apply_filters(
    records: Iterable[InscriptionRecord], filters: Collection[InscriptionFilter]
) -> List[InscriptionRecord]:
    return [record for record in records if matches(record, filters)]
