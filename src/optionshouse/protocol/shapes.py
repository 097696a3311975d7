"""Normalization of collection fields that the server sometimes collapses.

Several OptionsHouse replies declare a field as a list of records but send
a bare object when there is exactly one record. A field like that is
described by two pydantic schemas:

* the strict schema types the field as ``list[T]``; its ``records()``
  returns that list (or None when the field is absent/null)
* the fallback schema types the field as ``T``; its ``records()`` returns
  the single object (or None)

:class:`ShapeNormalizer` tries the strict schema, falls back once, and
always hands back a :class:`NormalizedCollection`.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, Protocol, Sequence, TypeVar, Union

from pydantic import BaseModel, ValidationError

from optionshouse.exceptions import ResponseShapeError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class StrictShape(Protocol):
    def records(self) -> Optional[Sequence[Any]]: ...


class FallbackShape(Protocol):
    def records(self) -> Optional[Any]: ...


class ParsePath(str, Enum):
    STRICT = "strict"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Parsed(Generic[M]):
    model: M


@dataclass(frozen=True)
class Failed:
    error: ValidationError


Outcome = Union[Parsed[M], Failed]


def attempt(raw: str, schema: type[M]) -> Outcome:
    """Validate ``raw`` against ``schema`` and report the outcome as a value."""
    try:
        return Parsed(schema.model_validate_json(raw))
    except ValidationError as e:
        return Failed(e)


@dataclass(frozen=True)
class NormalizedCollection(Generic[T]):
    """Uniform view of an ambiguous collection field.

    ``path`` records which schema matched and is for diagnostics only.
    ``document`` is the full parsed reply, for envelope-level fields.
    """

    items: tuple[T, ...]
    path: ParsePath
    raw: str
    document: Any = None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]


class ShapeNormalizer(Generic[T]):
    """Parse a reply whose collection field may arrive as a bare object.

    Usage:
        normalizer = ShapeNormalizer(PositionsReply, SinglePositionReply)
        positions = normalizer.parse(raw)
        for p in positions:
            ...
    """

    def __init__(self, strict_schema: type[BaseModel], fallback_schema: type[BaseModel]):
        self.strict_schema = strict_schema
        self.fallback_schema = fallback_schema

    def parse(self, raw: str) -> NormalizedCollection[T]:
        """Parse ``raw``.

        Raises:
            ResponseShapeError: If neither schema accepts the document
        """
        strict = attempt(raw, self.strict_schema)
        if isinstance(strict, Parsed):
            records = strict.model.records()
            return NormalizedCollection(
                items=tuple(records or ()),
                path=ParsePath.STRICT,
                raw=raw,
                document=strict.model,
            )

        fallback = attempt(raw, self.fallback_schema)
        if isinstance(fallback, Parsed):
            single = fallback.model.records()
            if single is not None:
                return NormalizedCollection(
                    items=(single,),
                    path=ParsePath.FALLBACK,
                    raw=raw,
                    document=fallback.model,
                )

        fallback_error = fallback.error if isinstance(fallback, Failed) else None
        raise ResponseShapeError(
            f"Reply matches neither {self.strict_schema.__name__} "
            f"nor {self.fallback_schema.__name__}",
            raw=raw,
            strict_error=strict.error,
            fallback_error=fallback_error,
        )


def normalize(
    raw: str,
    strict_schema: type[BaseModel],
    fallback_schema: type[BaseModel],
) -> NormalizedCollection[Any]:
    """Function form of :meth:`ShapeNormalizer.parse`."""
    return ShapeNormalizer(strict_schema, fallback_schema).parse(raw)
