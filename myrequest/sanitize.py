"""Boundary to the sanitization engine.

The accessor methods of :class:`~myrequest.wrappers.Request` hand every
value to a :class:`Sanitizer`. Whether the value is a single value or a
mapping of values is decided once, when it is wrapped in :class:`Scalar`
or :class:`Mapping`, and the sanitizer gets a separate call for each
case.

The rule language of a real sanitizer lives outside this package.
:class:`DefaultSanitizer` covers the default rules: remove tags, trim,
convert numbers.
"""
import collections.abc as cabc
import re
import typing as t
from dataclasses import dataclass

_tag_re = re.compile(r"<!--.*?-->|<[^>]*>", re.S)
_int_re = re.compile(r"[+-]?\d+")
_float_re = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class Scalar:
    """A single request value."""

    value: t.Any


@dataclass(frozen=True)
class Mapping:
    """A mapping of names to request values, possibly nested."""

    value: cabc.Mapping[str, t.Any]


Value = t.Union[Scalar, Mapping]


class Sanitizer(t.Protocol):
    def sanitize_scalar(self, value: t.Any) -> t.Any: ...

    def sanitize_mapping(self, value: cabc.Mapping[str, t.Any]) -> t.Any: ...


def wrap(value: t.Any) -> Value:
    """Tag a raw value as :class:`Mapping` or :class:`Scalar`."""
    if isinstance(value, cabc.Mapping):
        return Mapping(value)
    return Scalar(value)


def sanitize_value(value: Value, sanitizer: Sanitizer) -> t.Any:
    """Apply ``sanitizer`` to a tagged value."""
    if isinstance(value, Mapping):
        return sanitizer.sanitize_mapping(value.value)
    return sanitizer.sanitize_scalar(value.value)


class DefaultSanitizer:
    """Removes tags, trims whitespace and converts numeric strings to
    :class:`int` or :class:`float`. Mappings and lists are sanitized
    item by item.

    :param remove_tags: Remove HTML tags and comments.
    :param trim: Strip leading and trailing whitespace.
    :param to_type: Convert numeric strings.
    """

    def __init__(
        self, remove_tags: bool = True, trim: bool = True, to_type: bool = True
    ) -> None:
        self.remove_tags = remove_tags
        self.trim = trim
        self.to_type = to_type

    def sanitize_scalar(self, value: t.Any) -> t.Any:
        if isinstance(value, (list, tuple)):
            return [self.sanitize_value(v) for v in value]
        if not isinstance(value, str):
            return value
        if self.remove_tags:
            value = _tag_re.sub("", value)
        if self.trim:
            value = value.strip()
        if self.to_type:
            if _int_re.fullmatch(value):
                return int(value)
            if _float_re.fullmatch(value):
                return float(value)
        return value

    def sanitize_mapping(self, value: cabc.Mapping[str, t.Any]) -> dict[str, t.Any]:
        return {k: self.sanitize_value(v) for k, v in value.items()}

    def sanitize_value(self, value: t.Any) -> t.Any:
        return sanitize_value(wrap(value), self)
