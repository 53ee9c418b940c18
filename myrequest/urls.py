import collections.abc as cabc
import re
import typing as t
from urllib.parse import parse_qsl

_absolute_prefix_re = re.compile(r"^(?:http|https)://[^/]+", re.IGNORECASE)
_nested_key_re = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_subkey_re = re.compile(r"\[([^\[\]]*)\]")

_missing = object()


def strip_absolute_prefix(uri: str) -> str:
    """Remove a ``scheme://host`` prefix from a request target that a
    client or proxy sent in absolute form. Origin form targets, starting
    with ``/``, are returned unchanged.

    >>> strip_absolute_prefix("http://example.com/a?b=1")
    '/a?b=1'
    """
    if uri == "" or uri[0] == "/":
        return uri
    return _absolute_prefix_re.sub("", uri, count=1)


def _split_key(key: str) -> list[str]:
    match = _nested_key_re.match(key)
    if match is None:
        return [key]
    return [match.group(1), *_subkey_re.findall(match.group(2))]


def _assign(target: dict[str, t.Any], keys: list[str], value: t.Any) -> None:
    append = len(keys) > 1 and keys[-1] == ""
    if append:
        keys = keys[:-1]

    *parents, last = keys
    for key in parents:
        child = target.get(key)
        if not isinstance(child, dict):
            child = target[key] = {}
        target = child

    if append:
        items = target.get(last)
        if not isinstance(items, list):
            items = target[last] = []
        items.append(value)
    else:
        target[last] = value


def url_decode(s: str | bytes, charset: str = "utf-8") -> dict[str, t.Any]:
    """Decode an URL encoded form string, such as a query string or a
    ``application/x-www-form-urlencoded`` body, into a dict.

    Keys with brackets build nested values, ``a[b]=1`` becomes
    ``{"a": {"b": "1"}}`` and ``a[]=1&a[]=2`` becomes
    ``{"a": ["1", "2"]}``. A repeated plain key keeps its last value.

    :param s: The encoded string. Bytes are decoded with ``charset``,
        invalid sequences replaced.
    :param charset: The charset of ``s`` if it is bytes.
    """
    if isinstance(s, bytes):
        s = s.decode(charset, "replace")

    result: dict[str, t.Any] = {}
    for key, value in parse_qsl(s, keep_blank_values=True):
        _assign(result, _split_key(key), value)
    return result


def get_value(
    data: t.Any,
    key: str | cabc.Sequence[str | int],
    default: t.Any = None,
) -> t.Any:
    """Look up a value in nested mappings and lists.

    A string key is first tried as is, then as a ``.`` separated path.
    A sequence is used as the path directly.

    >>> get_value({"foo": {"bar": 1}}, "foo.bar")
    1
    >>> get_value({"foo": {"bar": 1}}, ["foo", "baz"], "unknown")
    'unknown'
    """
    if isinstance(key, str):
        if isinstance(data, cabc.Mapping) and key in data:
            return data[key]
        path: cabc.Sequence[str | int] = key.split(".")
    else:
        path = key

    current = data
    for part in path:
        current = _lookup(current, part)
        if current is _missing:
            return default
    return current


def _lookup(data: t.Any, key: str | int) -> t.Any:
    if isinstance(data, cabc.Mapping):
        return data.get(key, _missing)
    if isinstance(data, (list, tuple)):
        try:
            return data[int(key)]
        except (ValueError, IndexError):
            return _missing
    return _missing
