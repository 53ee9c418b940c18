import collections.abc as cabc
import typing as t

from ..exceptions import BadRequestKeyError

if t.TYPE_CHECKING:
    from _typeshed.wsgi import WSGIEnvironment

K = t.TypeVar("K")
V = t.TypeVar("V")

# Headers a server passes without the ``HTTP_`` prefix.
_unprefixed = frozenset(("CONTENT_TYPE", "CONTENT_LENGTH"))


def iter_multi_items(
    mapping: cabc.Mapping[K, V | list[V] | tuple[V, ...]] | cabc.Iterable[tuple[K, V]],
) -> cabc.Iterable[tuple[K, V]]:
    """Iterates over the items of a mapping yielding keys and values
    without dropping any from more complex structures."""
    if isinstance(mapping, cabc.Mapping):
        for key, value in mapping.items():
            if isinstance(value, (list, tuple)):
                for v in value:
                    yield key, v
            else:
                yield key, value
    else:
        yield from mapping


def _environ_key(name: str) -> str:
    key = name.upper().replace("-", "_")
    if key in _unprefixed:
        return key
    return f"HTTP_{key}"


def _header_name(key: str) -> str | None:
    if key.startswith("HTTP_"):
        key = key[5:]
    elif key not in _unprefixed:
        return None
    return key.replace("_", "-").title()


class EnvironHeaders(cabc.Mapping[str, str]):
    """Read only view of the headers in a WSGI style environment. Keys
    are case-insensitive, ``headers["content-type"]`` and
    ``headers["Content-Type"]`` both read ``CONTENT_TYPE``, and
    ``headers["X-Forwarded-Proto"]`` reads ``HTTP_X_FORWARDED_PROTO``.

    Lookups read the wrapped environment. Use :meth:`copy` to detach the
    view from it, and :meth:`from_headers` to build the view from plain
    header pairs.

    The :exc:`KeyError` raised for a missing header is also a
    :exc:`~myrequest.exceptions.BadRequest`.

    :param environ: The environment to read headers from.
    """

    def __init__(self, environ: "WSGIEnvironment | cabc.Mapping[str, t.Any]") -> None:
        self.environ = environ

    @classmethod
    def from_headers(
        cls,
        headers: cabc.Mapping[str, t.Any] | cabc.Iterable[tuple[str, t.Any]],
    ) -> "EnvironHeaders":
        """Build a view from a mapping or an iterable of ``(name, value)``
        pairs. Repeated names are joined with ``", "`` the way a server
        folds them.
        """
        environ: dict[str, str] = {}
        for name, value in iter_multi_items(headers):
            key = _environ_key(name)
            if key in environ:
                environ[key] = f"{environ[key]}, {value}"
            else:
                environ[key] = str(value)
        return cls(environ)

    def copy(self) -> "EnvironHeaders":
        """A view over a copy of the header keys only. Changes to the
        wrapped environment do not show in the copy.
        """
        return type(self)(
            {k: v for k, v in self.environ.items() if _header_name(k) is not None}
        )

    def __getitem__(self, key: str) -> str:
        if not isinstance(key, str):
            raise BadRequestKeyError(key)
        try:
            return self.environ[_environ_key(key)]
        except KeyError:
            raise BadRequestKeyError(key) from None

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return _environ_key(key) in self.environ

    def __iter__(self) -> t.Iterator[str]:
        for key in self.environ:
            name = _header_name(key)
            if name is not None:
                yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"
