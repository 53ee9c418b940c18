import collections.abc as cabc
import json
import typing as t

from ._internal import _log
from .exceptions import InvalidParserError
from .exceptions import ParseError
from .urls import url_decode

#: Registry key of the parser used when no parser is registered for the
#: content type.
WILDCARD = "*"


@t.runtime_checkable
class RequestParser(t.Protocol):
    """Converts a raw request body into body parameters. Register
    implementations in :attr:`myrequest.wrappers.Request.parsers`.
    """

    def parse(self, raw_body: bytes, content_type: str | None) -> t.Any:
        """Parse a request body.

        :param raw_body: The raw request body.
        :param content_type: The content type of the body, without
            parameters.
        :raise ParseError: The body is not valid for the content type.
        """
        ...


class JsonParser:
    """Parses a JSON request body with :func:`json.loads`.

    .. code-block:: python

        Request(environ, parsers={"application/json": JsonParser})

    :param as_array: Return JSON objects as :class:`dict`. If disabled,
        objects are returned as :class:`types.SimpleNamespace`.
    :param throw_exception: Raise :exc:`ParseError` for invalid JSON.
        If disabled, the error is logged and ``None`` returned.
    """

    def __init__(self, as_array: bool = True, throw_exception: bool = True) -> None:
        self.as_array = as_array
        self.throw_exception = throw_exception

    def parse(self, raw_body: bytes, content_type: str | None) -> t.Any:
        object_hook = None
        if not self.as_array:
            from types import SimpleNamespace

            object_hook = lambda d: SimpleNamespace(**d)  # noqa: E731

        try:
            return json.loads(raw_body, object_hook=object_hook)
        except (ValueError, TypeError) as e:
            message = f"Invalid JSON data in request body: {e}"
            if self.throw_exception:
                raise ParseError(message, original_exception=e) from e
            _log("warning", "%s", message)
            return None


class FormParser:
    """Parses an URL encoded body with
    :func:`~myrequest.urls.url_decode`.

    :param charset: Charset of the body.
    """

    def __init__(self, charset: str = "utf-8") -> None:
        self.charset = charset

    def parse(self, raw_body: bytes, content_type: str | None) -> dict[str, t.Any]:
        return url_decode(raw_body, self.charset)


_ParserEntry = t.Union[RequestParser, type]


class ParserRegistry:
    """Content type to body parser lookup.

    Values are parser instances or parser classes. A class is
    instantiated without arguments on first use. The :data:`WILDCARD`
    key registers a fallback for content types without a parser of
    their own.

    :param parsers: Content type to parser.
    """

    def __init__(self, parsers: cabc.Mapping[str, _ParserEntry] | None = None) -> None:
        self._entries: dict[str, _ParserEntry] = dict(parsers or {})
        self._instances: dict[str, RequestParser] = {}

    def __contains__(self, content_type: object) -> bool:
        return content_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._entries!r})"

    def get(self, key: str) -> RequestParser | None:
        """The parser registered under exactly ``key``.

        :raise InvalidParserError: The registered value does not
            implement :class:`RequestParser`.
        """
        if key not in self._entries:
            return None
        if key not in self._instances:
            self._instances[key] = _ensure_parser(key, self._entries[key])
        return self._instances[key]

    def lookup(self, content_type: str | None) -> RequestParser | None:
        """The parser for ``content_type``, else the wildcard parser,
        else ``None``.
        """
        if content_type is not None:
            parser = self.get(content_type)
            if parser is not None:
                return parser
        return self.get(WILDCARD)


def _ensure_parser(key: str, entry: _ParserEntry) -> RequestParser:
    parser = entry() if isinstance(entry, type) else entry

    if not isinstance(parser, RequestParser) or not callable(
        getattr(parser, "parse", None)
    ):
        if key == WILDCARD:
            message = "The fallback request parser is invalid."
        else:
            message = f"The {key!r} request parser is invalid."
        raise InvalidParserError(
            f"{message} It must implement myrequest.parsers.RequestParser."
        )
    return parser
