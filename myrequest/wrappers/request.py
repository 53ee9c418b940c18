import collections.abc as cabc
import typing as t

from .._internal import _log
from ..environment import RequestEnvironment
from ..exceptions import ParseError
from ..http import parse_content_type
from ..parsers import ParserRegistry
from ..sanitize import DefaultSanitizer
from ..sanitize import Sanitizer
from ..sanitize import sanitize_value
from ..sanitize import wrap
from ..sansio.request import Request as _SansIORequest
from ..urls import get_value
from ..urls import url_decode
from ..utils import resolved_property

if t.TYPE_CHECKING:
    from _typeshed.wsgi import WSGIEnvironment

_Key = t.Union[str, cabc.Sequence[str]]


class Request(_SansIORequest):
    """Represents an incoming HTTP request, with the body. Adds reading
    the body and turning it into :attr:`body_params` to the non-IO
    :class:`myrequest.sansio.request.Request`.

    .. code-block:: python

        from myrequest import JsonParser, Request

        def application(environ, start_response):
            request = Request.from_wsgi(
                environ, parsers={"application/json": JsonParser}
            )
            name = request.post("name")
            ...

    An instance belongs to exactly one request. It does no locking, do
    not share it between threads.

    :param environ: The request environment.
    :param config: Values for the configuration attributes.
    """

    #: Content type to :class:`~myrequest.parsers.RequestParser`, or a
    #: :class:`~myrequest.parsers.ParserRegistry`. The ``"*"`` key is the
    #: fallback for any content type.
    parsers: cabc.Mapping[str, t.Any] | ParserRegistry = {}

    #: Sanitizer used by :meth:`get` and :meth:`post` when none is
    #: passed. ``None`` uses :class:`~myrequest.sanitize.DefaultSanitizer`.
    sanitizer: Sanitizer | None = None

    dependencies = {
        **_SansIORequest.dependencies,
        "method": ("body_params",),
        "content_type": ("body_params",),
        "raw_body": ("body_params",),
    }

    _config_keys = _SansIORequest._config_keys | {"parsers", "sanitizer"}

    def __init__(self, environ: RequestEnvironment, **config: t.Any) -> None:
        super().__init__(environ, **config)
        if isinstance(self.parsers, ParserRegistry):
            self._parsers = self.parsers
        else:
            self._parsers = ParserRegistry(self.parsers)

    @classmethod
    def from_wsgi(
        cls,
        environ: "WSGIEnvironment",
        form: cabc.Mapping[str, t.Any] | None = None,
        **config: t.Any,
    ) -> "Request":
        """Create a request from a WSGI environment.

        :param environ: The WSGI environment.
        :param form: Form fields a framework already decoded.
        :param config: Values for the configuration attributes.
        """
        return cls(RequestEnvironment.from_wsgi(environ, form), **config)

    @resolved_property
    def raw_body(self) -> bytes:
        """The request body with surrounding whitespace removed. The
        input stream is read the first time this is accessed and never
        again.
        """
        stream = self.environ.input_stream
        if stream is None:
            return b""
        return stream.read().strip()

    @raw_body.converter
    def raw_body(self, value: bytes | str) -> bytes:
        if isinstance(value, str):
            value = value.encode()
        return value

    def _get_body_params(self) -> t.Any:
        env = self.environ

        # A tunnelled method means the body was a form, already decoded.
        if self.method_param in env.form:
            params = dict(env.form)
            del params[self.method_param]
            return params

        content_type = parse_content_type(self.content_type)
        parser = self._parsers.lookup(content_type)
        if parser is not None:
            _log("debug", "Parsing %r body with %s", content_type, type(parser).__name__)
            result = parser.parse(self.raw_body, content_type)
            return {} if result is None else result

        if self.method == "POST":
            return dict(env.form)

        return url_decode(self.raw_body)

    body_params = resolved_property(_get_body_params, cache_errors=(ParseError,))
    body_params.__doc__ = """The parameters in the request body.

    If the :attr:`method_param` form field is present, the other form
    fields are used. Otherwise the registered parser for the content
    type, or the ``"*"`` parser, decodes :attr:`raw_body`. Without a
    parser, a ``POST`` uses the form fields the server decoded and
    other methods decode the body as an URL encoded form.

    :raise ParseError: The parser failed. The error is kept, accessing
        this again raises it again without parsing again.
    :raise InvalidParserError: The registered parser does not implement
        :class:`~myrequest.parsers.RequestParser`.
    """

    def get_body_param(self, name: _Key, default: t.Any = None) -> t.Any:
        """A value from :attr:`body_params`. ``name`` may be a dotted
        path or a list of keys into nested values.
        """
        return get_value(self.body_params, name, default)

    def raw_get(self, name: _Key | None = None, default: t.Any = None) -> t.Any:
        """A query parameter as sent, or all of them if ``name`` is
        ``None``.
        """
        if name is None:
            return self.query_params
        return self.get_query_param(name, default)

    def raw_post(self, name: _Key | None = None, default: t.Any = None) -> t.Any:
        """A body parameter as sent, or all of them if ``name`` is
        ``None``.
        """
        if name is None:
            return self.body_params
        return self.get_body_param(name, default)

    def get(
        self,
        name: _Key | None = None,
        default: t.Any = None,
        sanitizer: Sanitizer | None = None,
    ) -> t.Any:
        """A sanitized query parameter, or all of them if ``name`` is
        ``None``.

        :param name: Parameter name, dotted path or list of keys.
        :param default: Returned if the parameter is missing. It is
            sanitized as well.
        :param sanitizer: Overrides :attr:`sanitizer`.
        """
        return self._sanitize(self.raw_get(name, default), sanitizer)

    def post(
        self,
        name: _Key | None = None,
        default: t.Any = None,
        sanitizer: Sanitizer | None = None,
    ) -> t.Any:
        """A sanitized body parameter, or all of them if ``name`` is
        ``None``. See :meth:`get`.
        """
        return self._sanitize(self.raw_post(name, default), sanitizer)

    def _sanitize(self, value: t.Any, sanitizer: Sanitizer | None) -> t.Any:
        if sanitizer is None:
            sanitizer = self.sanitizer or DefaultSanitizer()
        return sanitize_value(wrap(value), sanitizer)
