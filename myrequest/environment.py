import collections.abc as cabc
import typing as t
from dataclasses import dataclass
from dataclasses import field
from types import MappingProxyType

from ._internal import _get_environ
from ._internal import _wsgi_decoding_dance
from .datastructures import EnvironHeaders
from .http import is_truthy_flag

if t.TYPE_CHECKING:
    from _typeshed.wsgi import WSGIEnvironment


def _empty_form() -> cabc.Mapping[str, t.Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class RequestEnvironment:
    """Read only snapshot of the fields a server supplies for one
    request. It is created once, handed to exactly one
    :class:`~myrequest.wrappers.Request`, and never changed afterwards.

    Most fields are optional, a missing field is ``None``. Which ones
    are present depends on the server, the resolvers in
    :mod:`myrequest.sansio.utils` fall back from one to the next.

    :param method: The request method, as sent.
    :param request_uri: The request target, path and query string.
    :param query_string: The part of the target after ``?``.
    :param headers: Request headers, case-insensitive. A plain mapping
        or list of pairs is converted to
        :class:`~myrequest.datastructures.EnvironHeaders`.
    :param remote_addr: Address of the client.
    :param remote_host: Host name of the client, if the server looked it
        up.
    :param secure: The server's TLS flag, like CGI's ``HTTPS``. ``on``
        (any case), ``1`` and ``True`` mean TLS.
    :param script_filename: Absolute path of the entry script.
    :param document_root: The server's document root.
    :param script_name: URL path the server mapped to the entry script.
    :param self_path: Script name followed by path info, like PHP's
        ``PHP_SELF``.
    :param orig_script_name: Script name before an internal redirect.
    :param orig_path_info: Path info as IIS 5 CGI passes it.
    :param server_name: Name the server is configured with.
    :param server_port: Port the request was received on.
    :param auth_user: User name from HTTP authentication.
    :param auth_password: Password from HTTP authentication.
    :param form: Form fields the server or framework already decoded
        from a ``POST`` body.
    :param input_stream: The request body. Read at most once.
    """

    method: str = "GET"
    request_uri: str | None = None
    query_string: str = ""
    headers: EnvironHeaders = field(default_factory=lambda: EnvironHeaders({}))
    remote_addr: str | None = None
    remote_host: str | None = None
    secure: str | bool | None = None
    script_filename: str | None = None
    document_root: str | None = None
    script_name: str | None = None
    self_path: str | None = None
    orig_script_name: str | None = None
    orig_path_info: str | None = None
    server_name: str | None = None
    server_port: int | None = None
    auth_user: str | None = None
    auth_password: str | None = None
    form: cabc.Mapping[str, t.Any] = field(default_factory=_empty_form)
    input_stream: t.IO[bytes] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Frozen, so conversions go through object.__setattr__.
        if isinstance(self.headers, EnvironHeaders):
            object.__setattr__(self, "headers", self.headers.copy())
        else:
            object.__setattr__(self, "headers", EnvironHeaders.from_headers(self.headers))
        object.__setattr__(self, "form", MappingProxyType(dict(self.form)))
        if self.server_port is not None:
            object.__setattr__(self, "server_port", int(self.server_port))

    @property
    def is_tls(self) -> bool:
        """The server's TLS flag is set."""
        return is_truthy_flag(self.secure)

    @property
    def rewrite_url(self) -> str | None:
        """The ``X-Rewrite-Url`` header IIS sets after a rewrite."""
        return self.headers.get("X-Rewrite-Url")

    @classmethod
    def from_wsgi(
        cls,
        environ: "WSGIEnvironment",
        form: cabc.Mapping[str, t.Any] | None = None,
    ) -> "RequestEnvironment":
        """Take a snapshot of a WSGI environment.

        WSGI has no request URI or ``PHP_SELF``. The non-standard
        ``REQUEST_URI`` and ``RAW_URI`` keys that most servers add are
        used if present, ``PHP_SELF`` is rebuilt from ``SCRIPT_NAME``
        and ``PATH_INFO``. Path fields are decoded from the latin-1 WSGI
        strings. Headers are copied, later changes to ``environ`` do not
        show in the snapshot.

        :param environ: The WSGI environment, or an object with an
            ``environ`` attribute.
        :param form: Form fields a framework already decoded.
        """
        environ = _get_environ(environ)

        def text(key: str) -> str | None:
            value = environ.get(key)
            if value is None:
                return None
            return _wsgi_decoding_dance(value)

        request_uri = text("REQUEST_URI")
        if request_uri is None:
            request_uri = text("RAW_URI")

        script_name = text("SCRIPT_NAME")
        self_path = text("PHP_SELF")
        if self_path is None and script_name is not None:
            self_path = script_name + (text("PATH_INFO") or "")

        secure: str | bool | None = environ.get("HTTPS")
        if secure is None and environ.get("wsgi.url_scheme") == "https":
            secure = True

        try:
            port: int | None = int(environ["SERVER_PORT"])
        except (KeyError, TypeError, ValueError):
            port = None  # unix socket

        return cls(
            method=environ.get("REQUEST_METHOD", "GET"),
            request_uri=request_uri,
            query_string=environ.get("QUERY_STRING", ""),
            headers=EnvironHeaders(environ),
            remote_addr=environ.get("REMOTE_ADDR"),
            remote_host=environ.get("REMOTE_HOST"),
            secure=secure,
            script_filename=environ.get("SCRIPT_FILENAME"),
            document_root=environ.get("DOCUMENT_ROOT"),
            script_name=script_name,
            self_path=self_path,
            orig_script_name=text("ORIG_SCRIPT_NAME"),
            orig_path_info=text("ORIG_PATH_INFO"),
            server_name=environ.get("SERVER_NAME"),
            server_port=port,
            auth_user=environ.get("REMOTE_USER"),
            form=form or {},
            input_stream=environ.get("wsgi.input"),
        )
