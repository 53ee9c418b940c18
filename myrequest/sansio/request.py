import base64
import binascii
import collections.abc as cabc
import re
import typing as t

from .._internal import _log
from ..datastructures import Accept
from ..datastructures import ResolvedAttributes
from ..environment import RequestEnvironment
from ..exceptions import DomainMismatchError
from ..exceptions import UrlResolutionError
from ..http import DEFAULT_LOCALE
from ..http import match_language
from ..http import parse_accept_header
from ..http import parse_etags
from ..urls import get_value
from ..urls import url_decode
from ..utils import resolved_property
from . import utils as _sansio_utils

_tag_re = re.compile(r"<!--.*?-->|<[^>]*>", re.S)


def _identity(value: str) -> str:
    return value


class Request:
    """Represents the non-IO parts of a HTTP request: the method, URL
    info, headers and content negotiation. Everything is derived from
    one :class:`~myrequest.environment.RequestEnvironment` and nothing
    reads process wide state.

    Derived values are computed on first access and kept for the life of
    the request. Assigning one of them overrides it, which is meant for
    tests and for correcting what a reverse proxy hides. An override
    clears the values computed from the overridden one, for example
    setting :attr:`port` clears :attr:`host_info`.

    This class does not read the body. :class:`myrequest.wrappers.Request`
    adds that.

    Configuration is done with class attributes. Override them in a
    subclass or pass them as keyword arguments.

    :param environ: The request environment.
    :param config: Values for the configuration attributes.
    :raise DomainMismatchError: :attr:`allow_domains` is set, the host is
        not in it and :attr:`raise_on_domain_mismatch` is enabled.
    """

    #: Lower case domains the server name and ``Host`` header must be in.
    #: A name starting with ``.`` also allows its subdomains. Empty
    #: allows everything.
    allow_domains: cabc.Sequence[str] = ()

    #: Raise :exc:`DomainMismatchError` for a host outside
    #: :attr:`allow_domains` when the request is created. Otherwise the
    #: mismatch is logged and the request continues.
    raise_on_domain_mismatch = False

    #: Form field that tunnels ``PUT``, ``PATCH`` or ``DELETE`` through
    #: ``POST``.
    method_param = "_method"

    #: Whether :attr:`home_url` includes the entry script.
    show_script_name = True

    #: Returned by :meth:`get_preferred_language` if the application
    #: lists no supported languages.
    default_locale = DEFAULT_LOCALE

    #: Resolves an alias in an overridden :attr:`home_url`.
    alias_resolver: t.Callable[[str], str] = staticmethod(_identity)  # type: ignore[assignment]

    #: Field name to the fields computed from it.
    dependencies: t.ClassVar[dict[str, tuple[str, ...]]] = {
        "scheme": ("host_info",),
        "host": ("host_info",),
        "port": ("host_info",),
        "secure_port": ("host_info",),
        "script_file": ("script_url",),
        "script_url": ("base_url", "path_info"),
        "base_url": ("path_info",),
        "url": ("path_info",),
        "query_string": ("query_params", "url"),
        "is_ajax": ("is_pjax",),
    }

    _config_keys = frozenset(
        (
            "allow_domains",
            "raise_on_domain_mismatch",
            "method_param",
            "show_script_name",
            "default_locale",
            "alias_resolver",
        )
    )

    def __init__(self, environ: RequestEnvironment, **config: t.Any) -> None:
        for key, value in config.items():
            if key not in self._config_keys:
                raise TypeError(
                    f"{type(self).__name__}() got an unexpected keyword argument {key!r}"
                )
            setattr(self, key, value)

        #: The environment the request was created from.
        self.environ = environ
        self._attributes = ResolvedAttributes(self.dependencies)
        self.is_self_domain(throw=self.raise_on_domain_mismatch)

    def __repr__(self) -> str:
        try:
            url = self.url
        except UrlResolutionError:
            url = "(invalid URL)"
        return f"<{type(self).__name__} {url!r} [{self.method}]>"

    # method

    @resolved_property
    def method(self) -> str:
        """The request method, upper case. A ``POST`` may tunnel another
        method in the :attr:`method_param` form field or the
        ``X-HTTP-Method-Override`` header. ``GET`` if unknown.
        """
        env = self.environ
        if self.method_param in env.form:
            return str(env.form[self.method_param]).upper()
        override = env.headers.get("X-HTTP-Method-Override")
        if override is not None:
            return override.upper()
        return (env.method or "GET").upper()

    @method.converter
    def method(self, value: str) -> str:
        return value.upper()

    def is_method(self, *methods: str) -> bool:
        """The request method is one of ``methods``."""
        return self.method in methods

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_put(self) -> bool:
        return self.method == "PUT"

    @property
    def is_patch(self) -> bool:
        return self.method == "PATCH"

    @property
    def is_delete(self) -> bool:
        return self.method == "DELETE"

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_options(self) -> bool:
        return self.method == "OPTIONS"

    # scheme and host

    @property
    def is_secure_connection(self) -> bool:
        """The request came over TLS, directly or through a proxy that
        sent ``X-Forwarded-Proto: https``.
        """
        return _sansio_utils.is_secure(self.environ)

    @resolved_property
    def scheme(self) -> str:
        """``https`` for a secure connection, ``http`` otherwise."""
        return "https" if self.is_secure_connection else "http"

    @resolved_property
    def host(self) -> str | None:
        """The ``Host`` header, or the server name without it. ``None``
        if neither is known.
        """
        return _sansio_utils.get_host(self.environ)

    @resolved_property
    def port(self) -> int:
        """Port for insecure requests. The server port if this request
        is insecure, 80 otherwise.
        """
        if not self.is_secure_connection and self.environ.server_port is not None:
            return self.environ.server_port
        return 80

    @port.converter
    def port(self, value: t.Any) -> int:
        return int(value)

    @resolved_property
    def secure_port(self) -> int:
        """Port for secure requests. The server port if this request is
        secure, 443 otherwise.
        """
        if self.is_secure_connection and self.environ.server_port is not None:
            return self.environ.server_port
        return 443

    @secure_port.converter
    def secure_port(self, value: t.Any) -> int:
        return int(value)

    @resolved_property
    def host_info(self) -> str:
        """Scheme and host of the request URL, like
        ``http://www.example.com``, without a trailing slash. A
        ``Host`` header is used as sent. A host from the server name
        gets :attr:`port` or :attr:`secure_port` appended unless it is
        the default for the scheme.

        :raise UrlResolutionError: Neither a ``Host`` header nor a server
            name is available.
        """
        scheme = self.scheme
        host = self.host
        if host is None:
            raise UrlResolutionError("Unable to determine the host of the request.")
        if "Host" in self.environ.headers:
            return _sansio_utils.get_host_info(scheme, host)
        port = self.secure_port if scheme == "https" else self.port
        return _sansio_utils.get_host_info(scheme, host, port)

    @property
    def server_name(self) -> str | None:
        return self.environ.server_name

    @property
    def server_port(self) -> int | None:
        return self.environ.server_port

    # URL

    @resolved_property
    def url(self) -> str:
        """The request target relative to :attr:`host_info`, including
        the query string. It is still URL encoded.

        :raise UrlResolutionError: The server supplied no field to find
            it in.
        """
        return _sansio_utils.resolve_request_uri(self.environ, self.query_string)

    @property
    def url_without_args(self) -> str:
        """:attr:`url` without the query string."""
        return self.url.partition("?")[0]

    def get_absolute_url(self, strip_tags: bool = True) -> str:
        """:attr:`host_info` followed by :attr:`url`.

        :param strip_tags: Remove anything that looks like a HTML tag,
            since the URL is client input that may end up in a page.
        """
        url = f"{self.host_info}{self.url}"
        if strip_tags:
            return _strip_tags(url)
        return url

    @property
    def absolute_url(self) -> str:
        """:meth:`get_absolute_url` with tags stripped."""
        return self.get_absolute_url()

    @resolved_property
    def script_file(self) -> str | None:
        """Path of the entry script on disk."""
        return self.environ.script_filename

    @resolved_property
    def script_url(self) -> str:
        """URL path of the entry script, like ``/app/index.php``.

        :raise UrlResolutionError: No server field leads to the entry
            script.
        """
        return _sansio_utils.resolve_script_url(self.environ, self.script_file)

    @script_url.converter
    def script_url(self, value: str) -> str:
        return "/" + value.strip("/")

    @resolved_property
    def base_url(self) -> str:
        """:attr:`script_url` without the script, and without trailing
        slashes. Empty for a script in the document root.
        """
        return _sansio_utils.get_base_url(self.script_url)

    @resolved_property
    def path_info(self) -> str:
        """The URL decoded part of the URL between the entry script and
        the query string, without a leading slash.

        :raise UrlResolutionError: The URL does not start with the entry
            script's URL or directory.
        """
        return _sansio_utils.resolve_path_info(
            self.url, self.script_url, self.base_url, self.environ.self_path
        )

    @path_info.converter
    def path_info(self, value: str) -> str:
        return value.lstrip("/")

    @property
    def home_url(self) -> str:
        """The application's home page. :attr:`script_url` if
        :attr:`show_script_name` is enabled, :attr:`base_url` with a
        trailing slash otherwise. An assigned value is passed through
        :attr:`alias_resolver` on access.
        """
        override = self._attributes.get("home_url")
        if override is not None:
            return self.alias_resolver(override)
        if self.show_script_name:
            return self.script_url
        return f"{self.base_url}/"

    @home_url.setter
    def home_url(self, value: str) -> None:
        self._attributes.override("home_url", value)

    @home_url.deleter
    def home_url(self) -> None:
        self._attributes.invalidate("home_url")

    @resolved_property
    def query_string(self) -> str:
        """The part of the URL after ``?``."""
        return self.environ.query_string or ""

    @resolved_property
    def query_params(self) -> dict[str, t.Any]:
        """:attr:`query_string` decoded with
        :func:`~myrequest.urls.url_decode`.
        """
        return url_decode(self.query_string)

    def get_query_param(
        self, name: str | cabc.Sequence[str], default: t.Any = None
    ) -> t.Any:
        """A value from :attr:`query_params`. ``name`` may be a dotted
        path or a list of keys into nested values.
        """
        return get_value(self.query_params, name, default)

    # headers

    @resolved_property
    def content_type(self) -> str | None:
        """The ``Content-Type`` header, with its parameters. Servers
        that pass it only as ``HTTP_CONTENT_TYPE`` are handled too.
        """
        headers = self.environ.headers
        value = headers.get("Content-Type")
        if value is None:
            value = headers.environ.get("HTTP_CONTENT_TYPE")
        return value

    @resolved_property
    def referrer(self) -> str | None:
        return self.environ.headers.get("Referer")

    @resolved_property
    def user_agent(self) -> str | None:
        return self.environ.headers.get("User-Agent")

    @property
    def etags(self) -> list[str]:
        """Entity tags from the ``If-None-Match`` header."""
        return parse_etags(self.environ.headers.get("If-None-Match"))

    @resolved_property
    def is_ajax(self) -> bool:
        """The request was sent by ``XMLHttpRequest``."""
        return self.environ.headers.get("X-Requested-With") == "XMLHttpRequest"

    @resolved_property
    def is_pjax(self) -> bool:
        """An AJAX request from PJAX."""
        return self.is_ajax and bool(self.environ.headers.get("X-Pjax"))

    @resolved_property
    def is_flash(self) -> bool:
        """The request came from Adobe Flash or Flex."""
        agent = (self.user_agent or "").lower()
        return "shockwave" in agent or "flash" in agent

    @resolved_property
    def is_cors(self) -> bool:
        """The request has an ``Origin`` header."""
        return bool(self.environ.headers.get("Origin"))

    # client

    @resolved_property
    def user_ip(self) -> str:
        """The client address, ``127.0.0.1`` if the server did not
        supply one.
        """
        return self.environ.remote_addr or "127.0.0.1"

    @resolved_property
    def user_host(self) -> str | None:
        return self.environ.remote_host

    def is_ips(self, ips: cabc.Iterable[str]) -> bool:
        """:attr:`user_ip` is one of ``ips``."""
        return self.user_ip in ips

    def _basic_auth(self) -> tuple[str, str] | None:
        auth = self.environ.headers.get("Authorization")
        if not auth:
            return None
        scheme, _, credentials = auth.partition(" ")
        if scheme.lower() != "basic":
            return None
        try:
            decoded = base64.b64decode(credentials.strip(), validate=True).decode()
        except (binascii.Error, UnicodeDecodeError):
            return None
        user, sep, password = decoded.partition(":")
        if not sep:
            return None
        return user, password

    @property
    def auth_user(self) -> str | None:
        """The user name from HTTP authentication, from the server or a
        ``Basic`` ``Authorization`` header.
        """
        if self.environ.auth_user is not None:
            return self.environ.auth_user
        basic = self._basic_auth()
        return None if basic is None else basic[0]

    @property
    def auth_password(self) -> str | None:
        """The password from HTTP authentication."""
        if self.environ.auth_password is not None:
            return self.environ.auth_password
        basic = self._basic_auth()
        return None if basic is None else basic[1]

    def is_self_domain(self, throw: bool = False) -> bool:
        """Check the server name and ``Host`` header against
        :attr:`allow_domains`. Always true if no domains are configured.

        :param throw: Raise instead of logging on a mismatch.
        :raise DomainMismatchError: A name is not allowed and ``throw``
            is set.
        """
        domains = self.allow_domains
        if not domains:
            return True

        host = self.environ.headers.get("Host")
        if _sansio_utils.host_is_trusted(
            self.environ.server_name, domains
        ) and _sansio_utils.host_is_trusted(host, domains):
            return True

        error = DomainMismatchError(host)
        if throw:
            raise error
        _log("error", "%s", error)
        return False

    # content negotiation

    parse_accept_header = staticmethod(parse_accept_header)

    @resolved_property
    def acceptable_content_types(self) -> Accept:
        """Content types from the ``Accept`` header, most preferred
        first. Assign an :class:`~myrequest.datastructures.Accept` to
        override.
        """
        return parse_accept_header(self.environ.headers.get("Accept"))

    @resolved_property
    def acceptable_languages(self) -> list[str]:
        """Languages from the ``Accept-Language`` header, most preferred
        first.
        """
        return parse_accept_header(self.environ.headers.get("Accept-Language")).values_list()

    @acceptable_languages.converter
    def acceptable_languages(self, value: cabc.Iterable[str]) -> list[str]:
        return list(value)

    def get_preferred_language(self, languages: cabc.Sequence[str] = ()) -> str:
        """The language the application should respond in.

        :param languages: Languages the application supports. If empty,
            :attr:`default_locale` is returned without looking at the
            request.
        :return: The first supported language that matches one of
            :attr:`acceptable_languages`, or the first supported language
            if none do.
        """
        if not languages:
            return self.default_locale
        return match_language(self.acceptable_languages, languages, self.default_locale)


def _strip_tags(value: str) -> str:
    return _tag_re.sub("", value)
