import posixpath
import re
import typing as t
from urllib.parse import unquote_to_bytes

from .._internal import _decode_path_bytes
from ..exceptions import UrlResolutionError
from ..urls import strip_absolute_prefix

if t.TYPE_CHECKING:
    from ..environment import RequestEnvironment

_default_ports = {"http": 80, "https": 443, "ws": 80, "wss": 443}
_path_sep_re = re.compile(r"[\\/]")


def _basename(path: str) -> str:
    return _path_sep_re.split(path.rstrip("/\\"))[-1]


def host_is_trusted(hostname: str | None, trusted_list: t.Iterable[str]) -> bool:
    """Check if a host matches a list of trusted names. Case and port
    are ignored.

    :param hostname: The name to check.
    :param trusted_list: A list of valid names to match. If a name
        starts with a dot it will match all subdomains.

    >>> host_is_trusted("aaa.eg", [".eg"])
    True
    """
    if not hostname: return False
    try:
        hostname = hostname.partition(":")[0].encode("idna").decode("ascii").lower()
    except UnicodeError:
        return False
    if isinstance(trusted_list, str): trusted_list = [trusted_list]

    for ref in trusted_list:
        if ref.startswith("."):
            ref = ref[1:]
            suffix_match = True
        else:
            suffix_match = False
        try:
            ref = ref.partition(":")[0].encode("idna").decode("ascii").lower()
        except UnicodeError:
            return False

        if ref == hostname or (suffix_match and hostname.endswith(f".{ref}")):
            return True

    return False


def is_secure(environ: "RequestEnvironment") -> bool:
    """The connection is TLS, either because the server says so or
    because a reverse proxy sent ``X-Forwarded-Proto: https``.
    """
    if environ.is_tls:
        return True
    proto = environ.headers.get("X-Forwarded-Proto")
    return proto is not None and proto.strip().lower() == "https"


def get_host(environ: "RequestEnvironment") -> str | None:
    """The ``Host`` header, or the server name if the header is missing.

    :return: The host, or ``None`` if neither is available.
    """
    host = environ.headers.get("Host")
    if host is not None:
        return host
    return environ.server_name


def get_host_info(scheme: str, host: str, port: int | None = None) -> str:
    """Join a scheme, a host and a port into ``scheme://host[:port]``.
    The port is left out if it is the standard port for the scheme.

    An IPv6 host is wrapped in ``[]`` when a port follows it.

    :param scheme: The protocol, like ``https``.
    :param host: The host name, possibly with a port already.
    :param port: A port to append.
    """
    if port is not None and port != _default_ports.get(scheme):
        if ":" in host and host[0] != "[":
            host = f"[{host}]"
        host = f"{host}:{port}"
    return f"{scheme}://{host}"


def resolve_request_uri(
    environ: "RequestEnvironment", query_string: str | None = None
) -> str:
    """Find the request target, the part of the URL after the host,
    including the query string.

    The IIS ``X-Rewrite-Url`` header is tried first, then the request
    URI (a target in absolute form loses its ``scheme://host``), then
    the original path info IIS 5 CGI passes joined with the query
    string.

    :param environ: The request environment.
    :param query_string: The query string for the IIS 5 fallback, the
        environment's if not given.
    :raise UrlResolutionError: None of these are available.
    """
    if environ.rewrite_url is not None:
        return environ.rewrite_url

    if environ.request_uri is not None:
        return strip_absolute_prefix(environ.request_uri)

    if environ.orig_path_info is not None:
        if query_string is None:
            query_string = environ.query_string
        uri = environ.orig_path_info
        if query_string:
            uri = f"{uri}?{query_string}"
        return uri

    raise UrlResolutionError("Unable to determine the request URI.")


def resolve_script_url(environ: "RequestEnvironment", script_file: str | None) -> str:
    """Find the URL path of the entry script.

    The script name, ``PHP_SELF`` and the original script name are tried
    in that order and the first whose file name is the entry script's
    file name is used. Then the script name is cut where ``PHP_SELF``
    contains ``/`` and the entry script's file name. Last, the document
    root is removed from the entry script's path.

    :param environ: The request environment.
    :param script_file: Path of the entry script on disk.
    :raise UrlResolutionError: None of these apply.
    """
    if not script_file:
        raise UrlResolutionError("Unable to determine the entry script URL.")

    script_name = _basename(script_file)

    for candidate in (
        environ.script_name,
        environ.self_path,
        environ.orig_script_name,
    ):
        if candidate is not None and _basename(candidate) == script_name:
            return candidate

    if environ.self_path is not None:
        pos = environ.self_path.find(f"/{script_name}")
        if pos != -1:
            return f"{(environ.script_name or '')[:pos]}/{script_name}"

    root = environ.document_root
    if root and script_file.startswith(root):
        return script_file.replace(root, "").replace("\\", "/")

    raise UrlResolutionError("Unable to determine the entry script URL.")


def get_base_url(script_url: str) -> str:
    """The directory of the entry script URL, without trailing slashes.

    >>> get_base_url("/app/index.php")
    '/app'
    >>> get_base_url("/index.php")
    ''
    """
    return posixpath.dirname(script_url).rstrip("/\\")


def resolve_path_info(
    url: str,
    script_url: str,
    base_url: str,
    self_path: str | None = None,
) -> str:
    """Find the path info, the part of the URL after the entry script and
    before the query string.

    The path is percent decoded. If it is not well-formed UTF-8, its
    bytes are taken as latin-1. A leading ``/`` is removed, a trailing
    one kept.

    :param url: The request target.
    :param script_url: URL path of the entry script.
    :param base_url: Directory of the entry script URL.
    :param self_path: ``PHP_SELF``, used when neither the script URL nor
        the base URL prefixes the path.
    :raise UrlResolutionError: Neither URL prefixes the path.
    """
    path = url.partition("?")[0]
    path = _decode_path_bytes(unquote_to_bytes(path))

    if path.startswith(script_url):
        path = path[len(script_url):]
    elif base_url == "" or path.startswith(base_url):
        path = path[len(base_url):]
    elif self_path is not None and self_path.startswith(script_url):
        path = self_path[len(script_url):]
    else:
        raise UrlResolutionError(
            "Unable to determine the path info of the current request."
        )

    if path[:1] == "/":
        path = path[1:]

    return path
