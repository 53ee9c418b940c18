"""
pytest configuration and fixtures.
"""

import io
from typing import Any, Callable

import pytest

from myrequest import Request, RequestEnvironment


@pytest.fixture
def site_environment() -> RequestEnvironment:
    """A GET request for ``/foo/?page=1`` served by ``/index.php``."""
    return RequestEnvironment(
        method="GET",
        request_uri="/foo/?page=1",
        query_string="page=1",
        headers={"Host": "site.com", "User-Agent": "pytest"},
        remote_addr="10.0.0.7",
        script_filename="/var/www/index.php",
        document_root="/var/www",
        script_name="/index.php",
        self_path="/index.php/foo/",
        server_name="site.com",
        server_port=80,
    )


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a request from environment fields. ``body`` becomes the
    input stream, keyword arguments starting with ``config_`` go to the
    request.
    """

    def factory(body: bytes | None = None, **fields: Any) -> Request:
        config = {
            key[len("config_"):]: fields.pop(key)
            for key in list(fields)
            if key.startswith("config_")
        }
        if body is not None:
            fields["input_stream"] = io.BytesIO(body)
        fields.setdefault("server_name", "site.com")
        fields.setdefault("server_port", 80)
        return Request(RequestEnvironment(**fields), **config)

    return factory


@pytest.fixture
def wsgi_environ() -> dict[str, Any]:
    """A WSGI environment for ``POST /app/index.php/users?sort=name``."""
    body = b'  {"name": "John", "tags": ["a", "b"]}\n'
    return {
        "REQUEST_METHOD": "POST",
        "SCRIPT_NAME": "/app/index.php",
        "PATH_INFO": "/users",
        "QUERY_STRING": "sort=name",
        "REQUEST_URI": "/app/index.php/users?sort=name",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "SCRIPT_FILENAME": "/srv/www/app/index.php",
        "DOCUMENT_ROOT": "/srv/www",
        "REMOTE_ADDR": "127.0.0.1",
        "CONTENT_TYPE": "application/json; charset=UTF-8",
        "CONTENT_LENGTH": str(len(body)),
        "HTTP_HOST": "localhost:8080",
        "HTTP_ACCEPT": "application/json",
        "wsgi.url_scheme": "http",
        "wsgi.input": io.BytesIO(body),
    }
