import typing as t

from markupsafe import escape

HTTP_STATUS_CODES = {
    400: "Bad Request",
    500: "Internal Server Error",
}


class HTTPException(Exception):
    """The base class for all exceptions raised while resolving a request.
    Every exception carries the HTTP status code an embedding application
    should answer with, so a catch-all can turn it into an error page.

    :param description: Overrides the class level description.
    """

    code: int | None = None
    description: str | None = None

    def __init__(self, description: str | None = None) -> None:
        super().__init__(description)
        if description is not None:
            self.description = description

    @property
    def name(self) -> str:
        """The status name."""
        return HTTP_STATUS_CODES.get(self.code, "Unknown Error")  # type: ignore

    def get_description(self) -> str:
        """Get the description, HTML escaped so it can be echoed into an
        error page.
        """
        if self.description is None:
            return ""
        return str(escape(self.description))

    def __str__(self) -> str:
        code = self.code if self.code is not None else "???"
        return f"{code} {self.name}: {self.description}"

    def __repr__(self) -> str:
        code = self.code if self.code is not None else "???"
        return f"<{type(self).__name__} '{code}: {self.name}'>"


class BadRequest(HTTPException):
    """*400* Bad Request

    Raise if the client sent something the application cannot handle.
    """

    code = 400
    description = (
        "The browser (or proxy) sent a request that this server could not understand."
    )


class BadRequestKeyError(BadRequest, KeyError):
    """An exception that is used to signal both a :exc:`KeyError` and a
    :exc:`BadRequest`. Used by the header view for missing headers.
    """

    def __init__(self, arg: object | None = None) -> None:
        super().__init__()

        if arg is None:
            KeyError.__init__(self)
        else:
            KeyError.__init__(self, arg)

    def __str__(self) -> str:
        return KeyError.__str__(self)


class SecurityError(BadRequest):
    """Raised if something triggers a security error. This class just
    differs from a bad request error by name.
    """


class InternalServerError(HTTPException):
    """*500* Internal Server Error

    Raise if the request cannot be resolved because of the server
    configuration or the application setup, not because of the client.
    """

    code = 500
    description = (
        "The server encountered an internal error and was unable to"
        " complete your request."
    )


class RequestException(InternalServerError):
    """Base class for errors in resolving the request itself."""


class UrlResolutionError(RequestException):
    """The scheme, host, URL, script URL or path info could not be
    determined from the fields the server supplied.
    """


class InvalidParserError(RequestException):
    """A registered body parser does not implement
    :class:`~myrequest.parsers.RequestParser`. This is a configuration
    error and is never recovered locally.
    """


class ParseError(BadRequest):
    """A registered body parser could not decode the request body for
    its content type.

    :param description: The error message.
    :param original_exception: The exception raised by the decoder.
    """

    def __init__(
        self,
        description: str | None = None,
        original_exception: BaseException | None = None,
    ) -> None:
        self.original_exception = original_exception
        super().__init__(description)


class DomainMismatchError(SecurityError):
    """The server name or ``Host`` header is not in the configured list
    of allowed domains.

    :param host: The rejected host.
    """

    def __init__(self, host: t.Any, description: str | None = None) -> None:
        self.host = host
        if description is None:
            description = f"Invalid domain: {host}"
        super().__init__(description)
