from .environment import RequestEnvironment as RequestEnvironment
from .exceptions import DomainMismatchError as DomainMismatchError
from .exceptions import InvalidParserError as InvalidParserError
from .exceptions import ParseError as ParseError
from .exceptions import RequestException as RequestException
from .exceptions import UrlResolutionError as UrlResolutionError
from .parsers import FormParser as FormParser
from .parsers import JsonParser as JsonParser
from .parsers import RequestParser as RequestParser
from .wrappers import Request as Request

__version__ = "0.1.0"
