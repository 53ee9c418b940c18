from .request import Request as Request
