import typing as t

from .datastructures import ResolvedAttributes

_T = t.TypeVar("_T")


class _HasAttributes(t.Protocol):
    _attributes: ResolvedAttributes


class resolved_property(t.Generic[_T]):
    """A :func:`property` that is computed at most once per request and
    stored in the request's :class:`~myrequest.datastructures.ResolvedAttributes`
    under the decorated function's name.

    Assigning the property records an override and clears every field
    the cache's dependency table lists as computed from it. Deleting it
    forgets the override so the next access computes the value again.

    .. code-block:: python

        class Request:
            @resolved_property
            def scheme(self) -> str:
                return "https" if self.is_secure_connection else "http"

    :param fget: Computes the value from the environment.
    :param cache_errors: Exceptions raised by ``fget`` that are cached
        and raised again instead of computing again.
    """

    def __init__(
        self,
        fget: t.Callable[[t.Any], _T],
        cache_errors: tuple[type[BaseException], ...] = (),
    ) -> None:
        self.fget = fget
        self.name = fget.__name__
        self.cache_errors = cache_errors
        self.convert: t.Callable[[t.Any, t.Any], t.Any] | None = None
        self.__doc__ = fget.__doc__
        self.__module__ = fget.__module__

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def converter(self, func: t.Callable[[t.Any, t.Any], t.Any]) -> "resolved_property[_T]":
        """Decorate a method that normalizes values assigned to the
        property.
        """
        self.convert = func
        return self

    @t.overload
    def __get__(self, obj: None, owner: type) -> "resolved_property[_T]": ...
    @t.overload
    def __get__(self, obj: _HasAttributes, owner: type) -> _T: ...
    def __get__(
        self, obj: _HasAttributes | None, owner: type | None = None
    ) -> "_T | resolved_property[_T]":
        if obj is None:
            return self
        return obj._attributes.get_or_compute(
            self.name, lambda: self.fget(obj), self.cache_errors
        )

    def __set__(self, obj: _HasAttributes, value: t.Any) -> None:
        if self.convert is not None:
            value = self.convert(obj, value)
        obj._attributes.override(self.name, value)

    def __delete__(self, obj: _HasAttributes) -> None:
        obj._attributes.invalidate(self.name)
