import collections.abc as cabc
import enum
import typing as t

V = t.TypeVar("V")


class FieldState(enum.Enum):
    """State of one field of :class:`ResolvedAttributes`."""

    #: Not computed yet.
    UNSET = "unset"
    #: Computed from the environment.
    CACHED = "cached"
    #: Set explicitly by the caller.
    OVERRIDDEN = "overridden"


class _Failure:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


class ResolvedAttributes:
    """Per request cache of derived values. Each field is computed at
    most once, unless an override of a field it is derived from clears
    it again.

    The dependency table maps a field to the fields computed from it.
    Overriding a field clears its dependents, and their dependents in
    turn. Overridden dependents are left alone.

    >>> attrs = ResolvedAttributes({"port": ("host_info",)})
    >>> attrs.get_or_compute("host_info", lambda: "http://a:8080")
    'http://a:8080'
    >>> attrs.override("port", 81)
    >>> attrs.state("host_info")
    <FieldState.UNSET: 'unset'>

    :param dependents: Field name to the names of fields computed from
        it.
    """

    def __init__(
        self, dependents: cabc.Mapping[str, cabc.Iterable[str]] | None = None
    ) -> None:
        self.dependents: dict[str, tuple[str, ...]] = {
            k: tuple(v) for k, v in (dependents or {}).items()
        }
        self._values: dict[str, t.Any] = {}
        self._states: dict[str, FieldState] = {}

    def state(self, name: str) -> FieldState:
        return self._states.get(name, FieldState.UNSET)

    def is_set(self, name: str) -> bool:
        return self.state(name) is not FieldState.UNSET

    def get(self, name: str, default: t.Any = None) -> t.Any:
        """Return the value of a cached or overridden field without
        computing it.
        """
        if not self.is_set(name):
            return default
        value = self._values[name]
        if isinstance(value, _Failure):
            raise value.exc
        return value

    def get_or_compute(
        self,
        name: str,
        compute: t.Callable[[], V],
        cache_errors: tuple[type[BaseException], ...] = (),
    ) -> V:
        """Return the field, calling ``compute`` if it is unset.

        :param name: The field name.
        :param compute: Derives the value from the environment.
        :param cache_errors: Exceptions raised by ``compute`` that are
            cached like a value and raised again on every later access,
            instead of computing again.
        """
        if not self.is_set(name):
            try:
                value = compute()
            except cache_errors as e:
                self._values[name] = _Failure(e)
                self._states[name] = FieldState.CACHED
                raise
            self._values[name] = value
            self._states[name] = FieldState.CACHED
        return self.get(name)

    def override(self, name: str, value: t.Any) -> None:
        """Set a field explicitly and clear everything computed from it."""
        self._values[name] = value
        self._states[name] = FieldState.OVERRIDDEN
        self._invalidate_dependents(name)

    def invalidate(self, name: str) -> None:
        """Forget a field, overridden or not, and everything computed
        from it.
        """
        self._values.pop(name, None)
        self._states.pop(name, None)
        self._invalidate_dependents(name)

    def _invalidate_dependents(self, name: str) -> None:
        pending = list(self.dependents.get(name, ()))
        seen = set()
        while pending:
            dep = pending.pop()
            if dep in seen: continue
            seen.add(dep)
            if self._states.get(dep) is FieldState.OVERRIDDEN: continue
            self._values.pop(dep, None)
            self._states.pop(dep, None)
            pending.extend(self.dependents.get(dep, ()))

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={s.value}" for k, s in self._states.items())
        return f"<{type(self).__name__} {fields}>"
