import collections.abc as cabc
import typing as t
from dataclasses import dataclass
from dataclasses import field


@dataclass(frozen=True)
class AcceptEntry:
    """One comma separated segment of an ``Accept`` style header.

    :param name: The value, such as ``text/html`` or ``en-US``.
    :param quality: The ``q`` parameter, ``1.0`` when absent.
    :param params: Other ``key=value`` parameters, in header order.
    :param flags: Parameters given without a value, in header order.
    :param index: Position of the segment in the header.
    """

    name: str
    quality: float = 1.0
    params: dict[str, str] = field(default_factory=dict, hash=False)
    flags: tuple[str, ...] = ()
    index: int = 0

    @property
    def is_suffix_wildcard(self) -> bool:
        """The name ends in a wildcard, like ``text/*``."""
        return self.name[-1:] == "*"


class Accept(cabc.Mapping[str, AcceptEntry]):
    """The negotiated preference list of an ``Accept`` style header. It
    is an ordered read only mapping of value name to
    :class:`AcceptEntry`, iterating yields the names with the most
    preferred first.

    >>> a = parse_accept_header("audio/*; q=0.2, audio/basic")
    >>> list(a)
    ['audio/basic', 'audio/*']
    >>> a.quality("audio/*")
    0.2

    :param entries: Entries already in preference order. A repeated name
        keeps the position of its first occurrence and the entry of its
        last.
    """

    def __init__(self, entries: cabc.Iterable[AcceptEntry] = ()) -> None:
        self._entries: dict[str, AcceptEntry] = {}
        for entry in entries:
            self._entries[entry.name] = entry

    def __getitem__(self, key: str) -> AcceptEntry:
        return self._entries[key]

    def __iter__(self) -> t.Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        values = ", ".join(f"({k!r}, {v.quality})" for k, v in self._entries.items())
        return f"{type(self).__name__}([{values}])"

    def quality(self, key: str) -> float:
        """The quality of ``key``, ``0`` if it is not in the header."""
        entry = self._entries.get(key)
        return 0 if entry is None else entry.quality

    def values_list(self) -> list[str]:
        """The names in preference order."""
        return list(self._entries)

    @property
    def best(self) -> str | None:
        """The most preferred name, or ``None`` for an empty header."""
        for key in self._entries:
            return key
        return None
