import collections.abc as cabc
import re
import typing as t
from functools import cmp_to_key

from .datastructures import Accept
from .datastructures import AcceptEntry

_param_split_re = re.compile(r"\s*;\s*")
_float_prefix_re = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_etag_split_re = re.compile(r"[\s,]+")

#: Locale returned by :func:`match_language` when the application does
#: not list any supported languages.
DEFAULT_LOCALE = "en"


def _parse_quality(value: str) -> float:
    # A leading number is used, anything else counts as 0.
    match = _float_prefix_re.match(value)
    if match is None:
        return 0.0
    return min(max(float(match.group()), 0.0), 1.0)


def _compare_accept(a: AcceptEntry, b: AcceptEntry) -> int:
    if a.quality > b.quality:
        return -1
    if a.quality < b.quality:
        return 1
    if a.name == b.name:
        return 1 if a.index > b.index else -1
    if a.name == "*/*":
        return 1
    if b.name == "*/*":
        return -1
    wa = a.is_suffix_wildcard
    wb = b.is_suffix_wildcard
    if wa != wb:
        return 1 if wa else -1
    return 1 if a.index > b.index else -1


def parse_accept_entries(value: str | None) -> list[AcceptEntry]:
    """Parse an ``Accept`` style header into unsorted entries, one per
    non-empty comma separated segment.

    The first ``;`` separated token of a segment is the name. A ``q``
    parameter sets the quality, other ``key=value`` parameters are kept
    in :attr:`~AcceptEntry.params` and parameters without ``=`` in
    :attr:`~AcceptEntry.flags`. The index of an entry is the position of
    its segment in the header, empty segments included.

    :param value: The header value.
    """
    if not value:
        return []

    entries = []
    for index, segment in enumerate(value.split(",")):
        tokens = [token for token in _param_split_re.split(segment.strip()) if token]
        if not tokens:
            continue
        name, *rest = tokens
        quality = 1.0
        params: dict[str, str] = {}
        flags: list[str] = []
        for token in rest:
            if "=" in token:
                key, _, val = token.partition("=")
                if key == "q":
                    quality = _parse_quality(val)
                else:
                    params[key] = val
            else:
                flags.append(token)
        entries.append(AcceptEntry(name, quality, params, tuple(flags), index))
    return entries


def parse_accept_header(value: str | None) -> Accept:
    """Parse an ``Accept`` or ``Accept-Language`` header into an
    :class:`~myrequest.datastructures.Accept` object, ordered by
    preference.

    Entries are ordered by these rules, the first rule that tells two
    entries apart decides:

    1. Higher quality first.
    2. The same name twice, the earlier one first.
    3. ``*/*`` after anything else.
    4. A ``type/*`` wildcard after a value that does not end in ``*``,
       otherwise the earlier one first.

    .. code-block:: python

        parse_accept_header("text/plain; q=0.5, application/json; version=1.0")
        Accept([('application/json', 1.0), ('text/plain', 0.5)])

    An empty or whitespace only header gives an empty result.

    :param value: The header value.
    """
    entries = parse_accept_entries(value)
    return Accept(sorted(entries, key=cmp_to_key(_compare_accept)))


def _normalize_language(value: str) -> str:
    return value.lower().replace("_", "-")


def match_language(
    acceptable: cabc.Iterable[str],
    supported: cabc.Sequence[str],
    default: str = DEFAULT_LOCALE,
) -> str:
    """Select the language the application should use.

    The acceptable languages are tried in order. For each one, the first
    supported language that is equal to it, or is a ``-`` separated
    prefix of it, or that it is a ``-`` separated prefix of, wins. The
    comparison ignores case and treats ``_`` like ``-``. The supported
    language is returned as given.

    >>> match_language(["en-us", "de"], ["ru", "de-DE"])
    'de-DE'

    :param acceptable: Languages the client accepts, most preferred
        first.
    :param supported: Languages the application supports.
    :param default: Returned when ``supported`` is empty.
    :return: The matched language. If nothing matches, the first
        supported language.
    """
    if not supported:
        return default

    normalized = [(_normalize_language(lang), lang) for lang in supported]
    for accept in acceptable:
        accept = _normalize_language(accept)
        for lang, original in normalized:
            if (
                lang == accept
                or accept.startswith(f"{lang}-")
                or lang.startswith(f"{accept}-")
            ):
                return original

    return supported[0]


def parse_etags(value: str | None) -> list[str]:
    """Split an ``If-None-Match`` header into entity tags. The ``-gzip``
    suffix some servers append to compressed responses is removed, the
    tags are otherwise kept as sent.

    >>> parse_etags('"foo-gzip", bar')
    ['"foo"', 'bar']
    """
    if not value: return []
    return [tag for tag in _etag_split_re.split(value.replace("-gzip", "")) if tag]


def parse_content_type(value: str | None) -> str | None:
    """Return the media type of a ``Content-Type`` header, without the
    parameters after the first ``;``.

    >>> parse_content_type("application/json; charset=UTF-8")
    'application/json'
    """
    if value is None: return None
    return value.partition(";")[0].strip()


def is_truthy_flag(value: t.Any) -> bool:
    """Interpret a server supplied on/off flag, such as ``HTTPS``.
    ``on`` in any case and ``1`` are true.
    """
    if value is None or value is False:
        return False
    if value is True:
        return True
    value = str(value).strip()
    return value.lower() == "on" or value == "1"
