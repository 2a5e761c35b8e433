"""Channel namer: (namespace, room) -> bus subject."""

from __future__ import annotations

from urllib.parse import quote

from roombus.core.constants import DEFAULT_DELIMITER, DEFAULT_PREFIX


def validate_delimiter(delimiter: str) -> str:
    """Reject delimiters that could collide with percent escapes."""
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise ValueError(f"delimiter must be a single character, got {delimiter!r}")
    if delimiter.isalnum() or delimiter == "%":
        raise ValueError(f"delimiter {delimiter!r} clashes with percent-encoding")
    return delimiter


def _percent(ch: str) -> str:
    return "".join(f"%{b:02X}" for b in ch.encode("utf-8"))


def escape_room(room: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Percent-encode a room name so it is a single, safe subject token."""
    if not isinstance(room, str):
        raise TypeError(f"room must be a string, got {type(room).__name__}")
    validate_delimiter(delimiter)
    # quote() leaves only [A-Za-z0-9_.-~] unescaped; the delimiter may be one of those.
    return quote(room, safe="").replace(delimiter, _percent(delimiter))


def escape_namespace(namespace: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Encode the characters that would split or wildcard a namespace token.

    Only ``%``, the delimiter, ``*``, ``>``, whitespace and unprintable
    characters change, so ``/chat`` stays ``/chat``.
    """
    if not isinstance(namespace, str):
        raise TypeError(f"namespace must be a string, got {type(namespace).__name__}")
    validate_delimiter(delimiter)
    return "".join(
        _percent(ch)
        if ch in ("%", "*", ">", delimiter) or ch.isspace() or not ch.isprintable()
        else ch
        for ch in namespace
    )


def channel_name(
    namespace: str,
    prefix: str = DEFAULT_PREFIX,
    delimiter: str = DEFAULT_DELIMITER,
    room: str | None = None,
) -> str:
    """Return the bus channel for a namespace, or for one room in it."""
    base = f"{prefix}{delimiter}{escape_namespace(namespace, delimiter)}"
    if room is None:
        return base
    return f"{base}{delimiter}{escape_room(room, delimiter)}"


class ChannelNamer:
    """Channel names bound to one adapter's prefix, delimiter and namespace."""

    def __init__(
        self,
        namespace: str,
        *,
        prefix: str = DEFAULT_PREFIX,
        delimiter: str = DEFAULT_DELIMITER,
    ) -> None:
        self.namespace = namespace
        self.prefix = prefix
        self.delimiter = validate_delimiter(delimiter)

    @property
    def namespace_channel(self) -> str:
        """The namespace-wide channel, subscribed for the adapter's lifetime."""
        return channel_name(self.namespace, self.prefix, self.delimiter)

    def channel(self, room: str | None = None) -> str:
        return channel_name(self.namespace, self.prefix, self.delimiter, room)
