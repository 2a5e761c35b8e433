"""Per-process node identity used to recognise our own bus echoes."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from roombus.core.constants import NODE_ID_LENGTH

_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class NodeIdentity:
    """Opaque random token, fixed for the lifetime of the process.

    Never used for addressing: adapters compare the origin of inbound
    envelopes against it and drop matches.
    """

    value: str

    @classmethod
    def generate(cls, length: int = NODE_ID_LENGTH) -> NodeIdentity:
        """Create a fresh random identity."""
        if length < 1:
            raise ValueError("identity length must be positive")
        return cls("".join(secrets.choice(_ALPHABET) for _ in range(length)))

    def is_self(self, origin: object) -> bool:
        """Return True if an envelope origin is this node."""
        return origin == self.value

    def __str__(self) -> str:
        return self.value
