"""Protocol constants."""

from __future__ import annotations

from typing import Final

DEFAULT_PREFIX: Final = "socket.io"
DEFAULT_DELIMITER: Final = "."
ROOT_NAMESPACE: Final = "/"

# Packet key carrying the namespace tag; the only packet field the adapter reads.
PACKET_NAMESPACE_KEY: Final = "nsp"

# Flag in BroadcastOptions.flags that keeps a broadcast on this node.
LOCAL_FLAG: Final = "local"

NODE_ID_LENGTH: Final = 6
