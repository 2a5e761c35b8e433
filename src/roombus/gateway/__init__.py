"""Gateway: channel naming, codec, membership, subscriptions, routing, bus."""

from roombus.gateway.bus import MessageHandler, NatsBus, Transport
from roombus.gateway.channels import ChannelNamer, channel_name, escape_namespace, escape_room
from roombus.gateway.membership import MembershipTable
from roombus.gateway.relay import InboundRelay
from roombus.gateway.router import BroadcastRouter
from roombus.gateway.subscriptions import SubscriptionManager

__all__ = [
    "BroadcastRouter",
    "ChannelNamer",
    "InboundRelay",
    "MembershipTable",
    "MessageHandler",
    "NatsBus",
    "SubscriptionManager",
    "Transport",
    "channel_name",
    "escape_namespace",
    "escape_room",
]
