from smsgate.infrastructure.channel.factory import build_channel
from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.infrastructure.channel.interface import (
    ChannelError,
    ChannelInterface,
    ChannelTransportError,
    partition_for,
)

__all__ = [
    "ChannelError",
    "ChannelInterface",
    "ChannelTransportError",
    "InMemoryChannel",
    "build_channel",
    "partition_for",
]
