from smsgate.infrastructure.channel.adapters.redis_streams_channel import RedisStreamsChannel

__all__ = ["RedisStreamsChannel"]
