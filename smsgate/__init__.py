"""smsgate: send-decision pipeline and outcome-history store for SMS.

Two processes share nothing but the durable channel:

- sender: blocklist gate -> delivery channel -> event emitter (dispatcher)
- store: event consumer -> message store <- retrieval service
"""

__version__ = "0.1.0"
