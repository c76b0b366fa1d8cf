"""Channel adapter registry.

Email is the only channel the storefront sends through. The fake adapter is
used until a real one is installed with ``set_channel``.
"""

from storefront.notification.channel.email_port import EmailPort

EMAIL = "email"

_channel_instances: dict[str, EmailPort] = {}


def get_channel(channel_type: str = EMAIL) -> EmailPort:
    """Return the configured channel adapter (singleton per channel type)."""
    if channel_type not in _channel_instances:
        if channel_type == EMAIL:
            from storefront.notification.channel.fake_email import FakeEmailAdapter

            _channel_instances[channel_type] = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def set_channel(adapter: EmailPort, channel_type: str = EMAIL) -> None:
    _channel_instances[channel_type] = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
