"""Trade Alert Relay - forward trading signals to Telegram channels."""

__version__ = "0.1.0"
