"""Host-facing services: transport, message routing and settings."""

from .settings import InputSettings, SettingsStore
from .transport import CallableTransport, LoggingTransport, MessageEnvelope, Transport, resolve_transport

__all__ = [
    "CallableTransport",
    "InputSettings",
    "LoggingTransport",
    "MessageEnvelope",
    "SettingsStore",
    "Transport",
    "resolve_transport",
]
