"""Host-level intrusion detection building blocks: events, an event bus, journal rules and monitoring, package verification and alert policy."""

__version__ = "0.1.0"

__all__ = [
    "events",
    "event_bus",
    "journal_fields",
    "journal_rule",
    "journal_monitor",
    "package_verifier",
    "policy",
]