"""Decides whether an event becomes an alert, and at what severity."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Optional

from canine_watch.events import (
    DistroType,
    Event,
    EventSeverity,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FilePermissionChangedEvent,
)


class AlertSeverity(enum.IntEnum):
    """Severity of a generated alert."""

    INFO = 0
    WARNING = 1
    CRITICAL = 2


@dataclass(frozen=True)
class PolicyDecision:
    """Whether to alert, how severely, and why."""

    generate_alert: bool
    severity: AlertSeverity
    reason: Optional[str] = None


@dataclass(frozen=True)
class PathRule:
    """A glob pattern for paths with the severity and alerting that matches get."""

    pattern: str
    severity: AlertSeverity
    alert: bool


@dataclass
class PolicyConfig:
    """Ordered path rules and the fallback behaviour."""

    path_rules: list[PathRule] = field(default_factory=list)
    alert_on_unknown: bool = True
    default_severity: AlertSeverity = AlertSeverity.WARNING


_FILE_EVENTS = (FileModifiedEvent, FileCreatedEvent, FileDeletedEvent, FilePermissionChangedEvent)

_SEVERITY_MAP = {
    EventSeverity.INFO: AlertSeverity.INFO,
    EventSeverity.WARNING: AlertSeverity.WARNING,
    EventSeverity.CRITICAL: AlertSeverity.CRITICAL,
}


def _event_path(event: Event) -> Optional[Path]:
    if isinstance(event.data, _FILE_EVENTS):
        return Path(event.data.path)
    return None


class PolicyEngine:
    """Evaluates events against path rules; the first matching rule wins."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self.config = config if config is not None else PolicyConfig()

    def evaluate(self, event: Event) -> PolicyDecision:
        path = _event_path(event)
        if path is not None:
            text = str(path)
            for rule in self.config.path_rules:
                if fnmatchcase(text, rule.pattern):
                    return PolicyDecision(
                        rule.alert, rule.severity, f"Matched path rule: {rule.pattern}"
                    )
        return PolicyDecision(
            self.config.alert_on_unknown,
            _SEVERITY_MAP.get(event.severity, AlertSeverity.INFO),
            "No matching rule, using default policy",
        )


def create_default_policy(distro_type: DistroType) -> PolicyConfig:
    """Build the standard rule set, with extra rules for the distribution layout."""
    critical = AlertSeverity.CRITICAL
    warning = AlertSeverity.WARNING
    info = AlertSeverity.INFO
    rules = [
        PathRule(pattern, critical, True)
        for pattern in (
            "/usr/bin/*",
            "/usr/sbin/*",
            "/bin/*",
            "/sbin/*",
            "/usr/lib/*",
            "/usr/lib64/*",
            "/lib/*",
            "/lib64/*",
            "/etc/*",
            "/boot/*",
        )
    ]
    rules += [
        PathRule("/var/lib/*", warning, True),
        PathRule("/var/log/*", info, False),
        PathRule("/tmp/*", info, False),
        PathRule("/var/tmp/*", info, False),
        PathRule("/run/*", info, False),
    ]
    if distro_type is DistroType.OSTREE:
        rules += [
            PathRule("/ostree/*", critical, True),
            PathRule("/sysroot/ostree/*", critical, True),
            PathRule("/var/home/*", warning, False),
        ]
    if distro_type is DistroType.BTRFS_SNAPSHOT:
        rules.append(PathRule("/.snapshots/*", warning, True))
    return PolicyConfig(path_rules=rules, alert_on_unknown=True, default_severity=warning)