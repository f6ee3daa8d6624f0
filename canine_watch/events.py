"""Event types published on the event bus, with their severities."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union


class EventSeverity(enum.IntEnum):
    """Severity of an event; higher values are more serious."""

    INFO = 0
    WARNING = 1
    CRITICAL = 2


class DistroType(enum.Enum):
    """Kind of Linux distribution layout the host uses."""

    TRADITIONAL = "traditional"
    OSTREE = "ostree"
    BTRFS_SNAPSHOT = "btrfs_snapshot"


@dataclass(frozen=True)
class FileModifiedEvent:
    """A monitored file's content no longer matches its baseline."""

    path: Path
    old_hash: str
    new_hash: str
    change_description: str


@dataclass(frozen=True)
class FileCreatedEvent:
    """A file without a baseline was found."""

    path: Path
    hash: str
    source: Optional[str] = None


@dataclass(frozen=True)
class FileDeletedEvent:
    """A file with a baseline has disappeared."""

    path: Path
    last_known_hash: str


@dataclass(frozen=True)
class FilePermissionChangedEvent:
    """A file's mode bits changed."""

    path: Path
    old_mode: int
    new_mode: int


@dataclass(frozen=True)
class ScanCompletedEvent:
    """A filesystem scan finished."""

    scan_path: Path
    files_scanned: int
    changes_detected: int
    elapsed: timedelta


@dataclass(frozen=True)
class SystemStartupEvent:
    """The daemon started on a detected distribution."""

    distro_name: str
    distro_type: DistroType


@dataclass(frozen=True)
class AuthFailureEvent:
    """An authentication attempt failed."""

    username: str
    service: str
    remote_host: Optional[str]
    message: str


@dataclass(frozen=True)
class PrivilegeEscalationEvent:
    """A user gained another user's privileges (sudo, su, pkexec)."""

    username: str
    target_user: str
    method: str
    command: str
    message: str


@dataclass(frozen=True)
class ServiceStateEvent:
    """A systemd unit changed state."""

    unit_name: str
    new_state: str
    exit_code: Optional[str]
    message: str


@dataclass(frozen=True)
class SuspiciousLogEvent:
    """A journal entry matched a suspicious-log rule."""

    rule_name: str
    unit_name: str
    message: str
    priority: int


@dataclass(frozen=True)
class ProcessExecutionEvent:
    """A process was executed."""

    pid: int
    ppid: int
    uid: int
    username: str
    exe_path: Path
    command_line: str
    cwd: Optional[str] = None


@dataclass(frozen=True)
class NetworkConnectionEvent:
    """A process opened a network connection."""

    pid: int
    uid: int
    username: str
    protocol: str
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int


@dataclass(frozen=True)
class FailedAccessEvent:
    """A process was denied access to a file."""

    pid: int
    uid: int
    username: str
    path: Path
    access_type: str
    error_code: int
    error_message: str


@dataclass(frozen=True)
class PrivilegeChangeEvent:
    """A process changed its user id."""

    pid: int
    old_uid: int
    new_uid: int
    old_username: str
    new_username: str
    operation: str


EventData = Union[
    FileModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FilePermissionChangedEvent,
    ScanCompletedEvent,
    SystemStartupEvent,
    AuthFailureEvent,
    PrivilegeEscalationEvent,
    ServiceStateEvent,
    SuspiciousLogEvent,
    ProcessExecutionEvent,
    NetworkConnectionEvent,
    FailedAccessEvent,
    PrivilegeChangeEvent,
]

_TYPE_NAMES: dict[type, str] = {
    FileModifiedEvent: "FileModified",
    FileCreatedEvent: "FileCreated",
    FileDeletedEvent: "FileDeleted",
    FilePermissionChangedEvent: "FilePermissionChanged",
    ScanCompletedEvent: "ScanCompleted",
    SystemStartupEvent: "SystemStartup",
    AuthFailureEvent: "AuthFailure",
    PrivilegeEscalationEvent: "PrivilegeEscalation",
    ServiceStateEvent: "ServiceState",
    SuspiciousLogEvent: "SuspiciousLog",
    ProcessExecutionEvent: "ProcessExecution",
    NetworkConnectionEvent: "NetworkConnection",
    FailedAccessEvent: "FailedAccess",
    PrivilegeChangeEvent: "PrivilegeChange",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Event:
    """An event payload with its severity, origin and creation time."""

    data: EventData
    severity: EventSeverity
    source: str
    timestamp: datetime = field(default_factory=_now)


def event_type_name(data: object) -> str:
    """Return the short type name of an event payload, or "Unknown"."""
    return _TYPE_NAMES.get(type(data), "Unknown")


def severity_name(severity: object) -> str:
    """Return the lower-case name of a severity, or "unknown"."""
    try:
        return EventSeverity(severity).name.lower()
    except ValueError:
        return "unknown"