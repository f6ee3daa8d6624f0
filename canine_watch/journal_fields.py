"""Journal field names and the entry record that rules are matched against."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

MESSAGE = "MESSAGE"
PRIORITY = "PRIORITY"
SYSLOG_IDENTIFIER = "SYSLOG_IDENTIFIER"
SYSTEMD_UNIT = "_SYSTEMD_UNIT"
PID = "_PID"
UID = "_UID"
COMM = "_COMM"
EXE = "_EXE"
REALTIME_TIMESTAMP = "__REALTIME_TIMESTAMP"

DEFAULT_PRIORITY = 6  # LOG_INFO

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JournalEntry:
    """A journal record reduced to the fields that rules look at."""

    message: str = ""
    priority: int = DEFAULT_PRIORITY
    syslog_identifier: str = ""
    systemd_unit: str = ""
    pid: Optional[int] = None
    uid: Optional[int] = None
    comm: str = ""
    exe: str = ""
    timestamp: datetime = field(default_factory=_now)
    raw_fields: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> "JournalEntry":
        """Build an entry from a mapping of journal field names to values.

        Empty or absent numeric fields keep their defaults; malformed ones
        raise ValueError. Every field is also kept in ``raw_fields``.
        """
        entry = cls(
            message=fields.get(MESSAGE, ""),
            syslog_identifier=fields.get(SYSLOG_IDENTIFIER, ""),
            systemd_unit=fields.get(SYSTEMD_UNIT, ""),
            comm=fields.get(COMM, ""),
            exe=fields.get(EXE, ""),
            raw_fields=dict(fields),
        )
        if priority := fields.get(PRIORITY, ""):
            entry.priority = int(priority) & 0xFF
        if pid := fields.get(PID, ""):
            entry.pid = int(pid) & 0xFFFFFFFF
        if uid := fields.get(UID, ""):
            entry.uid = int(uid) & 0xFFFFFFFF
        if usec := fields.get(REALTIME_TIMESTAMP, ""):
            entry.timestamp = _EPOCH + timedelta(microseconds=int(usec))
        return entry