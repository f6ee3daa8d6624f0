# canine-watch

Building blocks for a simple host-level intrusion detection system on Linux.
There are no third-party runtime dependencies.

## What is in the package

- `canine_watch.events`: frozen dataclasses for the things worth reporting:
  `FileModifiedEvent`, `FileCreatedEvent`, `FileDeletedEvent`,
  `FilePermissionChangedEvent`, `ScanCompletedEvent`, `SystemStartupEvent`,
  `AuthFailureEvent`, `PrivilegeEscalationEvent`, `ServiceStateEvent`,
  `SuspiciousLogEvent`, `ProcessExecutionEvent`, `NetworkConnectionEvent`,
  `FailedAccessEvent` and `PrivilegeChangeEvent`. An `Event` wraps one of them
  with an `EventSeverity` (`INFO`, `WARNING`, `CRITICAL`), a source string and
  a UTC timestamp. `event_type_name()` gives a payload's short name
  (`"FileModified"`, `"AuthFailure"`, ... or `"Unknown"`), and
  `severity_name()` gives `"info"`, `"warning"`, `"critical"` or `"unknown"`.
- `canine_watch.event_bus`: `EventBus`, a thread-safe, synchronous
  publish/subscribe hub. Handlers run in subscription order and can be limited
  to a minimum severity; a handler that raises is logged and the others still
  receive the event. Subscribing returns an `EventSubscription` handle.
- `canine_watch.journal_fields`: journal field name constants and
  `JournalEntry`, built from a mapping of field names with
  `JournalEntry.from_fields()`.
- `canine_watch.journal_rule`: `JournalFieldMatch` conditions (exact,
  contains, starts-with or regex, optionally negated) that are ANDed into a
  `JournalRule`; `matches_field()`, `matches_rule()` and `get_default_rules()`,
  which covers SSH, sudo, su, PAM, polkit and pkexec activity, service start
  failures and kernel segfaults.
- `canine_watch.journal_monitor`: `JournalMonitor`, which turns journal
  entries into events on a bus.
- `canine_watch.package_verifier`: `PackageVerifier`, which asks `rpm` or
  `dpkg` whether a file belongs to a package and whether it still matches.
- `canine_watch.policy`: `PolicyEngine`, which decides from ordered glob rules
  on file paths whether an event should raise an alert and how severe it is.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Publishing and subscribing

```python
from pathlib import Path

from canine_watch.event_bus import EventBus
from canine_watch.events import Event, EventSeverity, FileModifiedEvent, event_type_name

bus = EventBus()

def on_event(event):
    print(event_type_name(event.data), event.severity.name, event.source)

everything = bus.subscribe(on_event)
urgent_only = bus.subscribe_severity(EventSeverity.CRITICAL, on_event)

bus.publish(Event(
    FileModifiedEvent(Path("/usr/bin/bash"), "sha256:abc123", "sha256:def456", "Modified"),
    EventSeverity.CRITICAL,
    "scanner",
))

bus.unsubscribe(urgent_only)
print(bus.subscription_count())  # 1
```

Unsubscribing an invalid handle (id 0) or one that is already gone does
nothing.

## Matching journal entries

```python
from canine_watch.journal_fields import JournalEntry
from canine_watch.journal_rule import get_default_rules, matches_rule

entry = JournalEntry.from_fields({
    "MESSAGE": "Failed password for alice from 192.0.2.10 port 22 ssh2",
    "SYSLOG_IDENTIFIER": "sshd",
    "PRIORITY": "5",
})

matching = [rule.name for rule in get_default_rules() if matches_rule(rule, entry)]
print(matching)  # ['ssh_auth_failure']
```

`from_fields()` fills `PRIORITY`, `_PID`, `_UID` and `__REALTIME_TIMESTAMP`
when present and raises `ValueError` when one of them is not a number; every
field is also kept in `raw_fields`, where matches on other field names look.
A disabled rule never matches.

## Monitoring the journal

`JournalMonitor.process_entry()` drops the monitor's own entries (identifier
`canine-watchd`), entries from excluded units or identifiers, and entries less
urgent than `max_priority`; it then publishes an event for the first rule that
matches and returns it, or returns `None`.

```python
from canine_watch.event_bus import EventBus
from canine_watch.journal_monitor import JournalMonitor, JournalMonitorConfig
from canine_watch.journal_rule import get_default_rules

bus = EventBus()
config = JournalMonitorConfig(max_priority=6, exclude_units=["noisy.service"])
monitor = JournalMonitor(bus, get_default_rules(), config)

event = monitor.process_entry(entry)
print(event.data.username, event.data.remote_host)  # alice 192.0.2.10
```

The rule's action decides the event: an `AuthFailureEvent` with user name and
remote host taken from the message, a `PrivilegeEscalationEvent` with the
`COMMAND=` and `USER=` parts of a sudo line, a `ServiceStateEvent` whose state
is `started`, `stopped` or `failed`, or a `SuspiciousLogEvent`. All carry the
rule's severity and the source `journal_monitor`.

`start()` follows new entries on a background thread until `stop()`. By
default it runs `journalctl --follow --lines=0 --output=json`; pass a
`reader` callable to read entries from elsewhere. It takes a
`threading.Event` stop flag and returns an iterable of field mappings.
`start()` raises `RuntimeError` if the monitor is already running or
`journalctl` cannot be started. `update_rules()` replaces the rules while it
runs.

## Deciding on alerts

```python
from pathlib import Path

from canine_watch.events import DistroType, Event, EventSeverity, FileCreatedEvent
from canine_watch.policy import PolicyEngine, create_default_policy

engine = PolicyEngine(create_default_policy(DistroType.TRADITIONAL))
event = Event(FileCreatedEvent(Path("/etc/cron.d/job"), "sha256:aaa"), EventSeverity.WARNING, "scanner")

decision = engine.evaluate(event)
print(decision.generate_alert, decision.severity.name, decision.reason)
# True CRITICAL Matched path rule: /etc/*
```

Path rules apply to file events only and are checked in order; the first
match decides. Other events, and paths no rule matches, get an alert if
`alert_on_unknown` is set, at the severity of the event itself.
`create_default_policy()` adds rules for `/ostree` and `/var/home` on
`DistroType.OSTREE` and for `/.snapshots` on `DistroType.BTRFS_SNAPSHOT`.
The engine's rules live in `engine.config` and can be replaced there.

## Verifying against the package manager

```python
from canine_watch.package_verifier import PackageVerifier, VerificationStatus

result = PackageVerifier().verify_file("/usr/bin/ls")
if result.status is VerificationStatus.MODIFIED:
    print(f"{result.package_name} no longer matches its package")
```

RPM is tried first, then dpkg; a file neither owns is reported as
`NOT_PACKAGED`. The verifier takes optional `run` and `which` callables in
place of running programs and searching the path.

## What the package does not do

It has no command or daemon of its own, does not scan the filesystem or
compute file hashes, keeps no baseline or alert storage, does not watch files
in real time, and sends no desktop notifications. It provides the events,
bus, journal monitoring, package checks and policy that such parts would be
built on.