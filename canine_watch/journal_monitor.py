"""Follows the system journal and turns entries that match rules into events."""

from __future__ import annotations

import json
import logging
import select
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Mapping, Optional

from canine_watch.event_bus import EventBus
from canine_watch.events import (
    AuthFailureEvent,
    Event,
    EventData,
    PrivilegeEscalationEvent,
    ServiceStateEvent,
    SuspiciousLogEvent,
)
from canine_watch.journal_fields import DEFAULT_PRIORITY, JournalEntry
from canine_watch.journal_rule import JournalRule, JournalRuleAction, matches_rule

SELF_IDENTIFIER = "canine-watchd"
EVENT_SOURCE = "journal_monitor"

_POLL_SECONDS = 1.0

_log = logging.getLogger(__name__)

EntryReader = Callable[[threading.Event], Iterable[Mapping[str, str]]]


@dataclass
class JournalMonitorConfig:
    """Which journal entries the monitor looks at."""

    max_priority: int = DEFAULT_PRIORITY  # 0 = emerg ... 7 = debug
    exclude_units: list[str] = field(default_factory=list)
    exclude_identifiers: list[str] = field(default_factory=list)


def _field_text(value: object) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(b, int) for b in value):
        return bytes(value).decode("utf-8", errors="replace")
    return None


def _read_journalctl(proc: subprocess.Popen, stop: threading.Event) -> Iterator[dict[str, str]]:
    stdout = proc.stdout
    try:
        while not stop.is_set():
            ready, _, _ = select.select([stdout], [], [], _POLL_SECONDS)
            if not ready:
                continue
            line = stdout.readline()
            if not line:
                break
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(record, dict):
                continue
            fields = {}
            for name, value in record.items():
                text = _field_text(value)
                if text is not None:
                    fields[name] = text
            yield fields
    finally:
        proc.terminate()
        try:
            proc.wait(timeout=_POLL_SECONDS)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()


def journalctl_entries(stop: threading.Event) -> Iterator[dict[str, str]]:
    """Follow new local journal entries through journalctl until ``stop`` is set."""
    try:
        proc = subprocess.Popen(
            ["journalctl", "--follow", "--lines=0", "--output=json"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            bufsize=0,
        )
    except OSError as exc:
        raise RuntimeError(f"Failed to open journal: {exc}") from exc
    return _read_journalctl(proc, stop)


def _find(text: str, needle: str, start: int = 0) -> Optional[int]:
    pos = text.find(needle, start)
    return None if pos < 0 else pos


def _auth_failure(entry: JournalEntry) -> AuthFailureEvent:
    message = entry.message
    username = ""
    remote_host: Optional[str] = None
    pos = _find(message, "for ")
    if pos is not None:
        start = pos + 4
        end = _find(message, " from", pos)
        if end is None:
            end = _find(message, " ", start)
        if end is not None:
            username = message[start:] if end < start else message[start:end]
        from_pos = _find(message, "from ")
        if from_pos is not None:
            host_start = from_pos + 5
            host_end = _find(message, " ", host_start)
            remote_host = message[host_start:host_end]
    return AuthFailureEvent(
        username=username,
        service=entry.syslog_identifier,
        remote_host=remote_host,
        message=message,
    )


def _privilege_escalation(entry: JournalEntry) -> PrivilegeEscalationEvent:
    message = entry.message
    command = ""
    target_user = "root"
    cmd_pos = _find(message, "COMMAND=")
    if cmd_pos is not None:
        command = message[cmd_pos + 8 :]
    user_pos = _find(message, "USER=")
    if user_pos is not None:
        end = _find(message, " ", user_pos)
        target_user = message[user_pos + 5 : end]
    return PrivilegeEscalationEvent(
        username="",
        target_user=target_user,
        method=entry.syslog_identifier,
        command=command,
        message=message,
    )


def _service_state(entry: JournalEntry) -> ServiceStateEvent:
    if "started" in entry.message:
        new_state = "started"
    elif "stopped" in entry.message:
        new_state = "stopped"
    else:
        new_state = "failed"
    return ServiceStateEvent(
        unit_name=entry.systemd_unit,
        new_state=new_state,
        exit_code=None,
        message=entry.message,
    )


class JournalMonitor:
    """Reads journal entries on a background thread and publishes matching events.

    ``reader`` is called with a stop flag when the monitor starts and returns the
    field mappings of new entries; by default it follows the journal via journalctl.
    """

    def __init__(
        self,
        event_bus: EventBus,
        rules: Iterable[JournalRule],
        config: Optional[JournalMonitorConfig] = None,
        reader: Optional[EntryReader] = None,
    ) -> None:
        self._event_bus = event_bus
        self._config = config if config is not None else JournalMonitorConfig()
        self._rules = list(rules)
        self._rules_lock = threading.Lock()
        self._reader = reader if reader is not None else journalctl_entries
        self._stop = threading.Event()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Open the entry source and start the background thread."""
        if self._running:
            raise RuntimeError("Journal monitor already running")
        self._stop.clear()
        entries = iter(self._reader(self._stop))
        self._running = True
        self._thread = threading.Thread(
            target=self._monitor_loop, args=(entries,), name="journal-monitor", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread and wait for it; a no-op when not running."""
        if not self._running:
            return
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._running = False

    def is_running(self) -> bool:
        return self._running

    def update_rules(self, rules: Iterable[JournalRule]) -> None:
        """Replace the rule set while running."""
        new_rules = list(rules)
        with self._rules_lock:
            self._rules = new_rules

    def _monitor_loop(self, entries: Iterator[Mapping[str, str]]) -> None:
        try:
            for fields in entries:
                if self._stop.is_set():
                    break
                try:
                    entry = JournalEntry.from_fields(fields)
                except ValueError:
                    _log.warning("Skipping journal entry with malformed fields")
                    continue
                self.process_entry(entry)
        except Exception:
            _log.exception("Journal reader failed")

    def process_entry(self, entry: JournalEntry) -> Optional[Event]:
        """Filter an entry, match it against the rules and publish the first match.

        Returns the published event, or None when nothing was published.
        """
        if self.should_exclude(entry):
            return None
        if entry.priority > self._config.max_priority:
            return None
        with self._rules_lock:
            rule = next((r for r in self._rules if matches_rule(r, entry)), None)
        if rule is None:
            return None
        event = self.build_event(entry, rule)
        self._event_bus.publish(event)
        return event

    def build_event(self, entry: JournalEntry, rule: JournalRule) -> Event:
        """Build the event a matching rule produces for an entry."""
        data: EventData
        if rule.action is JournalRuleAction.AUTH_FAILURE:
            data = _auth_failure(entry)
        elif rule.action is JournalRuleAction.PRIVILEGE_ESCALATION:
            data = _privilege_escalation(entry)
        elif rule.action is JournalRuleAction.SERVICE_STATE:
            data = _service_state(entry)
        else:
            data = SuspiciousLogEvent(
                rule_name=rule.name,
                unit_name=entry.systemd_unit,
                message=entry.message,
                priority=entry.priority,
            )
        return Event(data, rule.severity, EVENT_SOURCE)

    def should_exclude(self, entry: JournalEntry) -> bool:
        """True for the daemon's own entries and for excluded units or identifiers."""
        if entry.syslog_identifier == SELF_IDENTIFIER:
            return True
        if entry.systemd_unit in self._config.exclude_units:
            return True
        return entry.syslog_identifier in self._config.exclude_identifiers