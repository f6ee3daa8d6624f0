"""Rules that match journal entries by field, and the built-in rule set."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Optional

from canine_watch import journal_fields
from canine_watch.events import EventSeverity
from canine_watch.journal_fields import JournalEntry


class JournalMatchType(enum.Enum):
    """How a field value is compared with a pattern."""

    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"
    STARTS_WITH = "starts_with"


@dataclass
class JournalFieldMatch:
    """One condition on one journal field; a regex pattern is compiled on creation."""

    field_name: str
    pattern: str
    match_type: JournalMatchType = JournalMatchType.CONTAINS
    negate: bool = False
    compiled_regex: Optional[re.Pattern[str]] = None

    def __post_init__(self) -> None:
        if self.match_type is JournalMatchType.REGEX and self.compiled_regex is None:
            self.compiled_regex = re.compile(self.pattern)


class JournalRuleAction(enum.Enum):
    """The kind of event a matching rule produces."""

    AUTH_FAILURE = "auth_failure"
    PRIVILEGE_ESCALATION = "privilege_escalation"
    SERVICE_STATE = "service_state"
    SUSPICIOUS_LOG = "suspicious_log"


@dataclass
class JournalRule:
    """A named set of field matches that must all hold."""

    name: str
    description: str = ""
    field_matches: list[JournalFieldMatch] = field(default_factory=list)
    action: JournalRuleAction = JournalRuleAction.SUSPICIOUS_LOG
    severity: EventSeverity = EventSeverity.WARNING
    enabled: bool = True


_ENTRY_ATTRIBUTES = {
    journal_fields.MESSAGE: "message",
    journal_fields.SYSLOG_IDENTIFIER: "syslog_identifier",
    journal_fields.SYSTEMD_UNIT: "systemd_unit",
    journal_fields.COMM: "comm",
    journal_fields.EXE: "exe",
}


def _field_value(entry: JournalEntry, name: str) -> str:
    attribute = _ENTRY_ATTRIBUTES.get(name)
    if attribute is not None:
        return getattr(entry, attribute)
    return entry.raw_fields.get(name, "")


def matches_field(match: JournalFieldMatch, entry: JournalEntry) -> bool:
    """Check one field condition against an entry, honouring negation."""
    value = _field_value(entry, match.field_name)
    if match.match_type is JournalMatchType.EXACT:
        result = value == match.pattern
    elif match.match_type is JournalMatchType.CONTAINS:
        result = match.pattern in value
    elif match.match_type is JournalMatchType.STARTS_WITH:
        result = value.startswith(match.pattern)
    else:
        result = match.compiled_regex is not None and match.compiled_regex.search(value) is not None
    return not result if match.negate else result


def matches_rule(rule: JournalRule, entry: JournalEntry) -> bool:
    """True when the rule is enabled and every field match holds."""
    return rule.enabled and all(matches_field(m, entry) for m in rule.field_matches)


def _ident_and_message(identifier: str, text: str) -> list[JournalFieldMatch]:
    return [
        JournalFieldMatch(journal_fields.SYSLOG_IDENTIFIER, identifier, JournalMatchType.EXACT),
        JournalFieldMatch(journal_fields.MESSAGE, text, JournalMatchType.CONTAINS),
    ]


def get_default_rules() -> list[JournalRule]:
    """Return the built-in rules for common authentication and service log patterns."""
    auth = JournalRuleAction.AUTH_FAILURE
    escalation = JournalRuleAction.PRIVILEGE_ESCALATION
    warning = EventSeverity.WARNING
    info = EventSeverity.INFO
    return [
        JournalRule(
            "ssh_auth_failure",
            "SSH authentication failures",
            _ident_and_message("sshd", "Failed password"),
            auth,
            warning,
        ),
        JournalRule(
            "ssh_invalid_user",
            "SSH invalid user attempts",
            _ident_and_message("sshd", "Invalid user"),
            auth,
            warning,
        ),
        JournalRule(
            "sudo_auth_failure",
            "Sudo authentication failures",
            _ident_and_message("sudo", "authentication failure"),
            auth,
            warning,
        ),
        JournalRule(
            "sudo_command",
            "Successful sudo privilege escalation",
            _ident_and_message("sudo", "COMMAND="),
            escalation,
            info,
        ),
        JournalRule(
            "su_session",
            "Su privilege escalation",
            _ident_and_message("su", "session opened"),
            escalation,
            info,
        ),
        JournalRule(
            "service_failed",
            "Systemd service failures",
            [JournalFieldMatch(journal_fields.MESSAGE, "Failed to start", JournalMatchType.CONTAINS)],
            JournalRuleAction.SERVICE_STATE,
            warning,
        ),
        JournalRule(
            "kernel_segfault",
            "Kernel segmentation faults",
            _ident_and_message("kernel", "segfault"),
            JournalRuleAction.SUSPICIOUS_LOG,
            warning,
        ),
        JournalRule(
            "pam_auth_failure",
            "PAM authentication failures",
            [
                JournalFieldMatch(
                    journal_fields.MESSAGE,
                    "pam_unix.*authentication failure",
                    JournalMatchType.REGEX,
                )
            ],
            auth,
            warning,
        ),
        JournalRule(
            "polkit_auth",
            "Polkit authentication requests",
            _ident_and_message("polkitd", "Registered Authentication Agent"),
            escalation,
            info,
        ),
        JournalRule(
            "pkexec_command",
            "Pkexec privilege escalation",
            [JournalFieldMatch(journal_fields.COMM, "pkexec", JournalMatchType.EXACT)],
            escalation,
            info,
        ),
    ]