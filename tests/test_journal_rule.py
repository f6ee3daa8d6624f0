import re

import pytest

from canine_watch.events import EventSeverity
from canine_watch.journal_fields import COMM, MESSAGE, PRIORITY, SYSLOG_IDENTIFIER, JournalEntry
from canine_watch.journal_rule import (
    JournalFieldMatch,
    JournalMatchType,
    JournalRule,
    JournalRuleAction,
    get_default_rules,
    matches_field,
    matches_rule,
)


def _rule(name):
    return next(r for r in get_default_rules() if r.name == name)


def _first_match(entry):
    return next((r.name for r in get_default_rules() if matches_rule(r, entry)), None)


@pytest.mark.parametrize(
    "match_type, pattern, expected",
    [
        (JournalMatchType.EXACT, "Failed password", False),
        (JournalMatchType.EXACT, "Failed password for bob", True),
        (JournalMatchType.CONTAINS, "password", True),
        (JournalMatchType.CONTAINS, "Invalid", False),
        (JournalMatchType.STARTS_WITH, "Failed", True),
        (JournalMatchType.STARTS_WITH, "password", False),
        (JournalMatchType.REGEX, r"for \w+$", True),
        (JournalMatchType.REGEX, r"^for", False),
    ],
)
def test_match_types(match_type, pattern, expected):
    entry = JournalEntry(message="Failed password for bob")
    assert matches_field(JournalFieldMatch(MESSAGE, pattern, match_type), entry) is expected


def test_negate_inverts_result():
    entry = JournalEntry(message="hello world")
    match = JournalFieldMatch(MESSAGE, "hello", JournalMatchType.CONTAINS, negate=True)
    assert matches_field(match, entry) is False
    other = JournalFieldMatch(MESSAGE, "absent", JournalMatchType.CONTAINS, negate=True)
    assert matches_field(other, entry) is True


def test_regex_is_compiled_on_creation():
    match = JournalFieldMatch(MESSAGE, "a.c", JournalMatchType.REGEX)
    assert match.compiled_regex.pattern == "a.c"


def test_invalid_regex_raises():
    with pytest.raises(re.error):
        JournalFieldMatch(MESSAGE, "(unclosed", JournalMatchType.REGEX)


def test_unknown_field_reads_raw_fields():
    entry = JournalEntry(raw_fields={"CUSTOM": "abc"})
    assert matches_field(JournalFieldMatch("CUSTOM", "abc", JournalMatchType.EXACT), entry)
    assert not matches_field(JournalFieldMatch("MISSING", "abc", JournalMatchType.EXACT), entry)


def test_priority_field_comes_from_raw_fields():
    entry = JournalEntry.from_fields({PRIORITY: "3"})
    assert matches_field(JournalFieldMatch(PRIORITY, "3", JournalMatchType.EXACT), entry)


def test_disabled_rule_never_matches():
    rule = JournalRule("always", field_matches=[], enabled=False)
    assert matches_rule(rule, JournalEntry()) is False


def test_rule_without_matches_matches_everything():
    assert matches_rule(JournalRule("always"), JournalEntry(message="anything")) is True


def test_rule_requires_all_matches():
    rule = _rule("ssh_auth_failure")
    assert matches_rule(rule, JournalEntry(message="Failed password for bob", syslog_identifier="sshd"))
    assert not matches_rule(rule, JournalEntry(message="Failed password for bob", syslog_identifier="sudo"))
    assert not matches_rule(rule, JournalEntry(message="Accepted password", syslog_identifier="sshd"))


def test_default_rule_names_in_order():
    assert [r.name for r in get_default_rules()] == [
        "ssh_auth_failure",
        "ssh_invalid_user",
        "sudo_auth_failure",
        "sudo_command",
        "su_session",
        "service_failed",
        "kernel_segfault",
        "pam_auth_failure",
        "polkit_auth",
        "pkexec_command",
    ]


def test_default_rules_are_enabled_and_fresh():
    first = get_default_rules()
    second = get_default_rules()
    assert all(r.enabled for r in first)
    first[0].enabled = False
    assert second[0].enabled is True


def test_default_rule_actions_and_severities():
    sudo = _rule("sudo_command")
    assert sudo.action is JournalRuleAction.PRIVILEGE_ESCALATION
    assert sudo.severity is EventSeverity.INFO
    service = _rule("service_failed")
    assert service.action is JournalRuleAction.SERVICE_STATE
    assert service.severity is EventSeverity.WARNING
    assert _rule("kernel_segfault").action is JournalRuleAction.SUSPICIOUS_LOG


@pytest.mark.parametrize(
    "entry, expected",
    [
        (JournalEntry(syslog_identifier="sshd", message="Invalid user admin from 10.0.0.5"), "ssh_invalid_user"),
        (JournalEntry(syslog_identifier="sudo", message="bob : TTY=pts/0 ; USER=root ; COMMAND=/bin/ls"), "sudo_command"),
        (JournalEntry(syslog_identifier="su", message="pam_unix(su:session): session opened for user root"), "su_session"),
        (JournalEntry(message="Failed to start foo.service."), "service_failed"),
        (JournalEntry(syslog_identifier="kernel", message="app[42]: segfault at 0"), "kernel_segfault"),
        (JournalEntry(syslog_identifier="login", message="pam_unix(login:auth): authentication failure"), "pam_auth_failure"),
        (JournalEntry(comm="pkexec", message="running"), "pkexec_command"),
        (JournalEntry(syslog_identifier="cron", message="job done"), None),
    ],
)
def test_default_rules_first_match(entry, expected):
    assert _first_match(entry) == expected


def test_pkexec_rule_uses_comm_field():
    rule = _rule("pkexec_command")
    assert rule.field_matches[0].field_name == COMM
    assert not matches_rule(rule, JournalEntry(syslog_identifier="pkexec"))


def test_sudo_rule_identifier_is_exact():
    rule = _rule("sudo_auth_failure")
    assert rule.field_matches[0].field_name == SYSLOG_IDENTIFIER
    assert not matches_rule(rule, JournalEntry(syslog_identifier="sudoedit", message="authentication failure"))