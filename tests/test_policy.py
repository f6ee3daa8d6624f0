from datetime import timedelta
from pathlib import Path

import pytest

from canine_watch.events import (
    DistroType,
    Event,
    EventSeverity,
    FileCreatedEvent,
    FileModifiedEvent,
    ScanCompletedEvent,
)
from canine_watch.policy import (
    AlertSeverity,
    PathRule,
    PolicyConfig,
    PolicyEngine,
    create_default_policy,
)


@pytest.fixture
def engine():
    config = PolicyConfig(
        path_rules=[
            PathRule("/usr/bin/*", AlertSeverity.CRITICAL, True),
            PathRule("/etc/*", AlertSeverity.CRITICAL, True),
            PathRule("/tmp/*", AlertSeverity.INFO, False),
            PathRule("/var/log/*", AlertSeverity.INFO, False),
        ],
        alert_on_unknown=True,
        default_severity=AlertSeverity.WARNING,
    )
    return PolicyEngine(config)


def modified(path, severity=EventSeverity.CRITICAL):
    data = FileModifiedEvent(Path(path), "sha256:abc123", "sha256:def456", "Modified")
    return Event(data, severity, "test")


def created(path, severity=EventSeverity.WARNING):
    return Event(FileCreatedEvent(Path(path), "sha256:aaa", None), severity, "test")


def test_construct_with_default_config():
    engine = PolicyEngine()
    assert engine.config.path_rules == []
    assert engine.config.alert_on_unknown is True


def test_critical_path_generates_alert(engine):
    decision = engine.evaluate(modified("/usr/bin/bash"))
    assert decision.generate_alert is True
    assert decision.severity is AlertSeverity.CRITICAL
    assert "/usr/bin/*" in decision.reason


def test_temp_path_suppresses_alert(engine):
    decision = engine.evaluate(created("/tmp/tempfile.txt"))
    assert decision.generate_alert is False
    assert decision.severity is AlertSeverity.INFO


def test_etc_path_generates_alert(engine):
    decision = engine.evaluate(modified("/etc/passwd"))
    assert decision.generate_alert is True
    assert decision.severity is AlertSeverity.CRITICAL


def test_unknown_path_uses_default(engine):
    decision = engine.evaluate(created("/home/user/document.txt"))
    assert decision.generate_alert is True
    assert decision.severity is AlertSeverity.WARNING
    assert "default" in decision.reason


def test_non_file_event_uses_default(engine):
    data = ScanCompletedEvent(Path("/usr"), 1000, 5, timedelta(milliseconds=500))
    decision = engine.evaluate(Event(data, EventSeverity.INFO, "scanner"))
    assert decision.generate_alert is True
    assert decision.severity is AlertSeverity.INFO


def test_update_config(engine):
    engine.config = PolicyConfig(
        path_rules=[PathRule("/opt/*", AlertSeverity.WARNING, True)],
        alert_on_unknown=False,
    )
    decision = engine.evaluate(created("/home/user/file.txt"))
    assert decision.generate_alert is False


def test_star_matches_across_directories(engine):
    decision = engine.evaluate(modified("/etc/ssh/sshd_config"))
    assert decision.reason == "Matched path rule: /etc/*"


def test_create_default_policy_traditional():
    policy = create_default_policy(DistroType.TRADITIONAL)
    assert policy.path_rules
    assert policy.alert_on_unknown is True
    assert any(
        r.pattern == "/usr/bin/*" and r.severity is AlertSeverity.CRITICAL
        for r in policy.path_rules
    )
    assert not any("ostree" in r.pattern for r in policy.path_rules)


def test_create_default_policy_ostree():
    policy = create_default_policy(DistroType.OSTREE)
    assert any("ostree" in r.pattern for r in policy.path_rules)


def test_create_default_policy_btrfs():
    policy = create_default_policy(DistroType.BTRFS_SNAPSHOT)
    assert PathRule("/.snapshots/*", AlertSeverity.WARNING, True) in policy.path_rules
    assert policy.default_severity is AlertSeverity.WARNING


def test_first_matching_rule_wins():
    engine = PolicyEngine(
        PolicyConfig(
            path_rules=[
                PathRule("/usr/bin/test", AlertSeverity.INFO, False),
                PathRule("/usr/bin/*", AlertSeverity.CRITICAL, True),
            ],
            alert_on_unknown=True,
        )
    )
    decision = engine.evaluate(modified("/usr/bin/test"))
    assert decision.generate_alert is False
    assert decision.severity is AlertSeverity.INFO