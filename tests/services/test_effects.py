"""Unit tests for src/services/effects.py"""

from conftest import WEDNESDAY_NOON, MockNotifier, MockRepository

from src.core.exceptions import NotificationError, RepositoryError
from src.core.shared_types import BossStatus, NotificationKind
from src.services.effects import BossReportWriter, NotificationRequest, send_notification
from src.tracking.boss_report import BossReport
from src.tracking.bosses import boss_by_id


def kazzak_report(kills: int, revision: int) -> BossReport:
    report = BossReport.empty(boss_by_id("kazzy"))
    for _ in range(kills):
        report.apply_sighting("Layer 1", BossStatus.DEFEATED, WEDNESDAY_NOON)
    report.revision = revision
    return report


# --- BOSS REPORT WRITER ---
def test_writes_newer_revisions(mock_repository: MockRepository) -> None:
    writer = BossReportWriter(mock_repository)
    assert writer.save("guild-1", kazzak_report(kills=1, revision=1)) is None
    assert writer.save("guild-1", kazzak_report(kills=2, revision=2)) is None

    assert len(mock_repository.save_calls) == 2
    assert mock_repository.reports[("guild-1", "kazzy")].total_kills == 2


def test_outdated_revision_is_dropped(mock_repository: MockRepository) -> None:
    writer = BossReportWriter(mock_repository)
    writer.save("guild-1", kazzak_report(kills=2, revision=2))

    assert writer.save("guild-1", kazzak_report(kills=1, revision=1)) is None

    assert mock_repository.save_calls == [("guild-1", "kazzy")]
    assert mock_repository.reports[("guild-1", "kazzy")].total_kills == 2


def test_same_revision_is_written_again(mock_repository: MockRepository) -> None:
    writer = BossReportWriter(mock_repository)
    report = kazzak_report(kills=1, revision=3)
    writer.save("guild-1", report)
    writer.save("guild-1", report)
    assert len(mock_repository.save_calls) == 2


def test_revisions_are_tracked_per_tenant(mock_repository: MockRepository) -> None:
    writer = BossReportWriter(mock_repository)
    writer.save("guild-1", kazzak_report(kills=5, revision=5))
    writer.save("guild-2", kazzak_report(kills=1, revision=1))
    assert mock_repository.reports[("guild-2", "kazzy")].total_kills == 1


def test_failed_write_does_not_count(mock_repository: MockRepository) -> None:
    writer = BossReportWriter(mock_repository)
    mock_repository.fail_on.add("save_boss_report")
    failure = writer.save("guild-1", kazzak_report(kills=2, revision=2))
    assert isinstance(failure, RepositoryError)
    assert failure.operation == "save_boss_report"
    assert failure.tenant_id == "guild-1"

    # Nothing was stored, so an older snapshot may still go through
    mock_repository.fail_on.clear()
    assert writer.save("guild-1", kazzak_report(kills=1, revision=1)) is None
    assert mock_repository.reports[("guild-1", "kazzy")].total_kills == 1


# --- NOTIFICATIONS ---
def test_send_notification(mock_notifier: MockNotifier) -> None:
    request = NotificationRequest(
        tenant_id="guild-1", channel_ref="scouting", text="hi", kind=NotificationKind.FOUND
    )
    assert send_notification(mock_notifier, request) is None
    assert mock_notifier.sent == [("guild-1", "scouting", "hi")]

    mock_notifier.succeed = False
    failure = send_notification(mock_notifier, request)
    assert isinstance(failure, NotificationError)
    assert failure.operation == "send_notification"
