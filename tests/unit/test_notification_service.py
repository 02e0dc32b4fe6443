"""
Unit tests for the notification orchestrator.

Runs against a throwaway SQLite database; recipients are processed one per
batch so SQLite never sees concurrent writers. Concurrent batches are
exercised with a stubbed create.
"""

import asyncio
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.schemas.notifications import (
    HistoryAction,
    NotificationCategory,
    NotificationChannel,
    NotificationFilters,
    NotificationStatus,
    RealtimeEventType,
    SendNotificationResult,
)
from core.exceptions import NotFoundError
from services.notification_service import (
    NotificationService,
    NotificationServiceConfig,
    deep_merge,
    render_template,
)


@pytest.fixture
def orchestrator(database, hub, published, clock):
    return NotificationService(
        database,
        publisher=hub,
        config=NotificationServiceConfig(batch_size=1),
        clock=clock,
    )


def _request(user_id, **fields):
    values = {
        "user_id": user_id,
        "type": "info",
        "title": "Heads up",
        "message": "Something happened",
    }
    values.update(fields)
    return values


async def _listing(orchestrator, user_id, filters=None):
    result = await orchestrator.get_notifications(user_id, filters)
    assert result.success is True
    return result.listing


async def _unread(orchestrator, user_id) -> int:
    result = await orchestrator.get_unread_count(user_id)
    assert result.success is True
    return result.unread_count


async def _history(orchestrator, user_id, notification_id=None):
    result = await orchestrator.get_notification_history(user_id, notification_id)
    assert result.success is True
    return result.entries


async def _preferences(orchestrator, user_id):
    result = await orchestrator.get_preferences(user_id)
    assert result.success is True
    return result.preferences


class TestHelpers:
    """Tests for template rendering and merging."""

    def test_render_template_substitutes_known_names(self):
        assert render_template("Essay Graded: {essay_title}", {"essay_title": "Hamlet"}) == "Essay Graded: Hamlet"

    def test_render_template_leaves_missing_names(self):
        assert render_template("{score}/100 ({grade})", {"score": 92}) == "92/100 ({grade})"

    def test_deep_merge_keeps_untouched_keys(self):
        base = {"channels": {"in_app": True, "push": True}, "global_enabled": True}

        merged = deep_merge(base, {"channels": {"push": False}})

        assert merged == {"channels": {"in_app": True, "push": False}, "global_enabled": True}
        assert base["channels"]["push"] is True


class TestCreateNotification:
    """Tests for creating and delivering a notification."""

    @pytest.mark.asyncio
    async def test_create_returns_allowed_channels(self, orchestrator, user_id, published):
        result = await orchestrator.create_notification(
            _request(user_id, channels=["in_app", "push", "sms"])
        )

        assert result.success is True
        assert result.notification_id
        # sms is off in the default channel toggles
        assert result.delivered_channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]

        assert [e.type for e in published] == [RealtimeEventType.NEW_NOTIFICATION]
        assert published[0].notification.id == result.notification_id
        assert published[0].user_id == str(user_id)

    @pytest.mark.asyncio
    async def test_create_persists_with_default_expiry(self, orchestrator, user_id, clock):
        result = await orchestrator.create_notification(_request(user_id))

        stored = await orchestrator.get_notification(user_id, uuid.UUID(result.notification_id))

        assert stored.success is True
        assert stored.notification.status == NotificationStatus.UNREAD
        assert stored.notification.delivered_via == [NotificationChannel.IN_APP]
        assert stored.notification.expires_at == clock.now + timedelta(hours=720)

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, orchestrator, published):
        result = await orchestrator.create_notification(_request(uuid.uuid4()))

        assert result.success is False
        assert result.error.code == "recipient_not_found"
        assert isinstance(result.exception, NotFoundError)
        assert published == []

    @pytest.mark.asyncio
    async def test_blank_title_is_rejected(self, orchestrator, user_id):
        result = await orchestrator.create_notification(_request(user_id, title="   "))

        assert result.success is False
        assert result.error.code == "validation_error"
        assert result.error.details["errors"][0]["field"] == "title"

    @pytest.mark.asyncio
    async def test_expiry_in_the_past_is_rejected(self, orchestrator, user_id, clock):
        result = await orchestrator.create_notification(
            _request(user_id, expires_at=clock.now - timedelta(minutes=1))
        )

        assert result.success is False
        assert result.error.code == "validation_error"

    @pytest.mark.asyncio
    async def test_denied_channels_still_store_the_notification(self, orchestrator, user_id, clock):
        await orchestrator.update_preferences(user_id, {"global_enabled": False})

        result = await orchestrator.create_notification(_request(user_id, channels=["in_app", "push"]))

        assert result.success is True
        assert result.delivered_channels == []
        assert await _unread(orchestrator, user_id) == 1

    @pytest.mark.asyncio
    async def test_quiet_hours_let_urgent_through(self, orchestrator, user_id, clock):
        await orchestrator.update_preferences(
            user_id,
            {"quiet_hours": {"enabled": True, "start": "22:00", "end": "08:00"}},
        )
        clock.now = clock.now.replace(hour=23)

        high = await orchestrator.create_notification(
            _request(user_id, type="message", priority="high", channels=["in_app", "push"])
        )
        urgent = await orchestrator.create_notification(
            _request(user_id, type="message", priority="urgent", channels=["in_app", "push"])
        )

        assert high.delivered_channels == []
        assert urgent.delivered_channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]

    @pytest.mark.asyncio
    async def test_group_collapses_into_open_notification(self, orchestrator, user_id, published):
        first = await orchestrator.create_notification(
            _request(user_id, type="flashcard_due", title="3 cards due", group_id="deck-7")
        )
        second = await orchestrator.create_notification(
            _request(user_id, type="flashcard_due", title="5 cards due", group_id="deck-7")
        )

        assert second.grouped is True
        assert second.notification_id == first.notification_id
        assert [e.type for e in published] == [
            RealtimeEventType.NEW_NOTIFICATION,
            RealtimeEventType.NOTIFICATION_GROUPED,
        ]

        listing = await _listing(orchestrator, user_id)
        assert listing.total == 1
        assert listing.notifications[0].title == "5 cards due"
        assert listing.notifications[0].group_count == 2

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_create(self, database, user_id, clock):
        publisher = MagicMock()
        publisher.publish = AsyncMock(side_effect=RuntimeError("redis down"))
        service = NotificationService(database, publisher=publisher, clock=clock)

        result = await service.create_notification(_request(user_id))

        assert result.success is True
        publisher.publish.assert_awaited_once()


class TestTemplates:
    """Tests for template-based creation."""

    @pytest.mark.asyncio
    async def test_renders_stored_template(self, orchestrator, user_id, templates):
        result = await orchestrator.create_from_template(
            user_id,
            "essay_graded",
            {"essay_title": "Hamlet", "score": 92},
        )

        assert result.success is True
        assert result.delivered_channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]

        stored = await orchestrator.get_notification(user_id, uuid.UUID(result.notification_id))
        assert stored.notification.title == "Essay Graded: Hamlet"
        assert stored.notification.message == "Your essay has been graded with a score of 92/100 ({grade})."
        assert stored.notification.icon == "CheckCircle"

    @pytest.mark.asyncio
    async def test_extra_overrides_template_defaults(self, orchestrator, user_id, templates):
        result = await orchestrator.create_from_template(
            user_id,
            "system_maintenance",
            {"maintenance_date": "Sunday"},
            extra={"priority": "urgent", "link": "/status"},
        )

        stored = await orchestrator.get_notification(user_id, uuid.UUID(result.notification_id))
        assert stored.notification.priority == "urgent"
        assert stored.notification.link == "/status"

    @pytest.mark.asyncio
    async def test_unknown_template(self, orchestrator, user_id, templates):
        result = await orchestrator.create_from_template(user_id, "does_not_exist")

        assert result.success is False
        assert result.error.code == "template_not_found"


class TestBulkSend:
    """Tests for sending to many recipients."""

    @pytest.mark.asyncio
    async def test_invalid_recipient_does_not_stop_batch(self, orchestrator, users):
        result = await orchestrator.send_bulk_notification(
            [str(users[0]), "not-a-uuid", str(users[1])],
            {"type": "system", "priority": "high", "title": "Maintenance", "message": "Tonight"},
        )

        assert result.total == 3
        assert result.successful == 2
        assert result.failed == 1
        assert result.partial_failure is True
        assert result.errors[0].user_id == "not-a-uuid"
        assert result.errors[0].error.code == "invalid_recipient"
        assert len(result.notification_ids) == 2

    @pytest.mark.asyncio
    async def test_duplicate_and_unknown_recipients(self, orchestrator, users):
        stranger = str(uuid.uuid4())

        result = await orchestrator.send_bulk_notification(
            [str(users[0]), str(users[0]), stranger],
            {"type": "info", "title": "Hello", "message": "World"},
        )

        assert result.total == 3
        assert result.successful == 1
        codes = {e.user_id: e.error.code for e in result.errors}
        assert codes == {str(users[0]): "duplicate_recipient", stranger: "recipient_not_found"}

    @pytest.mark.asyncio
    async def test_invalid_content_fails_every_recipient(self, orchestrator, users):
        result = await orchestrator.send_bulk_notification(
            [str(u) for u in users],
            {"type": "info", "title": "", "message": "World"},
        )

        assert result.total == 3
        assert result.successful == 0
        assert result.failed == 3
        assert all(e.error.code == "validation_error" for e in result.errors)

    @pytest.mark.asyncio
    async def test_batches_bound_concurrency_and_aggregate_failures(self):
        service = NotificationService(MagicMock(), config=NotificationServiceConfig(batch_size=3))
        recipients = [str(uuid.uuid4()) for _ in range(6)]
        unreachable = recipients[4]
        in_flight = 0
        peak = 0

        async def create(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            in_flight -= 1
            if str(request.user_id) == unreachable:
                return SendNotificationResult.failed(
                    NotFoundError(message="Recipient gone", error_code="recipient_not_found")
                )
            return SendNotificationResult(success=True, notification_id=str(uuid.uuid4()))

        service.create_notification = create

        result = await service.send_bulk_notification(
            [*recipients[:3], "not-a-uuid", *recipients[3:]],
            {"type": "system", "title": "Maintenance", "message": "Tonight"},
        )

        assert peak == 3
        assert (result.total, result.successful, result.failed) == (7, 5, 2)
        assert {e.user_id: e.error.code for e in result.errors} == {
            "not-a-uuid": "invalid_recipient",
            unreachable: "recipient_not_found",
        }
        assert result.failure.error_code == "partial_batch_failure"
        assert result.failure.details["codes"] == ["invalid_recipient", "recipient_not_found"]

    @pytest.mark.asyncio
    async def test_clean_batch_has_no_failure(self, orchestrator, users):
        result = await orchestrator.send_bulk_notification(
            [str(users[0])], {"type": "info", "title": "Hello", "message": "World"}
        )

        assert result.partial_failure is False
        assert result.failure is None


class TestListing:
    """Tests for listing, filters and pagination."""

    async def _create_spread(self, orchestrator, user_id, clock, count: int) -> list[str]:
        ids = []
        for index in range(count):
            clock.now += timedelta(minutes=1)
            result = await orchestrator.create_notification(_request(user_id, title=f"n{index}"))
            ids.append(result.notification_id)
        return ids

    @pytest.mark.asyncio
    async def test_newest_first_with_cursor(self, orchestrator, user_id, clock):
        ids = await self._create_spread(orchestrator, user_id, clock, 3)

        page = await _listing(orchestrator, user_id, NotificationFilters(limit=2))

        assert [n.id for n in page.notifications] == [ids[2], ids[1]]
        assert page.total == 3
        assert page.unread_count == 3
        assert page.has_more is True

        rest = await _listing(orchestrator, user_id, NotificationFilters(limit=2, cursor=page.next_cursor))

        assert [n.id for n in rest.notifications] == [ids[0]]
        assert rest.has_more is False
        assert rest.next_cursor is None

    @pytest.mark.asyncio
    async def test_cursor_walks_rows_with_the_same_timestamp(self, orchestrator, user_id):
        # The clock is not advanced, so every row shares one created_at
        created = [
            (await orchestrator.create_notification(_request(user_id, title=f"n{index}"))).notification_id
            for index in range(5)
        ]

        seen = []
        filters = NotificationFilters(limit=2)
        while True:
            page = await _listing(orchestrator, user_id, filters)
            seen.extend(n.id for n in page.notifications)
            if not page.has_more:
                break
            filters = NotificationFilters(limit=2, cursor=page.next_cursor)

        assert sorted(seen) == sorted(created)
        assert len(seen) == len(set(seen))

    def test_malformed_cursor_is_rejected(self):
        with pytest.raises(ValueError):
            NotificationFilters(cursor="not-a-cursor")

    @pytest.mark.asyncio
    async def test_category_filter(self, orchestrator, user_id):
        await orchestrator.create_notification(_request(user_id, type="essay_graded"))
        await orchestrator.create_notification(_request(user_id, type="message"))

        listing = await _listing(
            orchestrator, user_id, NotificationFilters(category=NotificationCategory.SOCIAL)
        )

        assert [n.type for n in listing.notifications] == ["message"]

    @pytest.mark.asyncio
    async def test_search_and_status_filters(self, orchestrator, user_id):
        first = await orchestrator.create_notification(_request(user_id, title="Biology quiz"))
        await orchestrator.create_notification(_request(user_id, title="Chemistry lab"))
        await orchestrator.mark_as_read(user_id, [uuid.UUID(first.notification_id)])

        found = await _listing(orchestrator, user_id, NotificationFilters(search="biology"))
        unread = await _listing(orchestrator, user_id, NotificationFilters(status="unread"))

        assert [n.title for n in found.notifications] == ["Biology quiz"]
        assert [n.title for n in unread.notifications] == ["Chemistry lab"]

    @pytest.mark.asyncio
    async def test_other_users_notifications_are_hidden(self, orchestrator, users):
        result = await orchestrator.create_notification(_request(users[0]))

        other = await orchestrator.get_notification(users[1], uuid.UUID(result.notification_id))

        assert other.success is False
        assert other.error.code == "notification_not_found"
        assert (await _listing(orchestrator, users[1])).total == 0


class TestStateChanges:
    """Tests for read, dismiss, delete and actions."""

    @pytest.mark.asyncio
    async def test_mark_as_read_is_idempotent(self, orchestrator, user_id, published):
        first = await orchestrator.create_notification(_request(user_id))
        await orchestrator.create_notification(_request(user_id))
        published.clear()
        target = [uuid.UUID(first.notification_id)]

        once = await orchestrator.mark_as_read(user_id, target)
        twice = await orchestrator.mark_as_read(user_id, target)

        assert (once.count, once.unread_count) == (1, 1)
        assert (twice.count, twice.unread_count) == (0, 1)
        assert [e.type for e in published] == [RealtimeEventType.NOTIFICATION_READ]
        assert published[0].notification_ids == [first.notification_id]

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, orchestrator, user_id):
        for _ in range(3):
            await orchestrator.create_notification(_request(user_id))

        result = await orchestrator.mark_all_as_read(user_id)
        again = await orchestrator.mark_all_as_read(user_id)

        assert (result.count, result.unread_count) == (3, 0)
        assert (again.count, again.unread_count) == (0, 0)
        assert await _unread(orchestrator, user_id) == 0

    @pytest.mark.asyncio
    async def test_unknown_ids_are_ignored(self, orchestrator, user_id):
        result = await orchestrator.mark_as_read(user_id, [uuid.uuid4()])

        assert result.success is True
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_dismiss_archives(self, orchestrator, user_id, published):
        created = await orchestrator.create_notification(_request(user_id))
        notification_id = uuid.UUID(created.notification_id)
        published.clear()

        result = await orchestrator.dismiss_notification(user_id, notification_id)
        again = await orchestrator.dismiss_notification(user_id, notification_id)

        assert result.notification.status == NotificationStatus.ARCHIVED
        assert again.success is True
        assert [e.type for e in published] == [RealtimeEventType.NOTIFICATION_UPDATED]
        assert published[0].unread_count == 0

        listing = await _listing(orchestrator, user_id)
        assert listing.total == 0
        archived = await _listing(orchestrator, user_id, NotificationFilters(status="archived"))
        assert archived.total == 1

    @pytest.mark.asyncio
    async def test_delete_keeps_history(self, orchestrator, user_id, published):
        created = await orchestrator.create_notification(_request(user_id))
        notification_id = uuid.UUID(created.notification_id)

        result = await orchestrator.delete_notification(user_id, notification_id)

        assert result.success is True
        assert result.count == 1
        assert published[-1].type == RealtimeEventType.NOTIFICATION_DELETED
        assert published[-1].notification_ids == [created.notification_id]

        missing = await orchestrator.get_notification(user_id, notification_id)
        assert missing.error.code == "notification_not_found"

        history = await _history(orchestrator, user_id)
        deleted = [h for h in history if h.action == HistoryAction.DELETED]
        assert len(deleted) == 1
        assert deleted[0].action_data["notification_id"] == created.notification_id

    @pytest.mark.asyncio
    async def test_delete_unknown_notification(self, orchestrator, user_id):
        result = await orchestrator.delete_notification(user_id, uuid.uuid4())

        assert result.success is False
        assert result.error.code == "notification_not_found"

    @pytest.mark.asyncio
    async def test_action_marks_read(self, orchestrator, user_id, published):
        created = await orchestrator.create_notification(
            _request(user_id, actions=[{"id": "view", "label": "View essay"}])
        )
        notification_id = uuid.UUID(created.notification_id)
        published.clear()

        result = await orchestrator.record_action(user_id, notification_id, "view")

        assert result.notification.status == NotificationStatus.READ
        assert [e.type for e in published] == [RealtimeEventType.NOTIFICATION_READ]

        history = await _history(orchestrator, user_id, notification_id)
        actions = {h.action for h in history}
        assert {HistoryAction.CREATED, HistoryAction.ACTION_TAKEN, HistoryAction.READ} <= actions

    @pytest.mark.asyncio
    async def test_click_on_read_notification(self, orchestrator, user_id, published):
        created = await orchestrator.create_notification(_request(user_id))
        notification_id = uuid.UUID(created.notification_id)
        await orchestrator.mark_as_read(user_id, [notification_id])
        published.clear()

        result = await orchestrator.record_action(user_id, notification_id)

        assert result.success is True
        assert published == []
        history = await _history(orchestrator, user_id, notification_id)
        assert HistoryAction.CLICKED in {h.action for h in history}

    @pytest.mark.asyncio
    async def test_unknown_action(self, orchestrator, user_id):
        created = await orchestrator.create_notification(_request(user_id))

        result = await orchestrator.record_action(user_id, uuid.UUID(created.notification_id), "nope")

        assert result.success is False
        assert result.error.code == "unknown_action"


class TestHousekeeping:
    """Tests for archiving and expiry collection."""

    @pytest.mark.asyncio
    async def test_archive_old_read_notifications(self, orchestrator, user_id, clock):
        old = await orchestrator.create_notification(_request(user_id))
        await orchestrator.create_notification(_request(user_id))
        await orchestrator.mark_as_read(user_id, [uuid.UUID(old.notification_id)])

        clock.now += timedelta(days=31)
        result = await orchestrator.archive_old_notifications(user_id, days_old=30)

        assert result.success is True
        assert result.count == 1

        stored = await orchestrator.get_notification(user_id, uuid.UUID(old.notification_id))
        assert stored.notification.status == NotificationStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_recent_read_notifications_stay(self, orchestrator, user_id, clock):
        created = await orchestrator.create_notification(_request(user_id))
        await orchestrator.mark_as_read(user_id, [uuid.UUID(created.notification_id)])

        result = await orchestrator.archive_old_notifications(user_id, days_old=30)

        assert result.count == 0

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, orchestrator, user_id, clock):
        short = await orchestrator.create_notification(
            _request(user_id, expires_at=clock.now + timedelta(hours=1))
        )
        await orchestrator.create_notification(_request(user_id))

        clock.now += timedelta(hours=2)
        # Expired rows drop out of counts before collection
        assert await _unread(orchestrator, user_id) == 1

        assert (await orchestrator.cleanup_expired_notifications()).count == 1
        assert (await orchestrator.cleanup_expired_notifications()).count == 0

        missing = await orchestrator.get_notification(user_id, uuid.UUID(short.notification_id))
        assert missing.success is False


class TestPreferences:
    """Tests for reading and merging preferences."""

    @pytest.mark.asyncio
    async def test_defaults_on_first_access(self, orchestrator, user_id):
        preferences = await _preferences(orchestrator, user_id)

        assert preferences.global_enabled is True
        assert preferences.channels.sms is False
        assert "essay_graded" in preferences.type_preferences

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_fields(self, orchestrator, user_id, published):
        result = await orchestrator.update_preferences(user_id, {"channels": {"push": False}})

        assert result.success is True
        assert result.preferences.channels.push is False
        assert result.preferences.channels.in_app is True
        assert result.preferences.channels.email is True
        assert published[-1].type == RealtimeEventType.PREFERENCES_UPDATED

        stored = await _preferences(orchestrator, user_id)
        assert stored.channels.push is False
        assert stored.type_preferences == result.preferences.type_preferences
        assert stored.quiet_hours.enabled is False

    @pytest.mark.asyncio
    async def test_nested_type_update_merges(self, orchestrator, user_id):
        result = await orchestrator.update_preferences(
            user_id,
            {"type_preferences": {"essay_graded": {"priority_threshold": "high"}}},
        )

        essay = result.preferences.type_preferences["essay_graded"]
        assert essay.priority_threshold == "high"
        assert essay.channels == [NotificationChannel.IN_APP, NotificationChannel.PUSH]

    @pytest.mark.asyncio
    async def test_null_type_entry_removes_it(self, orchestrator, user_id):
        result = await orchestrator.update_preferences(user_id, {"type_preferences": {"system": None}})

        assert "system" not in result.preferences.type_preferences
        assert "message" in result.preferences.type_preferences

    @pytest.mark.asyncio
    async def test_invalid_time_is_rejected(self, orchestrator, user_id, published):
        result = await orchestrator.update_preferences(
            user_id, {"quiet_hours": {"enabled": True, "start": "25:99"}}
        )

        assert result.success is False
        assert result.error.code == "validation_error"
        assert published == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, orchestrator):
        missing = await orchestrator.get_preferences(uuid.uuid4())
        assert missing.success is False
        assert missing.error.code == "user_not_found"
        assert isinstance(missing.exception, NotFoundError)

        result = await orchestrator.update_preferences(uuid.uuid4(), {"global_enabled": False})
        assert result.error.code == "user_not_found"
