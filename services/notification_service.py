"""
Notification delivery orchestrator.

Creates notification records, decides which requested channels are allowed
under the recipient's preferences, keeps the audit trail, and publishes
every change on the recipient's realtime channel.

Operations never raise across this boundary: reads and single-item
changes return a result object carrying either the outcome or an
``ErrorDetail`` (``TransportError`` when the store is unreachable), and bulk
sends report per-recipient failures in ``BulkNotificationResult``.
"""

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.notifications import (
    BulkNotificationResult,
    BulkRecipientError,
    CountResult,
    CreateNotificationRequest,
    HistoryAction,
    HistoryEntry,
    HistoryResult,
    ListNotificationsResponse,
    ListNotificationsResult,
    NotificationContent,
    NotificationFilters,
    NotificationInfo,
    NotificationResult,
    NotificationStatus,
    RealtimeEvent,
    RealtimeEventType,
    SendNotificationResult,
    can_transition,
    encode_cursor,
    types_in_category,
)
from api.schemas.common import ErrorDetail
from api.schemas.preferences import (
    NotificationPreferences,
    PreferencesResult,
    PreferencesUpdateRequest,
)
from core.config import Settings
from core.exceptions import (
    AppException,
    NotFoundError,
    TransportError,
    ValidationError,
)
from database import Database
from database.models import Notification, NotificationHistory
from database.repositories import (
    HistoryRepository,
    NotificationRepository,
    PreferencesRepository,
    TemplateRepository,
    UserRepository,
)
from database.repositories.preferences_repo import preferences_to_dict
from utils.datetime import ensure_utc, utcnow

from .eligibility import eligible_channels
from .realtime import NotificationPublisher

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass
class NotificationServiceConfig:
    """Tunables for the orchestrator."""

    batch_size: int = 100
    default_expiration_hours: int = 720

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationServiceConfig":
        return cls(
            batch_size=settings.notification_batch_size,
            default_expiration_hours=settings.notification_default_expiration_hours,
        )


# ============ Helpers ============


def render_template(pattern: str, variables: dict[str, Any] | None) -> str:
    """Substitute ``{name}`` placeholders; unknown names are left as written."""
    variables = variables or {}

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, pattern)


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``updates`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validation_failure(e: PydanticValidationError, message: str) -> ValidationError:
    return ValidationError(
        message=message,
        details={
            "errors": [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
        },
    )


def _transport_failure(e: SQLAlchemyError) -> TransportError:
    logger.error(f"Notification store error: {e}")
    return TransportError(details={"error": str(e.__class__.__name__)})


def notification_to_info(notification: Notification) -> NotificationInfo:
    return NotificationInfo(
        id=str(notification.id),
        user_id=str(notification.user_id),
        type=notification.type,
        priority=notification.priority,
        status=notification.status,
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        actions=notification.actions or [],
        icon=notification.icon,
        image_url=notification.image_url,
        link=notification.link,
        delivered_via=notification.delivered_via or [],
        group_id=notification.group_id,
        group_count=notification.group_count,
        created_at=ensure_utc(notification.created_at),
        updated_at=ensure_utc(notification.updated_at),
        read_at=ensure_utc(notification.read_at),
        expires_at=ensure_utc(notification.expires_at),
    )


def history_to_entry(entry: NotificationHistory) -> HistoryEntry:
    return HistoryEntry(
        id=str(entry.id),
        notification_id=str(entry.notification_id) if entry.notification_id else None,
        action=entry.action,
        action_data=entry.action_data or {},
        created_at=ensure_utc(entry.created_at),
    )


class NotificationService:
    """
    Delivery orchestrator.

    Args:
        database: Store the service opens one unit of work per operation on
        publisher: Realtime channel for change events (None disables fan-out)
        config: Batch size and default expiry
        clock: Source of the current time
    """

    def __init__(
        self,
        database: Database,
        publisher: NotificationPublisher | None = None,
        config: NotificationServiceConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.database = database
        self.publisher = publisher
        self.config = config or NotificationServiceConfig()
        self._clock = clock

    # ============ Create ============

    async def create_notification(
        self,
        request: CreateNotificationRequest | dict[str, Any],
    ) -> SendNotificationResult:
        """
        Persist a notification and fan it out.

        Returns success with the channels delivery was attempted on. Channels
        denied by the recipient's preferences are dropped silently.
        """
        if not isinstance(request, CreateNotificationRequest):
            try:
                request = CreateNotificationRequest.model_validate(request)
            except PydanticValidationError as e:
                return SendNotificationResult.failed(
                    _validation_failure(e, "Invalid notification request")
                )

        try:
            info, channels, grouped = await self._create(request)
        except AppException as e:
            return SendNotificationResult.failed(e)
        except SQLAlchemyError as e:
            return SendNotificationResult.failed(_transport_failure(e))

        await self._publish(
            RealtimeEvent(
                type=RealtimeEventType.NOTIFICATION_GROUPED if grouped else RealtimeEventType.NEW_NOTIFICATION,
                user_id=info.user_id,
                notification=info,
            )
        )

        logger.info(
            f"Notification {info.id} ({info.type}/{info.priority}) for {info.user_id} "
            f"via {[str(c) for c in channels]}"
        )
        return SendNotificationResult(
            success=True,
            notification_id=info.id,
            delivered_channels=channels,
            grouped=grouped,
        )

    async def _create(self, request: CreateNotificationRequest):
        now = self._clock()
        expires_at = request.expires_at or now + timedelta(hours=self.config.default_expiration_hours)
        if expires_at <= now:
            raise ValidationError(
                message="expires_at must be later than the creation time",
                details={"expires_at": expires_at.isoformat()},
            )

        async with self.database.session() as session:
            user = await UserRepository(session).get_active(request.user_id)
            if user is None:
                raise NotFoundError(
                    message=f"Recipient {request.user_id} not found",
                    error_code="recipient_not_found",
                )

            preferences = await self._load_preferences(session, request.user_id)
            channels = eligible_channels(
                preferences, request.type, request.priority, request.channels, now=now
            )

            repo = NotificationRepository(session)
            history = HistoryRepository(session)
            fields = {
                "type": str(request.type),
                "priority": str(request.priority),
                "title": request.title,
                "message": request.message,
                "data": request.data,
                "actions": [action.model_dump(mode="json") for action in request.actions],
                "icon": request.icon,
                "image_url": request.image_url,
                "link": request.link,
                "expires_at": expires_at,
            }

            existing = None
            if request.group_id:
                existing = await repo.find_open_group(request.user_id, request.group_id, now)

            if existing is not None:
                for key, value in fields.items():
                    setattr(existing, key, value)
                existing.group_count += 1
                existing.delivered_via = list(
                    dict.fromkeys([*existing.delivered_via, *(str(c) for c in channels)])
                )
                existing.updated_at = now
                await session.flush()
                notification = existing
            else:
                notification = await repo.create(
                    request.user_id,
                    status=str(NotificationStatus.UNREAD),
                    delivered_via=[str(c) for c in channels],
                    group_id=request.group_id,
                    group_count=1,
                    created_at=now,
                    updated_at=now,
                    **fields,
                )

            await history.add(
                request.user_id,
                notification.id,
                HistoryAction.CREATED,
                {
                    "type": str(request.type),
                    "priority": str(request.priority),
                    "channels": [str(c) for c in channels],
                    "grouped": existing is not None,
                },
            )
            info = notification_to_info(notification)

        return info, channels, existing is not None

    async def create_from_template(
        self,
        user_id: UUID | str,
        template_name: str,
        variables: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> SendNotificationResult:
        """Create a notification from a stored template; ``extra`` overrides any field."""
        try:
            async with self.database.session() as session:
                template = await TemplateRepository(session).get_by_name(template_name)
                if template is None:
                    raise NotFoundError(
                        message=f"Template '{template_name}' not found",
                        error_code="template_not_found",
                    )
                payload: dict[str, Any] = {
                    "user_id": user_id,
                    "type": template.type,
                    "priority": template.default_priority,
                    "title": render_template(template.title_template, variables),
                    "message": render_template(template.message_template, variables),
                    "actions": template.default_actions or [],
                    "icon": template.default_icon,
                }
                if template.default_channels:
                    payload["channels"] = template.default_channels
        except AppException as e:
            return SendNotificationResult.failed(e)
        except SQLAlchemyError as e:
            return SendNotificationResult.failed(_transport_failure(e))

        payload.update(extra or {})
        return await self.create_notification(payload)

    async def send_bulk_notification(
        self,
        user_ids: Sequence[UUID | str],
        content: NotificationContent | dict[str, Any],
    ) -> BulkNotificationResult:
        """
        Send one notification to many recipients.

        Recipients are processed in batches of ``config.batch_size`` running
        concurrently; a failed recipient is recorded and never stops the batch.
        """
        total = len(user_ids)
        if not isinstance(content, NotificationContent):
            try:
                content = NotificationContent.model_validate(content)
            except PydanticValidationError as e:
                detail = ErrorDetail.from_exception(_validation_failure(e, "Invalid notification request"))
                return BulkNotificationResult(
                    total=total,
                    successful=0,
                    failed=total,
                    errors=[BulkRecipientError(user_id=str(uid), error=detail) for uid in user_ids],
                )

        errors: list[BulkRecipientError] = []
        notification_ids: list[str] = []
        seen: set[str] = set()
        pending: list[str] = []

        for raw_id in user_ids:
            key = str(raw_id)
            if key in seen:
                errors.append(
                    BulkRecipientError(
                        user_id=key,
                        error=ErrorDetail(code="duplicate_recipient", message="Recipient listed more than once"),
                    )
                )
                continue
            seen.add(key)
            pending.append(key)

        payload = content.model_dump()
        batch_size = max(1, self.config.batch_size)

        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            results = await asyncio.gather(
                *(self._send_one(user_id, payload) for user_id in batch),
                return_exceptions=True,
            )
            for user_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error(f"Unexpected failure sending to {user_id}: {result}", exc_info=result)
                    errors.append(
                        BulkRecipientError(
                            user_id=user_id,
                            error=ErrorDetail.from_exception(AppException()),
                        )
                    )
                elif result.success:
                    notification_ids.append(result.notification_id)
                else:
                    logger.warning(f"Bulk send to {user_id} failed: {result.error.code}")
                    errors.append(BulkRecipientError(user_id=user_id, error=result.error))

        outcome = BulkNotificationResult(
            total=total,
            successful=len(notification_ids),
            failed=len(errors),
            errors=errors,
            notification_ids=notification_ids,
        )
        if outcome.failure is not None:
            logger.warning(f"{outcome.failure.message} (codes: {outcome.failure.details['codes']})")
        return outcome

    async def _send_one(self, user_id: str, payload: dict[str, Any]) -> SendNotificationResult:
        try:
            recipient = UUID(user_id)
        except ValueError:
            return SendNotificationResult.failed(
                ValidationError(message=f"Invalid recipient id: {user_id}", error_code="invalid_recipient")
            )
        return await self.create_notification(CreateNotificationRequest(user_id=recipient, **payload))

    # ============ Read ============

    async def get_notifications(
        self,
        user_id: UUID,
        filters: NotificationFilters | None = None,
    ) -> ListNotificationsResult:
        """List a user's notifications, newest first, with cursor pagination."""
        filters = filters or NotificationFilters()
        now = self._clock()

        types = [filters.type] if filters.type else None
        if filters.category:
            in_category = types_in_category(filters.category)
            types = [t for t in (types or in_category) if t in in_category]

        query = {
            "status": str(filters.status) if filters.status else None,
            "types": [str(t) for t in types] if types is not None else None,
            "priority": str(filters.priority) if filters.priority else None,
            "start_date": filters.start_date,
            "end_date": filters.end_date,
            "search": filters.search,
        }

        try:
            async with self.database.session() as session:
                repo = NotificationRepository(session)
                rows = await repo.list_by_user(
                    user_id, now, limit=filters.limit + 1, after=filters.position, **query
                )
                total = await repo.count_by_user(user_id, now, **query)
                unread_count = await repo.count_unread(user_id, now)
        except SQLAlchemyError as e:
            return ListNotificationsResult.failed(_transport_failure(e))

        has_more = len(rows) > filters.limit
        rows = rows[:filters.limit]
        notifications = [notification_to_info(row) for row in rows]

        next_cursor = None
        if has_more and notifications:
            last = notifications[-1]
            next_cursor = encode_cursor(last.created_at, last.id)

        return ListNotificationsResult(
            success=True,
            listing=ListNotificationsResponse(
                notifications=notifications,
                total=total,
                unread_count=unread_count,
                has_more=has_more,
                next_cursor=next_cursor,
            ),
        )

    async def get_notification(self, user_id: UUID, notification_id: UUID) -> NotificationResult:
        try:
            async with self.database.session() as session:
                notification = await self._get_owned(session, user_id, notification_id)
                return NotificationResult(success=True, notification=notification_to_info(notification))
        except AppException as e:
            return NotificationResult.failed(e)
        except SQLAlchemyError as e:
            return NotificationResult.failed(_transport_failure(e))

    async def get_unread_count(self, user_id: UUID) -> CountResult:
        try:
            async with self.database.session() as session:
                unread_count = await NotificationRepository(session).count_unread(user_id, self._clock())
        except SQLAlchemyError as e:
            return CountResult.failed(_transport_failure(e))
        return CountResult(success=True, count=unread_count, unread_count=unread_count)

    async def get_notification_history(
        self,
        user_id: UUID,
        notification_id: UUID | None = None,
        limit: int = 50,
    ) -> HistoryResult:
        try:
            async with self.database.session() as session:
                entries = await HistoryRepository(session).list_by_user(
                    user_id, notification_id=notification_id, limit=limit
                )
        except SQLAlchemyError as e:
            return HistoryResult.failed(_transport_failure(e))
        return HistoryResult(success=True, entries=[history_to_entry(entry) for entry in entries])

    async def _get_owned(
        self,
        session: AsyncSession,
        user_id: UUID,
        notification_id: UUID,
    ) -> Notification:
        notification = await NotificationRepository(session).get_for_user(user_id, notification_id)
        if notification is None or notification.status == NotificationStatus.DELETED:
            raise NotFoundError(
                message=f"Notification {notification_id} not found",
                error_code="notification_not_found",
            )
        return notification

    # ============ State changes ============

    async def mark_as_read(
        self,
        user_id: UUID,
        notification_ids: Sequence[UUID] | None = None,
    ) -> CountResult:
        """
        Mark unread notifications as read; all of them when no IDs are given.

        Idempotent: already-read or unknown IDs are ignored.
        """
        now = self._clock()
        try:
            async with self.database.session() as session:
                repo = NotificationRepository(session)
                ids = await repo.list_unread_ids(user_id, now, notification_ids)
                count = await repo.mark_read(ids, now)
                if ids:
                    await HistoryRepository(session).add_many(user_id, ids, HistoryAction.READ)
                unread_count = await repo.count_unread(user_id, now)
        except SQLAlchemyError as e:
            return CountResult.failed(_transport_failure(e))

        if ids:
            await self._publish(
                RealtimeEvent(
                    type=RealtimeEventType.NOTIFICATION_READ,
                    user_id=str(user_id),
                    notification_ids=[str(i) for i in ids],
                    unread_count=unread_count,
                )
            )
        return CountResult(success=True, count=count, unread_count=unread_count)

    async def mark_all_as_read(self, user_id: UUID) -> CountResult:
        return await self.mark_as_read(user_id)

    async def dismiss_notification(self, user_id: UUID, notification_id: UUID) -> NotificationResult:
        """Archive a notification; it stays queryable but leaves default listings."""
        now = self._clock()
        try:
            async with self.database.session() as session:
                notification = await self._get_owned(session, user_id, notification_id)
                previous = notification.status
                if previous != NotificationStatus.ARCHIVED:
                    if not can_transition(previous, NotificationStatus.ARCHIVED):
                        raise ValidationError(
                            message=f"Cannot dismiss a {previous} notification",
                            error_code="invalid_transition",
                        )
                    await NotificationRepository(session).set_status(
                        notification, NotificationStatus.ARCHIVED, now
                    )
                    await HistoryRepository(session).add(
                        user_id, notification.id, HistoryAction.DISMISSED, {"from": previous}
                    )
                info = notification_to_info(notification)
                unread_count = await NotificationRepository(session).count_unread(user_id, now)
        except AppException as e:
            return NotificationResult.failed(e)
        except SQLAlchemyError as e:
            return NotificationResult.failed(_transport_failure(e))

        if previous != NotificationStatus.ARCHIVED:
            await self._publish(
                RealtimeEvent(
                    type=RealtimeEventType.NOTIFICATION_UPDATED,
                    user_id=str(user_id),
                    notification=info,
                    unread_count=unread_count,
                )
            )
        return NotificationResult(success=True, notification=info)

    async def delete_notification(self, user_id: UUID, notification_id: UUID) -> CountResult:
        """Hard-delete a notification. The audit trail keeps a 'deleted' entry."""
        now = self._clock()
        try:
            async with self.database.session() as session:
                notification = await self._get_owned(session, user_id, notification_id)
                await HistoryRepository(session).add(
                    user_id,
                    notification.id,
                    HistoryAction.DELETED,
                    {"notification_id": str(notification.id), "status": notification.status},
                )
                await NotificationRepository(session).delete(notification)
                unread_count = await NotificationRepository(session).count_unread(user_id, now)
        except AppException as e:
            return CountResult.failed(e)
        except SQLAlchemyError as e:
            return CountResult.failed(_transport_failure(e))

        await self._publish(
            RealtimeEvent(
                type=RealtimeEventType.NOTIFICATION_DELETED,
                user_id=str(user_id),
                notification_ids=[str(notification_id)],
                unread_count=unread_count,
            )
        )
        return CountResult(success=True, count=1, unread_count=unread_count)

    async def record_action(
        self,
        user_id: UUID,
        notification_id: UUID,
        action_id: str | None = None,
    ) -> NotificationResult:
        """
        Record a click (no action ID) or an action button press.

        Interacting with an unread notification also marks it read.
        """
        now = self._clock()
        try:
            async with self.database.session() as session:
                notification = await self._get_owned(session, user_id, notification_id)
                if action_id is not None:
                    known = {action.get("id") for action in notification.actions or []}
                    if action_id not in known:
                        raise ValidationError(
                            message=f"Unknown action '{action_id}'",
                            error_code="unknown_action",
                        )

                history = HistoryRepository(session)
                if action_id is None:
                    await history.add(user_id, notification.id, HistoryAction.CLICKED)
                else:
                    await history.add(
                        user_id, notification.id, HistoryAction.ACTION_TAKEN, {"action_id": action_id}
                    )

                became_read = notification.status == NotificationStatus.UNREAD
                if became_read:
                    await NotificationRepository(session).set_status(
                        notification, NotificationStatus.READ, now
                    )
                    await history.add(user_id, notification.id, HistoryAction.READ)
                info = notification_to_info(notification)
                unread_count = await NotificationRepository(session).count_unread(user_id, now)
        except AppException as e:
            return NotificationResult.failed(e)
        except SQLAlchemyError as e:
            return NotificationResult.failed(_transport_failure(e))

        if became_read:
            await self._publish(
                RealtimeEvent(
                    type=RealtimeEventType.NOTIFICATION_READ,
                    user_id=str(user_id),
                    notification_ids=[info.id],
                    unread_count=unread_count,
                )
            )
        return NotificationResult(success=True, notification=info)

    async def archive_old_notifications(self, user_id: UUID, days_old: int = 30) -> CountResult:
        """Archive read notifications older than ``days_old`` days."""
        now = self._clock()
        cutoff = now - timedelta(days=days_old)
        try:
            async with self.database.session() as session:
                repo = NotificationRepository(session)
                ids = await repo.list_read_before(user_id, cutoff)
                count = await repo.archive(ids, now)
        except SQLAlchemyError as e:
            return CountResult.failed(_transport_failure(e))

        if count:
            logger.info(f"Archived {count} notifications older than {days_old} days for {user_id}")
        return CountResult(success=True, count=count)

    async def cleanup_expired_notifications(self) -> CountResult:
        """Move expired notifications to deleted; ``count`` is how many were collected."""
        try:
            async with self.database.session() as session:
                count = await NotificationRepository(session).delete_expired(self._clock())
        except SQLAlchemyError as e:
            return CountResult.failed(_transport_failure(e))

        if count:
            logger.info(f"Expired notifications collected: {count}")
        return CountResult(success=True, count=count)

    # ============ Preferences ============

    async def _load_preferences(
        self,
        session: AsyncSession,
        user_id: UUID,
    ) -> NotificationPreferences | None:
        """Load preferences, creating the default record on first access."""
        repo = PreferencesRepository(session)
        record = await repo.get_by_user_id(user_id)
        if record is None:
            preferences = NotificationPreferences()
            await repo.create(user_id, preferences.model_dump(mode="json"))
            return preferences

        try:
            return NotificationPreferences.model_validate(preferences_to_dict(record))
        except PydanticValidationError as e:
            logger.warning(f"Stored preferences for {user_id} are invalid, ignoring them: {e}")
            return None

    async def get_preferences(self, user_id: UUID) -> PreferencesResult:
        """Return the user's preferences, creating defaults on first access."""
        try:
            async with self.database.session() as session:
                if await UserRepository(session).get_by_id(user_id) is None:
                    raise NotFoundError(message=f"User {user_id} not found", error_code="user_not_found")
                preferences = await self._load_preferences(session, user_id)
        except AppException as e:
            return PreferencesResult.failed(e)
        except SQLAlchemyError as e:
            return PreferencesResult.failed(_transport_failure(e))
        return PreferencesResult(success=True, preferences=preferences or NotificationPreferences())

    async def update_preferences(
        self,
        user_id: UUID,
        updates: PreferencesUpdateRequest | dict[str, Any],
    ) -> PreferencesResult:
        """
        Merge a partial update into the stored preferences.

        Fields not present in ``updates`` keep their stored values.
        """
        try:
            if not isinstance(updates, PreferencesUpdateRequest):
                updates = PreferencesUpdateRequest.model_validate(updates)
            patch = updates.model_dump(mode="json", exclude_unset=True)

            async with self.database.session() as session:
                if await UserRepository(session).get_by_id(user_id) is None:
                    raise NotFoundError(message=f"User {user_id} not found", error_code="user_not_found")

                current = await self._load_preferences(session, user_id) or NotificationPreferences()
                merged = deep_merge(current.model_dump(mode="json"), patch)
                merged["type_preferences"] = {
                    key: value
                    for key, value in (merged.get("type_preferences") or {}).items()
                    if value is not None
                }
                preferences = NotificationPreferences.model_validate(merged)
                await PreferencesRepository(session).upsert(user_id, preferences.model_dump(mode="json"))
        except PydanticValidationError as e:
            return PreferencesResult.failed(_validation_failure(e, "Invalid preferences"))
        except AppException as e:
            return PreferencesResult.failed(e)
        except SQLAlchemyError as e:
            return PreferencesResult.failed(_transport_failure(e))

        await self._publish(
            RealtimeEvent(type=RealtimeEventType.PREFERENCES_UPDATED, user_id=str(user_id))
        )
        return PreferencesResult(success=True, preferences=preferences)

    # ============ Realtime ============

    async def _publish(self, event: RealtimeEvent) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(event)
        except Exception as e:
            # The change is committed; live sessions catch up on their next fetch.
            logger.warning(f"Failed to publish {event.type} for {event.user_id}: {e}")
