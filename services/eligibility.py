"""
Notification eligibility rules.

Decides whether a notification of a given type and priority may be
delivered on a given channel under a user's preferences. The checks run in
a fixed order and stop at the first denial:

1. no preferences record: allow
2. global switch off: deny
3. channel switched off: deny
4. per-type entry: deny if disabled, below its priority threshold, or the
   channel is not in its channel list
5. do-not-disturb window active and priority is not urgent: deny
6. quiet hours active and (priority is not urgent or urgent is not allowed): deny
7. allow

Both time windows are read in the quiet-hours timezone, at minute
resolution, inclusive at both ends.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from api.schemas.notifications import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from api.schemas.preferences import NotificationPreferences
from utils.datetime import is_within_window, local_time_of_day, parse_time_of_day, utcnow

logger = logging.getLogger(__name__)


def in_do_not_disturb(preferences: NotificationPreferences, now: datetime) -> bool:
    """
    Check whether the do-not-disturb window covers ``now``.

    The window has no timezone of its own; it is read in the quiet-hours
    timezone, which holds whether or not quiet hours are enabled.
    """
    if not preferences.do_not_disturb:
        return False

    start = parse_time_of_day(preferences.do_not_disturb_start)
    end = parse_time_of_day(preferences.do_not_disturb_end)
    if start is None or end is None:
        return False

    current = local_time_of_day(now, preferences.quiet_hours.timezone)
    return is_within_window(current, start, end)


def in_quiet_hours(preferences: NotificationPreferences, now: datetime) -> bool:
    """Check whether the quiet-hours window covers ``now``."""
    quiet = preferences.quiet_hours
    if not quiet.enabled:
        return False

    start = parse_time_of_day(quiet.start)
    end = parse_time_of_day(quiet.end)
    if start is None or end is None:
        return False

    return is_within_window(local_time_of_day(now, quiet.timezone), start, end)


def should_notify(
    preferences: NotificationPreferences | None,
    type: NotificationType | str,
    priority: NotificationPriority | str,
    channel: NotificationChannel | str,
    now: datetime | None = None,
) -> bool:
    """
    Decide whether a notification may be delivered on a channel.

    Args:
        preferences: The recipient's preferences, or None if none exist yet
        type: Notification type
        priority: Notification priority
        channel: Target delivery channel
        now: Evaluation instant (defaults to the current time)

    Returns:
        True if delivery is allowed
    """
    if preferences is None:
        return True

    type = NotificationType(type)
    priority = NotificationPriority(priority)
    channel = NotificationChannel(channel)

    if not preferences.global_enabled:
        return False

    if not preferences.channels.is_enabled(channel):
        return False

    type_preference = preferences.type_preferences.get(type)
    if type_preference is not None:
        if not type_preference.enabled:
            return False
        if priority.rank < type_preference.priority_threshold.rank:
            return False
        if channel not in type_preference.channels:
            return False

    now = now or utcnow()
    urgent = priority == NotificationPriority.URGENT

    if not urgent and in_do_not_disturb(preferences, now):
        return False

    if in_quiet_hours(preferences, now):
        if not urgent or not preferences.quiet_hours.allow_urgent:
            return False

    return True


def eligible_channels(
    preferences: NotificationPreferences | None,
    type: NotificationType | str,
    priority: NotificationPriority | str,
    channels: Iterable[NotificationChannel | str],
    now: datetime | None = None,
) -> list[NotificationChannel]:
    """Filter ``channels`` down to the ones delivery is allowed on, keeping order."""
    now = now or utcnow()
    allowed = []
    for channel in channels:
        if should_notify(preferences, type, priority, channel, now=now):
            allowed.append(NotificationChannel(channel))
        else:
            logger.debug(f"Channel {channel} denied for {type}/{priority}")
    return allowed
