"""PresencePolicy — maps presence transitions to audit activity types."""

from dispatch_engine.domain.value_objects.enums import ActivityType, Presence

_ACTIVITY_BY_PRESENCE: dict[Presence, ActivityType] = {
    Presence.ONLINE: ActivityType.LOGIN,
    Presence.OFFLINE: ActivityType.LOGOUT,
    Presence.BREAK: ActivityType.BREAK_STARTED,
    Presence.BUSY: ActivityType.STATUS_CHANGED,
}


def activity_for_presence(presence: Presence) -> ActivityType:
    return _ACTIVITY_BY_PRESENCE[presence]


def is_offline_edge(previous: Presence, current: Presence) -> bool:
    """Only a move from a connected state to OFFLINE counts as going offline."""
    return previous != Presence.OFFLINE and current == Presence.OFFLINE
