"""PermissionPolicy — closed role → capability table."""

from enum import Enum

from dispatch_engine.domain.value_objects.enums import UserRole


class Permission(str, Enum):
    TRIGGER_ASSIGNMENT = "trigger_assignment"
    REASSIGN_ORDERS = "reassign_orders"
    BULK_REASSIGN = "bulk_reassign"
    REDISTRIBUTE_ORDERS = "redistribute_orders"
    VIEW_ASSIGNMENT_STATS = "view_assignment_stats"
    VIEW_ANY_AGENT_STATS = "view_any_agent_stats"
    UPDATE_ANY_AVAILABILITY = "update_any_availability"
    MANAGE_PRODUCT_ASSIGNMENTS = "manage_product_assignments"
    RECEIVE_ORDERS = "receive_orders"


_COORDINATOR = frozenset(
    {
        Permission.TRIGGER_ASSIGNMENT,
        Permission.REASSIGN_ORDERS,
        Permission.BULK_REASSIGN,
        Permission.VIEW_ASSIGNMENT_STATS,
        Permission.VIEW_ANY_AGENT_STATS,
    }
)

# Forcing redistribution, changing another agent's presence and product
# routing stay with managers.
_MANAGER = _COORDINATOR | {
    Permission.REDISTRIBUTE_ORDERS,
    Permission.UPDATE_ANY_AVAILABILITY,
    Permission.MANAGE_PRODUCT_ASSIGNMENTS,
}

ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.ADMIN: _MANAGER,
    UserRole.TEAM_MANAGER: _MANAGER,
    UserRole.COORDINATEUR: _COORDINATOR,
    UserRole.AGENT_SUIVI: frozenset({Permission.RECEIVE_ORDERS}),
    UserRole.QUALITY_AGENT: frozenset(),
    UserRole.STOCK_AGENT: frozenset(),
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def can_act_on_agent(
    acting_user_id: str,
    acting_role: UserRole,
    agent_id: str,
    permission: Permission,
) -> bool:
    """Agents may always act on themselves; anyone else needs *permission*."""
    return acting_user_id == agent_id or has_permission(acting_role, permission)
