"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEAM_MANAGER = "TEAM_MANAGER"
    COORDINATEUR = "COORDINATEUR"
    AGENT_SUIVI = "AGENT_SUIVI"
    QUALITY_AGENT = "QUALITY_AGENT"
    STOCK_AGENT = "STOCK_AGENT"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class Presence(str, Enum):
    ONLINE = "ONLINE"
    BUSY = "BUSY"
    BREAK = "BREAK"
    OFFLINE = "OFFLINE"


class ActivityType(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    BREAK_STARTED = "BREAK_STARTED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ORDER_ASSIGNED = "ORDER_ASSIGNED"
    ORDER_REDISTRIBUTED = "ORDER_REDISTRIBUTED"


class SelectionType(str, Enum):
    GLOBAL = "global"
    AGENTS = "agents"


class FilterLogic(str, Enum):
    ALL = "ALL"
    ANY = "ANY"


class EventName(str, Enum):
    ASSIGNMENT_COMPLETED = "assignment_completed"
    ORDER_ASSIGNED = "order_assigned"
    ORDER_REASSIGNED = "order_reassigned"
    BULK_REASSIGNMENT_COMPLETED = "bulk_reassignment_completed"
    AGENT_AVAILABILITY_CHANGED = "agent_availability_changed"
    ORDERS_REDISTRIBUTED = "orders_redistributed"


class AnalyticsPeriod(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"
