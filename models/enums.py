from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# USER ROLE
# -----------------------------------------------------
class Role(BaseStrEnum):
    """Closed set of platform roles. Every user has exactly one."""

    admin = "admin"
    owner = "owner"
    manager = "manager"
    client = "client"


# Roles bound to exactly one company
COMPANY_ROLES = (Role.owner, Role.manager)

# Roles that run the back office
STAFF_ROLES = [Role.admin, Role.owner, Role.manager]


# -----------------------------------------------------
# AUDIT ACTION
# -----------------------------------------------------
class AuditAction(BaseStrEnum):
    create = "create"
    update = "update"
    delete = "delete"
    login = "login"
    login_failed = "login_failed"
    logout = "logout"
    view = "view"
    correct = "correct"


# -----------------------------------------------------
# CAR STATUS
# -----------------------------------------------------
class CarStatus(BaseStrEnum):
    available = "available"
    rented = "rented"
    maintenance = "maintenance"
    inactive = "inactive"


# -----------------------------------------------------
# CONTRACT STATUS
# -----------------------------------------------------
class ContractStatus(BaseStrEnum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


# -----------------------------------------------------
# SORT ORDER
# -----------------------------------------------------
class SortOrder(BaseStrEnum):
    asc = "asc"
    desc = "desc"
