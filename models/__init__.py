# -------------------------
# Enums
# -------------------------
from .enums import (
    Role,
    AuditAction,
    CarStatus,
    ContractStatus,
    SortOrder,
)

# -------------------------
# Auth Models
# -------------------------
from .auth import (
    CurrentUser,
    Scope,
    AuthContext,
    FailedLoginRequest,
    EnterCompanyRequest,
    MeResponse,
)

# -------------------------
# Audit Log
# -------------------------
from .audit_log import AuditLogEntry

# -------------------------
# Company Models
# -------------------------
from .company import (
    CompanyBase,
    CompanyCreate,
    CompanyUpdate,
)

# -------------------------
# Fleet Models
# -------------------------
from .company_car import CompanyCarBase, CompanyCarCreate, CompanyCarUpdate
from .booking import BookingCreate
from .contract import ContractCreate, ContractUpdate, ClosingFee, ContractClose
from .payment import PaymentCreate
from .manager import ManagerCreate, ManagerUpdate

# -------------------------
# Accounts
# -------------------------
from .user import UserCreate, ClientCreate

# -------------------------
# Reference Data
# -------------------------
from .reference import LocationCreate, HotelCreate

__all__ = [
    # enums
    "Role",
    "AuditAction",
    "CarStatus",
    "ContractStatus",
    "SortOrder",

    # auth
    "CurrentUser",
    "Scope",
    "AuthContext",
    "FailedLoginRequest",
    "EnterCompanyRequest",
    "MeResponse",

    # audit
    "AuditLogEntry",

    # companies
    "CompanyBase",
    "CompanyCreate",
    "CompanyUpdate",

    # fleet
    "CompanyCarBase",
    "CompanyCarCreate",
    "CompanyCarUpdate",
    "BookingCreate",
    "ContractCreate",
    "ContractUpdate",
    "ClosingFee",
    "ContractClose",
    "PaymentCreate",
    "ManagerCreate",
    "ManagerUpdate",

    # accounts
    "UserCreate",
    "ClientCreate",

    # reference
    "LocationCreate",
    "HotelCreate",
]
