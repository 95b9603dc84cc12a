"""Database models for the temple administration API."""

from templeadmin.db.models.temple import Temple
from templeadmin.db.models.user import User
from templeadmin.db.models.permission import UserPermission
from templeadmin.db.models.session import SessionLog
from templeadmin.db.models.activity import ActivityLog, ActivitySeverity
from templeadmin.db.models.member import Member
from templeadmin.db.models.tax_registration import TaxRegistration
from templeadmin.db.models.tax_setting import TaxSetting
from templeadmin.db.models.receipt import Receipt
from templeadmin.db.models.ledger import LedgerEntry
from templeadmin.db.models.property import Property
from templeadmin.db.models.event import Event
from templeadmin.db.models.master_data import (
    MasterClan,
    MasterEducation,
    MasterGroup,
    MasterOccupation,
    MasterVillage,
)

__all__ = [
    "Temple",
    "User",
    "UserPermission",
    "SessionLog",
    "ActivityLog",
    "ActivitySeverity",
    "Member",
    "TaxRegistration",
    "TaxSetting",
    "Receipt",
    "LedgerEntry",
    "Property",
    "Event",
    "MasterGroup",
    "MasterClan",
    "MasterOccupation",
    "MasterVillage",
    "MasterEducation",
]
