"""Database layer for SiteProof with async SQLAlchemy."""

from siteproof.db.connection import close_db, get_db, get_session, init_db
from siteproof.db.models import (
    AuditLogModel,
    Base,
    ComplianceCheckModel,
    ConformanceRecordModel,
    ITPItemModel,
    ITPTemplateModel,
    LabourDocketModel,
    LotITPTemplateModel,
    LotModel,
    MaterialsDocketModel,
    ProjectModel,
    UserModel,
)

__all__ = [
    "Base",
    "ProjectModel",
    "LotModel",
    "ITPTemplateModel",
    "ITPItemModel",
    "LotITPTemplateModel",
    "ConformanceRecordModel",
    "ComplianceCheckModel",
    "LabourDocketModel",
    "MaterialsDocketModel",
    "UserModel",
    "AuditLogModel",
    "get_session",
    "get_db",
    "init_db",
    "close_db",
]
