"""Environment-gated diagnostics for database wiring and data integrity."""

from siteproof.diagnostics.checks import connection_report, integrity_report, lot_report

__all__ = ["connection_report", "integrity_report", "lot_report"]
