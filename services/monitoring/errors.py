"""
Monitoring Errors
=================

Exceptions raised by the compliance monitoring engine.

Version: 0.1.0
"""


class MonitoringError(Exception):
    """Base class for monitoring engine errors."""


class ConfigurationError(MonitoringError):
    """A single catalog entry is malformed and cannot be evaluated."""

    def __init__(self, entry_id: str, reason: str) -> None:
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Invalid catalog entry {entry_id}: {reason}")


class TenantConfigurationError(MonitoringError):
    """The tenant has no usable catalog; the run cannot start."""

    def __init__(self, tenant_id: str, reason: str = "no requirement catalog") -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id}: {reason}")


class StoreUnavailableError(MonitoringError):
    """Transient record store failure; safe to retry."""


class InvariantViolationError(MonitoringError):
    """Stored data breaks an engine invariant and needs manual reconciliation."""

    def __init__(self, natural_key: tuple[str, ...], obligation_ids: list[str]) -> None:
        self.natural_key = natural_key
        self.obligation_ids = obligation_ids
        super().__init__(
            f"{len(obligation_ids)} open obligations share natural key {natural_key}"
        )
