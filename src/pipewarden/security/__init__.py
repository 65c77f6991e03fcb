"""Security scanning pipeline."""

from pipewarden.security.orchestrator import (
    SecurityRunResult,
    SecurityScanOrchestrator,
    security_failure_message,
)
from pipewarden.security.summary import SecuritySummary

__all__ = [
    "SecurityRunResult",
    "SecurityScanOrchestrator",
    "SecuritySummary",
    "security_failure_message",
]
