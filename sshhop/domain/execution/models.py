"""
Command execution models
"""
from dataclasses import dataclass

from ...core.constants import EXIT_STATUS_UNSET


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one remote command. Output went to the sinks, not here."""
    command: str
    exit_status: int = EXIT_STATUS_UNSET

    @property
    def observed(self) -> bool:
        """True when the remote side reported a real exit status"""
        return self.exit_status != EXIT_STATUS_UNSET

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0
