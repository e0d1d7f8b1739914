"""
Outcome of a single provisioning step.

Fatal conditions are raised as ProvisioningException subclasses; everything
else is reported back to the caller as a StepResult.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class StepStatus(Enum):
    OK = "ok"              # Already in the desired state, nothing written
    CHANGED = "changed"    # State was modified
    WARNING = "warning"    # Tolerated failure, provisioning continues


@dataclass(frozen=True)
class StepResult:
    name: str
    status: StepStatus
    message: str = ""
    path: Optional[Path] = None
    before: Optional[str] = None
    after: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.status is StepStatus.CHANGED

    @property
    def is_warning(self) -> bool:
        return self.status is StepStatus.WARNING
