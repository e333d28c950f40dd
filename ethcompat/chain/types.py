"""
Records returned by the chain-query capability.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class VMOutput:
    """Outcome of a simulated clause execution on the chain."""

    data: str = "0x"
    reverted: bool = False
    vm_error: str = ""
    revert_reason: Optional[str] = None
    gas_used: int = 0
    events: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "VMOutput":
        return cls(
            data=raw.get("data") or "0x",
            reverted=bool(raw.get("reverted", False)),
            vm_error=raw.get("vmError") or "",
            revert_reason=raw.get("revertReason"),
            gas_used=int(raw.get("gasUsed") or 0),
            events=list(raw.get("events") or []),
        )
