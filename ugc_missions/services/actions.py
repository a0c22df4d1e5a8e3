from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ugc_missions.errors import MissionWorkflowError

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    success: bool
    error: Optional[str] = None
    kind: Optional[str] = None
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            payload["error"] = self.error
            payload["kind"] = self.kind
        if self.data is not None:
            payload["data"] = self.data
        return payload


def run_action(fn: Callable[..., Any], *args, **kwargs) -> ActionResult:
    """Invoke a workflow operation and report its outcome as an ``ActionResult``."""
    try:
        data = fn(*args, **kwargs)
    except MissionWorkflowError as exc:
        logger.info(
            "Workflow action rejected",
            extra={"action": getattr(fn, "__name__", repr(fn)), "kind": exc.kind, "error": exc.message},
        )
        return ActionResult(success=False, error=exc.message, kind=exc.kind)
    return ActionResult(success=True, data=data)
