import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ITEM_COERCED = 'item.coerced'
LOGO_UNAVAILABLE = 'logo.unavailable'


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal anomaly noticed while rendering"""
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


class DiagnosticChannel:
    """Collects diagnostics for one render and fans them out to subscribers.

    Every event is also written to the module logger at WARNING level, so a
    caller that never subscribes still sees anomalies in the service log.
    """

    def __init__(self):
        self.events: List[Diagnostic] = []
        self._subscribers: List[Callable[[Diagnostic], None]] = []

    def subscribe(self, callback: Callable[[Diagnostic], None]):
        self._subscribers.append(callback)
        return callback

    def emit(self, code: str, message: str, **context) -> Diagnostic:
        diagnostic = Diagnostic(code=code, message=message, context=context)
        self.events.append(diagnostic)
        logger.warning(f"[{code}] {message}")
        for callback in self._subscribers:
            callback(diagnostic)
        return diagnostic

    def codes(self) -> List[str]:
        return [event.code for event in self.events]
