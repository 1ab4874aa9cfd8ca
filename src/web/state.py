import threading
import time
from typing import Any, Optional

from models.status import Status
from models.violation import Violation


class SharedState:
    """
    State shared between the camera workers and the web server.

    Holds references to the runtime context and engine, and keeps the most
    recent violation pushed by the ledger for live UI updates.
    """

    def __init__(self, ctx: Any = None, engine: Any = None):
        self.ctx = ctx
        self.engine = engine
        self._lock = threading.Lock()
        self._last_violation: Optional[Violation] = None
        self._violations_seen = 0

    def attach(self, ctx: Any, engine: Any = None) -> None:
        """Bind to a runtime context and subscribe to ledger inserts."""
        self.ctx = ctx
        self.engine = engine
        ctx.ledger.subscribe(self.on_violation)

    def on_violation(self, violation: Violation) -> None:
        with self._lock:
            self._last_violation = violation
            self._violations_seen += 1

    def get_last_violation(self) -> Optional[Violation]:
        with self._lock:
            return self._last_violation

    @property
    def violations_seen(self) -> int:
        with self._lock:
            return self._violations_seen

    @property
    def is_active(self) -> bool:
        return bool(self.engine is not None and self.engine.is_active)

    def get_status(self) -> Status:
        if self.engine is not None:
            return self.engine.status()
        return Status.derive(
            backend_ready=bool(self.ctx and self.ctx.backend_ready),
            cameras=[],
            timestamp=time.time(),
        )
