"""
LEDGER OPERATION LIFECYCLE

In-memory state machine for one coordinator operation:

    proposed -> validated -> applied -> committed
        \\            \\           \\
         +------------+-----------+--> rolled_back

DESIGN PRINCIPLES:
- No database writes here
- committed and rolled_back are terminal
- Only committed operations are persisted (as StockOperation)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from inventory.services.exceptions import StateError

# ============================================================
# STATE DEFINITIONS
# ============================================================

PROPOSED = "proposed"
VALIDATED = "validated"
APPLIED = "applied"
COMMITTED = "committed"
ROLLED_BACK = "rolled_back"

TERMINAL_STATES = {COMMITTED, ROLLED_BACK}

ALLOWED_TRANSITIONS = {
    PROPOSED: {VALIDATED, ROLLED_BACK},
    VALIDATED: {APPLIED, ROLLED_BACK},
    APPLIED: {COMMITTED, ROLLED_BACK},
}


def can_transition(*, from_state: str, to_state: str) -> bool:
    if from_state in TERMINAL_STATES:
        return False
    return to_state in ALLOWED_TRANSITIONS.get(from_state, set())


@dataclass
class LedgerOperation:
    kind: str
    actor: object = None
    reason: str = ""
    idempotency_key: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    state: str = PROPOSED
    history: list = field(default_factory=lambda: [PROPOSED])

    def transition(self, target: str) -> None:
        if not can_transition(from_state=self.state, to_state=target):
            raise StateError(
                f"Operation {self.id} cannot transition from '{self.state}' to '{target}'"
            )
        self.state = target
        self.history.append(target)

    def rollback(self) -> None:
        # idempotent: a failure path may run after an earlier rollback
        if self.state != ROLLED_BACK:
            self.transition(ROLLED_BACK)

    @property
    def is_committed(self) -> bool:
        return self.state == COMMITTED
