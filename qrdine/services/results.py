from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any


class WriteStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"  # row exists but no longer matches the expected state
    FAILED = "failed"


class Outcome(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    NO_TRANSITION = "no_transition"
    STALE = "stale"
    EMPTY_CART = "empty_cart"
    INVALID = "invalid"


@dataclass
class Result:
    outcome: Outcome
    value: Optional[Any] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK
