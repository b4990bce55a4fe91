"""
Sale phase state machine.

Two states and one forward transition:

    PRESALE ──▶ PUBLIC

The transition is driven either by the clock crossing a configured threshold
or by an explicit admin action. Neither policy can move back to PRESALE.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Set

from mintgate.interfaces import Clock, SystemClock


class Phase(Enum):
    PRESALE = "presale"
    PUBLIC = "public"


VALID_TRANSITIONS: Dict[Phase, Set[Phase]] = {
    Phase.PRESALE: {Phase.PUBLIC},
    Phase.PUBLIC: set(),
}


class PhasePolicy(ABC):
    """Derives the phase at a point in time."""

    @abstractmethod
    def phase_at(self, now: int) -> Phase:
        raise NotImplementedError


class ThresholdPhasePolicy(PhasePolicy):
    """PUBLIC from `public_sale_at` onwards. Stores no mutable flag."""

    def __init__(self, public_sale_at: int):
        self.public_sale_at = int(public_sale_at)

    def phase_at(self, now: int) -> Phase:
        return Phase.PUBLIC if now >= self.public_sale_at else Phase.PRESALE


class AdminTogglePhasePolicy(PhasePolicy):
    """Starts in PRESALE; `advance()` moves to PUBLIC exactly once."""

    def __init__(self, public: bool = False):
        self._phase = Phase.PUBLIC if public else Phase.PRESALE
        self._lock = threading.Lock()

    def phase_at(self, now: int) -> Phase:
        return self._phase

    def advance(self) -> bool:
        """Switch to PUBLIC. Returns False if already there."""
        with self._lock:
            if Phase.PUBLIC not in VALID_TRANSITIONS[self._phase]:
                return False
            self._phase = Phase.PUBLIC
            return True


class PhaseClock:
    """Reads the clock and asks the policy which phase applies."""

    def __init__(self, policy: PhasePolicy, clock: Optional[Clock] = None):
        self.policy = policy
        self.clock = clock or SystemClock()

    def current_phase(self) -> Phase:
        return self.policy.phase_at(self.clock.now())

    @property
    def admin_controlled(self) -> bool:
        return isinstance(self.policy, AdminTogglePhasePolicy)
