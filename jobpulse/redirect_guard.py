"""
Redirect guard to prevent infinite redirect loops.

Tracks recent guarded redirects for one browser session and refuses redirects
that are too frequent, that bounce straight back (A -> B -> A), or that point
at the current page. The history lives in the Flask session so each visitor
has their own guard.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional

from flask import g, session

from .config import get_settings

logger = logging.getLogger(__name__)

SESSION_KEY = "redirect_history"

REDIRECT_COOLDOWN_MS = 100
HISTORY_RESET_MS = 2000
MAX_HISTORY = 10


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class RedirectRecord:
    from_path: str
    to_path: str
    time: float


class RedirectGuard:
    """
    Heuristic throttle and loop-breaker for guarded redirects.

    Only the last two records are compared, so longer cycles (A -> B -> C -> A)
    are not detected.
    """

    def __init__(
        self,
        cooldown_ms: int = REDIRECT_COOLDOWN_MS,
        reset_after_ms: int = HISTORY_RESET_MS,
        max_history: int = MAX_HISTORY,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.cooldown_ms = cooldown_ms
        self.reset_after_ms = reset_after_ms
        self.max_history = max_history
        self.clock = clock or _now_ms
        self.history: List[RedirectRecord] = []
        self.last_redirect_time: float = 0

    def can_redirect(self, from_path: str, to_path: str) -> bool:
        """Return True and record the redirect if it is allowed."""
        now = self.clock()
        elapsed = now - self.last_redirect_time

        if elapsed > self.reset_after_ms:
            self.history = []

        if elapsed < self.cooldown_ms:
            logger.warning(
                f"Redirect prevented - too frequent: {from_path} -> {to_path} "
                f"({elapsed:.0f}ms since last)"
            )
            return False

        if len(self.history) >= 2:
            last = self.history[-1]
            second_last = self.history[-2]
            # A -> B, B -> A, then A -> B again
            bounced_back = (
                (second_last.from_path, second_last.to_path) == (from_path, to_path)
                and (last.from_path, last.to_path) == (to_path, from_path)
            )
            # B -> ?, A -> B, then A -> B again
            repeated = (
                second_last.from_path == to_path
                and last.from_path == from_path
                and last.to_path == to_path
            )
            if bounced_back or repeated:
                logger.error(
                    f"Redirect loop detected: {from_path} -> {to_path}, "
                    f"history={[(r.from_path, r.to_path) for r in self.history]}"
                )
                return False

        if from_path == to_path:
            return False

        self.history.append(RedirectRecord(from_path, to_path, now))
        if len(self.history) > self.max_history:
            self.history.pop(0)
        self.last_redirect_time = now

        return True

    def clear(self) -> None:
        self.history = []
        self.last_redirect_time = 0

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict:
        return {
            "history": [asdict(r) for r in self.history],
            "last_redirect_time": self.last_redirect_time,
        }

    def load(self, state: Optional[Dict]) -> "RedirectGuard":
        if state:
            self.history = [RedirectRecord(**r) for r in state.get("history", [])]
            self.last_redirect_time = state.get("last_redirect_time", 0)
        return self


def get_redirect_guard() -> RedirectGuard:
    """Get the redirect guard for the current browser session."""
    if "redirect_guard" not in g:
        settings = get_settings()
        g.redirect_guard = RedirectGuard(
            cooldown_ms=settings.redirect_cooldown_ms,
            reset_after_ms=settings.redirect_history_reset_ms,
            max_history=settings.redirect_max_history,
        ).load(session.get(SESSION_KEY))
    return g.redirect_guard


def save_redirect_guard(response):
    """Write the guard's history back to the session if it was used this request."""
    guard = g.get("redirect_guard")
    if guard is not None:
        session[SESSION_KEY] = guard.to_dict()
    return response
