import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

import requests

from models.token_state import TokenState
from loggers.hub_logger import hub_logger as logger


class TokenPool:
    """
    Thread-safe pool that:
      - keeps one authenticated session per hub token
      - rotates tokens round-robin
      - cools a token down for the server's Retry-After when it was throttled
    """

    def __init__(
        self,
        tokens: List[str],
        user_agent: str = "fair-catalog",
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        # dedupe preserve order
        seen = set()
        self.tokens: List[str] = []
        for t in tokens:
            t = (t or "").strip()
            if t and t not in seen:
                seen.add(t)
                self.tokens.append(t)

        self._lock = threading.Lock()
        self._rr_index = 0

        self._states: Dict[str, TokenState] = {}
        for tok in self.tokens:
            s = session_factory()
            s.headers.update({
                "Accept": "application/vnd.github.v3+json",
                "Authorization": f"token {tok}",
                "User-Agent": user_agent,
            })
            self._states[tok] = TokenState(session=s)

    def __len__(self) -> int:
        return len(self.tokens)

    def _now(self) -> float:
        return time.time()

    def pick(self) -> Tuple[str, requests.Session]:
        """
        Round-robin among tokens not in cooldown.
        If all tokens are cooling down, pick the one that resets soonest.
        """
        with self._lock:
            now = self._now()
            n = len(self.tokens)

            for _ in range(n):
                tok = self.tokens[self._rr_index % n]
                self._rr_index = (self._rr_index + 1) % n
                if self._states[tok].cooldown_until <= now:
                    return tok, self._states[tok].session

            tok = min(self.tokens, key=lambda t: self._states[t].cooldown_until)
            return tok, self._states[tok].session

    def record_response(self, tok: str, resp: requests.Response) -> None:
        with self._lock:
            st = self._states[tok]
            st.requests_sent += 1
            st.last_status = resp.status_code
            st.last_remaining = resp.headers.get("X-RateLimit-Remaining")
            st.last_reset = resp.headers.get("X-RateLimit-Reset")
        if st.last_remaining is not None:
            logger.debug(f"token {self.display(tok)} status={resp.status_code} "
                         f"remaining={st.last_remaining} reset={st.last_reset}")

    def mark_backoff(self, tok: str, seconds: float) -> None:
        with self._lock:
            st = self._states[tok]
            st.cooldown_until = max(st.cooldown_until, self._now() + seconds)

    def state(self, tok: str) -> Optional[TokenState]:
        return self._states.get(tok)

    @staticmethod
    def display(tok: str) -> str:
        return (tok[:6] + "...") if tok else "<no-auth>"

    def log_token_stats(self) -> None:
        with self._lock:
            now = self._now()
            for tok, st in self._states.items():
                cd = st.cooldown_until - now
                cd_disp = f"{cd:.0f}s" if cd > 0 else "0s"
                logger.info(
                    f"[TOKEN-STATS] token={self.display(tok)} "
                    f"reqs={st.requests_sent} "
                    f"last_status={st.last_status} "
                    f"last_remaining={st.last_remaining} "
                    f"cooldown={cd_disp}"
                )
