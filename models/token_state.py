from dataclasses import dataclass
from typing import Optional

import requests


@dataclass
class TokenState:
    session: requests.Session
    cooldown_until: float = 0.0

    # last observed values
    requests_sent: int = 0
    last_status: Optional[int] = None
    last_remaining: Optional[str] = None
    last_reset: Optional[str] = None
