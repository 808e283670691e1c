"""
Per-thread requests sessions for clients called from worker pools.

requests.Session is not documented as thread-safe, and the resolver fans OCR and
place searches out over a ThreadPoolExecutor, so each thread gets its own session.
"""
import threading
from typing import Optional

import requests


class SessionPerThread:
    """Hand each thread its own Session. An injected session is returned as-is."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._shared = session
        self._local = threading.local()

    def get(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session
