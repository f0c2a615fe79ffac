"""Login state.

A :class:`Session` is an immutable value handed to each operation. The
:class:`SessionHolder` exists for front ends that need a "current user"
slot; it guards the slot with a lock and drops the key on logout.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    display_name: str
    user_type: str
    # password doubles as the symmetric key for every encrypted field
    key: str = field(repr=False)


class SessionHolder:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._session: Optional[Session] = None

    def login(self, session: Session) -> None:
        with self._lock:
            self._session = session
        logger.info("User session started")

    def logout(self) -> None:
        with self._lock:
            previous = self._session
            self._session = None
        if previous is not None:
            logger.info("User session cleared")

    @property
    def current(self) -> Optional[Session]:
        with self._lock:
            return self._session

    def is_logged_in(self) -> bool:
        return self.current is not None
