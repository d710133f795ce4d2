"""Toast notifications raised by console workflows."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .client import GENERIC_ERROR, ApiError

logger = logging.getLogger(__name__)

SUCCESS = 'success'
ERROR = 'error'
INFO = 'info'


@dataclass(frozen=True)
class Toast:
    level: str
    message: str


@dataclass
class Toaster:
    """Collects toasts; ``sink`` lets a UI render them as they arrive."""
    sink: Optional[Callable[[Toast], None]] = None
    history: List[Toast] = field(default_factory=list)

    def _push(self, level: str, message: str) -> Toast:
        toast = Toast(level, message)
        self.history.append(toast)
        logger.log(logging.WARNING if level == ERROR else logging.INFO, "toast[%s] %s", level, message)
        if self.sink is not None:
            self.sink(toast)
        return toast

    def success(self, message: str) -> Toast:
        return self._push(SUCCESS, message)

    def info(self, message: str) -> Toast:
        return self._push(INFO, message)

    def error(self, message: str) -> Toast:
        return self._push(ERROR, message)

    def api_error(self, exc: Exception, fallback: str = GENERIC_ERROR) -> Toast:
        """Show the server message of an :class:`ApiError`, or ``fallback``."""
        message = exc.message if isinstance(exc, ApiError) and exc.message else fallback
        return self.error(message)

    @property
    def last(self) -> Optional[Toast]:
        return self.history[-1] if self.history else None

    def errors(self) -> List[str]:
        return [t.message for t in self.history if t.level == ERROR]
