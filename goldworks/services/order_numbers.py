"""Order number generation: ORD-<year>-<5-digit-seq>-<3-char-random>."""
import secrets
import string
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from goldworks.exceptions import ConflictError

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 3
SEQUENCE_WIDTH = 5
MAX_SUFFIX_ATTEMPTS = 100


def parse_sequence(order_number: Optional[str]) -> int:
    """Extract the numeric sequence from an order number, 0 if unparseable."""
    if not order_number:
        return 0
    parts = order_number.split("-")
    try:
        return int(parts[2])
    except (IndexError, ValueError):
        return 0


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


class OrderNumberGenerator:
    """Generates human-readable order numbers without a global lock.

    The sequence comes from the latest persisted number, so two concurrent
    creations may share it; the random suffix keeps the full numbers apart.
    Numbers issued by this process for the current base are remembered and
    the suffix is redrawn on a repeat; the memory is dropped when the base
    moves on.
    """

    def __init__(self, prefix: str = "ORD", suffix: Callable[[], str] = random_suffix) -> None:
        self.prefix = prefix
        self._suffix = suffix
        self._base: Optional[str] = None
        self._issued: Set[str] = set()
        self._lock = threading.Lock()

    def year_prefix(self, year: Optional[int] = None) -> str:
        year = year or datetime.now(timezone.utc).year
        return f"{self.prefix}-{year}-"

    def generate(self, latest: Optional[str], year: Optional[int] = None) -> str:
        """Build the next order number after ``latest`` for ``year``."""
        base = f"{self.year_prefix(year)}{parse_sequence(latest) + 1:0{SEQUENCE_WIDTH}d}-"
        for _ in range(MAX_SUFFIX_ATTEMPTS):
            candidate = base + self._suffix()
            with self._lock:
                if base != self._base:
                    self._base = base
                    self._issued = set()
                if candidate not in self._issued:
                    self._issued.add(candidate)
                    return candidate
        raise ConflictError(
            "Could not allocate a unique order number, please retry",
            details={"order_number_base": base.rstrip("-")},
        )
