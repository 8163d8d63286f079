"""
Ledger snapshot storage.

The whole bet sequence is written as one JSON document on every
mutation. Writes go to a temp file first, then os.replace() swaps it
in, so a crash never leaves a half-written ledger behind.
"""

import json
import os
from pathlib import Path
from typing import List, Sequence, Union
import logging

from pydantic import ValidationError

from houseedge.data.schemas import Bet
from houseedge.exceptions import LedgerPersistenceError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class LedgerStore:
    """JSON file holding the full bet sequence."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> List[Bet]:
        """Load the bet sequence. A missing file is an empty ledger."""
        if not self.path.exists():
            logger.info(f"No ledger at {self.path}, starting empty")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            bets = [Bet.model_validate(item) for item in data.get("bets", [])]
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load ledger {self.path}: {e}")
            raise LedgerPersistenceError(f"Cannot read ledger {self.path}: {e}") from e

        logger.info(f"Loaded {len(bets)} bets from {self.path}")
        return bets

    def save(self, bets: Sequence[Bet]) -> None:
        """Write the full sequence atomically. Raises LedgerPersistenceError."""
        payload = {
            "version": FORMAT_VERSION,
            "bets": [b.model_dump(mode="json", exclude={"is_settled"}) for b in bets],
        }
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save ledger {self.path}: {e}")
            raise LedgerPersistenceError(f"Cannot write ledger {self.path}: {e}") from e

        logger.debug(f"Ledger saved ({len(bets)} bets) to {self.path}")
