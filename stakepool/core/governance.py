"""Two-party approval for sensitive pool changes.

The first party to submit a payload registers a commitment hash keyed by
``(payload, proposer)``. When the other party submits the same payload, the
commitment is consumed and the change is applied. Re-submitting from the
same party only refreshes its own commitment.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any

from stakepool.core.errors import Unauthorized

logger = logging.getLogger(__name__)


def commitment_hash(payload: dict[str, Any], proposer: str) -> str:
    """Deterministic commitment for a payload submitted by ``proposer``."""
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(f"{encoded}|{proposer}".encode()).hexdigest()


class MutualUpgrade:
    """Tracks pending commitments between two named signers."""

    def __init__(self) -> None:
        self._pending: dict[str, datetime] = {}

    @property
    def pending(self) -> dict[str, datetime]:
        return dict(self._pending)

    def is_pending(self, payload: dict[str, Any], proposer: str) -> bool:
        return commitment_hash(payload, proposer) in self._pending

    def submit(
        self,
        caller: str,
        signer_one: str,
        signer_two: str,
        payload: dict[str, Any],
    ) -> bool:
        """Register or complete a mutual upgrade.

        Returns ``True`` when this submission completes the pair and the
        caller should apply the change, ``False`` when it was only recorded.
        """
        if caller not in (signer_one, signer_two):
            raise Unauthorized("Must be authorized address")

        counterpart = signer_two if caller == signer_one else signer_one
        expected = commitment_hash(payload, counterpart)

        if expected in self._pending:
            del self._pending[expected]
            logger.info("Mutual upgrade completed by %s", caller, extra={"account": caller})
            return True

        own = commitment_hash(payload, caller)
        self._pending[own] = datetime.now(timezone.utc)
        logger.info("Mutual upgrade registered by %s", caller, extra={"account": caller})
        return False
