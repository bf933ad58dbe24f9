from __future__ import annotations

from ledger_mirror.domain.entities.kinds import ClaimStatus


CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.UNCLAIMED: frozenset(
        {
            ClaimStatus.CLAIMING,
            ClaimStatus.UNCLAIMED_OVERRIDE,
            ClaimStatus.CLAIMABLE,
        }
    ),
    ClaimStatus.CLAIMING: frozenset(
        {
            ClaimStatus.CLAIMED,
            ClaimStatus.TOO_MANY_ATTEMPTS,
            ClaimStatus.EXPIRED,
        }
    ),
}


def is_valid_claim_transition(previous: ClaimStatus, current: ClaimStatus) -> bool:
    """Re-observing the same status is always valid."""
    if previous == current:
        return True
    return current in CLAIM_TRANSITIONS.get(previous, frozenset())
