from __future__ import annotations

from collections.abc import Sequence

from ledger_mirror.domain.entities.tx import SwapHop


MAX_SWAP_HOPS = 100


def swap_hop_row_id(tx_id: int, hop_index: int) -> int:
    """Stable store id for one hop; ordering by it within a tx is traversal order."""
    if hop_index < 0 or hop_index >= MAX_SWAP_HOPS:
        raise ValueError(f"hop_index must be in [0, {MAX_SWAP_HOPS}), got {hop_index}.")
    return tx_id * MAX_SWAP_HOPS + hop_index


def ordered_hops(hops: Sequence[SwapHop]) -> list[SwapHop]:
    ordered = sorted(hops, key=lambda hop: hop.hop_index)
    expected = list(range(len(ordered)))
    if [hop.hop_index for hop in ordered] != expected:
        raise ValueError("swap hop indices must be contiguous from 0.")
    return ordered
