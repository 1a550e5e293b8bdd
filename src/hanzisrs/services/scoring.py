"""Introduction priority scores.

Lower scores are introduced earlier. A character scores its frequency rank.
A word scores the rank of its rarest component plus a fractional tie-break
on its own rank, so it always sorts after every one of its components.
"""
from typing import Iterable, List, Mapping, Tuple

from hanzisrs.models.models import Item

WORD_TIE_BREAK_WEIGHT = 0.01
UNRESOLVED_WORD_SCORE = 1_000_000.0


def introduction_score(item: Item, rank_lookup: Mapping[int, int]) -> float:
    """Score one item; `rank_lookup` maps component id to frequency rank."""
    if not item.is_word:
        return float(item.frequency_rank)

    # Component ids missing from the catalog are skipped
    ranks = [rank_lookup[cid] for cid in item.component_ids if cid in rank_lookup]
    if not ranks:
        return UNRESOLVED_WORD_SCORE + item.frequency_rank

    return max(ranks) + item.frequency_rank * WORD_TIE_BREAK_WEIGHT


def rank_items(items: Iterable[Item], rank_lookup: Mapping[int, int]) -> List[Tuple[float, Item]]:
    """Score and sort items by (score, id)."""
    scored = [(introduction_score(item, rank_lookup), item) for item in items]
    scored.sort(key=lambda pair: (pair[0], pair[1].id))
    return scored
