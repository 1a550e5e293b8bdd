"""Read access to the item catalog."""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from hanzisrs.models.models import Item, ProgressRecord
from hanzisrs.services.scoring import rank_items

logger = logging.getLogger(__name__)

# Bumped by every bulk_load so cached orderings in other instances go stale
_catalog_version = 0


class CatalogService:
    """Service for looking up and ranking catalog items."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self._introduction_order: Optional[List[Tuple[float, int]]] = None
        self._ordered_at = -1

    def get_items(self, item_ids: Iterable[int]) -> Dict[int, Item]:
        """Get several items keyed by ID; unknown IDs are absent."""
        ids = list(set(item_ids))
        if not ids:
            return {}
        items = self.db.query(Item).filter(Item.id.in_(ids)).all()
        return {item.id: item for item in items}

    def count(self) -> int:
        """Get the number of items in the catalog."""
        return self.db.query(Item).count()

    def list_untracked(self, is_word: bool, limit: int) -> List[Item]:
        """Items of one kind without a progress record, most frequent first."""
        tracked = select(ProgressRecord.item_id)
        return (
            self.db.query(Item)
            .filter(
                Item.is_word == is_word,
                ~Item.id.in_(tracked),
            )
            .order_by(Item.frequency_rank.asc(), Item.id.asc())
            .limit(limit)
            .all()
        )

    def rank_lookup(self, item_ids: Iterable[int]) -> Dict[int, int]:
        """Map item ID to frequency rank for the IDs present in the catalog."""
        ids = list(set(item_ids))
        if not ids:
            return {}
        rows = (
            self.db.query(Item.id, Item.frequency_rank)
            .filter(Item.id.in_(ids))
            .all()
        )
        return {item_id: rank for item_id, rank in rows}

    def component_rank_lookup(self, items: Iterable[Item]) -> Dict[int, int]:
        """Rank lookup covering every component of the given words."""
        component_ids = set()
        for item in items:
            component_ids.update(item.component_ids)
        return self.rank_lookup(component_ids)

    def introduction_order(self) -> List[Tuple[float, int]]:
        """(score, item id) for the whole catalog, in introduction order.

        Cached until the next `bulk_load`, through this or any other instance.
        """
        if self._ordered_at != _catalog_version:
            items = self.db.query(Item).all()
            ranks: Mapping[int, int] = {item.id: item.frequency_rank for item in items}
            self._introduction_order = [
                (score, item.id) for score, item in rank_items(items, ranks)
            ]
            self._ordered_at = _catalog_version
            logger.info(f"Ranked {len(self._introduction_order)} catalog items")
        return self._introduction_order

    def bulk_load(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert already-built catalog rows.

        Each row carries id, text, frequency_rank and optionally pinyin,
        definition, is_word and component_ids (a list of item IDs).
        """
        global _catalog_version

        items = []
        for row in rows:
            rank = row["frequency_rank"]
            if rank is None or rank < 1:
                raise ValueError(f"Item {row.get('id')} has frequency rank {rank!r}; ranks start at 1")
            component_ids = row.get("component_ids") or []
            items.append(
                Item(
                    id=row.get("id"),
                    text=row["text"],
                    pinyin=row.get("pinyin", ""),
                    definition=row.get("definition", ""),
                    frequency_rank=rank,
                    is_word=bool(row.get("is_word", False)),
                    component_characters=",".join(str(cid) for cid in component_ids) or None,
                )
            )
        self.db.add_all(items)
        self.db.commit()
        _catalog_version += 1
        logger.info(f"Loaded {len(items)} catalog items")
        return len(items)
