"""
lending_repositories.py

In-memory collections owning the catalog items and member records.
Both keep insertion order so listings match the order records were loaded.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from lending_models import Item, Member

logger = logging.getLogger("LendingRepositories")


class Catalog:
    """Items keyed by id."""

    def __init__(self, items: Optional[Iterable[Item]] = None) -> None:
        self._items: Dict[str, Item] = {}
        for item in items or []:
            self.add(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    def add(self, item: Item) -> bool:
        """
        Add an item to the catalog.

        Returns True on success, False if an item with the same id already exists.
        """
        if item.item_id in self._items:
            logger.debug("Attempt to add existing item: %s", item.item_id)
            return False
        self._items[item.item_id] = item
        return True

    def remove(self, item_id: str) -> bool:
        if self._items.pop(item_id, None) is None:
            logger.debug("Attempt to remove unknown item: %s", item_id)
            return False
        return True

    def get(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def list_all(self) -> List[Item]:
        return list(self._items.values())

    def search(self, query: str) -> List[Item]:
        """
        Case-sensitive substring match against title or creator.

        An empty query matches every item.
        """
        return [i for i in self._items.values() if query in i.title or query in i.creator]

    def reserved_by(self, member_id: str) -> List[Item]:
        return [i for i in self._items.values() if i.holder_ref and i.holder_ref == member_id]


class Roster:
    """Members keyed by id."""

    def __init__(self, members: Optional[Iterable[Member]] = None) -> None:
        self._members: Dict[str, Member] = {}
        for member in members or []:
            self.add(member)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self):
        return iter(self._members.values())

    def add(self, member: Member) -> bool:
        if member.member_id in self._members:
            logger.debug("Attempt to register existing member: %s", member.member_id)
            return False
        self._members[member.member_id] = member
        return True

    def remove(self, member_id: str) -> bool:
        if self._members.pop(member_id, None) is None:
            logger.debug("Attempt to remove unknown member: %s", member_id)
            return False
        return True

    def get(self, member_id: str) -> Optional[Member]:
        return self._members.get(member_id)

    def list_all(self) -> List[Member]:
        return list(self._members.values())
