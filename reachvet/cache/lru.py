"""Access-order bookkeeping for the fact store.

A doubly linked list of keys plus a key -> node map, so touch, insert,
remove and evict are all O(1). The list runs from least to most recently
used; a sentinel node closes the ring.
"""

from __future__ import annotations

from collections.abc import Iterator


class _Node:
    __slots__ = ("key", "prev", "next")

    def __init__(self, key: str | None) -> None:
        self.key = key
        self.prev: _Node = self
        self.next: _Node = self


class LRUIndex:
    """Recency order over string keys."""

    def __init__(self) -> None:
        self._root = _Node(None)
        self._nodes: dict[str, _Node] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __iter__(self) -> Iterator[str]:
        """Iterate keys from least to most recently used."""
        node = self._root.next
        while node is not self._root:
            yield node.key  # type: ignore[misc]
            node = node.next

    def touch(self, key: str) -> None:
        """Mark *key* most recently used, inserting it if absent."""
        node = self._nodes.get(key)
        if node is None:
            node = _Node(key)
            self._nodes[key] = node
        else:
            self._unlink(node)
        self._link_last(node)

    def remove(self, key: str) -> bool:
        node = self._nodes.pop(key, None)
        if node is None:
            return False
        self._unlink(node)
        return True

    def oldest(self) -> str | None:
        node = self._root.next
        return None if node is self._root else node.key

    def pop_oldest(self) -> str | None:
        key = self.oldest()
        if key is not None:
            self.remove(key)
        return key

    def clear(self) -> None:
        self._root.prev = self._root.next = self._root
        self._nodes.clear()

    def _link_last(self, node: _Node) -> None:
        last = self._root.prev
        node.prev = last
        node.next = self._root
        last.next = node
        self._root.prev = node

    @staticmethod
    def _unlink(node: _Node) -> None:
        node.prev.next = node.next
        node.next.prev = node.prev
        node.prev = node.next = node
