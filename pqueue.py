"""
Очередь с приоритетом ограниченной ёмкости.

Порядок задаёт вызывающий код: строгий компаратор higher_priority(a, b)
возвращает True, если a должен выйти из очереди раньше b.
"""

import heapq
from typing import Callable, Generic, List, Optional, TypeVar


T = TypeVar('T')


class _HeapItem(Generic[T]):
    __slots__ = ('elem', 'higher_priority')

    def __init__(self, elem: T, higher_priority: Callable[[T, T], bool]):
        self.elem = elem
        self.higher_priority = higher_priority

    def __lt__(self, other):
        return self.higher_priority(self.elem, other.elem)


class PriorityQueue(Generic[T]):
    def __init__(self, capacity: int,
                 higher_priority: Callable[[T, T], bool],
                 elem_free: Optional[Callable[[T], None]] = None):
        assert capacity > 0, "capacity must be positive"
        self.capacity = capacity
        self.higher_priority = higher_priority
        self.elem_free = elem_free
        self._heap: List[_HeapItem[T]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.free()
        return False

    def is_empty(self) -> bool:
        return not self._heap

    def is_full(self) -> bool:
        return len(self._heap) == self.capacity

    def add(self, elem: T):
        if self.is_full():
            raise OverflowError(f"Priority queue is full ({self.capacity} elements)")
        heapq.heappush(self._heap, _HeapItem(elem, self.higher_priority))

    def rem(self) -> T:
        if not self._heap:
            raise IndexError("rem from an empty priority queue")
        return heapq.heappop(self._heap).elem

    def peek(self) -> T:
        if not self._heap:
            raise IndexError("peek into an empty priority queue")
        return self._heap[0].elem

    def free(self):
        """Отдаёт оставшиеся элементы деструктору и очищает очередь."""
        remaining = self._heap
        self._heap = []

        if self.elem_free is None:
            return

        for item in remaining:
            self.elem_free(item.elem)
