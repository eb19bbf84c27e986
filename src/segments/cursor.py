"""Упорядоченный список с перематываемым курсором."""
from __future__ import annotations

from typing import Generic, Iterator, Optional, TypeVar

from .errors import IndexOutOfBoundsError

T = TypeVar("T")


class RewindableList(Generic[T]):
    """Список с двумя формами доступа: курсорной и индексной.

    Курсорная форма (next) подходит для линейного прохода,
    индексная (get) — для произвольного доступа и удаления по позиции.
    """

    def __init__(self, items: Optional[list[T]] = None) -> None:
        self._items: list[T] = list(items) if items else []
        self._current = 0

    def rewind(self) -> None:
        """Возвращает курсор к первому элементу."""
        self._current = 0

    def next(self) -> Optional[T]:
        """Элемент под курсором с продвижением курсора; None в конце."""
        if self._current >= len(self._items):
            return None
        item = self._items[self._current]
        self._current += 1
        return item

    def get(self, index: int) -> T:
        """Прямой доступ по индексу.

        Raises:
            IndexOutOfBoundsError: если index < 0 или index >= count
        """
        if index < 0 or index >= len(self._items):
            raise IndexOutOfBoundsError(
                "index out of bounds", index=index, limit=len(self._items)
            )
        return self._items[index]

    def seek(self, index: int) -> None:
        """Ставит курсор на позицию index."""
        self._current = index

    def append(self, item: T) -> None:
        self._items.append(item)

    def index_of(self, item: T) -> int:
        """Позиция первого вхождения (по идентичности объекта) или -1."""
        for i, candidate in enumerate(self._items):
            if candidate is item:
                return i
        return -1

    def pop(self, index: int) -> T:
        """Удаляет элемент по позиции, порядок остальных сохраняется."""
        item = self.get(index)
        del self._items[index]
        if self._current > index:
            self._current -= 1
        return item

    def clear(self) -> None:
        self._items.clear()
        self._current = 0

    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        # Снимок: итерация не ломается при изменении списка внутри цикла
        return iter(list(self._items))
