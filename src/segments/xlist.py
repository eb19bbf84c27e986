"""Аннотации сегмента: строки (XLine) из ключа и упорядоченных токенов.

Загрузка/сохранение в текстовые файлы здесь не реализуются — этим
занимается слой хранения. XList — только структура в памяти.
"""
from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .cursor import RewindableList


class XLine:
    """Одна строка аннотаций: упорядоченные строковые элементы с курсором."""

    def __init__(self, elements: Optional[Iterable[str]] = None) -> None:
        self._elements: RewindableList[str] = RewindableList(
            [str(e) for e in elements] if elements else None
        )

    @property
    def key(self) -> Optional[str]:
        """Первый элемент строки (None для пустой строки)."""
        return self._elements.get(0) if len(self._elements) else None

    def add_element(self, element: str) -> XLine:
        self._elements.append(str(element))
        return self

    def rewind(self) -> None:
        self._elements.rewind()

    def get_element(self, index: Optional[int] = None) -> Optional[str]:
        """Без индекса — элемент под курсором (None в конце), с индексом — прямой доступ."""
        if index is None:
            return self._elements.next()
        return self._elements.get(index)

    def get_element_count(self) -> int:
        return len(self._elements)

    def get_index(self, element: str) -> int:
        """Позиция элемента или -1."""
        for i, e in enumerate(self._elements):
            if e == element:
                return i
        return -1

    def to_list(self) -> list[str]:
        return list(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[str]:
        return iter(self._elements)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, XLine):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"XLine({self.to_list()!r})"


class XList:
    """Упорядоченный список строк аннотаций с курсором."""

    def __init__(self, lines: Optional[Iterable[Iterable[str]]] = None) -> None:
        self._lines: RewindableList[XLine] = RewindableList()
        for line in lines or ():
            self.add_line(*line)

    def add_line(self, *elements: str) -> XLine:
        """Добавляет строку; она становится текущей."""
        line = XLine(elements)
        self._lines.append(line)
        self._lines.seek(len(self._lines) - 1)
        return line

    def rewind(self) -> None:
        """Текущей становится первая строка."""
        self._lines.rewind()

    def get_line(self, index: Optional[int] = None) -> Optional[XLine]:
        """Строка по индексу или строка под курсором.

        С индексом: прямой доступ, строка становится текущей.
        Без индекса: строка под курсором, курсор сдвигается; None в конце.

        Raises:
            IndexOutOfBoundsError: если index >= get_line_count()
        """
        if index is None:
            line = self._lines.next()
        else:
            line = self._lines.get(index)
            self._lines.seek(index)
        if line is not None:
            line.rewind()
        return line

    def get_line_count(self) -> int:
        return len(self._lines)

    def find_line(self, key: str, idx: int = 0) -> Optional[XLine]:
        """Первая строка, у которой элемент idx равен key; она становится текущей."""
        for i, line in enumerate(self._lines):
            if 0 <= idx < len(line) and line.get_element(idx) == key:
                self._lines.seek(i)
                line.rewind()
                return line
        return None

    def search_value(self, key: str) -> Optional[str]:
        """Значение (второй элемент) строки с ключом key."""
        line = self.find_line(key)
        if line is None or len(line) < 2:
            return None
        return line.get_element(1)

    def get_all_elements(self) -> XLine:
        """Все элементы всех строк одной строкой, в исходном порядке."""
        return XLine(e for line in self._lines for e in line)

    def reset(self) -> None:
        """Удаляет все строки."""
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[XLine]:
        return iter(self._lines)

    def __repr__(self) -> str:
        return f"XList(lines={len(self._lines)})"
