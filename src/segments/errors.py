"""Типизированные ошибки графа сегментов.

Каждая ошибка запоминает сообщение и место возбуждения (файл + строка).
Нарушения контракта (выход за границы, рассогласование владельцев)
не исправляются молча — они прерывают вызывающую операцию.
"""
from __future__ import annotations

import sys
from typing import Optional


def _caller_location() -> tuple[str, int]:
    """Первый кадр стека за пределами этого модуля."""
    frame = sys._getframe(1)
    while frame is not None and frame.f_code.co_filename == __file__:
        frame = frame.f_back
    if frame is None:
        return "<unknown>", 0
    return frame.f_code.co_filename, frame.f_lineno


class SegmentsError(Exception):
    """Базовая ошибка: сообщение + исходный файл + номер строки."""

    def __init__(self, msg: str, source_file: Optional[str] = None, line: Optional[int] = None):
        super().__init__(msg)
        if source_file is None or line is None:
            source_file, line = _caller_location()
        self.msg = msg
        self.source_file = source_file
        self.line = line

    def __str__(self) -> str:
        return (
            f"{type(self).__name__}: {self.msg}"
            f" (source file = {self.source_file}, line number = {self.line})"
        )


class IndexOutOfBoundsError(SegmentsError, IndexError):
    """Индексный доступ за пределами списка: index >= limit."""

    def __init__(self, msg: str, index: int, limit: int):
        super().__init__(msg)
        self.index = index
        self.limit = limit

    def __str__(self) -> str:
        return f"{super().__str__()}: index {self.index} >= limit {self.limit}"


class UndefinedStatisticError(SegmentsError, ArithmeticError):
    """Запрос производной статистики при нулевом счётчике."""


class OwnershipInconsistencyError(SegmentsError):
    """Нарушение двусторонней связи член ↔ кластер или попытка создать цикл."""


class DimensionMismatchError(SegmentsError, ValueError):
    """Размерность вектора не совпадает с размерностью аккумулятора."""

    def __init__(self, msg: str, expected: int, actual: int):
        super().__init__(msg)
        self.expected = expected
        self.actual = actual


class IdAlreadyExistsError(SegmentsError):
    """Сущность с таким id уже зарегистрирована на сервере."""
