"""Root conftest — общие фикстуры для тестов графа сегментов.

Поток признаков в фикстуре features — 6 кадров размерности 2:
    [1, 2], [3, 4], [5, 6], [7, 8], [9, 10], [11, 12]
"""
import numpy as np
import pytest


@pytest.fixture
def features() -> np.ndarray:
    """Маленькая матрица признаков 6 × 2."""
    return np.arange(1.0, 13.0).reshape(6, 2)


@pytest.fixture
def server(features):
    """SegServer с подключённым потоком признаков."""
    from src.segments import SegServer

    return SegServer("test_show", features=features)


@pytest.fixture
def override_settings():
    """Временно меняет поля settings и восстанавливает их после теста.

    object.__setattr__ обходит валидацию pydantic, как в боевом conftest.
    """
    from src.utils.config import settings

    originals: dict = {}

    def _override(**kwargs):
        for name, value in kwargs.items():
            originals.setdefault(name, getattr(settings, name))
            object.__setattr__(settings, name, value)

    yield _override

    for name, value in originals.items():
        object.__setattr__(settings, name, value)
