"""Конфигурация библиотеки сегментов и кластеров."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Настройки, читаются из окружения или .env."""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Statistics
    STATS_DTYPE: str = "float64"  # dtype векторов sum / sum_sq
    STATS_VARIANCE_FLOOR: float = 0.0  # нижняя граница диагональной ковариации

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Глобальный экземпляр настроек
settings = Settings()
