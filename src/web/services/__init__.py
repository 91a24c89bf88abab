from .config_service import ConfigService
from .logs_service import LogsService
from .stats_service import StatsService

__all__ = ["ConfigService", "LogsService", "StatsService"]
