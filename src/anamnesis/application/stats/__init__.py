# Application Stats Package
from .retention_calculator import RetentionCalculator
from .service import RetentionService

__all__ = ["RetentionCalculator", "RetentionService"]
