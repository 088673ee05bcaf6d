# Domain Stats Package
from .models import RetentionDistribution, RetentionReport, RetentionTrend, ReviewStatistics

__all__ = ["ReviewStatistics", "RetentionDistribution", "RetentionTrend", "RetentionReport"]
