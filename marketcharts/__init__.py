"""marketcharts - 美股指数行情获取与图表数据处理库

从主/备数据源获取标普500、道琼斯和纳斯达克的日线数据，
与本地历史数据对账合并，并转换为可直接绘图的序列。
"""

from marketcharts.core.client import MarketChartsClient
from marketcharts.core.config import AppConfig, ConfigManager
from marketcharts.core.models import ChartData, ChartSeries, PricePoint, TechnicalIndicator
from marketcharts.core.services import ChartDataProcessor, StockDataService

__version__ = "1.0.0"

__all__ = [
    "AppConfig",
    "ChartData",
    "ChartDataProcessor",
    "ChartSeries",
    "ConfigManager",
    "MarketChartsClient",
    "PricePoint",
    "StockDataService",
    "TechnicalIndicator",
    "__version__",
]
