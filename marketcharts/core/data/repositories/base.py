"""价格数据仓储抽象"""

from abc import ABC, abstractmethod
from datetime import date

from marketcharts.core.models import PricePoint


class PriceRepository(ABC):
    """按指数名称与交易日存取PricePoint的仓储接口"""

    @abstractmethod
    async def get_by_date_range(self, index_name: str, start: date, end: date) -> list[PricePoint]:
        """获取区间内(含两端)的数据, 按日期升序"""

    @abstractmethod
    async def save_batch(self, points: list[PricePoint]) -> int:
        """批量保存, 已存在的(指数, 日期)跳过; 返回实际写入条数"""

    @abstractmethod
    async def save(self, point: PricePoint) -> int:
        """保存单条记录并返回其id"""

    @abstractmethod
    async def get_latest(self, index_name: str) -> PricePoint | None:
        """获取该指数最近一个交易日的数据"""

    @abstractmethod
    async def get_by_date_and_index(self, day: date, index_name: str) -> PricePoint | None:
        """按交易日与指数名称查找"""

    @abstractmethod
    async def update(self, point: PricePoint) -> bool:
        """覆盖同一(指数, 日期)的行情数值; 记录不存在时返回False"""
