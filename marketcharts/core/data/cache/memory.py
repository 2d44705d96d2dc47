"""带TTL的线程安全LRU内存缓存."""

from collections import OrderedDict
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Any

from marketcharts.core.exceptions import InvalidArgumentError


class TTLCache:
    """显式持有的LRU缓存, 每个条目有独立TTL, 时钟可注入."""

    def __init__(self, max_size: int = 256, clock: Callable[[], datetime] | None = None):
        if max_size <= 0:
            raise InvalidArgumentError("max_size must be positive", argument="max_size")
        self.max_size = max_size
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cache: OrderedDict[str, tuple[Any, datetime]] = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Any | None:
        """从缓存获取数据, 过期或不存在时返回None."""
        with self._lock:
            if key not in self._cache:
                self.misses += 1
                return None

            value, expiry = self._cache[key]
            if self._clock() >= expiry:
                del self._cache[key]
                self.misses += 1
                return None

            self._cache.move_to_end(key)
            self.hits += 1
            return value

    async def set(self, key: str, value: Any, ttl: float) -> None:
        """设置缓存数据, ttl单位为秒."""
        if ttl <= 0:
            raise InvalidArgumentError("ttl must be positive", argument="ttl")
        expiry = self._clock() + timedelta(seconds=ttl)

        with self._lock:
            if key in self._cache:
                del self._cache[key]

            # 缓存已满时淘汰最久未使用的条目
            while len(self._cache) >= self.max_size and self._cache:
                self._cache.popitem(last=False)

            self._cache[key] = (value, expiry)

    async def delete(self, key: str) -> bool:
        """删除缓存数据."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear(self) -> None:
        """清空缓存."""
        with self._lock:
            self._cache.clear()

    async def get_ttl(self, key: str) -> int | None:
        """获取剩余TTL(秒)."""
        with self._lock:
            if key not in self._cache:
                return None

            _, expiry = self._cache[key]
            remaining = (expiry - self._clock()).total_seconds()

            if remaining <= 0:
                del self._cache[key]
                return None

            return int(remaining)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._cache), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
