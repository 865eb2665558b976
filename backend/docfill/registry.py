"""
能力注册表 - 按扩展名分派格式适配器

启动时构建一张有序表，resolve() 返回第一个 supports(ext) 为真的适配器，
扩展名大小写不敏感；无匹配时抛出 UnsupportedFormat。
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

from .interfaces import ISupportsFormat, UnsupportedFormat, normalize_extension

T = TypeVar("T", bound=ISupportsFormat)


class CapabilityRegistry(Generic[T]):
    """有序能力注册表（首个匹配胜出）"""

    def __init__(self, adapters: Iterable[T] = ()):
        self._adapters: list[T] = list(adapters)

    def register(self, adapter: T) -> None:
        """追加适配器（排在已有适配器之后）"""
        self._adapters.append(adapter)

    def find(self, extension: str | None) -> T | None:
        if not extension:
            return None
        ext = normalize_extension(extension)
        return next((a for a in self._adapters if a.supports(ext)), None)

    def resolve(self, extension: str | None) -> T:
        """
        解析适配器

        Raises:
            UnsupportedFormat: 没有适配器支持该扩展名
        """
        adapter = self.find(extension)
        if adapter is None:
            raise UnsupportedFormat(extension)
        return adapter

    def supports(self, extension: str | None) -> bool:
        return self.find(extension) is not None

    def __iter__(self) -> Iterator[T]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)
