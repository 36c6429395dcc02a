from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RawHit:
    title: str
    link: str
    snippet: str = ""
    date: str | None = None


class SearchProvider(ABC):
    name: str = "provider"

    @abstractmethod
    async def search(self, query: str, region: str, num: int = 10) -> list[RawHit]:
        pass
