# sla_tracker/services/tat_config_store.py
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_tracker.domain.sla import TatPolicy
from sla_tracker.models.tat_config import TatConfig


class TatConfigIndex:
    """
    TatConfig 内存索引：键统一大小写后查找，
    不依赖数据库排序规则（collation）做不区分大小写的关联。

    - 主键：(brand_code.lower(), country_code.upper())
    - 备用：(brand_name.casefold(), country_code.upper())
    """

    def __init__(self, rows: List[TatConfig]) -> None:
        self._rows = list(rows)
        self._by_code: Dict[Tuple[str, str], TatConfig] = {}
        self._by_name: Dict[Tuple[str, str], TatConfig] = {}
        for r in self._rows:
            cc = (r.country_code or "").strip().upper()
            self._by_code[((r.brand_code or "").strip().lower(), cc)] = r
            if r.brand_name:
                self._by_name[(r.brand_name.strip().casefold(), cc)] = r

    @classmethod
    async def load(cls, session: AsyncSession) -> "TatConfigIndex":
        rows = (await session.execute(select(TatConfig).order_by(TatConfig.id))).scalars().all()
        return cls(list(rows))

    def row_for(self, brand: Optional[str], country_code: Optional[str]) -> Optional[TatConfig]:
        """brand 可为编码或展示名。"""
        b = (brand or "").strip()
        cc = (country_code or "").strip().upper()
        return self._by_code.get((b.lower(), cc)) or self._by_name.get((b.casefold(), cc))

    def policy_for(self, brand: Optional[str], country_code: Optional[str]) -> Optional[TatPolicy]:
        row = self.row_for(brand, country_code)
        return TatPolicy.from_config(row) if row is not None else None

    def __iter__(self):
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)
