# sla_tracker/services/table_registry.py
"""
按命名约定发现多租户表，形成 (brand, country) → Table 的登记表：

- 主库源表  : <brandpart>_<cc>_orders（及可选 _payments / _shipments）
- 分析库表  : orders_<brand>_<cc>

查询一律通过登记表拿到 Table 对象，不拼接表名字符串。
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql.schema import Table

from sla_tracker.core.catalog import brand_code_for, brand_name_for
from sla_tracker.models.order_table import build_order_table, order_table_name, parse_order_table_name

SOURCE_TABLE_RE = re.compile(r"^(.+)_([a-z]{2})_orders$")


def _key(brand_code: str, country_code: str) -> Tuple[str, str]:
    return (brand_code or "").strip().lower(), (country_code or "").strip().upper()


async def list_table_names(engine: AsyncEngine) -> List[str]:
    async with engine.connect() as conn:
        return await conn.run_sync(lambda c: inspect(c).get_table_names())


# —— 分析库：orders_<brand>_<cc> —— #


@dataclass(frozen=True)
class TenantTable:
    brand_code: str
    country_code: str
    table: Table

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def brand_name(self) -> str:
        return brand_name_for(self.brand_code)


class TableRegistry:
    def __init__(self, tables: Optional[Dict[Tuple[str, str], TenantTable]] = None) -> None:
        self._tables: Dict[Tuple[str, str], TenantTable] = dict(tables or {})

    @classmethod
    def from_names(cls, names: List[str]) -> "TableRegistry":
        tables: Dict[Tuple[str, str], TenantTable] = {}
        for name in sorted(names):
            parsed = parse_order_table_name(name)
            if parsed is None:
                continue
            brand_code, cc = parsed
            tables[_key(brand_code, cc)] = TenantTable(brand_code, cc, build_order_table(name))
        return cls(tables)

    @classmethod
    async def discover(cls, engine: AsyncEngine) -> "TableRegistry":
        return cls.from_names(await list_table_names(engine))

    def register(self, brand_code: str, country_code: str) -> TenantTable:
        key = _key(brand_code, country_code)
        if key not in self._tables:
            name = order_table_name(*key)
            self._tables[key] = TenantTable(key[0], key[1], build_order_table(name))
        return self._tables[key]

    def get(self, brand_code: str, country_code: str) -> Optional[TenantTable]:
        return self._tables.get(_key(brand_code, country_code))

    def select(self, brand: Optional[str] = None, country: Optional[str] = None) -> List[TenantTable]:
        """品牌 / 国家过滤（大小写不敏感；品牌可传编码或展示名）。"""
        out: List[TenantTable] = []
        b = (brand or "").strip().lower()
        c = (country or "").strip().upper()
        for t in self._tables.values():
            if b and b not in (t.brand_code, t.brand_name.lower()):
                continue
            if c and c != t.country_code:
                continue
            out.append(t)
        return out

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return _key(*key) in self._tables

    def __iter__(self) -> Iterator[TenantTable]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)


# —— 主库：<brandpart>_<cc>_orders —— #


@dataclass(frozen=True)
class SourceTable:
    name: str
    brand_part: str
    brand_code: str
    country_code: str
    payments_name: Optional[str] = None
    shipments_name: Optional[str] = None

    @property
    def brand_name(self) -> str:
        return brand_name_for(self.brand_code)

    @property
    def target_name(self) -> str:
        return order_table_name(self.brand_code, self.country_code)


def parse_source_tables(names: List[str]) -> List[SourceTable]:
    """不匹配命名约定的表直接忽略。"""
    present = set(names)
    out: List[SourceTable] = []
    for name in sorted(names):
        m = SOURCE_TABLE_RE.match(name)
        if not m:
            continue
        brand_part, cc = m.group(1), m.group(2)
        brand_code = brand_code_for(brand_part)
        try:
            order_table_name(brand_code, cc)
        except ValueError:
            continue
        prefix = f"{brand_part}_{cc}"
        out.append(
            SourceTable(
                name=name,
                brand_part=brand_part,
                brand_code=brand_code,
                country_code=cc.upper(),
                payments_name=f"{prefix}_payments" if f"{prefix}_payments" in present else None,
                shipments_name=f"{prefix}_shipments" if f"{prefix}_shipments" in present else None,
            )
        )
    return out


async def discover_source_tables(engine: AsyncEngine) -> List[SourceTable]:
    return parse_source_tables(await list_table_names(engine))
