# sla_tracker/core/catalog.py
"""
品牌 / 国家静态目录：

- 源表名中的品牌片段 → 品牌编码（vs / bbw / rituals）
- 品牌编码 → 展示名
- 国家编码 → 展示名 / 时区
"""
from __future__ import annotations

from typing import Dict, Optional

# 源表 <brandpart>_<cc>_orders 中的 brandpart → brand_code
BRAND_PART_TO_CODE: Dict[str, str] = {
    "victoriasecret": "vs",
    "victoriassecret": "vs",
    "vs": "vs",
    "bathandbodyworks": "bbw",
    "bbw": "bbw",
    "rituals": "rituals",
}

BRAND_NAMES: Dict[str, str] = {
    "vs": "Victoria's Secret",
    "bbw": "Bath & Body Works",
    "rituals": "Rituals",
}

COUNTRY_NAMES: Dict[str, str] = {
    "MY": "Malaysia",
    "SG": "Singapore",
    "TH": "Thailand",
    "ID": "Indonesia",
    "PH": "Philippines",
    "VN": "Vietnam",
    "AU": "Australia",
    "NZ": "New Zealand",
    "HK": "Hong Kong",
    "TW": "Taiwan",
}

COUNTRY_TIMEZONES: Dict[str, str] = {
    "MY": "Asia/Kuala_Lumpur",
    "SG": "Asia/Singapore",
    "TH": "Asia/Bangkok",
    "ID": "Asia/Jakarta",
    "PH": "Asia/Manila",
    "VN": "Asia/Ho_Chi_Minh",
    "AU": "Australia/Sydney",
    "NZ": "Pacific/Auckland",
    "HK": "Asia/Hong_Kong",
    "TW": "Asia/Taipei",
}


def brand_code_for(brand_part: str) -> str:
    """未知品牌片段原样作为编码（小写）。"""
    key = (brand_part or "").strip().lower()
    return BRAND_PART_TO_CODE.get(key, key)


def brand_name_for(brand_code: str) -> str:
    code = (brand_code or "").strip().lower()
    return BRAND_NAMES.get(code, code.upper())


def country_name_for(country_code: str) -> str:
    cc = (country_code or "").strip().upper()
    return COUNTRY_NAMES.get(cc, cc)


def timezone_for(country_code: str) -> Optional[str]:
    return COUNTRY_TIMEZONES.get((country_code or "").strip().upper())
