"""
Base class for field extractors and the tolerant parsing helpers they share.

Parsing is parse-or-null: a value that cannot be read becomes None and the
rest of the record is still extracted.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel
from models.base import DataType
import math
import re

TIMESTAMP_FORMATS = [
    "%B %d, %Y %I:%M %p",   # December 01, 2025 03:15 PM (after " at " removal)
    "%b %d, %Y %I:%M %p",
    "%Y-%m-%d %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%m-%d-%Y %H:%M",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y",
]

_PRICE_STRIP = re.compile(r"[^\d.\-]")
_DURATION_COLON = re.compile(r"(\d+):(\d+)(?::(\d+))?")
_DURATION_HOURS = re.compile(r"(\d+)\s*h", re.IGNORECASE)
_DURATION_MINUTES = re.compile(r"(\d+)\s*m", re.IGNORECASE)
_QUANTITY_PREFIX = re.compile(r"^\d+\s*x\s*(.+)$", re.IGNORECASE)


class FieldExtractor(ABC):
    """
    Maps a raw proof payload onto a typed normalized record.

    Subclasses read only the fields they declare; anything else in the
    payload is dropped.
    """

    data_type: DataType

    @abstractmethod
    def extract(self, payload: Dict[str, Any]) -> BaseModel:
        """Extract a normalized record from a decoded payload mapping"""
        pass

    # ------------------------------------------------------------------
    # Payload navigation
    # ------------------------------------------------------------------

    @staticmethod
    def first_present(payload: Dict[str, Any], *keys: str) -> Any:
        """Value of the first key that is present and not None/empty"""
        for key in keys:
            value = payload.get(key)
            if value is not None and value != "":
                return value
        return None

    @staticmethod
    def as_list(value: Any) -> List[Any]:
        if isinstance(value, list):
            return value
        return []

    @staticmethod
    def as_dict(value: Any) -> Dict[str, Any]:
        if isinstance(value, dict):
            return value
        return {}

    # ------------------------------------------------------------------
    # Tolerant parsers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_str(value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        text = str(value).strip()
        return text or None

    @staticmethod
    def parse_float(value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            result = float(value)
        except (ValueError, TypeError):
            return None
        return result if math.isfinite(result) else None

    @staticmethod
    def parse_int(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            result = float(value)
        except (ValueError, TypeError):
            return None
        if not math.isfinite(result):
            return None
        return int(result)

    @classmethod
    def parse_price(cls, value: Any) -> Optional[float]:
        """Price with currency symbols and thousands separators removed"""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls.parse_float(value)
        if not isinstance(value, str):
            return None
        cleaned = _PRICE_STRIP.sub("", value)
        if not any(ch.isdigit() for ch in cleaned):
            return None
        return cls.parse_float(cleaned)

    @staticmethod
    def parse_datetime(value: Any) -> Optional[datetime]:
        """Parse a timestamp into a naive UTC datetime"""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            # Epoch milliseconds are common in proof payloads
            seconds = value / 1000 if value > 1e11 else value
            try:
                parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        elif isinstance(value, str):
            text = value.replace(" at ", " ").strip()
            if not text:
                return None
            parsed = None
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                for fmt in TIMESTAMP_FORMATS:
                    try:
                        parsed = datetime.strptime(text, fmt)
                        break
                    except ValueError:
                        continue
            if parsed is None:
                return None
        else:
            return None

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    @classmethod
    def parse_duration_minutes(cls, value: Any) -> Optional[int]:
        """Duration in minutes from "1h 30m", "45m", "1:30" or "1:30:00" """
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls.parse_int(value)
        if not isinstance(value, str) or not value.strip():
            return None

        colon = _DURATION_COLON.search(value)
        if colon:
            return int(colon.group(1)) * 60 + int(colon.group(2))

        hours = _DURATION_HOURS.search(value)
        minutes = _DURATION_MINUTES.search(value)
        if not hours and not minutes:
            return cls.parse_int(value)

        total = 0
        if hours:
            total += int(hours.group(1)) * 60
        if minutes:
            total += int(minutes.group(1))
        return total

    @staticmethod
    def split_dishes(items: Optional[str]) -> List[str]:
        """Dish names from "2 x Chicken Biryani, 1 x Coke" """
        if not items:
            return []
        dishes = []
        for part in items.split(","):
            trimmed = part.strip()
            match = _QUANTITY_PREFIX.match(trimmed)
            dish = match.group(1).strip() if match else trimmed
            if dish:
                dishes.append(dish)
        return dishes

    @classmethod
    def parse_str_list(cls, values: Iterable[Any]) -> List[str]:
        result = []
        for value in values:
            text = cls.parse_str(value)
            if text:
                result.append(text)
        return result
