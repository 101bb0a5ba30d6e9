"""
Zomato order-history extractor
"""

from typing import Any, Dict, List, Optional
from ingestion.extractors.base import FieldExtractor
from ingestion.transformers.anonymizer import scrub_text
from models.base import DataType
from schemas.normalized import ZomatoNormalized, ZomatoOrder
import logging
import re

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


class ZomatoExtractor(FieldExtractor):
    """
    Reads orders plus any totals the proof declared.

    Orders may live under `orders`, `orderHistory` or `data.orders`. Items
    may be a "2 x Dish, 1 x Dish" string or a list of item objects.
    """

    data_type = DataType.ZOMATO_ORDER_HISTORY

    def extract(self, payload: Dict[str, Any]) -> ZomatoNormalized:
        raw_orders = (
            self.as_list(payload.get("orders"))
            or self.as_list(payload.get("orderHistory"))
            or self.as_list(self.as_dict(payload.get("data")).get("orders"))
        )

        orders = [self._parse_order(o) for o in raw_orders if isinstance(o, dict)]
        skipped = len(raw_orders) - len(orders)
        if skipped:
            logger.warning(f"Skipped {skipped} order entries that were not objects")

        normalized = ZomatoNormalized(
            orders=orders,
            declared_total_orders=self.parse_int(
                self.first_present(payload, "total_orders", "totalOrders", "orderCount", "order_count")
            ),
            declared_total_gmv=self.parse_price(
                self.first_present(payload, "total_gmv", "totalGmv", "totalGMV", "totalSpend", "total_spend")
            ),
            city=self.parse_str(payload.get("city")),
            pincode=self._parse_pincode(payload.get("pincode")),
        )

        logger.debug(f"Extracted {len(orders)} Zomato orders")
        return normalized

    def _parse_order(self, order: Dict[str, Any]) -> ZomatoOrder:
        items = self._items_text(self.first_present(order, "items", "dishes", "orderItems"))
        restaurant = self.parse_str(
            self.first_present(order, "restaurant", "restaurantName", "restaurant_name")
        )

        return ZomatoOrder(
            restaurant=scrub_text(restaurant),
            items=scrub_text(items),
            dishes=[scrub_text(d) for d in self.split_dishes(items)],
            price=self.parse_price(
                self.first_present(order, "price", "totalCost", "total_cost", "order_total", "amount", "total")
            ),
            ordered_at=self.parse_datetime(
                self.first_present(order, "timestamp", "orderedAt", "ordered_at", "date", "orderDate")
            ),
        )

    def _items_text(self, value: Any) -> Optional[str]:
        if isinstance(value, list):
            parts: List[str] = []
            for item in value:
                if isinstance(item, dict):
                    name = self.parse_str(item.get("name") or item.get("dish"))
                    if not name:
                        continue
                    quantity = self.parse_int(item.get("quantity")) or 1
                    parts.append(f"{quantity} x {name}")
                else:
                    name = self.parse_str(item)
                    if name:
                        parts.append(name)
            return ", ".join(parts) or None
        return self.parse_str(value)

    def _parse_pincode(self, value: Any) -> Optional[str]:
        text = self.parse_str(value)
        if not text:
            return None
        digits = _NON_DIGITS.sub("", text)
        return digits if len(digits) == 6 else None
