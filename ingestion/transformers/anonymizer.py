"""
Anonymization primitives: PII stripping, fixed-threshold bucketing, and
deterministic k-anonymity cohort assignment.

Cohort ids are a pure function of bucketed attributes. No randomness, clock
or personal identifier ever feeds the hash.
"""

from typing import Any, Iterable, List, Optional, Tuple
from core.config import settings
from schemas.contribution import CohortAssignment
import hashlib
import logging
import re

logger = logging.getLogger(__name__)

UNCLASSIFIED = "unclassified"
REDACTED = "[REDACTED]"

# ============================================================================
# PII STRIPPING
# ============================================================================

# Applied to free text kept for analytics (restaurant, dish and title strings)
TEXT_PII_PATTERNS = [
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),          # email
    re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"),                # card number
    re.compile(r"(\+91[-.\s]?)?\b[6-9]\d{9}\b"),                              # phone
    re.compile(r"\b[\w.-]+@[a-z]+\b", re.IGNORECASE),                          # UPI handle
    re.compile(r"\b\d{6}\b"),                                                  # pincode
]

# Key words that get a value redacted wholesale; keys are split on
# underscores and camelCase before matching
SENSITIVE_TOKENS = {
    "name", "fullname", "username", "login",
    "email", "phone", "mobile", "contact",
    "address", "street", "flat", "house",
    "password", "passwd", "secret", "token",
    "cvv", "expiry",
    "lat", "lng", "latitude", "longitude", "coordinates", "location",
    "ip",
}
SENSITIVE_COMPOUNDS = ("apikey", "cardnumber", "deviceid", "ipaddress")

# Keys kept for analytics but masked to their last four characters
PARTIAL_MASK_COMPOUNDS = ("orderid", "transactionid")

_KEY_TOKENS = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


def scrub_text(text: Optional[str]) -> Optional[str]:
    """Replace embedded contact and payment identifiers in free text"""
    if not text:
        return text
    cleaned = text
    for pattern in TEXT_PII_PATTERNS:
        cleaned = pattern.sub(REDACTED, cleaned)
    return cleaned


def _compact(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


def _is_sensitive_key(key: str) -> bool:
    tokens = {t.lower() for t in _KEY_TOKENS.findall(key)}
    if tokens & SENSITIVE_TOKENS:
        return True
    compact = _compact(key)
    return any(c in compact for c in SENSITIVE_COMPOUNDS)


def _is_masked_key(key: str) -> bool:
    compact = _compact(key)
    return any(c in compact for c in PARTIAL_MASK_COMPOUNDS)


def strip_pii(obj: Any) -> Any:
    """
    Recursively sanitize an arbitrary JSON-like structure.

    - sensitive keys are replaced with "[REDACTED]"
    - order/transaction ids keep only their last four characters
    - remaining strings are scrubbed with the free-text patterns
    """
    if obj is None:
        return None
    if isinstance(obj, str):
        return scrub_text(obj)
    if isinstance(obj, list):
        return [strip_pii(item) for item in obj]
    if isinstance(obj, dict):
        cleaned = {}
        for key, value in obj.items():
            key_text = str(key)
            if _is_masked_key(key_text):
                if isinstance(value, str) and len(value) > 4:
                    cleaned[key_text] = "****" + value[-4:]
                else:
                    cleaned[key_text] = value
                continue
            if _is_sensitive_key(key_text):
                cleaned[key_text] = REDACTED
                continue
            cleaned[key_text] = strip_pii(value)
        return cleaned
    return obj


# ============================================================================
# BUCKETING
# ============================================================================

def spend_bracket(total_spend: Optional[float]) -> Optional[str]:
    if total_spend is None:
        return None
    if total_spend >= 50000:
        return "premium"
    if total_spend >= 20000:
        return "high"
    if total_spend >= 5000:
        return "medium"
    return "budget"


def lifestyle_segment(bracket: Optional[str]) -> Optional[str]:
    return {
        "premium": "affluent",
        "high": "upper_middle",
        "medium": "middle_class",
        "budget": "value_conscious",
    }.get(bracket)


def neighborhood_affluence(bracket: Optional[str]) -> Optional[str]:
    return {
        "premium": "high",
        "high": "upper_middle",
        "medium": "middle",
        "budget": "value",
    }.get(bracket)


def orders_per_month(order_count: Optional[int], day_span: int = None) -> Optional[float]:
    if order_count is None:
        return None
    span = day_span or settings.DATA_WINDOW_DAYS
    return order_count / span * 30


def frequency_tier(order_count: Optional[int], day_span: int = None) -> Optional[str]:
    per_month = orders_per_month(order_count, day_span)
    if per_month is None:
        return None
    if per_month >= 20:
        return "super_active"
    if per_month >= 10:
        return "active"
    if per_month >= 4:
        return "regular"
    return "occasional"


def developer_tier(followers: int, contributions: int, account_age_years: float) -> str:
    score = followers * 0.3 + contributions * 0.5 + account_age_years * 10
    if score >= 500:
        return "expert"
    if score >= 200:
        return "senior"
    if score >= 50:
        return "intermediate"
    return "junior"


def follower_tier(followers: Optional[int]) -> Optional[str]:
    if followers is None:
        return None
    if followers >= 10000:
        return "mega"
    if followers >= 1000:
        return "macro"
    if followers >= 100:
        return "micro"
    if followers >= 10:
        return "nano"
    return "starter"


def follower_range(followers: Optional[int]) -> Optional[str]:
    if followers is None:
        return None
    if followers >= 10000:
        return "10000+"
    if followers >= 1000:
        return "1000-9999"
    if followers >= 100:
        return "100-999"
    if followers >= 10:
        return "10-99"
    return "0-9"


def contribution_tier(contributions: Optional[int]) -> Optional[str]:
    if contributions is None:
        return None
    if contributions >= 1000:
        return "prolific"
    if contributions >= 500:
        return "active"
    if contributions >= 100:
        return "regular"
    if contributions >= 10:
        return "casual"
    return "minimal"


def activity_level(contributions: Optional[int]) -> Optional[str]:
    if contributions is None:
        return None
    if contributions >= 365:
        return "daily_committer"
    if contributions >= 100:
        return "weekly_contributor"
    if contributions >= 12:
        return "monthly_contributor"
    if contributions >= 1:
        return "occasional"
    return "inactive"


def engagement_tier(binge_score: Optional[int]) -> Optional[str]:
    if binge_score is None:
        return None
    if binge_score > 70:
        return "high_engagement"
    if binge_score > 40:
        return "moderate_engagement"
    return "casual"


def subscription_tier(plan: Optional[str]) -> str:
    plan_lower = (plan or "standard").lower()
    if "premium" in plan_lower or "ultra" in plan_lower:
        return "premium"
    if "basic" in plan_lower:
        return "basic"
    return "standard"


# ============================================================================
# GEO BUCKETING
# ============================================================================

METRO_CITIES = {
    "mumbai": "mumbai", "bombay": "mumbai", "navi mumbai": "mumbai", "thane": "mumbai",
    "kolkata": "kolkata", "calcutta": "kolkata", "howrah": "kolkata",
    "delhi": "delhi_ncr", "new delhi": "delhi_ncr", "gurgaon": "delhi_ncr",
    "gurugram": "delhi_ncr", "noida": "delhi_ncr", "ghaziabad": "delhi_ncr", "faridabad": "delhi_ncr",
    "bengaluru": "bengaluru", "bangalore": "bengaluru",
    "hyderabad": "hyderabad", "secunderabad": "hyderabad",
    "chennai": "chennai", "madras": "chennai",
    "pune": "pune",
}

RESTAURANT_CITY_PATTERNS = [
    (re.compile(r"aminia|arsalan|chowman|peter cat|flurys|6 ballygunge|monginis", re.IGNORECASE), "kolkata"),
    (re.compile(r"theobroma|cafe mondegar|leopold|britannia", re.IGNORECASE), "mumbai"),
    (re.compile(r"haldirams|barbeque nation|moti mahal|paranthe wali", re.IGNORECASE), "delhi_ncr"),
    (re.compile(r"\bmtr\b|vidyarthi bhavan|nagarjuna|empire", re.IGNORECASE), "bengaluru"),
]
MAJOR_CHAINS = re.compile(r"kfc|mcdonald|pizza hut|domino|starbucks", re.IGNORECASE)


def resolve_city(
    city: Optional[str],
    restaurants: Iterable[str] = ()
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Resolve (city_cluster, city_tier, inference_method).

    A declared city wins. Otherwise the cluster is inferred from restaurant
    names. With neither, everything is None.
    """
    if city:
        key = city.strip().lower()
        cluster = METRO_CITIES.get(key)
        if cluster:
            return cluster, "tier_1_metro", "declared_city"
        return "regional", "tier_2_3_city", "declared_city"

    names = " ".join(r for r in restaurants if r)
    if not names:
        return None, None, None

    for pattern, cluster in RESTAURANT_CITY_PATTERNS:
        if pattern.search(names):
            return cluster, "tier_1_metro", "restaurant_patterns"
    if MAJOR_CHAINS.search(names):
        return "metro_adjacent", "tier_1_2_city", "restaurant_patterns"
    return "regional", "tier_2_3_city", "restaurant_patterns"


def anonymize_location(pincode: Optional[str], city: Optional[str]) -> str:
    """Coarse geo bucket: 3-digit pincode prefix or a 4-letter city stem"""
    if pincode and len(pincode) == 6:
        return pincode[:3] + "xxx"
    if city:
        stem = re.sub(r"[^a-z]", "", city.lower())[:4]
        if stem:
            return stem + "_region"
    return "unknown_region"


# ============================================================================
# COHORT ASSIGNMENT
# ============================================================================

def cohort_id_for(attributes: Iterable[str]) -> str:
    digest = hashlib.sha256("|".join(attributes).encode("utf-8")).hexdigest()
    return f"cohort_{digest[:16]}"


def assign_cohort(
    attributes: Iterable[Optional[str]],
    k_anonymity_threshold: int = None
) -> CohortAssignment:
    """
    Hash bucketed attributes into a cohort id.

    Missing attributes become "unclassified" so every record gets a cohort.
    """
    resolved: List[str] = []
    for attribute in attributes:
        if attribute is None or attribute == "":
            resolved.append(UNCLASSIFIED)
        else:
            resolved.append(str(attribute).lower())

    if UNCLASSIFIED in resolved:
        logger.warning(f"Cohort attributes incomplete, using '{UNCLASSIFIED}': {resolved}")

    return CohortAssignment(
        cohort_id=cohort_id_for(resolved),
        k_anonymity_threshold=k_anonymity_threshold or settings.MIN_K_ANONYMITY,
        attributes=resolved,
    )
