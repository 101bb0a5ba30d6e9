"""
Netflix streaming-behaviour builder
"""

from collections import Counter
from typing import Any, Dict, Optional, Tuple
from datetime import datetime
from ingestion.transformers.builder import SellableRecordBuilder, pct, round1
from ingestion.transformers import anonymizer
from schemas.contribution import BuiltRecord, CohortAssignment
from schemas.normalized import NetflixNormalized, NetflixTitle
import re

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

GENRE_CATEGORIES = {
    "action": {"l1": "Entertainment", "l2": "Action & Adventure", "iab": "IAB1-1"},
    "adventure": {"l1": "Entertainment", "l2": "Action & Adventure", "iab": "IAB1-1"},
    "animation": {"l1": "Entertainment", "l2": "Animation", "iab": "IAB1-2"},
    "anime": {"l1": "Entertainment", "l2": "Anime", "iab": "IAB1-2"},
    "comedy": {"l1": "Entertainment", "l2": "Comedy", "iab": "IAB1-3"},
    "crime": {"l1": "Entertainment", "l2": "Crime & Mystery", "iab": "IAB1-4"},
    "documentary": {"l1": "Entertainment", "l2": "Documentary", "iab": "IAB1-5"},
    "drama": {"l1": "Entertainment", "l2": "Drama", "iab": "IAB1-6"},
    "family": {"l1": "Entertainment", "l2": "Family", "iab": "IAB1-7"},
    "fantasy": {"l1": "Entertainment", "l2": "Sci-Fi & Fantasy", "iab": "IAB1-8"},
    "horror": {"l1": "Entertainment", "l2": "Horror", "iab": "IAB1-9"},
    "mystery": {"l1": "Entertainment", "l2": "Crime & Mystery", "iab": "IAB1-4"},
    "romance": {"l1": "Entertainment", "l2": "Romance", "iab": "IAB1-10"},
    "sci-fi": {"l1": "Entertainment", "l2": "Sci-Fi & Fantasy", "iab": "IAB1-8"},
    "thriller": {"l1": "Entertainment", "l2": "Thriller", "iab": "IAB1-11"},
    "reality": {"l1": "Entertainment", "l2": "Reality TV", "iab": "IAB1-12"},
    "talk show": {"l1": "Entertainment", "l2": "Talk Shows", "iab": "IAB1-13"},
    "kids": {"l1": "Entertainment", "l2": "Kids & Family", "iab": "IAB1-7"},
    "sports": {"l1": "Sports", "l2": "Sports Entertainment", "iab": "IAB17-1"},
    "music": {"l1": "Entertainment", "l2": "Music & Concerts", "iab": "IAB1-14"},
    "stand-up": {"l1": "Entertainment", "l2": "Stand-up Comedy", "iab": "IAB1-3"},
    "true crime": {"l1": "Entertainment", "l2": "True Crime", "iab": "IAB1-4"},
    "k-drama": {"l1": "Entertainment", "l2": "Korean Drama", "iab": "IAB1-6"},
    "bollywood": {"l1": "Entertainment", "l2": "Indian Cinema", "iab": "IAB1-6"},
}
DEFAULT_GENRE_CATEGORY = {"l1": "Entertainment", "l2": "General", "iab": "IAB1"}

GENRE_PATTERNS = [
    (re.compile(r"horror|haunted|scary|terror|nightmare", re.IGNORECASE), "horror"),
    (re.compile(r"comedy|funny|laugh|hilarious", re.IGNORECASE), "comedy"),
    (re.compile(r"action|fight|battle|war|explosion", re.IGNORECASE), "action"),
    (re.compile(r"romance|love|heart|wedding", re.IGNORECASE), "romance"),
    (re.compile(r"thriller|suspense|mystery|detective", re.IGNORECASE), "thriller"),
    (re.compile(r"documentary|true story|real life", re.IGNORECASE), "documentary"),
    (re.compile(r"anime|manga", re.IGNORECASE), "anime"),
    (re.compile(r"kids|children|family|animated", re.IGNORECASE), "kids"),
    (re.compile(r"crime|murder|heist|gangster", re.IGNORECASE), "crime"),
    (re.compile(r"sci-fi|science fiction|space|alien|future", re.IGNORECASE), "sci-fi"),
    (re.compile(r"fantasy|magic|dragon|wizard", re.IGNORECASE), "fantasy"),
    (re.compile(r"drama", re.IGNORECASE), "drama"),
]

CONTENT_TYPE_PATTERNS = [
    (re.compile(r"series|season|episode|ep\.", re.IGNORECASE), "series"),
    (re.compile(r"movie|film", re.IGNORECASE), "movie"),
    (re.compile(r"documentary|docu-series", re.IGNORECASE), "documentary"),
    (re.compile(r"stand-up|comedy special", re.IGNORECASE), "standup"),
    (re.compile(r"limited series|miniseries", re.IGNORECASE), "limited_series"),
]

QUALITY_WEIGHTS = {
    "timestamp_coverage": 0.25,
    "genre_coverage": 0.20,
    "duration_coverage": 0.15,
    "ratings_coverage": 0.15,
    "membership_data": 0.10,
    "data_volume": 0.15,
}


def infer_genre(title: NetflixTitle) -> str:
    if title.genres and title.genres[0] in GENRE_CATEGORIES:
        return title.genres[0]
    if title.title:
        for pattern, genre in GENRE_PATTERNS:
            if pattern.search(title.title):
                return genre
    return "drama"


def infer_content_type(title: NetflixTitle) -> str:
    if title.content_type:
        return title.content_type.lower()
    if title.title:
        for pattern, content_type in CONTENT_TYPE_PATTERNS:
            if pattern.search(title.title):
                return content_type
    return "movie"


def time_bucket(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    if 21 <= hour < 24:
        return "night"
    return "late_night"


def maturity_bucket(rating: str) -> Optional[str]:
    rating = rating.lower()
    if "kids" in rating or "all" in rating or rating in ("g", "tv-g", "tv-y", "u"):
        return "kids"
    if "teen" in rating or "pg-13" in rating or "13+" in rating:
        return "teen"
    if "mature" in rating or "18+" in rating or "nc-17" in rating or rating == "a":
        return "mature"
    if "adult" in rating or "16+" in rating or rating in ("r", "tv-ma"):
        return "adult"
    return None


class NetflixBuilder(SellableRecordBuilder):
    dataset_id = "myrad_netflix_v1"
    record_type = "streaming_behavior"
    schema_standard = "myrad_streaming_intelligence_v1"

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def viewing_behavior(self, normalized: NetflixNormalized) -> Dict[str, Any]:
        titles = normalized.titles
        day_counts = Counter({day: 0 for day in DAY_NAMES})
        buckets = Counter({b: 0 for b in ("morning", "afternoon", "evening", "night", "late_night")})
        months: Dict[str, int] = {}
        weekday = weekend = 0
        binge_sessions = 0
        streak = 0
        last_date = None

        for title in titles:
            watched = title.watched_at
            if watched is None:
                continue
            day_counts[DAY_NAMES[watched.weekday()]] += 1
            if watched.weekday() >= 5:
                weekend += 1
            else:
                weekday += 1
            buckets[time_bucket(watched.hour)] += 1
            month_key = watched.strftime("%Y-%m")
            months[month_key] = months.get(month_key, 0) + 1

            # 3+ titles on the same date, in proof order, is one binge session
            if last_date == watched.date():
                streak += 1
                if streak == 3:
                    binge_sessions += 1
            else:
                streak = 1
                last_date = watched.date()

        dated = weekday + weekend
        total_minutes = sum(t.duration_minutes or 0 for t in titles)
        binge_score = None
        if titles:
            binge_score = min(100, int(round(binge_sessions / max(1.0, len(titles) / 10) * 100)))

        return {
            "day_of_week_distribution": {day: day_counts[day] for day in DAY_NAMES},
            "time_of_day_curve": dict(buckets),
            "peak_viewing_day": day_counts.most_common(1)[0][0] if dated else None,
            "peak_viewing_time": buckets.most_common(1)[0][0] if dated else None,
            "weekday_vs_weekend_ratio": round(weekend / weekday, 2) if weekday else 0,
            "total_watch_hours": round1(total_minutes / 60),
            "binge_session_count": binge_sessions,
            "binge_score": binge_score,
            "is_binge_watcher": binge_score > 50 if binge_score is not None else None,
            "late_night_viewer": buckets["late_night"] > len(titles) * 0.1 if titles else None,
            "monthly_viewing_pattern": dict(sorted(months.items())),
        }

    def content_preferences(self, normalized: NetflixNormalized) -> Dict[str, Any]:
        titles = normalized.titles
        total = len(titles)
        genres = Counter(infer_genre(t) for t in titles)
        content_types = Counter(infer_content_type(t) for t in titles)
        languages = Counter(t.language for t in titles if t.language)
        maturity = Counter({"kids": 0, "teen": 0, "adult": 0, "mature": 0})
        for title in titles:
            if title.maturity_rating:
                bucket = maturity_bucket(title.maturity_rating)
                if bucket:
                    maturity[bucket] += 1

        average_rating = None
        if normalized.ratings:
            average_rating = round1(sum(normalized.ratings) / len(normalized.ratings))

        top_genres = [
            {
                "genre": genre,
                "watch_count": count,
                "share_pct": pct(count, total),
                "rank": rank,
                "category": GENRE_CATEGORIES.get(genre, DEFAULT_GENRE_CATEGORY),
            }
            for rank, (genre, count) in enumerate(genres.most_common(5), start=1)
        ]

        return {
            "top_genres": top_genres,
            "genre_diversity_score": len(genres) * 10,
            "content_type_preference": {
                "series_pct": pct(content_types["series"], total),
                "movie_pct": pct(content_types["movie"], total),
                "documentary_pct": pct(content_types["documentary"], total),
                "dominant_type": content_types.most_common(1)[0][0] if content_types else "mixed",
            },
            "language_preferences": [
                {"language": language, "count": count}
                for language, count in languages.most_common(3)
            ],
            "maturity_profile": {
                "kids_content_pct": pct(maturity["kids"], total),
                "mature_content_pct": pct(maturity["adult"] + maturity["mature"], total),
                "primary_audience": (
                    maturity.most_common(1)[0][0] if sum(maturity.values()) else "mixed"
                ),
            },
            "ratings_behavior": {
                "average_rating": average_rating,
                "ratings_count": normalized.ratings_count,
                "is_active_rater": normalized.ratings_count > 10,
            },
        }

    def subscription(self, normalized: NetflixNormalized, generated_at: datetime) -> Dict[str, Any]:
        membership = normalized.membership
        if membership is None:
            return {
                "tier": None,
                "account_age_years": None,
                "member_since_year": None,
                "loyalty_tier": None,
                "is_premium": None,
                "churn_risk": None,
            }

        tier = anonymizer.subscription_tier(membership.plan)
        age = self.years_between(membership.member_since, generated_at)
        if age is not None:
            age = max(0.0, age)

        loyalty = churn = None
        if age is not None:
            if age >= 5:
                loyalty = "veteran"
            elif age >= 3:
                loyalty = "established"
            elif age >= 1:
                loyalty = "regular"
            else:
                loyalty = "new"
            churn = "high" if age < 0.5 else "medium" if age < 1 else "low"

        return {
            "tier": tier,
            "account_age_years": age,
            "member_since_year": membership.member_since.year if membership.member_since else None,
            "loyalty_tier": loyalty,
            "is_premium": tier == "premium",
            "churn_risk": churn,
        }

    # ------------------------------------------------------------------
    # Builder interface
    # ------------------------------------------------------------------

    def cohort_attributes(self, normalized: NetflixNormalized) -> Tuple[Optional[str], ...]:
        viewing = self.viewing_behavior(normalized)
        preferences = self.content_preferences(normalized)
        top_genre = preferences["top_genres"][0]["genre"] if preferences["top_genres"] else None
        plan_tier = (
            anonymizer.subscription_tier(normalized.membership.plan) if normalized.membership else None
        )
        return (
            "netflix",
            anonymizer.engagement_tier(viewing["binge_score"]),
            plan_tier,
            top_genre,
        )

    def build(
        self,
        normalized: NetflixNormalized,
        cohort: CohortAssignment,
        generated_at: datetime
    ) -> BuiltRecord:
        titles = normalized.titles
        total = len(titles)
        viewing = self.viewing_behavior(normalized)
        preferences = self.content_preferences(normalized)
        subscription = self.subscription(normalized, generated_at)
        engagement = anonymizer.engagement_tier(viewing["binge_score"])
        top_genre = preferences["top_genres"][0]["genre"] if preferences["top_genres"] else None

        quality = self.quality_score(
            {
                "timestamp_coverage": sum(1 for t in titles if t.watched_at) / total if total else 0.0,
                "genre_coverage": sum(1 for t in titles if t.genres) / total if total else 0.0,
                "duration_coverage": sum(1 for t in titles if t.duration_minutes) / total if total else 0.0,
                "ratings_coverage": normalized.ratings_count / total if total else 0.0,
                "membership_data": 1.0 if normalized.membership else 0.0,
                "data_volume": viewing["total_watch_hours"] / 100,
            },
            QUALITY_WEIGHTS,
            has_data=total > 0,
        )

        dmp_attributes: Dict[str, Any] = {
            "interest_streaming": True,
            "interest_entertainment": True,
            "engagement_level": engagement,
            "subscription_tier": subscription["tier"],
            "is_binge_watcher": viewing["is_binge_watcher"],
            "late_night_viewer": viewing["late_night_viewer"],
            "content_preference": preferences["content_type_preference"]["dominant_type"],
        }
        if top_genre:
            dmp_attributes[f"interest_{top_genre}"] = True

        sellable = {
            **self.envelope(generated_at),
            "viewing_summary": {
                "total_titles_watched": total,
                "total_watch_hours": viewing["total_watch_hours"],
                "data_window_days": self.data_window_days,
                "engagement_tier": engagement,
            },
            "viewing_behavior": {
                key: viewing[key] for key in (
                    "day_of_week_distribution", "time_of_day_curve", "peak_viewing_day",
                    "peak_viewing_time", "weekday_vs_weekend_ratio", "binge_score",
                    "binge_session_count", "is_binge_watcher", "late_night_viewer",
                )
            },
            "content_preferences": preferences,
            "subscription_data": subscription,
            "audience_segment": {
                "segment_id": cohort.cohort_id,
                "dmp_attributes": dmp_attributes,
            },
            "metadata": self.metadata(
                cohort,
                quality,
                [
                    "genre_inference",
                    "viewing_behavior_analytics",
                    "content_preference_scoring",
                    "subscription_intelligence",
                    "audience_segmentation",
                ],
            ),
        }

        insights: Dict[str, Any] = {
            "total_titles": total,
            "total_watch_hours": viewing["total_watch_hours"],
            "binge_score": viewing["binge_score"],
            "top_genres": [g["genre"] for g in preferences["top_genres"][:3]],
            "monthly_viewing_pattern": viewing["monthly_viewing_pattern"],
        }

        return BuiltRecord(sellable_data=sellable, behavioral_insights=insights)
