"""
Netflix watch-history extractor
"""

from typing import Any, Dict, List, Optional
from ingestion.extractors.base import FieldExtractor
from ingestion.transformers.anonymizer import scrub_text
from models.base import DataType
from schemas.normalized import NetflixNormalized, NetflixTitle, NetflixMembership
import logging

logger = logging.getLogger(__name__)


class NetflixExtractor(FieldExtractor):
    """
    Reads watch history, ratings and membership.

    History comes from `watchHistory` or `history`; when neither is present
    the `titles`, `shows` and `movies` lists are concatenated in that order.
    """

    data_type = DataType.NETFLIX_WATCH_HISTORY

    def extract(self, payload: Dict[str, Any]) -> NetflixNormalized:
        history = self.as_list(payload.get("watchHistory")) or self.as_list(payload.get("history"))
        if not history:
            history = (
                self.as_list(payload.get("titles"))
                + self.as_list(payload.get("shows"))
                + self.as_list(payload.get("movies"))
            )

        titles = [self._parse_title(item) for item in history if isinstance(item, dict)]
        raw_ratings = self.as_list(payload.get("ratings"))

        normalized = NetflixNormalized(
            titles=titles,
            ratings=self._parse_ratings(raw_ratings),
            ratings_count=len(raw_ratings),
            membership=self._parse_membership(
                self.as_dict(payload.get("membership")) or self.as_dict(payload.get("subscription"))
            ),
        )

        logger.debug(f"Extracted {len(titles)} Netflix titles")
        return normalized

    def _parse_title(self, item: Dict[str, Any]) -> NetflixTitle:
        genres = item.get("genres")
        if isinstance(genres, str):
            genres = [genres]

        return NetflixTitle(
            title=scrub_text(self.parse_str(self.first_present(item, "title", "name"))),
            genres=[g.lower() for g in self.parse_str_list(self.as_list(genres))],
            content_type=self.parse_str(item.get("type")),
            language=self.parse_str(item.get("language")),
            maturity_rating=self.parse_str(self.first_present(item, "maturityRating", "maturity_rating")),
            watched_at=self.parse_datetime(self.first_present(item, "watchedAt", "date", "timestamp")),
            duration_minutes=self.parse_duration_minutes(item.get("duration")),
        )

    def _parse_ratings(self, raw_ratings: List[Any]) -> List[float]:
        ratings = []
        for entry in raw_ratings:
            value = entry.get("rating") if isinstance(entry, dict) else entry
            rating = self.parse_float(value)
            if rating is not None:
                ratings.append(rating)
        return ratings

    def _parse_membership(self, membership: Dict[str, Any]) -> Optional[NetflixMembership]:
        if not membership:
            return None
        return NetflixMembership(
            plan=self.parse_str(self.first_present(membership, "plan", "tier")),
            member_since=self.parse_datetime(
                self.first_present(membership, "memberSince", "createdAt", "joinDate")
            ),
        )
