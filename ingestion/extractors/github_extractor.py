"""
GitHub profile extractor
"""

from typing import Any, Dict
from ingestion.extractors.base import FieldExtractor
from models.base import DataType
from schemas.normalized import GithubNormalized
import logging

logger = logging.getLogger(__name__)


class GithubExtractor(FieldExtractor):
    """Reads follower, contribution and account-age signals"""

    data_type = DataType.GITHUB_PROFILE

    def extract(self, payload: Dict[str, Any]) -> GithubNormalized:
        username = self.parse_str(self.first_present(payload, "username", "login"))

        return GithubNormalized(
            has_username=username is not None,
            followers=self.parse_int(self.first_present(payload, "followers", "followerCount")),
            contributions=self.parse_int(
                self.first_present(payload, "contributions", "contributionsLastYear", "contributionCount")
            ),
            created_at=self.parse_datetime(self.first_present(payload, "created_at", "createdAt")),
        )
