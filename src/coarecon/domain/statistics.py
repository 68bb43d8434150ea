"""Reconciliation statistics for a (shop, program) pair."""

from typing import Optional

from coarecon.config import Settings
from coarecon.database.base import Database
from coarecon.domain.entities import AccountMatching, MatchingStatus, ReconciliationStats


class ReconciliationStatisticsService:
    """Read-only aggregation over accounts and their matchings."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize statistics service.

        Args:
            db: Database instance
            settings: Runtime settings (high-confidence threshold)
        """
        self.db = db
        self.settings = settings or Settings()

    def get_statistics(self, shop_id: int, program_id: int) -> ReconciliationStats:
        """Compute match-state counts for a shop's accounts in a program.

        An account is matched when it holds a Confirmed matching, a potential
        match when it has a live candidate but no confirmation, and unmatched
        otherwise. Rejected candidates are ignored.
        """
        accounts = self.db.list_chart_of_accounts(
            program_id=program_id, shop_id=shop_id, is_master=False, active_only=True
        )
        by_account: dict[int, list[AccountMatching]] = {a.id: [] for a in accounts}
        if by_account:
            for matching in self.db.list_account_matchings(shop_account_ids=list(by_account)):
                by_account[matching.shop_account_id].append(matching)

        matched = potential = high_confidence = 0
        confidences: list[float] = []
        threshold = self.settings.high_confidence_threshold
        for matchings in by_account.values():
            considered = [m for m in matchings if m.status is not MatchingStatus.REJECTED]
            confidences.extend(m.confidence for m in considered)

            if any(m.status is MatchingStatus.CONFIRMED for m in considered):
                matched += 1
            elif any(m.status.is_live for m in considered):
                potential += 1

            if considered and max(m.confidence for m in considered) >= threshold:
                high_confidence += 1

        total = len(accounts)
        return ReconciliationStats(
            total_shop_accounts=total,
            matched_accounts=matched,
            potential_matches=potential,
            unmatched_accounts=total - matched - potential,
            high_confidence_matches=high_confidence,
            match_rate=round(matched / total, 4) if total else 0.0,
            average_confidence=round(sum(confidences) / len(confidences), 4) if confidences else 0.0,
        )
