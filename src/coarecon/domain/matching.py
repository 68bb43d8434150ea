"""Matching engine: shop to master account candidates and their review workflow."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Collection, Iterable, Optional

from coarecon.config import Settings
from coarecon.database.base import Database
from coarecon.domain.chart_of_account import ChartOfAccountService
from coarecon.domain.entities import (
    AccountMatching,
    AutoMatchResult,
    ChartOfAccount,
    MatchingMethod,
    MatchingStatus,
)
from coarecon.domain.errors import (
    AlreadyConfirmedError,
    DomainError,
    InvalidConfidenceError,
    NotFoundError,
    ScopeMismatchError,
    ValidationError,
    invalid_confidence,
    matching_not_found,
)
from coarecon.utils.text import normalize_for_match, tokenize

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.7
REVIEW_ACTIONS = ("Confirm", "Reject")
# Shop accounts share this many locks, picked by ID
LOCK_STRIPES = 64


@dataclass(frozen=True)
class MatchCandidate:
    """Scored pairing of a shop account with one master account."""

    shop_account_id: int
    master_account: ChartOfAccount
    confidence: float
    details: str


@dataclass
class ReviewOutcome:
    """Result of confirming or rejecting a batch of matchings."""

    action: str
    succeeded: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        verb = "Confirmed" if self.action == "Confirm" else "Rejected"
        text = f"{verb} {len(self.succeeded)} matching(s)"
        if self.errors:
            text += f", {len(self.errors)} failed"
        return text


def score_match(shop: ChartOfAccount, master: ChartOfAccount) -> tuple[float, str]:
    """Score how likely a shop account corresponds to a master account.

    Equal normalized account numbers or equal normalized names score 1.0.
    Otherwise the score is the Jaccard overlap of the number and name tokens
    of both accounts; no shared token scores 0.0.

    Returns:
        (confidence rounded to 4 places, human-readable rationale)
    """
    shop_number = normalize_for_match(shop.account_number)
    if shop_number and shop_number == normalize_for_match(master.account_number):
        return 1.0, f"Exact account number match '{master.account_number}'"
    shop_name = normalize_for_match(shop.account_name)
    if shop_name and shop_name == normalize_for_match(master.account_name):
        return 1.0, f"Exact account name match '{master.account_name}'"

    shop_tokens = set(tokenize(shop.account_number)) | set(tokenize(shop.account_name))
    master_tokens = set(tokenize(master.account_number)) | set(tokenize(master.account_name))
    shared = shop_tokens & master_tokens
    if not shared:
        return 0.0, "No shared tokens"
    union = shop_tokens | master_tokens
    confidence = round(len(shared) / len(union), 4)
    return confidence, f"Token overlap {len(shared)}/{len(union)}: {', '.join(sorted(shared))}"


def best_candidate(
    shop: ChartOfAccount,
    masters: Iterable[ChartOfAccount],
    min_confidence: float,
    excluded_master_ids: Collection[int] = (),
) -> Optional[MatchCandidate]:
    """Pick the highest scoring master account at or above ``min_confidence``.

    Masters in ``excluded_master_ids`` are never proposed. Ties are broken by
    ascending master account number, then master ID.
    """
    candidates = []
    for master in masters:
        if master.id in excluded_master_ids:
            continue
        confidence, details = score_match(shop, master)
        if confidence <= 0.0 or confidence < min_confidence:
            continue
        candidates.append(MatchCandidate(shop.id, master, confidence, details))
    if not candidates:
        return None
    candidates.sort(
        key=lambda c: (-c.confidence, c.master_account.account_number, c.master_account.id)
    )
    return candidates[0]


def _check_confidence(value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidConfidenceError(invalid_confidence(value))


class MatchingEngine:
    """Creates match candidates and moves them through confirmation.

    Writes to one shop account's matchings happen under that account's lock
    stripe, so at most one of them is Confirmed at any time.
    """

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize matching engine.

        Args:
            db: Database instance
            settings: Runtime settings (high-confidence threshold, workers)
        """
        self.db = db
        self.settings = settings or Settings()
        self.account_service = ChartOfAccountService(db)
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _lock_for(self, shop_account_id: int) -> threading.Lock:
        return self._locks[shop_account_id % LOCK_STRIPES]

    def _confirmed_match(self, shop_account_id: int) -> Optional[AccountMatching]:
        confirmed = self.db.list_account_matchings(
            shop_account_ids=[shop_account_id], statuses=[MatchingStatus.CONFIRMED]
        )
        return confirmed[0] if confirmed else None

    def _initial_status(self, confidence: float, review_mode: bool) -> MatchingStatus:
        if not review_mode and confidence >= self.settings.high_confidence_threshold:
            return MatchingStatus.CONFIRMED
        if confidence >= 1.0:
            return MatchingStatus.MATCHED
        return MatchingStatus.PENDING_CONFIRMATION

    # Automatic matching
    def auto_match(
        self,
        shop_id: Optional[int] = None,
        program_id: Optional[int] = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        review_mode: bool = False,
    ) -> AutoMatchResult:
        """Score unconfirmed shop accounts against their program's master chart.

        Args:
            shop_id: Restrict to one shop's accounts
            program_id: Restrict to one program's accounts
            min_confidence: Candidates scoring below this are discarded
            review_mode: When True nothing is confirmed automatically

        Returns:
            Counts of created and updated candidates

        Raises:
            InvalidConfidenceError: If min_confidence is outside [0, 1]
        """
        _check_confidence(min_confidence)

        shop_accounts = self.db.list_chart_of_accounts(
            program_id=program_id, shop_id=shop_id, is_master=False, active_only=True
        )
        confirmed_ids = {
            m.shop_account_id
            for m in self.db.list_account_matchings(
                shop_account_ids=[a.id for a in shop_accounts],
                statuses=[MatchingStatus.CONFIRMED],
            )
        }
        pending = [a for a in shop_accounts if a.id not in confirmed_ids]

        # Pairings a person rejected or proposed are not offered again
        excluded: dict[int, set[int]] = {}
        for matching in self.db.list_account_matchings(shop_account_ids=[a.id for a in pending]):
            if matching.status is MatchingStatus.REJECTED or matching.method is MatchingMethod.MANUAL:
                excluded.setdefault(matching.shop_account_id, set()).add(matching.master_account_id)

        masters_by_program: dict[int, list[ChartOfAccount]] = {}
        for account in pending:
            if account.program_id not in masters_by_program:
                masters_by_program[account.program_id] = self.db.list_chart_of_accounts(
                    program_id=account.program_id, is_master=True, active_only=True
                )

        # Scoring touches no shared state, so accounts are scored in parallel
        with ThreadPoolExecutor(max_workers=self.settings.match_workers) as pool:
            candidates = list(
                pool.map(
                    lambda account: best_candidate(
                        account,
                        masters_by_program[account.program_id],
                        min_confidence,
                        excluded.get(account.id, ()),
                    ),
                    pending,
                )
            )

        created = updated = confirmed = high_confidence = 0
        confidences: list[float] = []
        for candidate in candidates:
            if candidate is None:
                continue
            with self._lock_for(candidate.shop_account_id):
                outcome, status = self._persist_candidate(candidate, review_mode)
            if outcome is None:
                continue
            if outcome == "created":
                created += 1
            else:
                updated += 1
            if status is MatchingStatus.CONFIRMED:
                confirmed += 1
            if candidate.confidence >= self.settings.high_confidence_threshold:
                high_confidence += 1
            confidences.append(candidate.confidence)

        average = round(sum(confidences) / len(confidences), 4) if confidences else 0.0
        result = AutoMatchResult(
            total_processed=len(pending),
            created=created,
            updated=updated,
            confirmed=confirmed,
            high_confidence_matches=high_confidence,
            average_confidence=average,
            message=(
                f"Processed {len(pending)} account(s): {created} created, "
                f"{updated} updated, {confirmed} confirmed"
            ),
        )
        logger.info(
            "Auto-match shop=%s program=%s min=%.2f review=%s: %s",
            shop_id,
            program_id,
            min_confidence,
            review_mode,
            result.message,
        )
        return result

    def _persist_candidate(
        self, candidate: MatchCandidate, review_mode: bool
    ) -> tuple[Optional[str], Optional[MatchingStatus]]:
        """Create or refresh the candidate. Caller holds the account lock.

        Returns:
            ("created" | "updated" | None, resulting status). None means the
            candidate was left alone: the account got confirmed meanwhile,
            or a person already rejected or proposed this exact pairing.
        """
        if self._confirmed_match(candidate.shop_account_id) is not None:
            return None, None

        status = self._initial_status(candidate.confidence, review_mode)
        existing = [
            m
            for m in self.db.list_account_matchings(shop_account_ids=[candidate.shop_account_id])
            if m.master_account_id == candidate.master_account.id
        ]
        for matching in existing:
            if matching.status is MatchingStatus.REJECTED or matching.method is MatchingMethod.MANUAL:
                return None, None

        reviewed_at = datetime.now(UTC) if status is MatchingStatus.CONFIRMED else None
        reviewed_by = "auto-match" if status is MatchingStatus.CONFIRMED else None
        if existing:
            self.db.update_account_matching(
                existing[0].id,
                confidence=candidate.confidence,
                details=candidate.details,
                status=status.value,
                reviewed_by=reviewed_by,
                reviewed_at=reviewed_at,
            )
            return "updated", status

        self.db.create_account_matching(
            shop_account_id=candidate.shop_account_id,
            master_account_id=candidate.master_account.id,
            confidence=candidate.confidence,
            method=MatchingMethod.AUTO.value,
            status=status.value,
            details=candidate.details,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
        )
        return "created", status

    # Manual matching
    def create_manual_match(
        self,
        shop_account_id: int,
        master_account_id: int,
        confirmed: bool = False,
        details: Optional[str] = None,
        reviewed_by: Optional[str] = None,
    ) -> AccountMatching:
        """Pair a shop account with a master account by hand.

        Raises:
            NotFoundError: If either account does not exist
            ScopeMismatchError: If the accounts are not a shop/master pair of one program
            AlreadyConfirmedError: If the shop account already has a confirmed match
        """
        shop = self.account_service.require_account(shop_account_id)
        master = self.account_service.require_account(master_account_id)
        if shop.is_master_account:
            raise ScopeMismatchError(f"Account {shop_account_id} is a master account, not a shop account")
        if not master.is_master_account:
            raise ScopeMismatchError(f"Account {master_account_id} is not a master account")
        if shop.program_id != master.program_id:
            raise ScopeMismatchError(
                f"Shop account {shop_account_id} belongs to program {shop.program_id}, "
                f"master account {master_account_id} to program {master.program_id}"
            )

        status = MatchingStatus.CONFIRMED if confirmed else MatchingStatus.PENDING_CONFIRMATION
        with self._lock_for(shop_account_id):
            existing = self._confirmed_match(shop_account_id)
            if existing is not None:
                raise AlreadyConfirmedError(shop_account_id, existing.id)
            matching_id = self.db.create_account_matching(
                shop_account_id=shop_account_id,
                master_account_id=master_account_id,
                confidence=1.0,
                method=MatchingMethod.MANUAL.value,
                status=status.value,
                details=details or "Manual match",
                reviewed_by=reviewed_by if confirmed else None,
                reviewed_at=datetime.now(UTC) if confirmed else None,
            )
        logger.info(
            "Manual match %d: shop account %d -> master account %d (%s)",
            matching_id,
            shop_account_id,
            master_account_id,
            status.value,
        )
        return self.get_match(matching_id)

    # Review workflow
    def get_match(self, matching_id: int) -> AccountMatching:
        """Get a matching by ID or raise NotFoundError."""
        matching = self.db.get_account_matching(matching_id)
        if matching is None:
            raise NotFoundError(matching_not_found(matching_id))
        return matching

    def confirm_match(self, matching_id: int, reviewed_by: Optional[str] = None) -> AccountMatching:
        """Confirm one candidate.

        Sibling candidates of the same shop account are left as they are;
        only the confirmed one counts as the account's match.

        Raises:
            NotFoundError: If the matching does not exist
            AlreadyConfirmedError: If a different matching of the account is confirmed
        """
        matching = self.get_match(matching_id)
        with self._lock_for(matching.shop_account_id):
            existing = self._confirmed_match(matching.shop_account_id)
            if existing is not None and existing.id != matching_id:
                raise AlreadyConfirmedError(matching.shop_account_id, existing.id)
            if existing is None:
                self.db.update_account_matching(
                    matching_id,
                    status=MatchingStatus.CONFIRMED.value,
                    reviewed_by=reviewed_by,
                    reviewed_at=datetime.now(UTC),
                )
        return self.get_match(matching_id)

    def reject_match(self, matching_id: int, reviewed_by: Optional[str] = None) -> AccountMatching:
        """Reject one candidate; a confirmed match may be rejected too.

        Raises:
            NotFoundError: If the matching does not exist
        """
        matching = self.get_match(matching_id)
        if matching.status is not MatchingStatus.REJECTED:
            with self._lock_for(matching.shop_account_id):
                self.db.update_account_matching(
                    matching_id,
                    status=MatchingStatus.REJECTED.value,
                    reviewed_by=reviewed_by,
                    reviewed_at=datetime.now(UTC),
                )
        return self.get_match(matching_id)

    def review_matches(
        self, matching_ids: Iterable[int], action: str, reviewed_by: Optional[str] = None
    ) -> ReviewOutcome:
        """Confirm or reject several matchings; each ID succeeds or fails on its own.

        Raises:
            ValidationError: If action is not Confirm or Reject, or no IDs are given
        """
        if action not in REVIEW_ACTIONS:
            raise ValidationError(f"Invalid action '{action}'. Must be one of: {', '.join(REVIEW_ACTIONS)}")
        matching_ids = list(matching_ids)
        if not matching_ids:
            raise ValidationError("No matching IDs given")

        review = self.confirm_match if action == "Confirm" else self.reject_match
        outcome = ReviewOutcome(action=action)
        for matching_id in matching_ids:
            try:
                review(matching_id, reviewed_by=reviewed_by)
            except DomainError as e:
                outcome.errors.append(f"Matching {matching_id}: {e}")
                continue
            outcome.succeeded.append(matching_id)
        return outcome

    def reset_to_pending(
        self,
        matching_ids: Optional[Iterable[int]] = None,
        chart_of_account_ids: Optional[Iterable[int]] = None,
    ) -> list[int]:
        """Undo confirm/reject decisions, moving matchings back to PendingConfirmation.

        Args:
            matching_ids: Matchings to reset
            chart_of_account_ids: Shop accounts whose confirmed or rejected
                matchings are all reset

        Returns:
            IDs of the matchings now pending

        Raises:
            ValidationError: If neither list has IDs
            NotFoundError: If a matching or account is unknown, or an account
                has no matching at all
        """
        matching_ids = list(matching_ids or [])
        chart_of_account_ids = list(chart_of_account_ids or [])
        if not matching_ids and not chart_of_account_ids:
            raise ValidationError("Provide matching IDs or chart of account IDs to reset")

        # Resolve everything first so an unknown ID changes nothing
        targets: dict[int, AccountMatching] = {}
        for matching_id in matching_ids:
            targets[matching_id] = self.get_match(matching_id)
        for account_id in chart_of_account_ids:
            self.account_service.require_account(account_id)
            matchings = self.db.list_account_matchings(shop_account_ids=[account_id])
            if not matchings:
                raise NotFoundError(f"Account {account_id} has no matching to reset")
            for matching in matchings:
                if matching.status in (MatchingStatus.CONFIRMED, MatchingStatus.REJECTED):
                    targets[matching.id] = matching

        for matching in targets.values():
            if matching.status is MatchingStatus.PENDING_CONFIRMATION:
                continue
            with self._lock_for(matching.shop_account_id):
                self.db.update_account_matching(
                    matching.id,
                    status=MatchingStatus.PENDING_CONFIRMATION.value,
                    reviewed_by=None,
                    reviewed_at=None,
                )
        logger.info("Reset %d matching(s) to pending", len(targets))
        return sorted(targets)

    # Queries
    def get_pending_matches(
        self, shop_id: Optional[int] = None, program_id: Optional[int] = None
    ) -> list[AccountMatching]:
        """List candidates awaiting review (Matched or PendingConfirmation).

        Ordered by shop account number, then by descending confidence.
        """
        matchings = self.db.list_account_matchings(
            statuses=[MatchingStatus.MATCHED, MatchingStatus.PENDING_CONFIRMATION],
            shop_id=shop_id,
            program_id=program_id,
        )
        numbers = {
            a.id: a.account_number
            for a in self.db.list_chart_of_accounts(
                program_id=program_id, shop_id=shop_id, is_master=False
            )
        }
        return sorted(
            matchings,
            key=lambda m: (numbers.get(m.shop_account_id, ""), -m.confidence, m.id),
        )

    def get_account_matchings(self, shop_account_id: int) -> list[AccountMatching]:
        """List every matching of a shop account, oldest first."""
        self.account_service.require_account(shop_account_id)
        return self.db.list_account_matchings(shop_account_ids=[shop_account_id])

    def get_confirmed_match(self, shop_account_id: int) -> Optional[AccountMatching]:
        """Return the account's authoritative (Confirmed) match, if any."""
        return self._confirmed_match(shop_account_id)
