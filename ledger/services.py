from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction

from promo_backend.errors import DuplicateIdentity, PersistenceFailure, StoreUnavailable
from prize.models import Prize, Store

from .identity import Identity, IdentityPolicy, get_policy
from .models import ClaimRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClaimSummary:
    name: Optional[str]
    prize_name: Optional[str]
    claim_count: int
    claimed_at: Optional[datetime]

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "prize": self.prize_name,
            "claim_count": self.claim_count,
            "claimed_at": self.claimed_at.isoformat() if self.claimed_at else None,
        }


@dataclass(slots=True)
class EligibilityResult:
    eligible: bool
    claim_count: int
    dedup_key: str
    existing: Optional[ClaimSummary] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible,
            "claim_count": self.claim_count,
            "existing": self.existing.to_payload() if self.existing else None,
        }


def max_claims_per_identity() -> int:
    return int(getattr(settings, "PRIZE_MAX_CLAIMS_PER_IDENTITY", 1))


def _matching_claims(campaign: str, identity: Identity, policy: IdentityPolicy):
    return ClaimRecord.objects.filter(policy.match(identity), campaign=campaign)


def check_eligibility(
    campaign: str,
    identity: Identity,
    *,
    policy: Optional[IdentityPolicy] = None,
) -> EligibilityResult:
    """Decide whether ``identity`` may still claim in ``campaign``.

    Only the highest-priority key present on the identity is matched. Raises
    ``InvalidIdentity`` when the identity carries no key at all.
    """

    policy = policy or get_policy()
    dedup_key = policy.dedup_key(identity)
    matches = _matching_claims(campaign, identity, policy)
    claim_count = matches.count()
    if claim_count < max_claims_per_identity():
        return EligibilityResult(eligible=True, claim_count=claim_count, dedup_key=dedup_key)

    latest = matches.select_related("prize").order_by("-created_at").first()
    summary = ClaimSummary(
        name=latest.display_name if latest else None,
        prize_name=latest.prize.name if latest and latest.prize else None,
        claim_count=claim_count,
        claimed_at=latest.created_at if latest else None,
    )
    return EligibilityResult(
        eligible=False,
        claim_count=claim_count,
        dedup_key=dedup_key,
        existing=summary,
    )


def ensure_eligible(
    campaign: str,
    identity: Identity,
    *,
    policy: Optional[IdentityPolicy] = None,
) -> EligibilityResult:
    result = check_eligibility(campaign, identity, policy=policy)
    if not result.eligible:
        raise DuplicateIdentity(existing=result.existing)
    return result


def record_claim(
    campaign: str,
    identity: Identity,
    *,
    status: str,
    store: Optional[Store] = None,
    prize: Optional[Prize] = None,
    photo_url: Optional[str] = None,
    slot: Optional[int] = None,
    policy: Optional[IdentityPolicy] = None,
) -> ClaimRecord:
    """Insert a ledger row for ``identity``.

    ``slot`` is the number of earlier claims under the identity's key; two
    concurrent inserts with the same slot collide on the unique constraint and
    the loser gets ``DuplicateIdentity``.
    """

    policy = policy or get_policy()
    dedup_key = policy.dedup_key(identity)
    if slot is None:
        slot = _matching_claims(campaign, identity, policy).count()

    try:
        with transaction.atomic():
            return ClaimRecord.objects.create(
                campaign=campaign,
                store=store,
                prize=prize,
                status=status,
                photo_url=photo_url or "",
                dedup_key=dedup_key,
                dedup_slot=slot,
                **identity.as_fields(),
            )
    except IntegrityError as exc:
        taken = ClaimRecord.objects.filter(
            campaign=campaign, dedup_key=dedup_key, dedup_slot=slot
        ).exists()
        if taken:
            logger.warning(
                "Concurrent duplicate claim rejected for %s in campaign %s",
                dedup_key,
                campaign,
            )
            raise DuplicateIdentity() from exc
        raise PersistenceFailure(f"Failed to record claim: {exc}") from exc


def register_participant(
    campaign: str,
    identity: Identity,
    *,
    store_id=None,
    photo_url: Optional[str] = None,
) -> ClaimRecord:
    """Record a participation without a prize (status ``REGISTERED``)."""

    policy = get_policy()
    eligibility = ensure_eligible(campaign, identity, policy=policy)

    store = None
    if store_id is not None:
        store = Store.objects.filter(pk=store_id, campaign=campaign, is_active=True).first()
        if store is None:
            raise StoreUnavailable()

    try:
        claim = record_claim(
            campaign,
            identity,
            status=ClaimRecord.Status.REGISTERED,
            store=store,
            photo_url=photo_url,
            slot=eligibility.claim_count,
            policy=policy,
        )
    except DatabaseError as exc:
        logger.exception("Failed to register participant %s in campaign %s", eligibility.dedup_key, campaign)
        raise PersistenceFailure() from exc

    logger.info("Registered %s in campaign %s", eligibility.dedup_key, campaign)
    return claim
