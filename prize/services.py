from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from ledger.identity import Identity, IdentityPolicy, get_policy
from ledger.models import ClaimRecord
from ledger.services import ensure_eligible, record_claim
from promo_backend.errors import (
    AllocationError,
    NoStockAvailable,
    PersistenceFailure,
    StockLost,
    StoreUnavailable,
)

from .models import Prize, Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PrizeCandidate:
    id: object
    name: str
    available_stock: int

    def to_payload(self) -> dict[str, int | str]:
        return {
            "id": str(self.id),
            "name": self.name,
            "available_stock": self.available_stock,
        }


@dataclass(slots=True)
class AllocationResult:
    prize: Prize
    claim: ClaimRecord

    @property
    def claim_id(self):
        return self.claim.id

    def to_payload(self) -> dict[str, object]:
        return {
            "prize": self.prize.name,
            "prize_id": str(self.prize.id),
            "claim_id": str(self.claim.id),
            "photo_url": self.claim.photo_url or None,
        }


def get_active_store(store_id, campaign: Optional[str] = None) -> Store:
    stores = Store.objects.filter(pk=store_id, is_active=True)
    if campaign is not None:
        stores = stores.filter(campaign=campaign)
    store = stores.first()
    if store is None:
        raise StoreUnavailable()
    return store


def list_available_prizes(store_id) -> tuple[PrizeCandidate, ...]:
    """Snapshot the store's prizes that still have stock, ordered by id."""

    rows = (
        Prize.objects.filter(store_id=store_id, available_stock__gt=0, store__is_active=True)
        .order_by("id")
        .values_list("id", "name", "available_stock")
    )
    candidates = tuple(PrizeCandidate(*row) for row in rows)
    if not candidates:
        raise NoStockAvailable()
    return candidates


def draw_weighted(
    prizes: Sequence[PrizeCandidate],
    rng: Optional[Callable[[], float]] = None,
) -> PrizeCandidate:
    """Pick one prize with probability ``available_stock / total``.

    ``rng`` must return floats in ``[0, 1)``; it defaults to ``random.random``.
    Nothing is persisted here.
    """

    rng = rng or random.random
    total_weight = sum(max(prize.available_stock, 0) for prize in prizes)
    if total_weight <= 0:
        raise NoStockAvailable()

    remainder = rng() * total_weight
    winner = None
    for prize in prizes:
        if prize.available_stock <= 0:
            continue
        winner = prize
        remainder -= prize.available_stock
        if remainder <= 0:
            return prize
    # Float rounding can leave a tiny positive remainder after the last prize.
    return winner


def commit_allocation(
    *,
    prize_id,
    identity: Identity,
    campaign: str,
    store: Store,
    photo_url: Optional[str] = None,
    slot: Optional[int] = None,
    policy: Optional[IdentityPolicy] = None,
) -> AllocationResult:
    """Lock the prize row, take one unit and write the claim in one transaction.

    Raises ``StockLost`` when the row has no stock left under the lock. Any
    failure rolls the decrement and the claim back together.
    """

    try:
        with transaction.atomic():
            prize = (
                Prize.objects.select_for_update()
                .filter(pk=prize_id, store=store, available_stock__gt=0)
                .first()
            )
            if prize is None:
                raise StockLost()

            Prize.objects.filter(pk=prize.pk).update(
                available_stock=F("available_stock") - 1,
                updated_at=timezone.now(),
            )
            claim = record_claim(
                campaign,
                identity,
                status=ClaimRecord.Status.CLAIMED,
                store=store,
                prize=prize,
                photo_url=photo_url,
                slot=slot,
                policy=policy,
            )
    except AllocationError:
        raise
    except DatabaseError as exc:
        logger.exception("Allocation of prize %s in store %s failed", prize_id, store.pk)
        raise PersistenceFailure() from exc

    prize.refresh_from_db(fields=["available_stock"])
    logger.info(
        "Prize %s (%s) allocated to %s; %s left",
        prize.name,
        prize.pk,
        claim.dedup_key,
        prize.available_stock,
    )
    return AllocationResult(prize=prize, claim=claim)


def allocate(
    store_id,
    campaign: str,
    identity: Identity,
    *,
    photo_url: Optional[str] = None,
    rng: Optional[Callable[[], float]] = None,
) -> AllocationResult:
    """Check eligibility, draw a prize weighted by stock and commit it.

    A single attempt only: on ``StockLost`` the caller may start over.
    """

    policy = get_policy()
    eligibility = ensure_eligible(campaign, identity, policy=policy)
    store = get_active_store(store_id, campaign)
    candidates = list_available_prizes(store.pk)
    winner = draw_weighted(candidates, rng=rng)
    try:
        return commit_allocation(
            prize_id=winner.id,
            identity=identity,
            campaign=campaign,
            store=store,
            photo_url=photo_url,
            slot=eligibility.claim_count,
            policy=policy,
        )
    except StockLost:
        logger.warning("Prize %s in store %s was taken before commit", winner.id, store.pk)
        raise


def allocate_fixed(
    store_id,
    prize_id,
    campaign: str,
    identity: Identity,
    *,
    photo_url: Optional[str] = None,
) -> AllocationResult:
    """Allocate a pre-selected prize; same commit as ``allocate`` without the draw."""

    policy = get_policy()
    eligibility = ensure_eligible(campaign, identity, policy=policy)
    store = get_active_store(store_id, campaign)
    if not Prize.objects.filter(pk=prize_id, store=store, available_stock__gt=0).exists():
        raise NoStockAvailable()
    return commit_allocation(
        prize_id=prize_id,
        identity=identity,
        campaign=campaign,
        store=store,
        photo_url=photo_url,
        slot=eligibility.claim_count,
        policy=policy,
    )
