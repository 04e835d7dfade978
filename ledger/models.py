from __future__ import annotations

import uuid

from django.db import models


class ImmutableClaimError(Exception):
    """Raised when code tries to modify or delete a written claim record."""


class ClaimRecord(models.Model):
    """Permanent evidence that an identity took part in a campaign.

    ``dedup_key`` holds the identity's highest-priority key (``field:value``)
    and ``dedup_slot`` the number of earlier claims under it, so the unique
    constraint caps concurrent claims by the same participant in the database.
    """

    class Status(models.TextChoices):
        CLAIMED = "CLAIMED", "Claimed"
        REGISTERED = "REGISTERED", "Registered"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.CharField(max_length=100, db_index=True)
    store = models.ForeignKey(
        "prize.Store",
        on_delete=models.PROTECT,
        related_name="claims",
        null=True,
        blank=True,
    )
    prize = models.ForeignKey(
        "prize.Prize",
        on_delete=models.PROTECT,
        related_name="claims",
        null=True,
        blank=True,
    )
    national_id = models.CharField(max_length=32, null=True, blank=True)
    phone_number = models.CharField(max_length=32, null=True, blank=True)
    voucher_number = models.CharField(max_length=64, null=True, blank=True)
    display_name = models.CharField(max_length=255, null=True, blank=True)
    photo_url = models.CharField(max_length=512, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices)
    dedup_key = models.CharField(max_length=191)
    dedup_slot = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["campaign", "dedup_key", "dedup_slot"],
                name="ledger_unique_identity_slot",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(national_id__isnull=False)
                    | models.Q(phone_number__isnull=False)
                    | models.Q(voucher_number__isnull=False)
                    | models.Q(display_name__isnull=False)
                ),
                name="ledger_identity_present",
            ),
        ]
        indexes = [
            models.Index(fields=["campaign", "national_id"], name="ledger_campaign_nid_idx"),
            models.Index(fields=["campaign", "phone_number"], name="ledger_campaign_phone_idx"),
            models.Index(fields=["campaign", "voucher_number"], name="ledger_campaign_voucher_idx"),
            models.Index(fields=["campaign", "display_name"], name="ledger_campaign_name_idx"),
        ]
        verbose_name = "Claim Record"
        verbose_name_plural = "Claim Records"

    def __str__(self) -> str:
        return f"{self.dedup_key} [{self.campaign}] {self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableClaimError("Claim records cannot be changed once written.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableClaimError("Claim records cannot be deleted.")

    def to_payload(self) -> dict[str, str | None]:
        return {
            "id": str(self.id),
            "campaign": self.campaign,
            "store_id": str(self.store_id) if self.store_id else None,
            "prize_id": str(self.prize_id) if self.prize_id else None,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
