from __future__ import annotations

import uuid

from django.db import models


class Store(models.Model):
    """A physical store taking part in a campaign."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    campaign = models.CharField(max_length=100, db_index=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} [{self.campaign}]"

    def to_payload(self) -> dict[str, str | bool]:
        return {
            "id": str(self.id),
            "name": self.name,
            "campaign": self.campaign,
            "is_active": self.is_active,
        }


class Prize(models.Model):
    """A prize stocked by a store.

    ``initial_stock`` is fixed at creation; ``available_stock`` only ever
    goes down, one unit per committed claim.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="prizes")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    initial_stock = models.PositiveIntegerField(default=0)
    available_stock = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_stock__lte=models.F("initial_stock")),
                name="prize_available_within_initial",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} (stock={self.available_stock}/{self.initial_stock})"

    def to_payload(self) -> dict[str, int | str]:
        return {
            "id": str(self.id),
            "name": self.name,
            "initial_stock": self.initial_stock,
            "available_stock": self.available_stock,
        }
