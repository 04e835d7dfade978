import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("prize", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ClaimRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("campaign", models.CharField(db_index=True, max_length=100)),
                ("national_id", models.CharField(blank=True, max_length=32, null=True)),
                ("phone_number", models.CharField(blank=True, max_length=32, null=True)),
                ("voucher_number", models.CharField(blank=True, max_length=64, null=True)),
                ("display_name", models.CharField(blank=True, max_length=255, null=True)),
                ("photo_url", models.CharField(blank=True, max_length=512)),
                (
                    "status",
                    models.CharField(
                        choices=[("CLAIMED", "Claimed"), ("REGISTERED", "Registered")],
                        max_length=16,
                    ),
                ),
                ("dedup_key", models.CharField(max_length=191)),
                ("dedup_slot", models.PositiveSmallIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "prize",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="claims",
                        to="prize.prize",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="claims",
                        to="prize.store",
                    ),
                ),
            ],
            options={
                "verbose_name": "Claim Record",
                "verbose_name_plural": "Claim Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["campaign", "national_id"], name="ledger_campaign_nid_idx"),
                    models.Index(fields=["campaign", "phone_number"], name="ledger_campaign_phone_idx"),
                    models.Index(fields=["campaign", "voucher_number"], name="ledger_campaign_voucher_idx"),
                    models.Index(fields=["campaign", "display_name"], name="ledger_campaign_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("campaign", "dedup_key", "dedup_slot"),
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
                ],
            },
        ),
    ]
