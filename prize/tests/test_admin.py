from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from prize.admin import PrizeAdmin
from prize.models import Prize, Store


class PrizeAdminTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_superuser(
            username="admin", email="admin@example.com", password="secret"
        )
        self.client.force_login(self.user)
        self.store = Store.objects.create(name="Downtown", campaign="summer-2026")
        self.prize = Prize.objects.create(
            store=self.store, name="Mug", initial_stock=5, available_stock=5
        )

    def test_new_prize_starts_fully_stocked(self):
        response = self.client.post(
            reverse("admin:prize_prize_add"),
            {"store": str(self.store.pk), "name": "Cap", "description": "", "initial_stock": 7},
        )

        self.assertEqual(response.status_code, 302)
        cap = Prize.objects.get(name="Cap")
        self.assertEqual(cap.available_stock, 7)

    def test_editing_a_prize_keeps_stock_taken_meanwhile(self):
        stale = Prize.objects.get(pk=self.prize.pk)
        # A claim commits after the admin page was loaded.
        Prize.objects.filter(pk=self.prize.pk).update(available_stock=4)

        with mock.patch.object(PrizeAdmin, "get_object", return_value=stale):
            response = self.client.post(
                reverse("admin:prize_prize_change", args=[self.prize.pk]),
                {"store": str(self.store.pk), "name": "Mug XL", "description": "Large"},
            )

        self.assertEqual(response.status_code, 302)
        self.prize.refresh_from_db()
        self.assertEqual(self.prize.name, "Mug XL")
        self.assertEqual(self.prize.available_stock, 4)
        self.assertEqual(self.prize.initial_stock, 5)
