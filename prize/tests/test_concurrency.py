import threading

from django.db import connection
from django.test import TransactionTestCase, skipUnlessDBFeature

from ledger.identity import Identity
from ledger.models import ClaimRecord
from prize.models import Prize, Store
from prize.services import allocate
from promo_backend.errors import AllocationError, NoStockAvailable, StockLost

CAMPAIGN = "race-2026"


@skipUnlessDBFeature("has_select_for_update")
class ConcurrentAllocationTests(TransactionTestCase):
    """Races real threads against the row lock; needs MySQL or PostgreSQL."""

    def setUp(self):
        self.store = Store.objects.create(name="Downtown", campaign=CAMPAIGN)

    def _run(self, identities, retry=False):
        barrier = threading.Barrier(len(identities))
        outcomes = []
        lock = threading.Lock()

        def claim(identity):
            try:
                barrier.wait()
                while True:
                    try:
                        outcome = allocate(self.store.pk, CAMPAIGN, identity)
                        break
                    except StockLost:
                        if not retry:
                            raise
            except AllocationError as exc:
                outcome = exc
            finally:
                connection.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=claim, args=(identity,)) for identity in identities]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def test_two_claimants_for_the_last_unit(self):
        prize = Prize.objects.create(store=self.store, name="Mug", initial_stock=1, available_stock=1)

        outcomes = self._run([Identity(phone_number="555-0001"), Identity(phone_number="555-0002")])

        winners = [o for o in outcomes if not isinstance(o, AllocationError)]
        losers = [o for o in outcomes if isinstance(o, AllocationError)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(winners[0].prize.id, prize.id)
        self.assertEqual(len(losers), 1)
        self.assertIsInstance(losers[0], (StockLost, NoStockAvailable))
        prize.refresh_from_db()
        self.assertEqual(prize.available_stock, 0)
        self.assertEqual(ClaimRecord.objects.filter(prize=prize).count(), 1)

    def test_stock_is_never_oversold(self):
        Prize.objects.create(store=self.store, name="Mug", initial_stock=2, available_stock=2)
        Prize.objects.create(store=self.store, name="Cap", initial_stock=1, available_stock=1)

        outcomes = self._run([Identity(phone_number=f"555-{n:04d}") for n in range(8)], retry=True)

        winners = [o for o in outcomes if not isinstance(o, AllocationError)]
        self.assertEqual(len(winners), 3)
        for outcome in outcomes:
            if isinstance(outcome, AllocationError):
                self.assertIsInstance(outcome, NoStockAvailable)
        for prize in Prize.objects.filter(store=self.store):
            self.assertEqual(prize.available_stock, 0)
            self.assertEqual(prize.claims.count(), prize.initial_stock)
