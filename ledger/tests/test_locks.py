from unittest import mock

import redis
from django.test import SimpleTestCase, override_settings

from ledger.locks import ClaimLockError, identity_claim_lock


class IdentityClaimLockTests(SimpleTestCase):
    @override_settings(REDIS_URL=None)
    def test_without_redis_the_block_runs_unlocked(self):
        with mock.patch("ledger.locks.redis.Redis.from_url") as from_url:
            with identity_claim_lock("summer-2026", "phone_number:555"):
                pass

        from_url.assert_not_called()

    @override_settings(REDIS_URL="redis://localhost:6379/0", CLAIM_LOCK_PREFIX="test:claim:")
    def test_lock_is_keyed_by_campaign_and_identity(self):
        client = mock.MagicMock()
        client.lock.return_value.acquire.return_value = True

        with mock.patch("ledger.locks.redis.Redis.from_url", return_value=client):
            with identity_claim_lock("summer-2026", "phone_number:555"):
                client.lock.return_value.release.assert_not_called()

        self.assertEqual(client.lock.call_args.args[0], "test:claim:summer-2026:phone_number:555")
        client.lock.return_value.release.assert_called_once_with()

    @override_settings(REDIS_URL="redis://localhost:6379/0")
    def test_busy_lock_raises(self):
        client = mock.MagicMock()
        client.lock.return_value.acquire.return_value = False

        with mock.patch("ledger.locks.redis.Redis.from_url", return_value=client):
            with self.assertRaises(ClaimLockError):
                with identity_claim_lock("summer-2026", "phone_number:555"):
                    self.fail("block must not run without the lock")

    @override_settings(REDIS_URL="redis://localhost:6379/0")
    def test_redis_outage_raises(self):
        client = mock.MagicMock()
        client.lock.return_value.acquire.side_effect = redis.ConnectionError("refused")

        with mock.patch("ledger.locks.redis.Redis.from_url", return_value=client):
            with self.assertRaises(ClaimLockError):
                with identity_claim_lock("summer-2026", "phone_number:555"):
                    pass

    @override_settings(REDIS_URL="redis://localhost:6379/0")
    def test_release_failure_does_not_escape(self):
        client = mock.MagicMock()
        client.lock.return_value.acquire.return_value = True
        client.lock.return_value.release.side_effect = redis.ConnectionError("reset")
        ran = []

        with mock.patch("ledger.locks.redis.Redis.from_url", return_value=client):
            with self.assertLogs("ledger.locks", level="WARNING"):
                with identity_claim_lock("summer-2026", "phone_number:555"):
                    ran.append(True)

        self.assertEqual(ran, [True])
        client.lock.return_value.release.assert_called_once_with()
