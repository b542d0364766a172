"""End-to-end lookups against a fake browser."""

import asyncio
import os
import tempfile
import unittest
from decimal import Decimal

from models.balance_log import BalanceLog
from models.wallet_history import HistoryStore
from models.wallet_models import Platform, WalletHistoryEntry, WalletTarget
from utils.exchange_rates import ExchangeRateCache
from wallets.browser_session import BrowserSessionManager
from wallets.scrape_coordinator import ScrapeCoordinator

from fakes import FakeSite, fake_browser_manager, fixed_rates

ADDRESS = "0x60c6c28e10ee895037260d653ef8a22a9cae6f3c"
DEBANK_LINK = f"https://debank.com/profile/{ADDRESS}"
OTHER_LINK = f"https://debank.com/profile/{'0x' + 'b' * 40}"
ETHERSCAN_LINK = f"https://etherscan.io/address/{ADDRESS}"


class RecordingWorker:
    def __init__(self):
        self.messages = []

    def schedule(self, message):
        self.messages.append(message)


class CoordinatorTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.history = HistoryStore(os.path.join(self.tmp.name, "wallet-history.json"))
        self.log = BalanceLog(os.path.join(self.tmp.name, "wallet-cache.json"))
        self.site = FakeSite()
        self.worker = RecordingWorker()

    def tearDown(self):
        self.tmp.cleanup()

    def coordinator(self, browser=None, usd_brl=5.0, **kwargs):
        kwargs.setdefault("inter_wallet_delay", 0)
        return ScrapeCoordinator(
            browser=browser or fake_browser_manager(self.site),
            history=self.history,
            rates=ExchangeRateCache(fetcher=fixed_rates(usd_brl)),
            sync_worker=self.worker,
            balance_log=self.log,
            **kwargs,
        )

    def seed(self, name, balance, status="success"):
        self.history.save({name: WalletHistoryEntry(name=name, balance=balance, status=status, platform="debank")})


class ScrapeTests(CoordinatorTestCase):
    def test_debank_success(self):
        self.site.bodies[DEBANK_LINK] = "DeBank\n$1,234.56 +2.3%\n"
        result = asyncio.run(self.coordinator().scrape(WalletTarget.from_link("Main", DEBANK_LINK)))
        self.assertTrue(result.success)
        self.assertEqual(result.value, "1234.56")
        self.assertEqual(result.platform, "debank")

    def test_unknown_platform_opens_no_page(self):
        browser = fake_browser_manager(self.site)
        result = asyncio.run(self.coordinator(browser).scrape(WalletTarget.from_link("X", "https://example.org/")))
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Unsupported platform")
        self.assertEqual(browser._browser.contexts, [])

    def test_jupiter_not_implemented(self):
        browser = fake_browser_manager(self.site)
        target = WalletTarget.from_link("Sol", "https://jup.ag/portfolio/7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")
        result = asyncio.run(self.coordinator(browser).scrape(target))
        self.assertEqual(result.error, "Not implemented")
        self.assertEqual(browser._browser.contexts, [])

    def test_browser_unavailable_is_data(self):
        coordinator = self.coordinator(BrowserSessionManager(settle_delay=0))
        result = asyncio.run(coordinator.scrape(WalletTarget.from_link("Main", DEBANK_LINK)))
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Browser not available")

    def test_value_not_found_is_data(self):
        self.site.bodies[DEBANK_LINK] = "Loading..."
        result = asyncio.run(self.coordinator().scrape(WalletTarget.from_link("Main", DEBANK_LINK)))
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Balance not found on page")

    def test_unexpected_error_is_data(self):
        self.site.goto_error = RuntimeError("Target closed")
        result = asyncio.run(self.coordinator().scrape(WalletTarget.from_link("Main", DEBANK_LINK)))
        self.assertFalse(result.success)
        self.assertIn("Target closed", result.error)

    def test_overall_timeout(self):
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        self.site.delays[DEBANK_LINK] = 5
        browser = fake_browser_manager(self.site, navigation_timeout=0)
        self.assertEqual(self.coordinator(browser).scrape_timeout, 15)

        coordinator = self.coordinator(browser, extraction_margin=0.1)
        result = asyncio.run(coordinator.scrape(WalletTarget.from_link("Main", DEBANK_LINK)))
        self.assertFalse(result.success)
        self.assertIn("timed out", result.error)
        self.assertTrue(all(c.closed for c in browser._browser.contexts))


class LookupBalanceTests(CoordinatorTestCase):
    def test_success_stores_brl_balance(self):
        self.site.bodies[DEBANK_LINK] = "$1,234.56 +2.3%"
        lookup = asyncio.run(self.coordinator().lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.status, "success")
        self.assertEqual(lookup.value, "6172.80")

        entry = self.history.load()["Main"]
        self.assertEqual(entry.status, "success")
        self.assertEqual(entry.balance, "6172.80")
        self.assertEqual(entry.platform, "debank")
        self.assertEqual(self.worker.messages, ["Update wallet balance: Main"])
        self.assertEqual(self.log.get_latest_by_wallet()["Main"].balance, "6172.80")

    def test_insane_usd_rate_uses_fallback(self):
        self.site.bodies[DEBANK_LINK] = "$100 +1%"
        lookup = asyncio.run(self.coordinator(usd_brl=50.0).lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.value, "550.00")

    def test_failure_without_history_is_unavailable(self):
        self.site.bodies[DEBANK_LINK] = "no dollars here"
        lookup = asyncio.run(self.coordinator().lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.status, "unavailable")
        self.assertIsNone(lookup.value)
        self.assertIsNone(lookup.last_known_value)
        entry = self.history.load()["Main"]
        self.assertEqual(entry.status, "unavailable")
        self.assertEqual(entry.balance, "")

    def test_failure_with_history_keeps_last_known_value(self):
        self.seed("Main", "5000.00")
        before = self.history.load()["Main"]
        self.site.bodies[DEBANK_LINK] = "no dollars here"

        lookup = asyncio.run(self.coordinator().lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.status, "temporary_error")
        self.assertIsNone(lookup.value)
        self.assertEqual(lookup.last_known_value, "5000.00")
        self.assertEqual(lookup.to_dict()["lastKnownValue"], "5000.00")

        entry = self.history.load()["Main"]
        self.assertEqual(entry.status, "temporary_error")
        self.assertEqual(entry.balance, "5000.00")
        self.assertEqual(entry.last_updated, before.last_updated)
        self.assertEqual(entry.id, before.id)

    def test_zero_balance_survives_a_later_failure(self):
        coordinator = self.coordinator()

        async def scenario():
            self.site.bodies[DEBANK_LINK] = "$0.00 +0.00%"
            first = await coordinator.lookup_balance("Main", DEBANK_LINK)
            self.site.bodies[DEBANK_LINK] = "Loading..."
            return first, await coordinator.lookup_balance("Main", DEBANK_LINK)

        first, second = asyncio.run(scenario())
        self.assertEqual(first.status, "success")
        self.assertEqual(first.value, "0.00")
        self.assertEqual(second.status, "temporary_error")
        self.assertEqual(second.last_known_value, "0.00")
        entry = self.history.load()["Main"]
        self.assertEqual(entry.status, "temporary_error")
        self.assertEqual(entry.balance, "0.00")

    def test_failure_falls_back_to_highest_logged_value(self):
        self.log.add_entry("Main", "4000.00", "debank", "success")
        self.log.add_entry("Main", "5000.00", "debank", "success")
        self.site.bodies[DEBANK_LINK] = "Loading..."

        lookup = asyncio.run(self.coordinator().lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.status, "temporary_error")
        self.assertIsNone(lookup.value)
        self.assertEqual(lookup.last_known_value, "5000.00")
        entry = self.history.load()["Main"]
        self.assertEqual(entry.status, "temporary_error")
        self.assertEqual(entry.balance, "5000.00")

    def test_unknown_link_falls_back_to_highest_logged_value(self):
        self.log.add_entry("Main", "5000.00", "debank", "success")
        lookup = asyncio.run(self.coordinator().lookup_balance("Main", "not a url"))
        self.assertEqual(lookup.status, "temporary_error")
        self.assertEqual(lookup.last_known_value, "5000.00")
        self.assertFalse(os.path.exists(self.history.storage_file))

    def test_undecodable_history_file_is_treated_as_empty(self):
        with open(self.history.storage_file, "wb") as f:
            f.write(b"\xff\xfe[garbage")
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"

        lookup = asyncio.run(self.coordinator().lookup_balance("Main", DEBANK_LINK))
        self.assertEqual(lookup.status, "success")
        self.assertEqual(lookup.value, "5000.00")
        self.assertEqual(self.history.load()["Main"].balance, "5000.00")

    def test_undecodable_history_file_on_unknown_link(self):
        with open(self.history.storage_file, "wb") as f:
            f.write(b"\xff\xfe[garbage")
        lookup = asyncio.run(self.coordinator().lookup_balance("Odd", "https://example.org/"))
        self.assertEqual(lookup.status, "unavailable")

    def test_unknown_link_leaves_store_untouched(self):
        lookup = asyncio.run(self.coordinator().lookup_balance("Odd", "https://example.org/"))
        self.assertEqual(lookup.status, "unavailable")
        self.assertEqual(lookup.error, "Unsupported platform")
        self.assertFalse(os.path.exists(self.history.storage_file))
        self.assertEqual(self.worker.messages, [])

    def test_unknown_link_reports_existing_entry(self):
        self.seed("Main", "5000.00")
        lookup = asyncio.run(self.coordinator().lookup_balance("Main", "not a url"))
        self.assertEqual(lookup.status, "success")
        self.assertEqual(lookup.value, "5000.00")
        self.assertEqual(self.history.load()["Main"].platform, "debank")

    def test_last_issued_write_wins(self):
        # First lookup is slow and reads $1,000; second is fast and reads $2,000
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        self.site.delays[DEBANK_LINK] = 0.2
        self.site.bodies[DEBANK_LINK + "?v=2"] = "$2,000 +1%"
        coordinator = self.coordinator()

        async def scenario():
            first = asyncio.create_task(coordinator.lookup_balance("Main", DEBANK_LINK))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.lookup_balance("Main", DEBANK_LINK + "?v=2"))
            return await asyncio.gather(first, second)

        first, second = asyncio.run(scenario())
        self.assertEqual(first.value, "5000.00")
        self.assertEqual(second.value, "10000.00")
        self.assertEqual(self.history.load()["Main"].balance, "10000.00")

    def test_concurrent_lookups_of_different_wallets_are_all_kept(self):
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        self.site.bodies[OTHER_LINK] = "$3 +1%"
        self.site.delays[OTHER_LINK] = 0.05
        coordinator = self.coordinator()

        async def scenario():
            await asyncio.gather(
                coordinator.lookup_balance("A", DEBANK_LINK), coordinator.lookup_balance("B", OTHER_LINK)
            )

        asyncio.run(scenario())
        entries = self.history.load()
        self.assertEqual(entries["A"].balance, "5000.00")
        self.assertEqual(entries["B"].balance, "15.00")


class RefreshAllTests(CoordinatorTestCase):
    def test_explorer_and_debank_wallets(self):
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        self.site.bodies[ETHERSCAN_LINK] = "Token holdings $200.00 (2 tokens)"
        lookups = asyncio.run(
            self.coordinator().refresh_all(
                [{"name": "A", "link": DEBANK_LINK}, {"name": "B", "link": ETHERSCAN_LINK}]
            )
        )
        self.assertEqual([l.value for l in lookups], ["5000.00", "1000.00"])
        self.assertEqual(lookups[1].platform, Platform.ETHERSCAN.value)

    def test_recently_refreshed_wallet_is_skipped(self):
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        now = [1000.0]
        coordinator = self.coordinator(clock=lambda: now[0])
        wallets = [{"name": "A", "link": DEBANK_LINK}]

        async def scenario():
            first = await coordinator.refresh_all(wallets)
            now[0] += 30
            second = await coordinator.refresh_all(wallets)
            now[0] += 31
            third = await coordinator.refresh_all(wallets)
            return first, second, third

        first, second, third = asyncio.run(scenario())
        self.assertEqual(len(first), 1)
        self.assertEqual(second, [])
        self.assertEqual(len(third), 1)

    def test_aborts_after_consecutive_failures(self):
        wallets = [{"name": f"W{i}", "link": f"https://debank.com/profile/0x{str(i) * 40}"} for i in range(5)]
        lookups = asyncio.run(self.coordinator().refresh_all(wallets))
        self.assertEqual(len(lookups), 3)
        self.assertTrue(all(l.status == "unavailable" for l in lookups))

    def test_inter_wallet_delay(self):
        self.site.bodies[DEBANK_LINK] = "$1,000 +1%"
        self.site.bodies[OTHER_LINK] = "$1,000 +1%"
        coordinator = self.coordinator(inter_wallet_delay=0.05)

        async def scenario():
            loop = asyncio.get_running_loop()
            started = loop.time()
            await coordinator.refresh_all([{"name": "A", "link": DEBANK_LINK}, {"name": "B", "link": OTHER_LINK}])
            return loop.time() - started

        self.assertGreaterEqual(asyncio.run(scenario()), 0.05)


class ConversionTests(CoordinatorTestCase):
    def test_usd_to_brl_rounds_to_cents(self):
        coordinator = self.coordinator(usd_brl=5.1234)
        self.assertEqual(asyncio.run(coordinator.usd_to_brl(Decimal("10"))), Decimal("51.23"))


if __name__ == "__main__":
    unittest.main()
