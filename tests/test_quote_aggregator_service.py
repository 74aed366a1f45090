import threading
import time
import unittest

from app.errors import InvalidSymbolsError
from app.services.currency import SuffixCurrencyResolver
from app.services.quote_aggregator import QuoteAggregatorService
from tests.chart_payloads import chart_payload


class HttpError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"{status_code} Client Error")

        class Response:
            pass

        self.response = Response()
        self.response.status_code = status_code


class StubChartClient:
    def __init__(self, payloads: dict) -> None:
        self.payloads = payloads
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get_chart(self, symbol: str) -> dict:
        with self._lock:
            self.calls.append(symbol)
        outcome = self.payloads[symbol]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SlowChartClient:
    def __init__(self, delay_sec: float) -> None:
        self.delay_sec = delay_sec

    def get_chart(self, symbol: str) -> dict:
        time.sleep(self.delay_sec)
        return chart_payload(short_name=symbol)


class BarrierChartClient:
    """Only succeeds if every symbol is in flight at the same time."""

    def __init__(self, parties: int) -> None:
        self.barrier = threading.Barrier(parties, timeout=2.0)

    def get_chart(self, symbol: str) -> dict:
        self.barrier.wait()
        return chart_payload(short_name=symbol)


class QuoteAggregatorServiceTest(unittest.TestCase):
    def test_invalid_symbol_is_absent_and_others_survive(self):
        client = StubChartClient(
            {
                "AAPL": chart_payload(),
                "BADSYM": HttpError(404),
            }
        )
        service = QuoteAggregatorService(chart_client=client)

        batch = service.get_stock_data(["AAPL", "BADSYM"])

        self.assertEqual([r.symbol for r in batch.records], ["AAPL"])
        record = batch.records[0]
        self.assertAlmostEqual(record.change, 2.34, places=2)
        self.assertAlmostEqual(record.change_percent, 1.33, places=2)
        self.assertEqual(record.currency, "USD")
        self.assertEqual(batch.currency, "USD")

    def test_one_invalid_among_many_leaves_n_minus_one_records(self):
        symbols = ["AAPL", "MSFT", "GOOG", "BROKEN", "TCS.NS"]
        payloads = {s: chart_payload(short_name=s) for s in symbols}
        payloads["BROKEN"] = chart_payload(quote_block={})
        service = QuoteAggregatorService(chart_client=StubChartClient(payloads))

        batch = service.get_stock_data(symbols)

        self.assertEqual(len(batch.records), 4)
        self.assertNotIn("BROKEN", [r.symbol for r in batch.records])

    def test_transport_errors_and_malformed_payloads_are_isolated(self):
        client = StubChartClient(
            {
                "AAPL": chart_payload(),
                "TIMEOUT": TimeoutError("timeout:TIMEOUT"),
                "GARBAGE": {"unexpected": True},
                "BADJSON": ValueError("Expecting value: line 1 column 1"),
            }
        )
        service = QuoteAggregatorService(chart_client=client)

        batch = service.get_stock_data(["TIMEOUT", "GARBAGE", "AAPL", "BADJSON"])

        self.assertEqual([r.symbol for r in batch.records], ["AAPL"])
        self.assertEqual(sorted(client.calls), ["AAPL", "BADJSON", "GARBAGE", "TIMEOUT"])

    def test_all_symbols_failing_yields_empty_batch_with_default_currency(self):
        client = StubChartClient({"X1": HttpError(404), "X2": HttpError(500)})
        service = QuoteAggregatorService(chart_client=client, default_currency="INR")

        batch = service.get_stock_data(["X1", "X2"])

        self.assertEqual(batch.records, [])
        self.assertEqual(batch.currency, "INR")

    def test_currency_hint_comes_from_first_present_record(self):
        client = StubChartClient(
            {
                "GONE": HttpError(404),
                "TCS.NS": chart_payload(short_name=None),
                "AAPL": chart_payload(),
            }
        )
        service = QuoteAggregatorService(chart_client=client)

        batch = service.get_stock_data(["GONE", "TCS.NS", "AAPL"])

        self.assertEqual(batch.currency, "INR")
        self.assertEqual([r.symbol for r in batch.records], ["TCS.NS", "AAPL"])

    def test_duplicate_and_blank_symbols_are_collapsed(self):
        client = StubChartClient({"AAPL": chart_payload()})
        service = QuoteAggregatorService(chart_client=client)

        batch = service.get_stock_data([" AAPL ", "AAPL", ""])

        self.assertEqual(len(batch.records), 1)
        self.assertEqual(client.calls, ["AAPL"])

    def test_whitespace_is_trimmed_before_fetch_and_echo(self):
        client = StubChartClient({"TCS.NS": chart_payload(short_name=None)})
        service = QuoteAggregatorService(chart_client=client)

        batch = service.get_stock_data(["  TCS.NS\t"])

        self.assertEqual(client.calls, ["TCS.NS"])
        self.assertEqual(batch.records[0].symbol, "TCS.NS")
        self.assertEqual(batch.records[0].currency, "INR")

    def test_empty_symbol_list_is_rejected(self):
        service = QuoteAggregatorService(chart_client=StubChartClient({}))

        with self.assertRaises(InvalidSymbolsError):
            service.get_stock_data([])
        with self.assertRaises(InvalidSymbolsError):
            service.get_stock_data(["  ", ""])

    def test_fetches_run_concurrently(self):
        service = QuoteAggregatorService(chart_client=BarrierChartClient(parties=4))

        batch = service.get_stock_data(["A", "B", "C", "D"])

        self.assertEqual(len(batch.records), 4)

    def test_batch_time_bounded_by_slowest_call(self):
        service = QuoteAggregatorService(chart_client=SlowChartClient(delay_sec=0.2))

        started = time.perf_counter()
        batch = service.get_stock_data(["A", "B", "C", "D", "E", "F"])
        elapsed = time.perf_counter() - started

        self.assertEqual(len(batch.records), 6)
        self.assertLess(elapsed, 0.8)

    def test_max_workers_caps_pool_size(self):
        service = QuoteAggregatorService(chart_client=StubChartClient({}), max_workers=2)

        self.assertEqual(service._worker_count(10), 2)
        self.assertEqual(service._worker_count(1), 1)

    def test_custom_resolver_and_window_are_applied(self):
        timestamps = [1700000000 + i * 300 for i in range(10)]
        payload = chart_payload(short_name=None, timestamps=timestamps, closes=[5.0] * 10)
        service = QuoteAggregatorService(
            chart_client=StubChartClient({"VOD.L": payload}),
            currency_resolver=SuffixCurrencyResolver({".L": "GBP"}),
            series_window=4,
        )

        batch = service.get_stock_data(["VOD.L"])

        record = batch.records[0]
        self.assertEqual(record.currency, "GBP")
        self.assertEqual(record.display_name, "VOD")
        self.assertEqual(len(record.series), 4)

    def test_metrics_track_batches(self):
        client = StubChartClient({"AAPL": chart_payload(), "BADSYM": HttpError(404)})
        service = QuoteAggregatorService(chart_client=client)

        service.get_stock_data(["AAPL", "BADSYM"])
        service.get_stock_data(["AAPL"])

        metrics = service.metrics()
        self.assertEqual(metrics["batches"], 2)
        self.assertEqual(metrics["symbols_requested"], 3)
        self.assertEqual(metrics["symbols_resolved"], 2)
        self.assertEqual(metrics["symbols_absent"], 1)
        self.assertEqual(metrics["batch_target_count"], 1)
        self.assertEqual(metrics["batch_final_count"], 1)

    def test_status_code_extracted_from_http_errors(self):
        self.assertEqual(QuoteAggregatorService._status_code_from_error(HttpError(404)), 404)
        self.assertIsNone(QuoteAggregatorService._status_code_from_error(TimeoutError("x")))


if __name__ == "__main__":
    unittest.main()
