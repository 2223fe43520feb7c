"""Unit tests for per-key call de-duplication."""

import asyncio

import pytest

from afip_ta.cache.single_flight import SingleFlight


class TestSingleFlight:
    """Test SingleFlight sharing semantics."""

    def test_concurrent_callers_share_one_call(self):
        flight = SingleFlight()
        calls = []

        async def work():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "ticket"

        async def scenario():
            return await asyncio.gather(*(flight.do("wsfe", work) for _ in range(5)))

        results = asyncio.run(scenario())

        assert results == ["ticket"] * 5
        assert len(calls) == 1

    def test_different_keys_run_separately(self):
        flight = SingleFlight()
        calls = []

        async def work(name):
            calls.append(name)
            await asyncio.sleep(0.01)
            return name

        async def scenario():
            return await asyncio.gather(
                flight.do("wsfe", lambda: work("wsfe")),
                flight.do("ws_sr_padron_a5", lambda: work("ws_sr_padron_a5")),
            )

        assert asyncio.run(scenario()) == ["wsfe", "ws_sr_padron_a5"]
        assert sorted(calls) == ["ws_sr_padron_a5", "wsfe"]

    def test_exception_shared_with_all_waiters(self):
        flight = SingleFlight()
        calls = []

        async def failing():
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        async def scenario():
            return await asyncio.gather(
                *(flight.do("wsfe", failing) for _ in range(3)), return_exceptions=True
            )

        results = asyncio.run(scenario())

        assert len(calls) == 1
        assert all(isinstance(result, RuntimeError) for result in results)

    def test_key_forgotten_after_completion(self):
        flight = SingleFlight()
        calls = []

        async def work():
            calls.append(1)
            return len(calls)

        async def scenario():
            first = await flight.do("wsfe", work)
            assert not flight.in_flight("wsfe")
            second = await flight.do("wsfe", work)
            return first, second

        assert asyncio.run(scenario()) == (1, 2)

    def test_in_flight_while_running(self):
        flight = SingleFlight()
        observed = []

        async def work():
            observed.append(flight.in_flight("wsfe"))
            return None

        asyncio.run(flight.do("wsfe", work))

        assert observed == [True]

    def test_cancelled_waiter_does_not_cancel_shared_call(self):
        flight = SingleFlight()

        async def work():
            await asyncio.sleep(0.05)
            return "done"

        async def scenario():
            first = asyncio.ensure_future(flight.do("wsfe", work))
            second = asyncio.ensure_future(flight.do("wsfe", work))
            await asyncio.sleep(0.01)
            first.cancel()
            with pytest.raises(asyncio.CancelledError):
                await first
            return await second

        assert asyncio.run(scenario()) == "done"
