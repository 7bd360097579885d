import asyncio

from pictomap.services.debounce import Debouncer

INTERVAL = 0.3


def test_burst_collapses_into_one_trailing_call():
    async def run():
        loop = asyncio.get_running_loop()
        fired = []

        async def update(tag):
            fired.append((tag, loop.time()))

        debouncer = Debouncer(update, INTERVAL)
        start = loop.time()
        debouncer("t0")
        await asyncio.sleep(0.1)
        debouncer("t100")
        await asyncio.sleep(0.05)
        debouncer("t150")
        last_call = loop.time()

        await asyncio.sleep(0.2)
        assert fired == []  # 350ms after the first call, still quiet

        await asyncio.sleep(0.2)
        await debouncer.drain()
        return start, last_call, fired

    start, last_call, fired = asyncio.run(run())

    assert len(fired) == 1
    tag, fired_at = fired[0]
    assert tag == "t150"
    assert fired_at - last_call >= INTERVAL - 0.01
    assert fired_at - start >= 0.45 - 0.01


def test_cancel_drops_pending_call():
    async def run():
        calls = []

        async def update():
            calls.append(1)

        debouncer = Debouncer(update, 0.05)
        debouncer()
        assert debouncer.pending
        debouncer.cancel()
        assert not debouncer.pending
        await asyncio.sleep(0.1)
        return calls

    assert asyncio.run(run()) == []


def test_errors_are_logged_not_raised(caplog):
    async def run():
        async def boom():
            raise RuntimeError("backend down")

        debouncer = Debouncer(boom, 0.01)
        debouncer()
        await asyncio.sleep(0.05)
        await debouncer.drain()

    asyncio.run(run())

    assert "Debounced call to boom failed" in caplog.text


def test_call_without_running_loop_is_dropped(caplog):
    async def update():
        pass

    debouncer = Debouncer(update, 0.05)

    with caplog.at_level("WARNING"):
        debouncer()

    assert not debouncer.pending
    assert "outside a running event loop" in caplog.text
