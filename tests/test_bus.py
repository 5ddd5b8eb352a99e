import anyio
import pytest

from tomte.bus import AddonBus, BusError, event_key


@pytest.mark.anyio
async def test_emit_reaches_sync_and_async_listeners() -> None:
    bus = AddonBus()
    seen: list[tuple[str, object]] = []

    def on_sync(data) -> None:
        seen.append(("sync", data))

    async def on_async(data) -> None:
        await anyio.sleep(0)
        seen.append(("async", data))

    bus.on("tickets", "created", on_sync)
    bus.on("tickets", "created", on_async)

    assert await bus.emit("tickets", "created", {"id": 1}) == 2
    assert sorted(seen, key=lambda item: item[0]) == [
        ("async", {"id": 1}),
        ("sync", {"id": 1}),
    ]
    assert await bus.emit("tickets", "closed") == 0


@pytest.mark.anyio
async def test_once_listener_fires_a_single_time() -> None:
    bus = AddonBus()
    calls: list[object] = []
    bus.once("leveling", "level-up", calls.append)

    await bus.emit("leveling", "level-up", 2)
    await bus.emit("leveling", "level-up", 3)

    assert calls == [2]
    assert bus.event_names() == []
    assert bus.event_stats("leveling", "level-up").emissions == 2


@pytest.mark.anyio
async def test_failing_listener_does_not_block_others() -> None:
    bus = AddonBus()
    calls: list[object] = []

    def broken(data) -> None:
        raise RuntimeError("boom")

    bus.on("tickets", "created", broken)
    bus.on("tickets", "created", calls.append)

    assert await bus.emit("tickets", "created", "x") == 2
    assert calls == ["x"]


def test_off_and_namespace_queries() -> None:
    bus = AddonBus()

    def listener(data) -> None:
        return None

    bus.on("tickets", "created", listener)
    bus.on("tickets", "closed", listener)
    bus.on("stats", "tick", listener)

    assert bus.namespaces() == ["stats", "tickets"]
    assert bus.events_of("tickets") == ["closed", "created"]
    assert bus.off("tickets", "created", listener)
    assert not bus.off("tickets", "created", listener)
    assert bus.remove_all("tickets") == 1
    assert bus.event_names() == ["stats:tick"]


def test_listeners_are_removed_by_source() -> None:
    bus = AddonBus()

    def listener(data) -> None:
        return None

    bus.on("tickets", "created", listener, source="Tickets")
    bus.on("tickets", "created", listener, source="Stats")

    assert bus.remove_source("Tickets") == 1
    assert bus.listener_count("tickets", "created") == 1


@pytest.mark.anyio
async def test_stats_count_listeners_and_emissions() -> None:
    bus = AddonBus()
    bus.on("tickets", "created", lambda data: None)
    await bus.emit("tickets", "created")
    await bus.emit("tickets", "created")

    stats = bus.stats()

    assert stats.events == 1
    assert stats.emissions == 2
    assert stats.listeners == {"tickets:created": 1}
    bus.clear_stats()
    assert bus.stats().emissions == 0


@pytest.mark.parametrize(
    ("namespace", "event"),
    [("", "created"), ("tickets", ""), ("tick:ets", "created"), ("tickets", "new ticket")],
)
def test_event_parts_are_validated(namespace: str, event: str) -> None:
    with pytest.raises(BusError):
        event_key(namespace, event)
