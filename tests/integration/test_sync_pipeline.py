"""Integration tests — real watchdog observer driving the full pipeline.

Files are created, edited and deleted on disk while the Coordinator runs;
each change must reach the published Snapshot and the refresh listeners
without a manual refresh.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

from workboard.board.columns import DONE
from workboard.board.projection import BoardProjection
from workboard.config import BoardConfig
from workboard.core.coordinator import SyncCoordinator
from workboard.models.events import RefreshSignal
from workboard.models.snapshot import Snapshot

TIMEOUT = 10.0


class RecordingListener:
    listener_name = "integration"

    def __init__(self) -> None:
        self.generations: list[int] = []

    async def send_refresh(self, signal: RefreshSignal) -> None:
        self.generations.append(signal.generation)


async def _wait_for(
    coordinator: SyncCoordinator, predicate: Callable[[Snapshot], bool]
) -> Snapshot:
    deadline = asyncio.get_running_loop().time() + TIMEOUT
    while asyncio.get_running_loop().time() < deadline:
        snapshot = coordinator.snapshot
        if predicate(snapshot):
            return snapshot
        await asyncio.sleep(0.05)
    raise AssertionError("snapshot never reached the expected state")


class TestLiveSync:
    def test_file_changes_flow_to_snapshot(
        self,
        board_config: BoardConfig,
        sample_tree: Path,
        write_item: Callable[..., Path],
    ):
        config = board_config.model_copy(update={"watch_enabled": True})
        coordinator = SyncCoordinator(config)
        listener = RecordingListener()
        coordinator.broadcaster.register(listener)

        async def scenario() -> None:
            await coordinator.start()
            try:
                assert coordinator.watch_active

                # Added
                path = write_item("story-0002-0001", "ready", where="epic-0002/story-0002-0001")
                snapshot = await _wait_for(
                    coordinator, lambda s: "story-0002-0001" in s.items_by_id
                )
                assert snapshot.node("epic-0002").child_ids == ["story-0002-0001"]

                # Changed: the item moves columns.
                data = json.loads(path.read_text(encoding="utf-8"))
                data["status"] = "completed"
                path.write_text(json.dumps(data), encoding="utf-8")
                snapshot = await _wait_for(
                    coordinator,
                    lambda s: s.get("story-0002-0001") is not None
                    and s.get("story-0002-0001").raw_status == "completed",
                )
                done = BoardProjection(snapshot).grouped().column(DONE)
                assert "story-0002-0001" in done.item_ids

                # Deleted
                path.unlink()
                await _wait_for(
                    coordinator, lambda s: "story-0002-0001" not in s.items_by_id
                )
            finally:
                await coordinator.stop()

        asyncio.run(scenario())
        assert listener.generations == sorted(listener.generations)
        assert listener.generations[0] == 1
        assert len(listener.generations) >= 4

    def test_write_burst_coalesces(
        self,
        board_config: BoardConfig,
        sample_tree: Path,
        write_item: Callable[..., Path],
    ):
        config = board_config.model_copy(update={"watch_enabled": True})
        coordinator = SyncCoordinator(config)

        async def scenario() -> int:
            await coordinator.start()
            try:
                for n in range(20):
                    write_item("epic-0002", "planned", name=f"Revision {n}")
                await _wait_for(
                    coordinator, lambda s: s.get("epic-0002").name == "Revision 19"
                )
                await asyncio.sleep(0.3)
                return coordinator.rebuild_count
            finally:
                await coordinator.stop()

        rebuilds = asyncio.run(scenario())
        # Startup plus far fewer rebuilds than raw writes.
        assert 2 <= rebuilds < 20

    def test_unparseable_edit_is_reported(
        self,
        board_config: BoardConfig,
        sample_tree: Path,
    ):
        config = board_config.model_copy(update={"watch_enabled": True})
        coordinator = SyncCoordinator(config)
        target = sample_tree / "epic-0002" / "work.json"

        async def scenario() -> Snapshot:
            await coordinator.start()
            try:
                target.write_text("{ half written", encoding="utf-8")
                return await _wait_for(
                    coordinator, lambda s: "epic-0002" not in s.items_by_id
                )
            finally:
                await coordinator.stop()

        snapshot = asyncio.run(scenario())
        assert any(w.path == target.resolve() for w in snapshot.warnings)
        assert "epic-0001" in snapshot.items_by_id
