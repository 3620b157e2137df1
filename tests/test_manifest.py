"""Tests for the manifest store, debouncer and manifest writer."""

import asyncio
from datetime import datetime, timezone

import pytest

from assetforge.core.config import AssetConfig
from assetforge.core.debounce import Debouncer
from assetforge.core.fingerprint import compute_startup_fingerprint
from assetforge.manifest.persistence import PROCESS_STARTED_AT, ManifestWriter, manifest_output_name
from assetforge.manifest.store import ManifestEntry, ManifestStore, select_prefix

STARTED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestManifestStore:
    """Tests for ManifestStore."""

    def test_register_and_lookup(self):
        """Registered entries should be found by logical path."""
        store = ManifestStore()
        entry = store.register("/assets/app.css", "/assets/app-a1b2c3d4.css")

        assert isinstance(entry, ManifestEntry)
        assert store.lookup("/assets/app.css") == entry
        assert entry.prefixed_path == "/assets/app-a1b2c3d4.css"
        assert entry.index == 0

    def test_lookup_missing(self):
        """Unknown paths should return None."""
        assert ManifestStore().lookup("/assets/nope.css") is None

    def test_last_write_wins(self):
        """Re-registering should replace the entry with a new index."""
        store = ManifestStore()
        first = store.register("/assets/app.css", "/assets/app-11111111.css")
        second = store.register("/assets/app.css", "/assets/app-22222222.css")

        assert len(store) == 1
        assert store.lookup("/assets/app.css") == second
        assert second.index > first.index

    def test_prefix_rotation(self):
        """Registrations N apart should get the same prefix."""
        pool = ["//a.cdn", "//b.cdn", "//c.cdn"]
        store = ManifestStore()
        entries = [store.register(f"/assets/{i}.png", f"/assets/{i}-x.png", pool) for i in range(7)]

        for i in range(4):
            assert entries[i].prefixed_path.split("/assets")[0] == entries[i + 3].prefixed_path.split("/assets")[0]
        assert entries[0].prefixed_path == "//a.cdn/assets/0-x.png"
        assert entries[1].prefixed_path == "//b.cdn/assets/1-x.png"
        assert entries[2].prefixed_path == "//c.cdn/assets/2-x.png"

    def test_reregistration_may_change_prefix(self):
        """Prefix follows the registration event, not the logical path."""
        pool = ["//a.cdn", "//b.cdn"]
        store = ManifestStore()
        first = store.register("/assets/app.css", "/assets/app-1.css", pool)
        second = store.register("/assets/app.css", "/assets/app-1.css", pool)
        assert first.prefixed_path.startswith("//a.cdn")
        assert second.prefixed_path.startswith("//b.cdn")

    def test_empty_pool_means_no_prefix(self):
        """An empty pool should register without prefix."""
        entry = ManifestStore().register("/assets/a.js", "/assets/a-1.js", [])
        assert entry.prefixed_path == "/assets/a-1.js"

    def test_missing(self):
        """missing() should report unregistered paths only."""
        store = ManifestStore()
        store.register("/assets/a.js", "/assets/a-1.js")
        assert store.missing(["/assets/a.js", "/assets/b.js"]) == {"/assets/b.js"}
        assert "/assets/a.js" in store
        assert "/assets/b.js" not in store

    def test_snapshot(self):
        """Snapshots should map logical to prefixed paths."""
        store = ManifestStore()
        store.register("/assets/a.js", "/assets/a-1.js", ["//cdn"])
        snapshot = store.snapshot()
        assert snapshot == {"/assets/a.js": "//cdn/assets/a-1.js"}

        store.register("/assets/b.js", "/assets/b-1.js")
        assert "/assets/b.js" not in snapshot

    def test_entries_in_registration_order(self):
        """entries() should follow registration index."""
        store = ManifestStore()
        store.register("/z.js", "/z-1.js")
        store.register("/a.js", "/a-1.js")
        assert [e.logical_path for e in store.entries()] == ["/z.js", "/a.js"]

    def test_clear_keeps_counting(self):
        """Indices should keep increasing across clear()."""
        store = ManifestStore()
        store.register("/a.js", "/a-1.js")
        store.clear()
        assert len(store) == 0
        assert store.register("/a.js", "/a-1.js").index == 1

    def test_entry_to_dict(self):
        """Entries should convert to dictionaries."""
        entry = ManifestStore().register("/a.js", "/a-1.js")
        assert entry.to_dict()["output_path"] == "/a-1.js"

    def test_select_prefix(self):
        """select_prefix should wrap around the pool."""
        assert select_prefix(["x", "y"], 5) == "y"
        assert select_prefix([], 5) == ""


class TestDebouncer:
    """Tests for Debouncer."""

    def test_fires_immediately_without_loop(self):
        """Outside an event loop the callback should run at once."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), window=10.0)
        debouncer.trigger()
        assert calls == [1]
        assert not debouncer.pending

    def test_burst_coalesces(self):
        """A burst of triggers should produce one call after the window."""
        calls = []

        async def scenario():
            debouncer = Debouncer(lambda: calls.append(1), window=0.02)
            for _ in range(5):
                debouncer.trigger()
                await asyncio.sleep(0.001)
            assert calls == []
            assert debouncer.pending
            await asyncio.sleep(0.1)
            return debouncer

        debouncer = asyncio.run(scenario())
        assert calls == [1]
        assert debouncer.trigger_count == 5
        assert debouncer.fire_count == 1

    def test_flush(self):
        """flush() should run a pending call now."""
        calls = []

        async def scenario():
            debouncer = Debouncer(lambda: calls.append(1), window=10.0)
            debouncer.trigger()
            assert debouncer.flush() is True
            assert debouncer.flush() is False

        asyncio.run(scenario())
        assert calls == [1]

    def test_cancel(self):
        """cancel() should drop a pending call."""
        calls = []

        async def scenario():
            debouncer = Debouncer(lambda: calls.append(1), window=0.01)
            debouncer.trigger()
            assert debouncer.cancel() is True
            assert debouncer.cancel() is False
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert calls == []


class TestManifestWriter:
    """Tests for ManifestWriter."""

    @pytest.fixture
    def store(self):
        store = ManifestStore()
        store.register("/assets/app.css", "/assets/app-a1b2c3d4.css")
        return store

    def test_output_name(self, store, tmp_path):
        """Artifact name should carry the startup fingerprint."""
        writer = ManifestWriter(store, AssetConfig(), cwd=tmp_path, started_at=STARTED_AT)
        fp = compute_startup_fingerprint(STARTED_AT)
        assert writer.output_name == f"/assets/manifest-{fp}.js"
        assert writer.output_file == tmp_path / "dist" / "assets" / f"manifest-{fp}.js"

    def test_writers_share_process_name(self, store, tmp_path):
        """Writers without an explicit start time should agree on the name."""
        first = ManifestWriter(store, AssetConfig(), cwd=tmp_path)
        second = ManifestWriter(ManifestStore(), AssetConfig(), cwd=tmp_path / "other")
        assert first.started_at == PROCESS_STARTED_AT
        assert first.output_name == second.output_name == manifest_output_name(AssetConfig())

    def test_output_name_follows_config(self):
        """The helper should honour asset path and manifest name."""
        config = AssetConfig(asset_path="/static/", manifest="map.js")
        assert manifest_output_name(config, "0badf00d") == "/static/map-0badf00d.js"

    def test_render(self, store, tmp_path):
        """Rendered artifact should assign the map to the global."""
        writer = ManifestWriter(store, AssetConfig(), cwd=tmp_path)
        assert writer.render() == (
            'window.assetManifest = {"/assets/app.css":"/assets/app-a1b2c3d4.css"};\n'
        )

    def test_render_custom_global(self, store, tmp_path):
        """globalVar should name the assignment target."""
        writer = ManifestWriter(store, AssetConfig(global_var="self.M"), cwd=tmp_path)
        assert writer.render().startswith("self.M = {")

    def test_write(self, store, tmp_path):
        """write() should create the artifact."""
        writer = ManifestWriter(store, AssetConfig(), cwd=tmp_path, started_at=STARTED_AT)
        path = writer.write()

        assert path == writer.output_file
        assert path.read_text() == writer.render()
        assert writer.write_count == 1
        assert writer.last_written == path

    def test_name_stable_across_writes(self, store, tmp_path):
        """Rewrites should reuse the same file name."""
        writer = ManifestWriter(store, AssetConfig(), cwd=tmp_path)
        first = writer.write()
        store.register("/assets/b.js", "/assets/b-1.js")
        second = writer.write()

        assert first == second
        assert "/assets/b.js" in second.read_text()
        assert len(list((tmp_path / "dist" / "assets").iterdir())) == 1

    def test_write_failure_is_logged(self, store, tmp_path, caplog):
        """A failed write should be logged and counted, not raised."""
        (tmp_path / "blocker").write_text("not a directory")
        writer = ManifestWriter(store, AssetConfig(dest="blocker"), cwd=tmp_path)

        assert writer.write() is None
        assert writer.failed_writes == 1
        assert writer.write_count == 0
        assert "Unable to write asset manifest" in caplog.text

    def test_schedule_write_without_loop(self, store, tmp_path):
        """Without an event loop scheduling should write right away."""
        writer = ManifestWriter(store, AssetConfig(), cwd=tmp_path)
        writer.schedule_write()
        assert writer.write_count == 1

    def test_schedule_write_debounced(self, store, tmp_path):
        """Bursts of scheduled writes should produce one write."""
        writer = ManifestWriter(store, AssetConfig(debounce=20), cwd=tmp_path)

        async def scenario():
            for _ in range(10):
                writer.schedule_write()
            assert writer.write_count == 0
            assert writer.pending
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert writer.write_count == 1
        assert writer.output_file.exists()

    def test_flush(self, store, tmp_path):
        """flush() should write a pending manifest now."""
        writer = ManifestWriter(store, AssetConfig(debounce=10_000), cwd=tmp_path)

        async def scenario():
            writer.schedule_write()
            assert writer.flush() is True

        asyncio.run(scenario())
        assert writer.write_count == 1
        assert not writer.pending
