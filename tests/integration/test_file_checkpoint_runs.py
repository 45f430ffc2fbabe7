"""
End-to-end runs against a FileCheckpointStore.

A fresh orchestrator instance stands in for a restarted process: everything
it knows about the previous run comes from the files on disk.
"""

from datetime import datetime, timedelta

from slicer import FileCheckpointStore, SliceCodec, SliceOrchestrator
from slicer.core.settings import SlicerSettings
from slicer.slices import Page, Slice, datetime_slices
from tests._support.sources import ListSource


def _orchestrator(source, base_dir, **overrides):
    options = {
        "checkpoint_store": FileCheckpointStore(base_dir, SliceCodec("int")),
        "launch_interval": 0,
        "retry_delay_unit": 0,
        "slice_concurrency": 4,
        "batch_size": 30,
        "desired_concurrency": 12,
    }
    options.update(overrides)
    return SliceOrchestrator.from_provider(source, **options)


class TestFileBackedRuns:
    def test_failed_slice_finished_after_restart(self, tmp_path):
        bad = Slice(384, 512)
        first = ListSource(list(range(1000)), failing_fetch={bad})
        assert _orchestrator(first, tmp_path, retry_attempts=1).process() is False
        assert len(first.target) == 1000 - 128

        second = ListSource(list(range(1000)))
        restarted = _orchestrator(second, tmp_path)
        assert restarted.process_error_slices() is True
        assert sorted(second.target) == list(range(384, 512))

        store = FileCheckpointStore(tmp_path, SliceCodec("int"))
        assert bad in store.get_completed()

    def test_resume_after_crash(self, tmp_path):
        store = FileCheckpointStore(tmp_path, SliceCodec("int"))
        source = ListSource(list(range(1000)))
        store.save_all(set(source.generate_slices()))
        for s in source.generate_slices()[:5]:
            store.save_completed(s)

        assert _orchestrator(source, tmp_path).resume_progress() is True
        assert sorted(source.target) == list(range(640, 1000))

    def test_new_run_rotates_history(self, tmp_path):
        for _ in range(2):
            _orchestrator(ListSource(list(range(300))), tmp_path).process()
        store = FileCheckpointStore(tmp_path, SliceCodec("int"))
        assert len(store.history()) == 1
        assert len(store.get_completed()) == 3

    def test_from_settings(self, tmp_path):
        settings = SlicerSettings(
            checkpoint_dir=tmp_path, launch_interval=0, slice_concurrency=2, batch_size=50, max_history=2
        )
        source = ListSource(list(range(500)), span=100)
        orchestrator = SliceOrchestrator.from_settings(
            settings, source.generate_slices, source.fetch, source.create_task,
            codec=SliceCodec("int"), retry_delay_unit=0,
        )
        assert orchestrator.slice_concurrency == 2
        assert orchestrator.batch_size == 50
        assert orchestrator.checkpoint_store.max_history == 2
        assert orchestrator.process()
        assert (tmp_path / "process_info" / "completed_slices.txt").exists()


class TestDatetimeSlices:
    def test_daily_partitions_round_trip_through_files(self, tmp_path):
        start = datetime(2026, 1, 1)
        events = [start + timedelta(hours=h) for h in range(24 * 5)]
        seen = []

        def fetch(slice_, previous):
            return Page([e for e in events if slice_.begin <= e < slice_.end])

        def task(batch):
            return lambda: seen.extend(batch) or True

        failing = {"on": True}

        def flaky_task(batch):
            if failing["on"] and batch[0].day == 3:
                def sink_down():
                    raise ConnectionError("sink down")
                return sink_down
            return task(batch)

        orchestrator = SliceOrchestrator(
            lambda: datetime_slices(start, start + timedelta(days=5), timedelta(days=1)),
            fetch, flaky_task,
            checkpoint_store=FileCheckpointStore(tmp_path, SliceCodec("datetime")),
            launch_interval=0, retry_delay_unit=0, retry_attempts=1,
        )
        assert orchestrator.process() is False
        assert len(seen) == 24 * 4

        failing["on"] = False
        assert orchestrator.process_error_slices() is True
        assert sorted(seen) == events
        store = FileCheckpointStore(tmp_path, SliceCodec("datetime"))
        assert Slice(datetime(2026, 1, 3), datetime(2026, 1, 4)) in store.get_completed()
