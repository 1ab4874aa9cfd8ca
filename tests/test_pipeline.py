"""
Tests for the per-camera cycle, the periodic worker and the pipeline engine.
"""

import threading

import pytest

from conftest import ListSource, StubBackend, make_frame, raw_row, wait_for
from inference.errors import BackendError
from models.status import StatusLevel
from models.violation import ViolationType
from pipeline.cycle import CameraPipeline
from pipeline.engine import PipelineEngine, create_engine_from_config
from pipeline.stages.detect import CycleState
from pipeline.worker import CameraWorker
from runtime.context import create_context_from_config


def make_ctx(valid_config, backend=None, fallback_rate=1.0, capacity=10):
    config = dict(valid_config)
    config["fallback"] = {"rate": fallback_rate, "seed": 3}
    config["ledger"] = {"capacity": capacity}
    ctx = create_context_from_config(config, backend=backend or StubBackend(fail_load=True))
    ctx.backend.load_model()
    return ctx


class BlockingSource(ListSource):
    """Source whose capture() blocks until released."""

    def __init__(self, source_id="Camera 1"):
        super().__init__(source_id)
        self.entered = threading.Event()
        self.release = threading.Event()

    def capture(self):
        self.entered.set()
        self.release.wait(5.0)
        return make_frame(source_id=self.source_id)


class FailingOpenSource(ListSource):
    def open(self):
        raise RuntimeError("camera unplugged")


class TestCameraPipeline:
    def test_model_path_states_and_insert(self, valid_config):
        ctx = make_ctx(valid_config, backend=StubBackend(output=raw_row()))
        pipeline = CameraPipeline("Camera 1", ctx)

        result = pipeline.process(make_frame())

        assert result.states == [
            CycleState.PREPROCESSING,
            CycleState.INFERRING,
            CycleState.DECODING,
            CycleState.MAPPING,
            CycleState.INSERTED,
        ]
        assert not result.used_fallback
        (violation,) = ctx.ledger.snapshot()
        assert violation.type is ViolationType.RED_LIGHT
        assert violation.confidence == 86
        assert violation.location == "Camera 1"
        assert violation.timestamp == 1700000000.0
        assert pipeline.state is CycleState.IDLE

    def test_unready_backend_uses_fallback(self, valid_config):
        ctx = make_ctx(valid_config)
        assert not ctx.backend_ready

        result = CameraPipeline("Camera 2", ctx).process(make_frame())

        assert result.used_fallback
        assert result.states == [CycleState.FALLBACK, CycleState.MAPPING, CycleState.INSERTED]
        (violation,) = ctx.ledger.snapshot()
        assert 80 <= violation.confidence <= 100
        assert violation.location == "Camera 2"

    def test_malformed_frame_inserts_nothing(self, valid_config):
        ctx = make_ctx(valid_config)
        pipeline = CameraPipeline("Camera 1", ctx)

        result = pipeline.process(make_frame(width=0))

        assert result.skipped
        assert result.states == []
        assert ctx.ledger.snapshot() == ()
        assert pipeline.state is CycleState.IDLE

    def test_transient_inference_error_falls_back(self, valid_config):
        backend = StubBackend(run_error=BackendError("timeout"))
        ctx = make_ctx(valid_config, backend=backend)

        result = CameraPipeline("Camera 1", ctx).process(make_frame())

        assert result.used_fallback
        assert CycleState.FALLBACK in result.states
        assert ctx.backend_ready
        assert len(ctx.ledger) == 1

    def test_structural_error_flips_backend(self, valid_config):
        backend = StubBackend(run_error=BackendError("lost", structural=True))
        ctx = make_ctx(valid_config, backend=backend)
        pipeline = CameraPipeline("Camera 1", ctx)

        pipeline.process(make_frame())
        second = pipeline.process(make_frame())

        assert not ctx.backend_ready
        assert second.states[0] is CycleState.FALLBACK
        assert backend.run_calls == 1

    def test_decode_anomaly_yields_no_violations(self, valid_config):
        ctx = make_ctx(valid_config, backend=StubBackend(output=raw_row() + [1.0]))

        result = CameraPipeline("Camera 1", ctx).process(make_frame())

        assert result.violations == []
        assert result.error is not None
        assert CycleState.DECODING in result.states
        assert len(ctx.ledger) == 0

    def test_no_detections_inserts_nothing(self, valid_config):
        ctx = make_ctx(valid_config, fallback_rate=0.0)
        result = CameraPipeline("Camera 1", ctx).process(make_frame())
        assert result.violations == []
        assert result.states[-1] is CycleState.INSERTED
        assert len(ctx.ledger) == 0


class TestCameraWorker:
    def test_tick_runs_cycle(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1")
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)

        result = worker.tick()

        assert result is not None
        stats = worker.snapshot_stats()
        assert stats.cycles == 1
        assert stats.fallback_cycles == 1
        assert stats.violations == 1

    def test_tick_skipped_while_in_flight(self, valid_config):
        ctx = make_ctx(valid_config)
        source = BlockingSource()
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)

        t = threading.Thread(target=worker.tick)
        t.start()
        assert source.entered.wait(2.0)

        assert worker.tick() is None
        assert worker.snapshot_stats().skipped_ticks == 1

        source.release.set()
        t.join(2.0)
        assert worker.snapshot_stats().cycles == 1

    def test_stop_waits_for_in_flight_cycle(self, valid_config):
        ctx = make_ctx(valid_config)
        source = BlockingSource()
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)

        t = threading.Thread(target=worker.tick)
        t.start()
        assert source.entered.wait(2.0)

        stopper = threading.Thread(target=worker.stop)
        stopper.start()
        stopper.join(0.1)
        assert stopper.is_alive()

        source.release.set()
        stopper.join(2.0)
        t.join(2.0)
        assert not stopper.is_alive()
        # The in-flight cycle completed before stop() returned
        assert len(ctx.ledger) == 1
        assert source.close_calls == 1

    def test_no_cycle_after_stop(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1")
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)
        worker.start()
        worker.stop()

        before = len(ctx.ledger)
        assert worker.tick() is None
        assert len(ctx.ledger) == before
        assert not worker.snapshot_stats().running

    def test_stop_from_own_callback(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1")
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=0.05)
        done = threading.Event()

        def stop_on_first_cycle(result):
            worker.stop(timeout=0.5)
            done.set()

        worker.add_callback(stop_on_first_cycle)
        worker.start()

        assert done.wait(3.0)
        assert wait_for(lambda: not worker.is_running)
        assert source.close_calls == 1
        assert worker.snapshot_stats().cycles == 1

    def test_stop_timeout_bounds_in_flight_wait(self, valid_config):
        ctx = make_ctx(valid_config)
        source = BlockingSource()
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=2.0)

        t = threading.Thread(target=worker.tick)
        t.start()
        assert source.entered.wait(2.0)

        stopper = threading.Thread(target=worker.stop, kwargs={"timeout": 0.1})
        stopper.start()
        stopper.join(2.0)
        assert not stopper.is_alive()

        source.release.set()
        t.join(2.0)

    def test_missing_frame_counts_as_failed(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1", frames=[])
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx))

        assert worker.tick() is None
        assert worker.snapshot_stats().failed_cycles == 1

    def test_malformed_frame_counts_as_failed(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1", frames=[make_frame(width=0)])
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx))

        result = worker.tick()

        assert result.skipped
        assert worker.snapshot_stats().failed_cycles == 1
        assert len(ctx.ledger) == 0

    def test_periodic_thread(self, valid_config):
        ctx = make_ctx(valid_config)
        source = ListSource("Camera 1")
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx), interval_s=0.01)
        results = []
        worker.add_callback(results.append)

        worker.start()
        try:
            assert wait_for(lambda: worker.snapshot_stats().cycles >= 3)
            assert worker.is_running
        finally:
            worker.stop(timeout=2.0)

        assert not worker.is_running
        assert source.open_calls == 1
        assert source.close_calls == 1
        assert len(results) >= 3

    def test_cycle_reloads_lost_backend(self, valid_config):
        backend = StubBackend(output=raw_row())
        ctx = make_ctx(valid_config, backend=backend)
        ctx.reload_interval_s = 0.0
        backend.mark_unready("session lost")
        source = ListSource("Camera 1")
        source.open()
        worker = CameraWorker(source, CameraPipeline("Camera 1", ctx))

        result = worker.tick()

        assert ctx.backend_ready
        assert not result.used_fallback

    def test_invalid_interval(self, valid_config):
        ctx = make_ctx(valid_config)
        with pytest.raises(ValueError):
            CameraWorker(ListSource(), CameraPipeline("Camera 1", ctx), interval_s=0)


class TestPipelineEngine:
    def test_duplicate_source_id_rejected(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        engine.add_camera(ListSource("Camera 1"))
        with pytest.raises(ValueError):
            engine.add_camera(ListSource("Camera 1"))

    def test_create_from_config(self, valid_config):
        ctx = make_ctx(valid_config)
        engine = create_engine_from_config(valid_config, ctx)
        assert [w.source_id for w in engine.workers] == ["Camera 1", "Camera 2"]
        assert engine.get_worker("Camera 2").interval_s == 2.5

    def test_status_offline_before_start(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        engine.add_camera(ListSource("Camera 1"))
        status = engine.status()
        assert status.status is StatusLevel.OFFLINE
        assert "no_active_cameras" in status.alerts

    def test_start_all_survives_bad_camera(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        engine.add_camera(ListSource("Camera 1"), interval_s=0.05)
        engine.add_camera(FailingOpenSource("Camera 2"), interval_s=0.05)
        try:
            assert engine.start_all() == 1
            status = engine.status()
            assert status.status is StatusLevel.DEGRADED
            assert "model_unavailable" in status.alerts
        finally:
            engine.stop_all(timeout=2.0)

    def test_cameras_share_one_ledger(self, valid_config):
        ctx = make_ctx(valid_config, capacity=50)
        engine = PipelineEngine(ctx)
        for i in range(1, 4):
            engine.add_camera(ListSource(f"Camera {i}"), interval_s=0.01)
        engine.start_all()
        try:
            assert wait_for(lambda: {v.location for v in ctx.ledger.snapshot()} == {
                "Camera 1", "Camera 2", "Camera 3",
            })
        finally:
            engine.stop_all(timeout=2.0)

        ids = [v.id for v in ctx.ledger.snapshot()]
        assert len(ids) == len(set(ids))

    def test_run_returns_after_stop(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        source = ListSource("Camera 1")
        engine.add_camera(source, interval_s=0.05)

        runner = threading.Thread(target=engine.run)
        runner.start()
        assert wait_for(lambda: source.open_calls == 1)
        engine.stop()
        runner.join(5.0)

        assert not runner.is_alive()
        assert source.close_calls == 1

    def test_stop_all_pauses_without_ending_run(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        source = ListSource("Camera 1")
        worker = engine.add_camera(source, interval_s=0.05)

        runner = threading.Thread(target=engine.run)
        runner.start()
        try:
            assert wait_for(lambda: engine.is_active)

            engine.stop_all(timeout=2.0)
            assert not engine.is_active
            assert not worker.is_running
            runner.join(0.2)
            assert runner.is_alive()

            assert engine.start_all() == 1
            assert engine.is_active
            assert source.open_calls == 2
        finally:
            engine.stop()
            runner.join(5.0)
        assert not runner.is_alive()

    def test_stop_all_from_cycle_callback(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        engine.add_camera(ListSource("Camera 1"), interval_s=0.05)
        done = threading.Event()

        def pause(result):
            engine.stop_all(timeout=0.5)
            done.set()

        engine.add_callback(pause)
        engine.start_all()

        assert done.wait(3.0)
        assert not engine.is_active

    def test_callback_applies_to_all_cameras(self, valid_config):
        engine = PipelineEngine(make_ctx(valid_config))
        results = []
        engine.add_camera(ListSource("Camera 1"))
        engine.add_callback(results.append)
        worker2 = engine.add_camera(ListSource("Camera 2"))
        worker2.source.open()
        engine.get_worker("Camera 1").source.open()

        engine.get_worker("Camera 1").tick()
        worker2.tick()

        assert [r.source_id for r in results] == ["Camera 1", "Camera 2"]
