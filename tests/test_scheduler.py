import pytest

from posturepal.classifier import PostureStatus
from posturepal.scheduler import Action, Cadence, FrameScheduler, FrameSource, HostSurface, MonitorDriver
from posturepal.stats import STORAGE_KEY

from conftest import make_frame


class ScriptedSource(FrameSource):
    def __init__(self, frames=None, fail_on=()):
        self.frames = list(frames or [])
        self.fail_on = set(fail_on)
        self.reads = 0
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    def read(self):
        self.reads += 1
        if self.reads in self.fail_on:
            raise RuntimeError("estimator crashed")
        if self.frames:
            return self.frames.pop(0)
        return make_frame()

    def close(self):
        self.closed = True


class ScriptedSurface(HostSurface):
    def __init__(self, visible=None, actions=None):
        self.visible = list(visible or [])
        self.actions = dict(actions or {})
        self.rendered = []

    def is_visible(self):
        if len(self.visible) > 1:
            return self.visible.pop(0)
        return self.visible[0] if self.visible else False

    def render(self, result):
        self.rendered.append(result)

    def poll_action(self):
        return self.actions.get(len(self.rendered))


@pytest.fixture
def driver_factory(clock, make_pipeline, notifier):
    def factory(source=None, surface=None):
        return MonitorDriver(
            source=source or ScriptedSource(),
            pipeline_factory=make_pipeline,
            clock=clock,
            scheduler=FrameScheduler(display_fps=20, background_interval_s=1.0),
            surface=surface or ScriptedSurface(),
            notifier=notifier,
        )

    return factory


class TestFrameScheduler:
    def test_starts_in_background(self):
        assert FrameScheduler().cadence == Cadence.BACKGROUND

    def test_switching(self):
        scheduler = FrameScheduler(display_fps=25, background_interval_s=1.0)
        assert scheduler.set_visible(True)
        assert scheduler.cadence == Cadence.DISPLAY
        assert scheduler.interval_s == pytest.approx(0.04)
        assert not scheduler.set_visible(True)
        assert scheduler.set_visible(False)
        assert scheduler.interval_s == pytest.approx(1.0)

    def test_rejects_bad_fps(self):
        with pytest.raises(ValueError):
            FrameScheduler(display_fps=0)


class TestMonitorDriver:
    def test_start_and_stop_lifecycle(self, driver_factory, notifier):
        source = ScriptedSource()
        driver = driver_factory(source=source)
        assert driver.status == PostureStatus.INITIALIZING
        driver.start()
        assert source.opened
        assert notifier.permission_requests == 1
        assert driver.status == PostureStatus.GOOD
        driver.step()
        driver.stop()
        assert source.closed
        assert driver.pipeline is None
        assert driver.status == PostureStatus.INITIALIZING
        assert driver.step() is None

    def test_cadence_follows_visibility(self, driver_factory, clock):
        surface = ScriptedSurface(visible=[True, True, False, False, True])
        driver = driver_factory(surface=surface)
        driver.run(duration_ms=2200)
        assert clock.sleeps[:4] == [pytest.approx(0.05), pytest.approx(0.05), pytest.approx(1.0), pytest.approx(1.0)]
        assert all(s == pytest.approx(0.05) for s in clock.sleeps[4:])

    def test_state_carries_over_cadence_switch(self, driver_factory):
        surface = ScriptedSurface(visible=[True, True, True, False, False, False])
        driver = driver_factory(surface=surface)
        driver.start()
        for _ in range(4):
            driver.step()
        pipeline = driver.pipeline
        assert pipeline.extractor.samples_seen() == 4
        driver.step()
        driver.step()
        assert driver.pipeline is pipeline
        assert pipeline.calibrator.is_calibrated

    def test_estimator_failure_is_no_person(self, driver_factory):
        driver = driver_factory(source=ScriptedSource(fail_on={2}))
        driver.start()
        assert driver.step().status == PostureStatus.GOOD
        assert driver.step().status == PostureStatus.NO_PERSON
        assert driver.step().status == PostureStatus.GOOD

    def test_empty_result_is_no_person(self, driver_factory):
        driver = driver_factory(source=ScriptedSource(frames=[None]))
        driver.start()
        assert driver.step().status == PostureStatus.NO_PERSON

    def test_stop_action_ends_run(self, driver_factory):
        source = ScriptedSource()
        surface = ScriptedSurface(actions={3: Action.STOP})
        driver = driver_factory(source=source, surface=surface)
        driver.run()
        assert driver.passes == 3
        assert source.closed
        assert not driver.is_running

    def test_recalibrate_action(self, driver_factory):
        surface = ScriptedSurface(actions={5: Action.RECALIBRATE})
        driver = driver_factory(surface=surface)
        driver.start()
        for _ in range(5):
            driver.step()
        assert not driver.pipeline.calibrator.is_calibrated
        assert driver.pipeline.extractor.samples_seen() == 0
        assert driver.is_running

    def test_reset_stats_action(self, driver_factory, clock):
        surface = ScriptedSurface(actions={2: Action.RESET_STATS})
        driver = driver_factory(surface=surface)
        driver.start()
        clock.advance(1000)
        driver.step()
        clock.advance(1000)
        driver.step()
        assert driver.pipeline.stats.good_duration_ms == 0
        clock.advance(500)
        assert driver.step().good_duration_ms == 500

    def test_no_overlapping_passes(self, driver_factory):
        class ReentrantSurface(ScriptedSurface):
            def render(self, result):
                super().render(result)
                self.nested = driver.step()

        surface = ReentrantSurface()
        driver = driver_factory(surface=surface)
        driver.start()
        assert driver.step() is not None
        assert surface.nested is None
        assert driver.passes == 1

    def test_restart_builds_fresh_pipeline(self, driver_factory):
        driver = driver_factory()
        driver.start()
        for _ in range(5):
            driver.step()
        assert driver.pipeline.calibrator.is_calibrated
        driver.stop()
        driver.start()
        assert not driver.pipeline.calibrator.is_calibrated

    def test_stop_flushes_pending_history(self, driver_factory, store, ledger):
        driver = driver_factory(surface=ScriptedSurface(visible=[True]))
        driver.run(duration_ms=1500)
        assert ledger.buckets[0].good_duration_ms == 1500
        assert store.get(STORAGE_KEY) == [b.to_record() for b in ledger.buckets]
        assert not ledger.dirty
