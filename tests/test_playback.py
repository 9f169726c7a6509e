"""
Tests for the Playback Controller
=================================
State machine, clamping, ticking and release against an in-memory engine.
"""

import asyncio
import math

import httpx
import pytest
from hypothesis import given, strategies as st

from docucast.app.events import PlaybackState, PlayState
from docucast.errors import AudioLoadError, PlaybackBusyError, PlaybackErrorKind
from docucast.playback.controller import PlaybackController

from fakes import AUDIO_URL, FakeEngine, collect, wait_until

pytestmark = pytest.mark.playback


def make_controller(duration=120.0, step=0.0, **kwargs):
    engine = FakeEngine(duration=duration, step=step)
    kwargs.setdefault("auto_tick", False)
    return PlaybackController(engine, **kwargs), engine


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_reaches_ready(self):
        controller, engine = make_controller()
        sub = controller.observe_state()

        assert await controller.load(AUDIO_URL) is True

        assert controller.state == PlaybackState(
            play_state=PlayState.READY, position=0.0, duration=120.0, source=AUDIO_URL
        )
        states = sub.pending()
        assert [s.play_state for s in states] == [PlayState.IDLE, PlayState.LOADING, PlayState.READY]
        assert states[1].duration is None
        assert engine.loaded == [AUDIO_URL]

    @pytest.mark.asyncio
    async def test_load_failure_then_retry(self):
        controller, engine = make_controller()
        engine.load_error = AudioLoadError("Could not decode audio", AUDIO_URL)

        assert await controller.load(AUDIO_URL) is False
        assert controller.state.play_state is PlayState.IDLE
        assert controller.state.error.kind is PlaybackErrorKind.LOAD_FAILED
        assert controller.state.error.message == "Could not decode audio"

        engine.load_error = None
        assert await controller.load(AUDIO_URL) is True
        assert controller.state.play_state is PlayState.READY
        assert controller.state.error is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ValueError("bad header"), httpx.InvalidURL("no host")])
    async def test_unexpected_engine_error_does_not_wedge_loading(self, error):
        controller, engine = make_controller()
        engine.load_error = error

        assert await controller.load(AUDIO_URL) is False
        assert controller.state.play_state is PlayState.IDLE
        assert controller.state.error.kind is PlaybackErrorKind.LOAD_FAILED

        engine.load_error = None
        assert await controller.load(AUDIO_URL) is True
        assert controller.state.play_state is PlayState.READY

    @pytest.mark.asyncio
    async def test_os_error_is_load_failure(self):
        controller, engine = make_controller()
        engine.load_error = FileNotFoundError("missing.wav")

        assert await controller.load("missing.wav") is False
        assert controller.state.error.kind is PlaybackErrorKind.LOAD_FAILED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [float("nan"), float("inf"), -1.0])
    async def test_unusable_duration(self, duration):
        controller, _ = make_controller(duration=duration)

        assert await controller.load(AUDIO_URL) is False
        assert controller.state.play_state is PlayState.IDLE
        assert controller.state.duration is None

    @pytest.mark.asyncio
    async def test_second_load_while_loading_is_refused(self):
        controller, engine = make_controller()
        engine.load_gate = asyncio.Event()
        first = asyncio.ensure_future(controller.load(AUDIO_URL))
        await wait_until(lambda: controller.state.play_state is PlayState.LOADING)

        with pytest.raises(PlaybackBusyError):
            await controller.load("other.wav")

        engine.load_gate.set()
        assert await first is True
        assert controller.state.source == AUDIO_URL

    @pytest.mark.asyncio
    async def test_load_while_playing_pauses_engine(self):
        controller, engine = make_controller()
        await controller.load(AUDIO_URL)
        controller.play()

        assert await controller.load("second.wav") is True
        assert not engine.playing
        assert controller.state.play_state is PlayState.READY
        assert controller.state.source == "second.wav"

    @pytest.mark.asyncio
    async def test_release_during_load_discards_result(self):
        controller, engine = make_controller()
        engine.load_gate = asyncio.Event()
        pending = asyncio.ensure_future(controller.load(AUDIO_URL))
        await wait_until(lambda: controller.state.play_state is PlayState.LOADING)

        controller.release()
        engine.load_gate.set()

        assert await pending is False
        assert controller.state.play_state is PlayState.IDLE


class TestTransport:
    @pytest.mark.asyncio
    async def test_seek_without_duration_is_noop(self):
        controller, engine = make_controller()

        assert controller.seek(10) is False
        assert controller.state == PlaybackState()
        assert engine.position == 0.0

    @pytest.mark.asyncio
    async def test_seek_is_clamped(self):
        controller, engine = make_controller()
        await controller.load(AUDIO_URL)

        assert controller.seek(9999) is True
        assert controller.state.position == 120.0
        assert controller.seek(-5) is True
        assert controller.state.position == 0.0
        assert controller.seek(float("nan")) is False
        assert engine.position == 0.0

    @pytest.mark.asyncio
    async def test_ticks_advance_and_pause_freezes(self):
        controller, engine = make_controller(step=0.5)
        await controller.load(AUDIO_URL)
        controller.play()

        for _ in range(3):
            controller.tick()
        assert controller.state.play_state is PlayState.PLAYING
        assert math.isclose(controller.state.position, 1.5)

        controller.pause()
        controller.tick()
        assert controller.state.play_state is PlayState.READY
        assert math.isclose(controller.state.position, 1.5)

        controller.play()
        controller.tick()
        assert math.isclose(controller.state.position, 2.0)

    @pytest.mark.asyncio
    async def test_play_and_pause_are_noops_in_wrong_state(self):
        controller, _ = make_controller()

        assert controller.play() is False
        assert controller.pause() is False
        await controller.load(AUDIO_URL)
        assert controller.pause() is False
        assert controller.toggle() is True
        assert controller.state.play_state is PlayState.PLAYING
        assert controller.toggle() is True
        assert controller.state.play_state is PlayState.READY

    @pytest.mark.asyncio
    async def test_reaches_end_then_restarts(self):
        controller, engine = make_controller(duration=1.0, step=0.5)
        await controller.load(AUDIO_URL)
        controller.play()

        controller.tick()
        controller.tick()
        assert controller.state.play_state is PlayState.ENDED
        assert controller.state.position == 1.0

        assert controller.play() is True
        assert controller.state.play_state is PlayState.PLAYING
        assert controller.state.position == 0.0
        assert engine.position == 0.0

    @pytest.mark.asyncio
    async def test_seek_from_ended_is_ready(self):
        controller, _ = make_controller(duration=1.0, step=0.5)
        await controller.load(AUDIO_URL)
        controller.play()
        controller.tick()
        controller.tick()

        assert controller.seek(0.25) is True
        assert controller.state.play_state is PlayState.READY
        assert controller.state.position == 0.25

    @pytest.mark.asyncio
    async def test_skip(self):
        controller, _ = make_controller(skip_seconds=15.0)
        await controller.load(AUDIO_URL)

        controller.skip_forward()
        controller.skip_forward()
        assert controller.state.position == 30.0
        controller.skip_back()
        assert controller.state.position == 15.0
        controller.skip(-100)
        assert controller.state.position == 0.0

    @pytest.mark.asyncio
    async def test_rate_change_keeps_play_state(self):
        controller, engine = make_controller(step=0.5)
        await controller.load(AUDIO_URL)
        controller.play()

        controller.set_rate(2.0)
        controller.tick()

        assert controller.state.play_state is PlayState.PLAYING
        assert controller.state.rate == 2.0
        assert engine.rate == 2.0
        assert math.isclose(controller.state.position, 1.0)

    @pytest.mark.parametrize("rate", [0, -1.0, float("nan"), float("inf")])
    def test_invalid_rate(self, rate):
        controller, _ = make_controller()
        with pytest.raises(ValueError):
            controller.set_rate(rate)
        assert controller.state.rate == 1.0

    @pytest.mark.asyncio
    async def test_rate_survives_reload(self):
        controller, engine = make_controller()
        controller.set_rate(1.5)
        await controller.load(AUDIO_URL)

        assert engine.rate == 1.5
        assert controller.state.rate == 1.5


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_release_resets_and_ends_stream(self):
        controller, engine = make_controller()
        await controller.load(AUDIO_URL)
        controller.set_rate(1.25)
        controller.play()
        sub = controller.observe_state()

        controller.release()

        assert engine.released
        assert not engine.playing
        assert controller.state == PlaybackState(rate=1.25)
        states = await collect(sub)
        assert states[-1] == PlaybackState(rate=1.25)
        assert await controller.load(AUDIO_URL) is False

        controller.release()

    @pytest.mark.asyncio
    async def test_auto_tick_reaches_end(self):
        controller, _ = make_controller(duration=1.0, step=0.25, auto_tick=True, tick_interval=0.01)
        await controller.load(AUDIO_URL)
        controller.play()

        await wait_until(lambda: controller.state.play_state is PlayState.ENDED)
        assert controller.state.position == 1.0
        controller.release()

    @pytest.mark.asyncio
    async def test_pause_stops_ticker(self):
        controller, _ = make_controller(step=0.25, auto_tick=True, tick_interval=0.01)
        await controller.load(AUDIO_URL)
        controller.play()
        await wait_until(lambda: controller.state.position > 0)

        controller.pause()
        frozen = controller.state.position
        await asyncio.sleep(0.05)

        assert controller.state.position == frozen
        controller.release()

    def test_invalid_tick_interval(self):
        with pytest.raises(ValueError):
            PlaybackController(FakeEngine(), tick_interval=0)


@pytest.mark.property
class TestSeekProperties:
    @given(
        duration=st.floats(min_value=0.0, max_value=1e6),
        target=st.floats(allow_nan=False, allow_infinity=True),
    )
    def test_position_always_within_bounds(self, duration, target):
        async def scenario():
            controller, _ = make_controller(duration=duration)
            await controller.load(AUDIO_URL)
            controller.seek(target)
            return controller.state

        state = asyncio.run(scenario())
        assert 0.0 <= state.position <= duration
