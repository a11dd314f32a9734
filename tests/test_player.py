"""Tests for the playback state machine."""

import asyncio
import signal
from unittest.mock import AsyncMock, patch

import pytest

from fakes import FakeOutput, FakeProcess, FakeSynthesizer, settle
from podcast_producer.assembly import wrap_wav
from podcast_producer.models import Episode, PlaybackState, PlaybackStatus
from podcast_producer.player import AudioOutput, FfplayOutput, PlaybackController

IDLE = PlaybackStatus.IDLE
PLAYING = PlaybackStatus.PLAYING
SUSPENDED = PlaybackStatus.SUSPENDED


def _pcm(segment):
    return f"pcm:{segment.text}".encode()


# --- Sequential playback ---

def test_plays_every_segment_in_order(sample_episode, fake_synthesizer, fake_output):
    """Segments play 0..N-1, then the player goes idle at -1."""
    states = []

    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, fake_output, on_change=states.append)
        await player.play(0)
        await player.wait()
        return player

    player = asyncio.run(scenario())
    assert fake_output.played == [_pcm(s) for s in sample_episode.segments]
    assert states == [
        PlaybackState(PLAYING, 0),
        PlaybackState(PLAYING, 1),
        PlaybackState(PLAYING, 2),
        PlaybackState(IDLE, -1),
    ]
    assert player.state == PlaybackState(IDLE, -1)
    assert fake_output.owner is None


def test_play_from_middle(sample_episode, fake_synthesizer, fake_output):
    """Starting at index 1 skips the first segment."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, fake_output)
        await player.play(1)
        await player.wait()

    asyncio.run(scenario())
    assert fake_output.played == [_pcm(s) for s in sample_episode.segments[1:]]


def test_failed_synthesis_is_skipped(sample_episode, fake_output):
    """A segment with no audio is skipped; playback keeps going."""
    failing = sample_episode.segments[1].text
    synth = FakeSynthesizer(fail={failing})
    states = []

    async def scenario():
        player = PlaybackController(sample_episode, synth, fake_output, on_change=states.append)
        await player.play(0)
        await player.wait()

    asyncio.run(scenario())
    assert fake_output.played == [_pcm(sample_episode.segments[0]), _pcm(sample_episode.segments[2])]
    assert PlaybackState(PLAYING, 1) in states
    assert states[-1] == PlaybackState(IDLE, -1)


def test_play_past_end_stays_idle(sample_episode, fake_synthesizer, fake_output):
    """Start index >= length is a no-op."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, fake_output)
        task = await player.play(len(sample_episode))
        return player, task

    player, task = asyncio.run(scenario())
    assert task is None
    assert player.state == PlaybackState(IDLE, -1)
    assert fake_output.played == []


def test_negative_index_rejected(sample_episode, fake_synthesizer, fake_output):
    """Negative start index is an error."""
    player = PlaybackController(sample_episode, fake_synthesizer, fake_output)
    with pytest.raises(ValueError):
        asyncio.run(player.play(-1))


def test_empty_episode_does_nothing(fake_synthesizer, fake_output):
    """Playing an empty episode leaves the player idle."""
    player = PlaybackController(Episode(segments=()), fake_synthesizer, fake_output)
    asyncio.run(player.play(0))
    assert player.state.status is IDLE


# --- Suspend and resume ---

def test_suspend_keeps_index_and_clip(sample_episode, fake_synthesizer, manual_output):
    """Suspend pauses the same clip; resume continues it."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await player.play(0)
        await settle()
        assert manual_output.clip_active

        assert await player.suspend() is True
        assert player.state == PlaybackState(SUSPENDED, 0)
        assert manual_output.paused
        assert manual_output.clip_active

        assert await player.resume() is True
        assert player.state == PlaybackState(PLAYING, 0)
        assert not manual_output.paused
        assert len(manual_output.played) == 1

        manual_output.finish_clip()
        await settle()
        assert player.state == PlaybackState(PLAYING, 1)
        await player.stop()

    asyncio.run(scenario())


def test_suspend_and_resume_only_from_matching_state(sample_episode, fake_synthesizer, manual_output):
    """suspend() needs PLAYING, resume() needs SUSPENDED."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        assert await player.suspend() is False
        assert await player.resume() is False
        await player.play(0)
        await settle()
        assert await player.resume() is False
        await player.stop()

    asyncio.run(scenario())


def test_toggle_cycles_states(sample_episode, fake_synthesizer, manual_output):
    """IDLE → PLAYING → SUSPENDED → PLAYING."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await player.toggle()
        await settle()
        assert player.state == PlaybackState(PLAYING, 0)
        await player.toggle()
        assert player.state == PlaybackState(SUSPENDED, 0)
        await player.toggle()
        assert player.state == PlaybackState(PLAYING, 0)
        await player.stop()

    asyncio.run(scenario())


# --- Stop, select and stale completions ---

def test_stop_goes_idle_and_releases_output(sample_episode, fake_synthesizer, manual_output):
    """stop() halts the clip, resets the index and frees the output."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await player.play(0)
        await settle()
        await player.stop()
        await settle()
        return player

    player = asyncio.run(scenario())
    assert player.state == PlaybackState(IDLE, -1)
    assert manual_output.stop_calls == 1
    assert manual_output.owner is None
    assert len(manual_output.played) == 1


def test_stop_while_suspended_unpauses_output(sample_episode, fake_synthesizer, manual_output):
    """The global pause doesn't outlive the run that set it."""
    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await player.play(0)
        await settle()
        await player.suspend()
        await player.stop()

    asyncio.run(scenario())
    assert manual_output.paused is False


def test_late_synthesis_after_stop_is_ignored(sample_episode, fake_output):
    """Audio that arrives after stop() never reaches the output."""
    async def scenario():
        synth = FakeSynthesizer(gate=asyncio.Event())
        player = PlaybackController(sample_episode, synth, fake_output)
        await player.play(0)
        await settle()
        await player.stop()
        synth.gate.set()
        await settle()
        return player

    player = asyncio.run(scenario())
    assert fake_output.played == []
    assert player.state == PlaybackState(IDLE, -1)


def test_select_discards_in_flight_clip(sample_episode, fake_synthesizer, manual_output):
    """Jumping to a segment cuts the current clip and plays the new one."""
    states = []

    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output, on_change=states.append)
        await player.play(0)
        await settle()
        await player.select(2)
        await settle()
        assert player.state == PlaybackState(PLAYING, 2)
        assert manual_output.played[-1] == _pcm(sample_episode.segments[2])

        manual_output.finish_clip()
        await settle()
        return player

    player = asyncio.run(scenario())
    assert manual_output.stop_calls == 1
    assert len(manual_output.played) == 2
    assert PlaybackState(PLAYING, 1) not in states
    assert player.state == PlaybackState(IDLE, -1)


def test_play_while_output_paused_unpauses(sample_episode, fake_synthesizer, fake_output):
    """A fresh run never starts silently paused."""
    async def scenario():
        await fake_output.pause()
        player = PlaybackController(sample_episode, fake_synthesizer, fake_output)
        await player.play(0)
        assert fake_output.paused is False
        await player.wait()

    asyncio.run(scenario())
    assert len(fake_output.played) == 3


def test_load_resets_to_idle(sample_episode, fake_synthesizer, manual_output):
    """Loading a new episode stops playback of the old one."""
    other = Episode(segments=sample_episode.segments[:1], title="Other")

    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await player.play(1)
        await settle()
        await player.load(other)
        return player

    player = asyncio.run(scenario())
    assert player.episode is other
    assert player.state == PlaybackState(IDLE, -1)


# --- Shared output ---

def test_output_held_by_one_player(sample_episode, fake_synthesizer, manual_output):
    """A second player can't take the output until the first stops."""
    async def scenario():
        first = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        second = PlaybackController(sample_episode, fake_synthesizer, manual_output)
        await first.play(0)
        await settle()
        with pytest.raises(RuntimeError):
            await second.play(0)
        await first.stop()
        await second.play(0)
        await settle()
        assert manual_output.owner is second
        await second.stop()

    asyncio.run(scenario())


def test_output_error_stops_playback(sample_episode, fake_synthesizer):
    """An exception from the device ends the run cleanly."""
    class BrokenOutput(AudioOutput):
        async def play(self, pcm):
            raise OSError("device gone")

    output = BrokenOutput()

    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, output)
        await player.play(0)
        await player.wait()
        return player

    player = asyncio.run(scenario())
    assert player.state == PlaybackState(IDLE, -1)
    assert output.owner is None


def test_clip_cut_short_still_advances(sample_episode, fake_synthesizer):
    """A clip that doesn't reach its natural end moves on to the next."""
    class ShortOutput(FakeOutput):
        async def play(self, pcm):
            self.played.append(pcm)
            return False

    output = ShortOutput()

    async def scenario():
        player = PlaybackController(sample_episode, fake_synthesizer, output)
        await player.play(0)
        await player.wait()

    asyncio.run(scenario())
    assert len(output.played) == 3


# --- ffplay output ---

def _spawn(process):
    return patch("podcast_producer.player.asyncio.create_subprocess_exec", new=AsyncMock(return_value=process))


def test_ffplay_plays_wav_on_stdin():
    """The clip is piped as a WAV and a clean exit counts as finished."""
    async def scenario():
        process = FakeProcess()
        with _spawn(process) as spawn:
            finished = await FfplayOutput().play(b"\x01\x02")
        return process, spawn, finished

    process, spawn, finished = asyncio.run(scenario())
    assert finished is True
    assert process.written == wrap_wav(b"\x01\x02")
    assert spawn.call_args.args[0] == "ffplay"
    assert process.events == []


def test_ffplay_clip_started_while_paused_starts_paused():
    """A spawn under a global pause is frozen straight away."""
    async def scenario():
        process = FakeProcess()
        output = FfplayOutput()
        await output.pause()
        with _spawn(process):
            await output.play(b"pcm")
        return process

    process = asyncio.run(scenario())
    assert process.events[0] == ("signal", signal.SIGSTOP)


def test_ffplay_pause_and_resume_signal_process():
    """Pause freezes the running clip, resume thaws it."""
    async def scenario():
        process = FakeProcess(block=True)
        output = FfplayOutput()
        with _spawn(process):
            task = asyncio.create_task(output.play(b"pcm"))
            await settle()
            await output.pause()
            await output.resume()
            process.finish()
            finished = await task
        return process, finished

    process, finished = asyncio.run(scenario())
    assert process.events == [("signal", signal.SIGSTOP), ("signal", signal.SIGCONT)]
    assert finished is True


def test_ffplay_stop_while_paused_continues_then_terminates():
    """A frozen process gets SIGCONT before terminate, and the clip reports unfinished."""
    async def scenario():
        process = FakeProcess(block=True)
        output = FfplayOutput()
        with _spawn(process):
            task = asyncio.create_task(output.play(b"pcm"))
            await settle()
            await output.pause()
            await output.stop()
            finished = await task
        return process, finished

    process, finished = asyncio.run(scenario())
    assert process.events == [
        ("signal", signal.SIGSTOP),
        ("signal", signal.SIGCONT),
        ("terminate",),
    ]
    assert finished is False


def test_ffplay_stop_without_clip_is_noop():
    asyncio.run(FfplayOutput().stop())
