"""Sequential episode playback with pause/resume.

PlaybackController is a small state machine (IDLE, PLAYING, SUSPENDED)
that synthesizes one segment at a time, plays it on the shared audio
output, and moves to the next segment when the clip ends. Every
continuation carries the run id it was started with; once stop() or a new
play() bumps the id, late completions from the old run do nothing.
"""

import asyncio
import logging
import signal
from typing import Callable

from podcast_producer.assembly import wrap_wav
from podcast_producer.models import Episode, PlaybackState, PlaybackStatus

logger = logging.getLogger(__name__)


class AudioOutput:
    """The process-wide audio device. One controller may hold it at a time.

    Pause state is global: a clip started while the output is paused starts
    paused and only sounds after resume().
    """

    def __init__(self):
        self._owner = None
        self.paused = False

    @property
    def owner(self):
        return self._owner

    def acquire(self, owner) -> None:
        if self._owner is not None and self._owner is not owner:
            raise RuntimeError("Audio output is already held by another player")
        self._owner = owner

    def release(self, owner) -> None:
        if self._owner is owner:
            self._owner = None

    async def play(self, pcm: bytes) -> bool:
        """Play one clip. Returns True if it ran to its natural end."""
        raise NotImplementedError

    async def pause(self) -> None:
        self.paused = True

    async def resume(self) -> None:
        self.paused = False

    async def stop(self) -> None:
        """Cut off the current clip, if any."""


class FfplayOutput(AudioOutput):
    """Plays clips through an ffplay subprocess (POSIX only).

    Pause and resume freeze and thaw the process with SIGSTOP/SIGCONT, so a
    paused clip continues exactly where it stopped.
    """

    def __init__(self, command: str = "ffplay"):
        super().__init__()
        self.command = command
        self._process = None

    async def play(self, pcm: bytes) -> bool:
        await self.stop()
        process = await asyncio.create_subprocess_exec(
            self.command, "-nodisp", "-autoexit", "-loglevel", "quiet", "-i", "pipe:0",
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._process = process
        if self.paused:
            process.send_signal(signal.SIGSTOP)

        try:
            process.stdin.write(wrap_wav(pcm))
            await process.stdin.drain()
            process.stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("ffplay closed its input early")

        returncode = await process.wait()
        finished = self._process is process and returncode == 0
        if self._process is process:
            self._process = None
        return finished

    async def pause(self) -> None:
        await super().pause()
        if self._process is not None:
            self._process.send_signal(signal.SIGSTOP)

    async def resume(self) -> None:
        await super().resume()
        if self._process is not None:
            self._process.send_signal(signal.SIGCONT)

    async def stop(self) -> None:
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        # A stopped process only sees SIGTERM once it runs again
        process.send_signal(signal.SIGCONT)
        process.terminate()
        await process.wait()


class PlaybackController:
    """Plays an episode segment by segment on an injected AudioOutput."""

    def __init__(
        self,
        episode: Episode,
        synthesizer,
        output: AudioOutput,
        on_change: Callable[[PlaybackState], None] | None = None,
    ):
        self._episode = episode
        self._synthesizer = synthesizer
        self._output = output
        self._on_change = on_change
        self._status = PlaybackStatus.IDLE
        self._index = -1
        self._run_id = 0
        self._task: asyncio.Task | None = None

    @property
    def episode(self) -> Episode:
        return self._episode

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(status=self._status, current_index=self._index)

    def _set(self, status: PlaybackStatus, index: int) -> None:
        if (status, index) == (self._status, self._index):
            return
        self._status, self._index = status, index
        logger.debug("Playback %s at segment %d", status.value, index)
        if self._on_change:
            self._on_change(self.state)

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._run_id and self._status is not PlaybackStatus.IDLE

    async def play(self, start_index: int = 0) -> asyncio.Task | None:
        """Start playing from start_index, replacing whatever was playing.

        Starting past the last segment just leaves the player idle.
        Returns the background task driving this run.
        """
        if start_index < 0:
            raise ValueError(f"Segment index must be >= 0, got {start_index}")

        await self.stop()
        if start_index >= len(self._episode.segments):
            return None

        self._output.acquire(self)
        if self._output.paused:
            await self._output.resume()

        self._run_id += 1
        self._set(PlaybackStatus.PLAYING, start_index)
        self._task = asyncio.create_task(self._run(self._run_id, start_index))
        return self._task

    async def select(self, index: int) -> asyncio.Task | None:
        """Jump to a segment (a click on it). Same as play(index)."""
        return await self.play(index)

    async def _run(self, run_id: int, start_index: int) -> None:
        segments = self._episode.segments
        index = start_index
        while index < len(segments):
            if not self._is_current(run_id):
                return
            self._set(self._status, index)
            seg = segments[index]

            audio = await self._synthesizer.synthesize(seg.text, seg.voice_id)
            if not self._is_current(run_id):
                return
            if audio is None:
                logger.info("No audio for segment %d, skipping", index)
                index += 1
                continue

            try:
                finished = await self._output.play(audio)
            except Exception as e:
                logger.error("Playback error on segment %d: %s", index, e)
                if self._is_current(run_id):
                    await self.stop()
                return

            if not self._is_current(run_id):
                return
            if not finished:
                logger.warning("Segment %d did not play to the end", index)
            index += 1

        if self._is_current(run_id):
            self._finish()

    def _finish(self) -> None:
        self._set(PlaybackStatus.IDLE, -1)
        self._output.release(self)

    async def suspend(self) -> bool:
        """Pause the current clip, keeping it and the index."""
        if self._status is not PlaybackStatus.PLAYING:
            return False
        await self._output.pause()
        self._set(PlaybackStatus.SUSPENDED, self._index)
        return True

    async def resume(self) -> bool:
        """Continue the paused clip from where it stopped."""
        if self._status is not PlaybackStatus.SUSPENDED:
            return False
        await self._output.resume()
        self._set(PlaybackStatus.PLAYING, self._index)
        return True

    async def stop(self) -> None:
        """Halt output and go idle. Any in-flight continuation becomes a no-op."""
        if self._status is PlaybackStatus.IDLE:
            return
        self._run_id += 1
        self._set(PlaybackStatus.IDLE, -1)
        await self._output.stop()
        if self._output.paused:
            await self._output.resume()
        self._output.release(self)

    async def toggle(self) -> None:
        """Single play/pause button: pause, resume, or start from the top."""
        if self._status is PlaybackStatus.PLAYING:
            await self.suspend()
        elif self._status is PlaybackStatus.SUSPENDED:
            await self.resume()
        else:
            await self.play(0)

    async def load(self, episode: Episode) -> None:
        """Swap in a new episode. Playback resets to idle."""
        await self.stop()
        self._episode = episode

    async def wait(self) -> None:
        """Wait for the current run's task to finish."""
        if self._task is not None:
            await self._task
