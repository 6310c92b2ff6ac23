"""Audio playback device for the podcastr player.

Plays episode media with miniaudio. Media is decoded on a loader thread; http(s)
media is fetched into memory first. Notifications are emitted from the loader,
audio and position threads, so pass a dispatch callable that hands them to the
thread that owns the player state.
"""

import threading
from pathlib import Path
from typing import Generator, Optional

import miniaudio
import numpy as np
import requests

from podcastr.player.logging_config import get_logger
from podcastr.player.services.device import DeviceError, DeviceEvent, Dispatch, PlaybackDevice

logger = get_logger(__name__)

SAMPLE_RATE = 44100
NCHANNELS = 2


class MiniaudioDevice(PlaybackDevice):
    """Playback device backed by a miniaudio output stream.

    The output stream stays open while a resource is loaded; pausing
    streams silence instead of tearing the stream down.

    Attributes:
        buffer_ms: Audio buffer size in milliseconds
        volume: Playback volume (0.0 to 1.0)
        position_interval_ms: Interval between TIME_ADVANCED notifications
        request_timeout: Timeout in seconds for fetching remote media
    """

    def __init__(
        self,
        dispatch: Optional[Dispatch] = None,
        buffer_ms: int = 500,
        volume: float = 0.8,
        position_interval_ms: int = 250,
        request_timeout: float = 30.0,
    ):
        """Initialize the device.

        Args:
            dispatch: Callable used to schedule notification delivery
            buffer_ms: Audio buffer size in milliseconds
            volume: Initial playback volume
            position_interval_ms: Interval between position notifications
            request_timeout: Timeout for fetching remote media
        """
        super().__init__(dispatch)
        self.buffer_ms = buffer_ms
        self.volume = max(0.0, min(1.0, volume))
        self.position_interval_ms = position_interval_ms
        self.request_timeout = request_timeout

        self._source: Optional[str] = None
        self._samples: Optional[np.ndarray] = None
        self._sample_pos = 0
        self._playing = False
        self._play_requested = False
        self._load_token = 0
        self._load_thread: Optional[threading.Thread] = None

        self._device: Optional[miniaudio.PlaybackDevice] = None
        self._generator: Optional[Generator] = None

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._position_thread: Optional[threading.Thread] = None

    @property
    def source(self) -> Optional[str]:
        """Get the currently loaded media reference."""
        with self._lock:
            return self._source

    @property
    def is_playing(self) -> bool:
        """Check if the device is currently producing audio."""
        with self._lock:
            return self._playing

    @property
    def duration_seconds(self) -> float:
        """Get duration of the loaded media in seconds."""
        with self._lock:
            if self._samples is None:
                return 0.0
            return len(self._samples) / (SAMPLE_RATE * NCHANNELS)

    @property
    def position_seconds(self) -> float:
        """Get current playback position in seconds."""
        with self._lock:
            return self._sample_pos / (SAMPLE_RATE * NCHANNELS)

    def set_volume(self, volume: float) -> None:
        """Set playback volume.

        Args:
            volume: Volume level (0.0 to 1.0)
        """
        self.volume = max(0.0, min(1.0, volume))

    def _decode(self, source: str) -> miniaudio.DecodedSoundFile:
        if source.startswith(("http://", "https://")):
            logger.debug(f"Fetching remote media: {source}")
            try:
                response = requests.get(source, timeout=self.request_timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise DeviceError(f"Failed to fetch {source}: {e}") from e
            return miniaudio.decode(
                response.content,
                output_format=miniaudio.SampleFormat.SIGNED16,
                nchannels=NCHANNELS,
                sample_rate=SAMPLE_RATE,
            )

        path = Path(source)
        logger.debug(f"Loading audio file: {path} ({path.stat().st_size} bytes)")
        return miniaudio.decode_file(
            str(path),
            output_format=miniaudio.SampleFormat.SIGNED16,
            nchannels=NCHANNELS,
            sample_rate=SAMPLE_RATE,
        )

    def load(self, source: str) -> None:
        """Start loading a media resource, paused at its start.

        Fetching and decoding happen on a loader thread. METADATA_READY or
        LOAD_FAILED reports the outcome; a newer load() or unload() discards
        the result of an older one.

        Args:
            source: Local path or http(s) URL

        Raises:
            DeviceError: If a local file does not exist
        """
        self.unload()

        if not source.startswith(("http://", "https://")) and not Path(source).exists():
            raise DeviceError(f"Audio file not found: {source}")

        with self._lock:
            self._load_token += 1
            token = self._load_token
            self._source = source
            self._play_requested = False

        self._load_thread = threading.Thread(target=self._load_worker, args=(source, token), daemon=True)
        self._load_thread.start()

    def _load_worker(self, source: str, token: int) -> None:
        """Loader thread: decode the media and report the outcome."""
        try:
            decoded = self._decode(source)
            samples = np.asarray(decoded.samples, dtype=np.int16)
        except (miniaudio.MiniaudioError, OSError) as e:
            self._load_failed(token, DeviceError(f"Failed to decode {source}: {e}"))
            return
        except DeviceError as e:
            self._load_failed(token, e)
            return

        with self._lock:
            if token != self._load_token:
                logger.debug(f"Discarding superseded load of {source}")
                return
            self._samples = samples
            self._sample_pos = 0
            self._playing = False
            start = self._play_requested
            self._play_requested = False

        logger.debug(
            f"Audio loaded: {SAMPLE_RATE}Hz, {NCHANNELS}ch, {len(samples)} samples, "
            f"{self.duration_seconds:.2f}s duration"
        )
        self._emit(DeviceEvent.METADATA_READY)
        if start:
            self.play()

    def _load_failed(self, token: int, error: DeviceError) -> None:
        with self._lock:
            if token != self._load_token:
                return
            self._source = None
            self._play_requested = False
        logger.error(f"Load failed: {error}")
        self._emit(DeviceEvent.LOAD_FAILED, error)

    def _next_chunk(self, num_frames: int) -> tuple[np.ndarray, bool]:
        """Take the next num_frames of audio.

        Returns:
            Tuple of (samples shaped (num_frames, nchannels), whether the media just ended)
        """
        samples_needed = num_frames * NCHANNELS
        finished = False

        with self._lock:
            if not self._playing or self._samples is None:
                return np.zeros((num_frames, NCHANNELS), dtype=np.int16), False

            end_pos = min(self._sample_pos + samples_needed, len(self._samples))
            chunk = self._samples[self._sample_pos:end_pos]
            self._sample_pos = end_pos

            if end_pos >= len(self._samples):
                if self.loop:
                    self._sample_pos = 0
                else:
                    self._playing = False
                    finished = True

        if len(chunk) < samples_needed:
            chunk = np.concatenate([chunk, np.zeros(samples_needed - len(chunk), dtype=np.int16)])

        if self.volume != 1.0:
            chunk = (chunk * self.volume).astype(np.int16)

        return chunk.reshape((num_frames, NCHANNELS)), finished

    def _stream_generator(self) -> Generator:
        """Coroutine generator that yields audio chunks as requested by miniaudio.

        Receives the number of frames needed via .send() and yields that many
        frames as a numpy array shaped (num_frames, nchannels).
        """
        num_frames = yield np.zeros((0, NCHANNELS), dtype=np.int16)

        while not self._stop_event.is_set():
            if num_frames is None or num_frames <= 0:
                logger.warning(f"Invalid frame request: {num_frames}")
                return

            chunk, finished = self._next_chunk(num_frames)
            if finished:
                logger.debug(f"Reached end of media: {self._source}")
                self._emit(DeviceEvent.ENDED)

            num_frames = yield chunk

    def _position_tracker(self) -> None:
        """Background thread that reports playback position."""
        interval = self.position_interval_ms / 1000
        while not self._stop_event.wait(interval):
            if self.is_playing:
                self._emit(DeviceEvent.TIME_ADVANCED, self.position_seconds)

    def _open_output(self) -> None:
        self._stop_event.clear()

        self._generator = self._stream_generator()
        next(self._generator)

        self._device = miniaudio.PlaybackDevice(
            output_format=miniaudio.SampleFormat.SIGNED16,
            nchannels=NCHANNELS,
            sample_rate=SAMPLE_RATE,
            buffersize_msec=self.buffer_ms,
        )
        self._device.start(self._generator)

        self._position_thread = threading.Thread(target=self._position_tracker, daemon=True)
        self._position_thread.start()
        logger.debug("Output stream started")

    def play(self) -> None:
        """Start or resume playback, once the media has loaded."""
        with self._lock:
            if self._samples is None:
                # Still loading; start when it is ready
                self._play_requested = self._source is not None
                return
            if self._playing:
                return
            if self._sample_pos >= len(self._samples):
                self._sample_pos = 0
            self._playing = True

        if self._device is None:
            try:
                self._open_output()
            except Exception as e:
                logger.error(f"Playback error: {e}", exc_info=True)
                with self._lock:
                    self._playing = False
                self._close_output()
                self._emit(DeviceEvent.PAUSED)
                return

        self._emit(DeviceEvent.STARTED)

    def pause(self) -> None:
        """Pause playback, keeping the position."""
        with self._lock:
            self._play_requested = False
            if not self._playing:
                return
            self._playing = False
        self._emit(DeviceEvent.PAUSED)

    def seek(self, seconds: float) -> None:
        """Move to a position in the loaded media.

        Args:
            seconds: Target position, clamped to the media duration
        """
        with self._lock:
            if self._samples is None:
                return
            frame = int(max(0.0, seconds) * SAMPLE_RATE)
            self._sample_pos = min(frame * NCHANNELS, len(self._samples))
        self._emit(DeviceEvent.TIME_ADVANCED, self.position_seconds)

    def _close_output(self) -> None:
        self._stop_event.set()

        # Stop the stream before closing the generator it is driving
        if self._device:
            try:
                self._device.stop()
                self._device.close()
            except miniaudio.MiniaudioError as e:
                logger.warning(f"Error closing output stream: {e}")
            self._device = None

        if self._generator:
            self._generator.close()
            self._generator = None

        if self._position_thread and self._position_thread.is_alive():
            if self._position_thread is not threading.current_thread():
                self._position_thread.join(timeout=1.0)
        self._position_thread = None

    def unload(self) -> None:
        """Stop playback and release the loaded media."""
        self._close_output()
        with self._lock:
            self._load_token += 1
            self._play_requested = False
            self._source = None
            self._samples = None
            self._sample_pos = 0
            self._playing = False
