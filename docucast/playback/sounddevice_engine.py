"""
SoundDevice Engine
==================
MediaEngine that decodes audio with soundfile and plays it through a
sounddevice OutputStream. Remote audio is downloaded to a cache
directory first.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path
from threading import Lock
from typing import Optional
from urllib.parse import urlparse

import aiofiles
import httpx
import numpy as np
import sounddevice as sd
import soundfile as sf

from docucast.errors import AudioLoadError
from docucast.playback.engine import MediaEngine

logger = logging.getLogger(__name__)


class SoundDeviceEngine(MediaEngine):
    """
    Local audio output.

    The PortAudio callback runs on its own thread; every field it shares
    with the event loop is guarded by `_lock`. Rates other than 1.0 step
    through frames, so pitch follows speed.
    """

    def __init__(
        self,
        cache_dir: Path = Path("cache") / "audio",
        download_timeout: float = 120.0,
        blocksize: int = 1024,
    ):
        self.cache_dir = Path(cache_dir)
        self.download_timeout = download_timeout
        self.blocksize = blocksize

        self._lock = Lock()
        self._data: Optional[np.ndarray] = None
        self._sample_rate = 0
        self._cursor = 0.0  # fractional frame index
        self._rate = 1.0
        self._playing = False
        self._stream: Optional[sd.OutputStream] = None

    # ==================== Loading ====================

    async def _download(self, url: str) -> Path:
        name = Path(urlparse(url).path).name or "audio"
        digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]
        target = self.cache_dir / f"{digest}_{name}"
        if target.exists():
            return target

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            async with httpx.AsyncClient(timeout=self.download_timeout, follow_redirects=True) as client:
                async with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    async with aiofiles.open(temp_path, "wb") as f:
                        async for chunk in resp.aiter_bytes():
                            await f.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            temp_path.unlink(missing_ok=True)
            raise AudioLoadError(f"Download failed: {e}", url)
        temp_path.replace(target)
        logger.info(f"Downloaded {url} -> {target}")
        return target

    async def load(self, source: str) -> float:
        self._close_stream()
        scheme = urlparse(source).scheme.lower()
        path = await self._download(source) if scheme in ("http", "https") else Path(source).expanduser()
        if not path.is_file():
            raise AudioLoadError("Audio file not found", str(path))

        loop = asyncio.get_running_loop()
        try:
            data, sample_rate = await loop.run_in_executor(
                None, lambda: sf.read(str(path), dtype="float32", always_2d=True)
            )
        except (sf.LibsndfileError, RuntimeError) as e:
            raise AudioLoadError(f"Cannot decode audio: {e}", str(path))

        with self._lock:
            self._data = data
            self._sample_rate = sample_rate
            self._cursor = 0.0
            self._playing = False
        return len(data) / float(sample_rate) if sample_rate else 0.0

    # ==================== Output ====================

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug(f"sounddevice status: {status}")
        with self._lock:
            data = self._data
            if data is None or not self._playing:
                outdata.fill(0)
                return
            indices = (self._cursor + np.arange(frames) * self._rate).astype(np.int64)
            valid = indices < len(data)
            outdata.fill(0)
            outdata[valid] = data[indices[valid]]
            self._cursor = min(self._cursor + frames * self._rate, float(len(data)))
            finished = self._cursor >= len(data)
            if finished:
                self._playing = False
        if finished:
            raise sd.CallbackStop()

    def _close_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is not None:
            try:
                stream.stop()
            finally:
                stream.close()

    def play(self) -> None:
        with self._lock:
            if self._data is None:
                return
            self._playing = True
            channels = self._data.shape[1]
            sample_rate = self._sample_rate
        self._close_stream()
        self._stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            blocksize=self.blocksize,
            callback=self._callback,
        )
        self._stream.start()

    def pause(self) -> None:
        with self._lock:
            self._playing = False
        self._close_stream()

    def seek(self, seconds: float) -> None:
        with self._lock:
            if self._data is None:
                return
            frame = max(0.0, seconds) * self._sample_rate
            self._cursor = min(frame, float(len(self._data)))

    def set_rate(self, rate: float) -> None:
        with self._lock:
            self._rate = rate

    def current_position(self) -> float:
        with self._lock:
            if not self._sample_rate:
                return 0.0
            return self._cursor / self._sample_rate

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._playing

    def release(self) -> None:
        self.pause()
        with self._lock:
            self._data = None
            self._sample_rate = 0
            self._cursor = 0.0
