"""
Audio fetching and decoding utilities.
"""

import io
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx
import librosa
import numpy as np
import soundfile as sf
from pydub import AudioSegment

from phomshah.models.errors import DecodeError, LoadError
from phomshah.models.resources import DecodedAudio


logger = logging.getLogger(__name__)


async def fetch_audio_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """Download the raw bytes of an audio resource.

    Args:
        client: HTTP client to use
        url: Resource URL (http or https)

    Returns:
        Response body

    Raises:
        LoadError: If the URL is invalid, the request fails or the body is empty
    """
    parsed_url = urlparse(url)
    if parsed_url.scheme not in ("http", "https"):
        raise LoadError(url, f"Invalid audio source scheme: {parsed_url.scheme!r}")

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise LoadError(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise LoadError(url, f"HTTP error: {e}") from e

    if not response.content:
        raise LoadError(url, "Empty response content")

    logger.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content


class HttpFetcher:
    """Callable fetcher backed by a lazily created ``httpx.AsyncClient``."""

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client

    async def __call__(self, url: str) -> bytes:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return await fetch_audio_bytes(self._client, url)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _decode_with_soundfile(data: bytes) -> DecodedAudio:
    samples, sr = sf.read(io.BytesIO(data), dtype='float32', always_2d=True)
    return DecodedAudio(samples=samples, sample_rate=int(sr))


def _decode_with_pydub(data: bytes) -> DecodedAudio:
    # pydub shells out to ffmpeg for compressed formats such as MP3
    segment = AudioSegment.from_file(io.BytesIO(data))
    samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
    samples = samples.reshape(-1, segment.channels)
    samples /= float(1 << (8 * segment.sample_width - 1))
    return DecodedAudio(samples=samples, sample_rate=int(segment.frame_rate))


def decode_audio_bytes(data: bytes, target_sample_rate: Optional[int] = None) -> DecodedAudio:
    """Decode an encoded audio file held in memory.

    Args:
        data: Encoded audio bytes (WAV, FLAC, OGG, MP3, ...)
        target_sample_rate: Resample to this rate if given

    Returns:
        Decoded float32 samples shaped (frames, channels)

    Raises:
        DecodeError: If no decoder accepts the data
    """
    if not data:
        raise DecodeError("No audio data to decode")

    try:
        decoded = _decode_with_soundfile(data)
    except RuntimeError as e:
        logger.debug(f"soundfile could not decode data ({e}), trying pydub")
        try:
            decoded = _decode_with_pydub(data)
        except Exception as e:
            raise DecodeError(f"Cannot decode audio data: {e}") from e

    if decoded.frames == 0:
        raise DecodeError("Decoded audio contains no frames")

    if target_sample_rate and decoded.sample_rate != target_sample_rate:
        resampled = librosa.resample(
            decoded.samples.T,
            orig_sr=decoded.sample_rate,
            target_sr=target_sample_rate
        )
        decoded = DecodedAudio(
            samples=np.ascontiguousarray(resampled.T, dtype=np.float32),
            sample_rate=target_sample_rate
        )

    logger.debug(f"Decoded audio: frames={decoded.frames}, channels={decoded.channels}, "
                 f"sr={decoded.sample_rate}")
    return decoded
