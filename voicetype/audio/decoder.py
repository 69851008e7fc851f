# Save this file as: voicetype/audio/decoder.py

import os
from typing import List, Tuple

import av
import numpy as np

from voicetype.audio.resample import resample_hq
from voicetype.utils.logger import logger
from config.config import pipeline_config

SUPPORTED_FORMATS = ["wav", "mp3", "m4a", "aac", "flac", "ogg", "webm"]


class DecodeError(Exception):
    """File could not be read or decoded."""


class UnsupportedFormatError(DecodeError):
    """No container/codec matched the file."""


class AudioDecoder:
    """
    Decodes audio files into mono float32 samples at the recognizer rate.
    Container and codec come from PyAV's probe; resampling is high quality.
    """

    target_rate = pipeline_config.target_sample_rate

    @classmethod
    def decode_file(cls, path) -> Tuple[np.ndarray, int]:
        path = os.fspath(path)
        if not os.path.isfile(path):
            raise DecodeError(f"Failed to open file: {path}")

        try:
            container = av.open(path, mode="r")
        except av.error.FFmpegError as e:
            raise UnsupportedFormatError(f"Failed to probe format of {path}: {e}") from e

        with container:
            if not container.streams.audio:
                raise UnsupportedFormatError(f"No supported audio track found in {path}")
            stream = container.streams.audio[0]
            if stream.codec_context is None:
                raise UnsupportedFormatError(f"No decoder for audio track in {path}")

            segments = cls._decode_stream(container, stream)

        # A stream may change rate mid-way; convert each run separately
        pieces = [
            resample_hq(np.concatenate(chunks), rate, cls.target_rate)
            for rate, chunks in segments
            if chunks
        ]
        if not pieces:
            logger.warning(f"No audio decoded from {path}")
            return np.array([], dtype=np.float32), cls.target_rate

        audio = np.concatenate(pieces).astype(np.float32, copy=False)
        logger.info(f"Decoded {os.path.basename(path)}: {len(audio) / cls.target_rate:.2f}s @ {cls.target_rate}Hz")
        return audio, cls.target_rate

    @staticmethod
    def _decode_stream(container, stream) -> List[Tuple[int, List[np.ndarray]]]:
        segments: List[Tuple[int, List[np.ndarray]]] = []
        converter = None
        params = None
        skipped = 0

        packets = container.demux(stream)
        while True:
            try:
                packet = next(packets)
            except StopIteration:
                break
            except av.error.EOFError:
                break

            try:
                frames = packet.decode()
            except av.error.FFmpegError as e:
                skipped += 1
                logger.debug(f"Skipping undecodable packet: {e}")
                continue

            for frame in frames:
                frame_params = (frame.sample_rate, frame.layout.name, frame.format.name)
                if frame_params != params:
                    # Stream parameters changed: reset the converter and carry on
                    if converter is not None:
                        logger.debug(f"Audio parameters changed {params} -> {frame_params}, resetting")
                        AudioDecoder._convert(converter, None, segments[-1][1])
                    params = frame_params
                    converter = av.AudioResampler(
                        format="fltp",
                        layout=frame.layout.name,
                        rate=frame.sample_rate
                    )
                    segments.append((frame.sample_rate, []))

                AudioDecoder._convert(converter, frame, segments[-1][1])

        if converter is not None:
            AudioDecoder._convert(converter, None, segments[-1][1])
        if skipped:
            logger.warning(f"Skipped {skipped} corrupt packet(s)")
        return segments

    @staticmethod
    def _convert(converter, frame, chunks: List[np.ndarray]):
        """Push one frame (None flushes) and collect mono float32 output."""
        for planar in converter.resample(frame):
            if planar is None:
                continue
            # (channels, samples) -> mono by channel average
            chunks.append(planar.to_ndarray().mean(axis=0).astype(np.float32))

    @classmethod
    def get_duration(cls, path) -> float:
        """Duration in seconds (decodes the whole file)."""
        samples, rate = cls.decode_file(path)
        return len(samples) / rate

    @staticmethod
    def is_supported(path) -> bool:
        """Extension allow-list check; not a guarantee the file decodes."""
        ext = os.path.splitext(os.fspath(path))[1].lstrip(".").lower()
        return ext in SUPPORTED_FORMATS

    @staticmethod
    def supported_formats() -> List[str]:
        return list(SUPPORTED_FORMATS)
