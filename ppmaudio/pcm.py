"""
Linear PCM bridge between decoded sample lists and WAV files.

PPM audio is always mono, 8192 Hz, 16-bit. Nothing here resamples: a WAV at
another rate is read as is and only flagged with a warning.
"""

import wave
from collections import namedtuple

import numpy as np

from ppmaudio.common.ppm import FormatError

AudioFormat = namedtuple('AudioFormat', ['channels', 'sample_rate', 'bit_depth'])

PPM_AUDIO_FORMAT = AudioFormat(channels=1, sample_rate=8192, bit_depth=16)


def samples_to_pcm(samples):
    """Clip decoded samples to 16-bit and return them as little-endian int16."""
    samples = np.asarray(samples, dtype=np.int32)
    return np.clip(samples, -32768, 32767).astype('<i2')


def pcm_to_samples(frames, channels, sample_width):
    """
    Convert raw interleaved WAV frames into a mono list of 16-bit range ints.
    Multi-channel input is averaged down to one channel.
    """
    if sample_width == 2:
        samples = np.frombuffer(frames, dtype='<i2').astype(np.int32)
    elif sample_width == 1:
        # WAV 8-bit is unsigned
        samples = (np.frombuffer(frames, dtype=np.uint8).astype(np.int32) - 128) << 8
    elif sample_width == 4:
        samples = np.frombuffer(frames, dtype='<i4').astype(np.int64) >> 16
    else:
        raise FormatError(f"Unsupported WAV sample width: {sample_width * 8} bits")

    if channels > 1:
        # Drop a trailing partial frame, then average the channels
        samples = samples[:(len(samples) // channels) * channels]
        samples = samples.reshape(-1, channels).mean(axis=1)
        samples = np.round(samples)

    return [int(s) for s in samples]


def write_wav(samples, dest, fmt=PPM_AUDIO_FORMAT):
    """Write samples to dest (a path or a binary file object) as a PCM WAV."""
    pcm = samples_to_pcm(samples)
    with wave.open(dest, 'wb') as wav_file:
        wav_file.setnchannels(fmt.channels)
        wav_file.setsampwidth(fmt.bit_depth // 8)
        wav_file.setframerate(fmt.sample_rate)
        wav_file.writeframes(pcm.tobytes())


def read_wav(source, fmt=PPM_AUDIO_FORMAT):
    """Read every frame of a WAV file and return mono samples for the encoder."""
    with wave.open(source, 'rb') as wav_file:
        channels = wav_file.getnchannels()
        sample_width = wav_file.getsampwidth()
        rate = wav_file.getframerate()
        frames = wav_file.readframes(wav_file.getnframes())

    if channels != fmt.channels:
        print(f"Warning: input has {channels} channels, downmixing to mono")
    if rate != fmt.sample_rate:
        print(f"Warning: input is {rate} Hz, encoding as {fmt.sample_rate} Hz without resampling")

    return pcm_to_samples(frames, channels, sample_width)
