"""
IMA/DVI ADPCM codec for Flipnote Studio PPM audio.

The codec itself is standard 4-bit IMA ADPCM with the first sample of each byte
in the high nibble. Flipnote stores the nibbles the other way round, so every
byte is nibble-swapped on the way in and out.
"""

from ppmaudio.pcm import PPM_AUDIO_FORMAT

INDEX_TABLE = [
    -1, -1, -1, -1, 2, 4, 6, 8,
    -1, -1, -1, -1, 2, 4, 6, 8
]

STEP_TABLE = [
    7, 8, 9, 10, 11, 12, 13, 14, 16, 17,
    19, 21, 23, 25, 28, 31, 34, 37, 41, 45,
    50, 55, 60, 66, 73, 80, 88, 97, 107, 118,
    130, 143, 157, 173, 190, 209, 230, 253, 279, 307,
    337, 371, 408, 449, 494, 544, 598, 658, 724, 796,
    876, 963, 1060, 1166, 1282, 1411, 1552, 1707, 1878, 2066,
    2272, 2499, 2749, 3024, 3327, 3660, 4026, 4428, 4871, 5358,
    5894, 6484, 7132, 7845, 8630, 9493, 10442, 11487, 12635, 13899,
    15290, 16818, 18500, 20350, 22385, 24623, 27086, 29794, 32767
]

MAX_STEP_INDEX = len(STEP_TABLE) - 1

_SWAP_TABLE = bytes(((b & 0x0F) << 4) | (b >> 4) for b in range(256))


def swap_nibble(byte):
    return _SWAP_TABLE[byte]


def swap_nibbles(data):
    """Exchange the high and low nibble of every byte. Self-inverse."""
    return bytes(data).translate(_SWAP_TABLE)


def _check_mono(fmt):
    if fmt.channels != 1:
        raise ValueError(f"PPM audio is mono, got {fmt.channels} channels")


class ImaAdpcmDecoder:
    """
    Stateful decoder. Predictor and step index carry over between calls, so a
    track can be fed in pieces and still decode as one stream.
    """

    def __init__(self):
        self.predictor = 0
        self.step_index = 0

    def decode(self, data):
        samples = []
        for byte in data:
            # High Nibble First
            self._decode_nibble((byte >> 4) & 0x0F, samples)
            self._decode_nibble(byte & 0x0F, samples)
        return samples

    def _decode_nibble(self, nibble, samples):
        step = STEP_TABLE[self.step_index]
        diff = step >> 3

        if nibble & 4: diff += step
        if nibble & 2: diff += (step >> 1)
        if nibble & 1: diff += (step >> 2)

        if nibble & 8:
            self.predictor -= diff
        else:
            self.predictor += diff

        # Clamp predictor
        if self.predictor > 32767: self.predictor = 32767
        elif self.predictor < -32768: self.predictor = -32768

        samples.append(self.predictor)

        # Update index
        self.step_index += INDEX_TABLE[nibble]
        if self.step_index < 0: self.step_index = 0
        elif self.step_index > MAX_STEP_INDEX: self.step_index = MAX_STEP_INDEX


class ImaAdpcmEncoder:
    """
    Encoder mirroring ImaAdpcmDecoder. The predictor is advanced with the
    quantised delta, so it always equals what the decoder will output.
    """

    def __init__(self):
        self.predictor = 0
        self.step_index = 0

    def encode(self, samples):
        """Pack two codes per byte, first code in the high nibble. Odd input pads with a zero code."""
        out = bytearray()
        pending = None
        for sample in samples:
            code = self.encode_sample(int(sample))
            if pending is None:
                pending = code << 4
            else:
                out.append(pending | code)
                pending = None
        if pending is not None:
            out.append(pending)
        return out

    def encode_sample(self, sample):
        step = STEP_TABLE[self.step_index]
        diff = sample - self.predictor

        code = 0
        if diff < 0:
            code = 8
            diff = -diff

        vpdiff = step >> 3
        if diff >= step:
            code |= 4
            diff -= step
            vpdiff += step
        step >>= 1
        if diff >= step:
            code |= 2
            diff -= step
            vpdiff += step
        step >>= 1
        if diff >= step:
            code |= 1
            vpdiff += step

        if code & 8:
            self.predictor -= vpdiff
        else:
            self.predictor += vpdiff

        if self.predictor > 32767: self.predictor = 32767
        elif self.predictor < -32768: self.predictor = -32768

        self.step_index += INDEX_TABLE[code]
        if self.step_index < 0: self.step_index = 0
        elif self.step_index > MAX_STEP_INDEX: self.step_index = MAX_STEP_INDEX

        return code


def decode_track(data, fmt=PPM_AUDIO_FORMAT):
    """Decode an on-disk PPM track. Always returns 2 samples per input byte."""
    _check_mono(fmt)
    return ImaAdpcmDecoder().decode(swap_nibbles(data))


def encode_track(samples, fmt=PPM_AUDIO_FORMAT):
    """Encode samples into on-disk PPM track bytes, ceil(len(samples) / 2) long."""
    _check_mono(fmt)
    return swap_nibbles(ImaAdpcmEncoder().encode(samples))
