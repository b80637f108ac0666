"""
Flipnote Studio PPM container: sound header parsing and track extraction.

Layout used here (all integers little-endian):
  0x0000  magic "PARA"
  0x0004  animation data size (u32)
  0x0008  audio data size (u32, informational)
  0x000C  frame count - 1 (u16)
  0x06A0  animation data, followed by one sound-effect flag byte per frame
  aligned to 4 bytes after that: the 32-byte sound header
      +0x00  bgm, se1, se2, se3 lengths (4 x u32)
      +0x10  frame playback speed (u8)
      +0x11  BGM recording speed (u8)
      +0x12  reserved (14 bytes)
  then the four tracks back to back, in the same order as the lengths.

Only the four lengths are required. The speed bytes are read as None when the
file ends before them.
"""

from collections import namedtuple

from ppmaudio.common.binary import read_u16_le, read_u32_le, read_u8, align_to_4

# PPM Constants
PPM_MAGIC = b'PARA'
HEADER_SIZE = 0x06A0        # file header + metadata + thumbnail
SOUND_HEADER_SIZE = 32
TRACK_NAMES = ('bgm', 'se1', 'se2', 'se3')

TrackSpan = namedtuple('TrackSpan', ['offset', 'length'])
SoundIndex = namedtuple('SoundIndex', TRACK_NAMES)
PPMHeader = namedtuple('PPMHeader', [
    'animation_size', 'audio_size', 'frame_count', 'sound_header_offset',
    'track_lengths', 'playback_speed', 'bgm_speed',
])


class FormatError(ValueError):
    """The input is not a file this tool understands."""


class ShortReadError(OSError):
    """Fewer bytes were available than the container says there are."""


def read_at(f, offset, size):
    """Seek to offset and read exactly size bytes."""
    f.seek(offset)
    data = f.read(size)
    if len(data) != size:
        raise ShortReadError(
            f"Short read at 0x{offset:X}: expected {size} bytes, got {len(data)}")
    return data


def read_track(f, span):
    """Return the raw (still nibble-swapped) bytes covered by span."""
    return read_at(f, span.offset, span.length)


def sound_header_offset(animation_size, frame_count):
    # Sound header follows the per-frame SE flags, padded to a 4 byte boundary
    return align_to_4(HEADER_SIZE + animation_size + frame_count)


def build_sound_index(header_offset, lengths):
    """
    Lay the four tracks out back to back after the 32-byte sound header.
    lengths must be in TRACK_NAMES order.
    """
    spans = []
    offset = header_offset + SOUND_HEADER_SIZE
    for length in lengths:
        spans.append(TrackSpan(offset, length))
        offset += length
    return SoundIndex(*spans)


class PPMReader:
    def __init__(self, f):
        self.f = f
        self.header = self._parse_header()
        self.sound_index = build_sound_index(self.header.sound_header_offset,
                                             self.header.track_lengths)

    def _parse_header(self):
        self.f.seek(0)
        magic = self.f.read(4)
        if magic != PPM_MAGIC:
            raise FormatError(f"PPM magic incorrect (expected {PPM_MAGIC!r}, got {magic!r})")

        fixed = read_at(self.f, 0x4, 10)
        animation_size = read_u32_le(fixed, 0)
        audio_size = read_u32_le(fixed, 4)
        frame_count = read_u16_le(fixed, 8) + 1

        header_offset = sound_header_offset(animation_size, frame_count)
        lengths_raw = read_at(self.f, header_offset, 4 * len(TRACK_NAMES))
        # Speed bytes are optional; a file may end right after the lengths
        speeds = self.f.read(2)
        lengths = tuple(read_u32_le(lengths_raw, i * 4) for i in range(len(TRACK_NAMES)))

        return PPMHeader(
            animation_size=animation_size,
            audio_size=audio_size,
            frame_count=frame_count,
            sound_header_offset=header_offset,
            track_lengths=lengths,
            playback_speed=read_u8(speeds, 0) if len(speeds) > 0 else None,
            bgm_speed=read_u8(speeds, 1) if len(speeds) > 1 else None,
        )

    def span(self, name):
        if name not in TRACK_NAMES:
            raise ValueError(f"Unknown track {name!r} (expected one of {', '.join(TRACK_NAMES)})")
        return getattr(self.sound_index, name)

    def read_track(self, name):
        return read_track(self.f, self.span(name))

    def sound_effect_flags(self):
        """
        Per-frame sound effect triggers as (se1, se2, se3) booleans.
        The flag bytes sit directly after the animation data.
        """
        data = read_at(self.f, HEADER_SIZE + self.header.animation_size, self.header.frame_count)
        return [(bool(b & 1), bool(b & 2), bool(b & 4)) for b in data]
