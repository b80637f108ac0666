import struct

import pytest

from ppmaudio.common.ppm import HEADER_SIZE, TRACK_NAMES
from ppmaudio.common.binary import align_to_4


def build_ppm(animation_size=0x100, frame_count=4, tracks=None, se_flags=None,
              playback_speed=8, bgm_speed=8, magic=b'PARA'):
    """Assemble a minimal PPM: header, zeroed animation data, SE flags, sound header, tracks."""
    tracks = tracks or {}
    data = [tracks.get(name, b'') for name in TRACK_NAMES]
    se_flags = se_flags if se_flags is not None else [0] * frame_count
    assert len(se_flags) == frame_count

    header = bytearray(HEADER_SIZE)
    header[0:4] = magic
    struct.pack_into('<I', header, 0x4, animation_size)
    struct.pack_into('<I', header, 0x8, sum(len(d) for d in data))
    struct.pack_into('<H', header, 0xC, frame_count - 1)

    body = header + bytes(animation_size) + bytes(se_flags)
    body += bytes(align_to_4(len(body)) - len(body))

    sound_header = struct.pack('<4I', *(len(d) for d in data))
    sound_header += bytes([playback_speed, bgm_speed]) + bytes(14)
    return bytes(body + sound_header + b''.join(data))


@pytest.fixture
def ppm_file(tmp_path):
    def make(name='test.ppm', **kwargs):
        path = tmp_path / name
        path.write_bytes(build_ppm(**kwargs))
        return path
    return make
