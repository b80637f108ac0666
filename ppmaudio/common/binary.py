import struct

def read_u32_le(data, offset=0):
    return struct.unpack_from('<I', data, offset)[0]

def read_u16_le(data, offset=0):
    return struct.unpack_from('<H', data, offset)[0]

def read_u8(data, offset=0):
    return data[offset]

def align_to_4(value):
    """Round up to the next multiple of 4. Multiples of 4 are returned unchanged."""
    return (value + 3) & ~3
