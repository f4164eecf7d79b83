"""
Упаковка строки битов '0'/'1' в байты и обратно.
Старший бит байта идёт первым, последний байт дополняется нулями справа.
"""

import io
import struct


BITS_PER_BYTE = 8


def packed_length(bit_count: int) -> int:
    return (bit_count + BITS_PER_BYTE - 1) // BITS_PER_BYTE


def pack(bits: str) -> bytes:
    output = io.BytesIO()

    for i in range(0, len(bits), BITS_PER_BYTE):
        chunk = bits[i:i + BITS_PER_BYTE]
        byte = 0
        for bit in chunk:
            assert bit in '01', f"not a bit: {bit!r}"
            byte = (byte << 1) | (bit == '1')
        # недостающие биты последнего байта считаются нулями
        byte <<= BITS_PER_BYTE - len(chunk)
        output.write(struct.pack('B', byte))

    return output.getvalue()


def unpack(data: bytes, length: int) -> str:
    """Читает length байтов из data; результат всегда 8 * length битов."""
    assert 0 <= length <= len(data), "unpack length exceeds the buffer"

    bits = []
    for i in range(length):
        byte = data[i]
        for j in range(BITS_PER_BYTE - 1, -1, -1):
            bits.append('1' if (byte >> j) & 1 else '0')

    return ''.join(bits)
