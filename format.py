"""
Формат сжатого файла .huf и методы чтения/записи.

Заголовок хранит таблицу частот (по ней заново строится дерево),
число исходных байтов и точное число битов кода, поэтому нули,
добавленные при упаковке последнего байта, отбрасываются при чтении.
"""

import io
import struct
import zlib
from dataclasses import dataclass, field
from typing import List

from bitpacking import packed_length
from errors import FormatError
from freqtable import NUM_SYMBOLS, FrequencyTable, new_freqtable


MAGIC = b'HUFZ'
VERSION = 1

# magic, version, flags, symbol_count, bit_count, crc32, entry_count
HEADER_STRUCT = struct.Struct('<4sBBQQIH')
ENTRY_STRUCT = struct.Struct('<BQ')


@dataclass
class CompressedFile:
    symbol_count: int
    bit_count: int
    crc32: int
    frequencies: FrequencyTable = field(default_factory=new_freqtable)
    payload: bytes = b''

    @property
    def compressed_size(self) -> int:
        return (HEADER_STRUCT.size
                + ENTRY_STRUCT.size * self.entry_count
                + len(self.payload))

    @property
    def entry_count(self) -> int:
        return sum(1 for freq in self.frequencies if freq > 0)

    def present_symbols(self) -> List[int]:
        return [symbol for symbol, freq in enumerate(self.frequencies) if freq > 0]


class HuffmanFormat:
    @staticmethod
    def write(entry: CompressedFile) -> bytes:
        assert len(entry.payload) == packed_length(entry.bit_count)

        output = io.BytesIO()
        output.write(HEADER_STRUCT.pack(
            MAGIC, VERSION, 0,
            entry.symbol_count, entry.bit_count, entry.crc32,
            entry.entry_count
        ))

        for symbol in entry.present_symbols():
            output.write(ENTRY_STRUCT.pack(symbol, entry.frequencies[symbol]))

        output.write(entry.payload)
        return output.getvalue()

    @staticmethod
    def read_header(data: bytes) -> CompressedFile:
        """Читает заголовок и таблицу частот, не трогая данные."""
        entry, _ = HuffmanFormat._read_header(data)
        return entry

    @staticmethod
    def read(data: bytes) -> CompressedFile:
        entry, pos = HuffmanFormat._read_header(data)

        payload_size = packed_length(entry.bit_count)
        if pos + payload_size > len(data):
            raise FormatError("Corrupted file: cannot read compressed data")
        if pos + payload_size != len(data):
            raise FormatError("Corrupted file: trailing bytes after compressed data")

        entry.payload = data[pos:pos + payload_size]
        return entry

    @staticmethod
    def _read_header(data: bytes) -> tuple:
        if len(data) < HEADER_STRUCT.size:
            raise FormatError("File too small to be a Huffman file")

        (magic, version, _flags, symbol_count, bit_count,
         crc32, entry_count) = HEADER_STRUCT.unpack_from(data, 0)

        if magic != MAGIC:
            raise FormatError("Invalid file magic")
        if version != VERSION:
            raise FormatError(f"Unsupported version: {version}")
        if entry_count > NUM_SYMBOLS:
            raise FormatError(f"Corrupted header: {entry_count} frequency entries")

        pos = HEADER_STRUCT.size
        if pos + ENTRY_STRUCT.size * entry_count > len(data):
            raise FormatError("Corrupted header: cannot read frequency table")

        frequencies = new_freqtable()
        for _ in range(entry_count):
            symbol, freq = ENTRY_STRUCT.unpack_from(data, pos)
            pos += ENTRY_STRUCT.size

            if freq == 0 or frequencies[symbol] != 0:
                raise FormatError(f"Corrupted header: bad entry for symbol {symbol}")
            frequencies[symbol] = freq

        if sum(frequencies) != symbol_count:
            raise FormatError("Corrupted header: frequencies do not add up to symbol count")

        entry = CompressedFile(
            symbol_count=symbol_count,
            bit_count=bit_count,
            crc32=crc32,
            frequencies=frequencies
        )

        return entry, pos


def calculate_crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xffffffff


def verify_integrity(entry: CompressedFile, decompressed_data: bytes) -> bool:
    if len(decompressed_data) != entry.symbol_count:
        return False

    calculated_crc = calculate_crc32(decompressed_data)
    return calculated_crc == entry.crc32
