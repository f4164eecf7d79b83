"""
Сжатие и разжатие файлов кодом Хаффмана.

Цепочка сжатия: таблица частот -> дерево -> таблица кодов -> строка битов
-> байты. Разжатие идёт в обратном порядке по дереву, построенному
из сохранённой таблицы частот.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

from bitpacking import pack, unpack, packed_length
from errors import IntegrityError
from format import HuffmanFormat, CompressedFile, calculate_crc32, verify_integrity
from freqtable import build_frequency_table, freqtable_from_bytes
from huffman import (build_htree, decode_src, encode_src, free_htree,
                     htree_to_codetable)


DEFAULT_SUFFIX = '.huf'
RESTORED_SUFFIX = '.out'


class HuffmanCompressor:
    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def _report(self, message: str, end: str = '\n'):
        if self.verbose:
            print(message, end=end, flush=True)

    def compress_bytes(self, data: bytes) -> CompressedFile:
        frequencies = freqtable_from_bytes(data)
        tree = build_htree(frequencies)

        try:
            codes = htree_to_codetable(tree)
        finally:
            free_htree(tree)

        bits = encode_src(codes, data)

        return CompressedFile(
            symbol_count=len(data),
            bit_count=len(bits),
            crc32=calculate_crc32(data),
            frequencies=frequencies,
            payload=pack(bits)
        )

    def decompress_bytes(self, entry: CompressedFile) -> bytes:
        tree = build_htree(entry.frequencies)

        try:
            # отбрасываем нули, дописанные в последний байт при упаковке
            bits = unpack(entry.payload, packed_length(entry.bit_count))
            bits = bits[:entry.bit_count]
            data, count = decode_src(tree, bits)
        finally:
            free_htree(tree)

        if count != entry.symbol_count:
            raise IntegrityError(
                f"Decoded {count} symbols, header says {entry.symbol_count}"
            )

        if not verify_integrity(entry, data):
            raise IntegrityError("CRC32 mismatch")

        return data

    def compress_file(self, file_path: str, output_path: Optional[str] = None) -> str:
        if output_path is None:
            output_path = file_path + DEFAULT_SUFFIX

        self._report(f"Compressing {file_path}...", end=" ")

        with open(file_path, 'rb') as f:
            data = f.read()

        entry = self.compress_bytes(data)
        compressed = HuffmanFormat.write(entry)

        with open(output_path, 'wb') as f:
            f.write(compressed)

        ratio = (len(compressed) / len(data) * 100) if data else 0
        self._report(f"OK ({ratio:.1f}%)")
        self._report(f"Total: {len(data)} -> {len(compressed)} bytes")

        return output_path

    def decompress_file(self, file_path: str, output_path: Optional[str] = None) -> str:
        if output_path is None:
            if file_path.endswith(DEFAULT_SUFFIX):
                output_path = file_path[:-len(DEFAULT_SUFFIX)]
            else:
                output_path = file_path + RESTORED_SUFFIX

        self._report(f"Decompressing {file_path}...", end=" ")

        with open(file_path, 'rb') as f:
            compressed = f.read()

        entry = HuffmanFormat.read(compressed)
        data = self.decompress_bytes(entry)

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        with open(output_path, 'wb') as f:
            f.write(data)

        self._report("OK")
        return output_path

    def code_table_report(self, file_path: str) -> List[Tuple[int, int, str]]:
        frequencies = build_frequency_table(file_path)
        tree = build_htree(frequencies)

        try:
            codes = htree_to_codetable(tree)
        finally:
            free_htree(tree)

        return [(symbol, frequencies[symbol], code)
                for symbol, code in enumerate(codes) if code is not None]

    def print_code_table(self, file_path: str):
        rows = self.code_table_report(file_path)

        print(f"{'Symbol':<10} {'Frequency':>12} {'Length':>8}  Code")
        print("-" * 60)

        total_bits = 0
        total_symbols = 0
        for symbol, freq, code in rows:
            print(f"{_symbol_label(symbol):<10} {freq:>12} {len(code):>8}  {code}")
            total_bits += freq * len(code)
            total_symbols += freq

        print("-" * 60)
        average = total_bits / total_symbols if total_symbols else 0
        print(f"{len(rows)} symbols, {total_symbols} bytes, {total_bits} bits "
              f"({average:.3f} bits/symbol)")

    def print_info(self, file_path: str):
        with open(file_path, 'rb') as f:
            entry = HuffmanFormat.read_header(f.read())

        print(f"File:           {Path(file_path).name}")
        print(f"Original size:  {entry.symbol_count} bytes")
        print(f"Encoded bits:   {entry.bit_count}")
        print(f"Payload size:   {packed_length(entry.bit_count)} bytes")
        print(f"Symbols:        {entry.entry_count}")
        print(f"CRC32:          {entry.crc32:08x}")


def _symbol_label(symbol: int) -> str:
    if 0x21 <= symbol <= 0x7e:
        return repr(chr(symbol))
    return f"0x{symbol:02x}"


def compress_data(data: bytes) -> bytes:
    entry = HuffmanCompressor(verbose=False).compress_bytes(data)
    return HuffmanFormat.write(entry)


def decompress_data(compressed: bytes) -> bytes:
    entry = HuffmanFormat.read(compressed)
    return HuffmanCompressor(verbose=False).decompress_bytes(entry)
