"""
Таблица частот: сколько раз встречается каждый байт 0..255.
"""

import os
from typing import BinaryIO, List, Union

from errors import SourceReadError


NUM_SYMBOLS = 256
READ_CHUNK_SIZE = 64 * 1024

FrequencyTable = List[int]


def new_freqtable() -> FrequencyTable:
    return [0] * NUM_SYMBOLS


def is_freqtable(table) -> bool:
    if not isinstance(table, list) or len(table) != NUM_SYMBOLS:
        return False
    return all(isinstance(freq, int) and freq >= 0 for freq in table)


def distinct_symbols(table: FrequencyTable) -> int:
    return sum(1 for freq in table if freq > 0)


def tally(table: FrequencyTable, data: bytes):
    for byte in data:
        table[byte] += 1


def freqtable_from_bytes(data: bytes) -> FrequencyTable:
    table = new_freqtable()
    tally(table, data)
    return table


def build_frequency_table(source: Union[str, os.PathLike, BinaryIO]) -> FrequencyTable:
    """
    Считает частоты байтов в файле или в открытом бинарном потоке.

    Поток читается до конца. Если источник не открывается или не читается,
    поднимается SourceReadError.
    """
    table = new_freqtable()

    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, 'rb') as f:
                _consume(f, table)
        except OSError as e:
            raise SourceReadError(f"Cannot read {os.fspath(source)}: {e}") from e
        return table

    try:
        _consume(source, table)
    except OSError as e:
        raise SourceReadError(f"Cannot read source stream: {e}") from e

    return table


def _consume(stream: BinaryIO, table: FrequencyTable):
    while True:
        chunk = stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        if isinstance(chunk, str):
            raise SourceReadError("Source stream must be opened in binary mode")
        tally(table, chunk)
