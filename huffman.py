"""
Кодирование Хаффмана: построение дерева по таблице частот, таблица кодов,
кодирование байтов в строку битов и обратное декодирование.
Частые символы получают более короткие коды.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from errors import AlphabetTooSmallError, InvalidCodeError
from freqtable import NUM_SYMBOLS, FrequencyTable, is_freqtable
from pqueue import PriorityQueue


CodeTable = List[Optional[str]]


class HuffmanNode:
    def __init__(self, value: Optional[int] = None, frequency: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.value = value
        self.frequency = frequency
        self.left = left
        self.right = right

    def __repr__(self):
        if self.left is None and self.right is None:
            return f"Leaf({self.value!r}, freq={self.frequency})"
        return f"Node(freq={self.frequency})"


def is_htree_leaf(node: Optional[HuffmanNode]) -> bool:
    if node is None:
        return False
    if node.value is None or not 0 <= node.value < NUM_SYMBOLS:
        return False
    if node.frequency <= 0:
        return False
    return node.left is None and node.right is None


def is_htree_interior(node: Optional[HuffmanNode]) -> bool:
    if node is None:
        return False
    if not (is_htree(node.left) and is_htree(node.right)):
        return False
    return node.frequency == node.left.frequency + node.right.frequency


def is_htree(node: Optional[HuffmanNode]) -> bool:
    if node is None:
        return False
    return is_htree_leaf(node) or is_htree_interior(node)


def htree_higher_priority(tree1: HuffmanNode, tree2: HuffmanNode) -> bool:
    # строгое сравнение: при равенстве ни один не приоритетнее
    return tree1.frequency < tree2.frequency


def free_htree(tree: HuffmanNode) -> int:
    """
    Освобождает дерево целиком: сначала потомков, затем сам узел.
    Возвращает число освобождённых узлов.
    """
    assert is_htree(tree), "free_htree requires a well-formed tree"
    return _release(tree)


def _release(node: HuffmanNode) -> int:
    released = 1
    if node.left is not None:
        released += _release(node.left)
    if node.right is not None:
        released += _release(node.right)
    node.left = None
    node.right = None
    return released


def count_nodes(tree: HuffmanNode) -> int:
    if tree is None:
        return 0
    return 1 + count_nodes(tree.left) + count_nodes(tree.right)


def max_depth(tree: HuffmanNode) -> int:
    assert is_htree(tree)

    if is_htree_leaf(tree):
        return 1

    return max(max_depth(tree.left), max_depth(tree.right)) + 1


def build_htree(table: FrequencyTable) -> HuffmanNode:
    """
    Строит дерево Хаффмана, многократно сливая два дерева с наименьшей
    частотой. Меньшее (первое извлечённое) дерево становится левым потомком.

    Если в таблице меньше двух символов с ненулевой частотой,
    поднимается AlphabetTooSmallError.
    """
    assert is_freqtable(table), "build_htree requires a frequency table"

    with PriorityQueue(NUM_SYMBOLS, htree_higher_priority, free_htree) as queue:
        for symbol, freq in enumerate(table):
            if freq > 0:
                queue.add(HuffmanNode(value=symbol, frequency=freq))

        if len(queue) < 2:
            raise AlphabetTooSmallError("Only 0 or 1 distinct character in the text")

        while True:
            tree1 = queue.rem()

            if queue.is_empty():
                assert is_htree(tree1)
                return tree1

            tree2 = queue.rem()

            if tree1.frequency <= tree2.frequency:
                left, right = tree1, tree2
            else:
                left, right = tree2, tree1

            queue.add(HuffmanNode(frequency=left.frequency + right.frequency,
                                  left=left, right=right))


def htree_to_codetable(tree: HuffmanNode) -> CodeTable:
    assert is_htree(tree), "htree_to_codetable requires a well-formed tree"
    assert is_htree_interior(tree), "a code table needs at least two symbols"

    table: CodeTable = [None] * NUM_SYMBOLS

    def traverse(node: HuffmanNode, path: str):
        if is_htree_leaf(node):
            table[node.value] = path
            return

        traverse(node.left, path + '0')
        traverse(node.right, path + '1')

    traverse(tree, '')
    return table


def is_prefix_free(table: CodeTable) -> bool:
    # после сортировки код-префикс стоит прямо перед своим продолжением
    codes = sorted(code for code in table if code is not None)

    for shorter, longer in zip(codes, codes[1:]):
        if longer.startswith(shorter):
            return False

    return True


def encoded_length(table: CodeTable, src: Iterable[int]) -> int:
    total = 0
    for symbol in src:
        code = table[symbol]
        assert code is not None, f"symbol {symbol} has no code"
        total += len(code)
    return total


def encode_src(table: CodeTable, src: Iterable[int]) -> str:
    assert len(table) == NUM_SYMBOLS

    pieces = []
    for symbol in src:
        code = table[symbol]
        assert code is not None, f"symbol {symbol} has no code"
        pieces.append(code)

    return ''.join(pieces)


def _step(node: HuffmanNode, bit: str) -> HuffmanNode:
    if bit == '0':
        return node.left
    if bit == '1':
        return node.right
    raise InvalidCodeError(f"Unexpected character {bit!r} in bit string")


def find_len(tree: HuffmanNode, bits: str) -> int:
    """Первый проход: сколько символов закодировано в bits."""
    count = 0
    node = tree

    for bit in bits:
        node = _step(node, bit)

        if is_htree_leaf(node):
            count += 1
            node = tree

    if node is not tree:
        raise InvalidCodeError("Invalid code to decode!")

    return count


def parse_code(tree: HuffmanNode, bits: str, length: int) -> bytes:
    """Второй проход: заполняет буфер ровно из length символов."""
    output = bytearray(length)
    index = 0
    node = tree

    for bit in bits:
        node = _step(node, bit)

        if is_htree_leaf(node):
            output[index] = node.value
            index += 1
            node = tree

    assert index == length
    return bytes(output)


def decode_src(tree: HuffmanNode, bits: str) -> Tuple[bytes, int]:
    assert is_htree(tree), "decode_src requires a well-formed tree"
    assert is_htree_interior(tree), "decoding needs at least two symbols"

    length = find_len(tree, bits)
    return parse_code(tree, bits, length), length


def code_lengths(table: CodeTable) -> Dict[int, int]:
    return {symbol: len(code) for symbol, code in enumerate(table) if code is not None}


def weighted_length(freqs: FrequencyTable, table: CodeTable) -> int:
    return sum(freqs[symbol] * len(code)
               for symbol, code in enumerate(table) if code is not None)
