import contextlib
import heapq
import io
import os
import random
import sys
import tempfile
import unittest

from bitpacking import pack, unpack, packed_length
from compressor import HuffmanCompressor, compress_data, decompress_data
from errors import (AlphabetTooSmallError, FormatError, IntegrityError,
                    InvalidCodeError, SourceReadError)
from format import HuffmanFormat, CompressedFile, MAGIC, calculate_crc32, verify_integrity
from freqtable import (NUM_SYMBOLS, build_frequency_table, distinct_symbols,
                       freqtable_from_bytes, is_freqtable, new_freqtable)
from huffman import (HuffmanNode, build_htree, code_lengths, count_nodes,
                     decode_src, encode_src, encoded_length, find_len,
                     free_htree, htree_to_codetable, is_htree, is_htree_interior,
                     is_htree_leaf, is_prefix_free, max_depth, weighted_length)
from main import main
from pqueue import PriorityQueue


TEXTBOOK = {'a': 5, 'b': 9, 'c': 12, 'd': 13, 'e': 16, 'f': 45}


def table_from(freqs):
    table = new_freqtable()
    for char, freq in freqs.items():
        table[ord(char)] = freq
    return table


def huffman_cost(freqs):
    # стоимость кода = сумма частот всех внутренних узлов
    heap = [freq for freq in freqs if freq > 0]
    heapq.heapify(heap)
    cost = 0
    while len(heap) > 1:
        merged = heapq.heappop(heap) + heapq.heappop(heap)
        cost += merged
        heapq.heappush(heap, merged)
    return cost


def left_not_heavier(node):
    if is_htree_leaf(node):
        return True
    if node.left.frequency > node.right.frequency:
        return False
    return left_not_heavier(node.left) and left_not_heavier(node.right)


class TestPriorityQueue(unittest.TestCase):
    def test_removes_in_priority_order(self):
        queue = PriorityQueue(10, lambda a, b: a < b)
        for value in [7, 3, 9, 1, 5]:
            queue.add(value)

        removed = [queue.rem() for _ in range(5)]
        self.assertEqual(removed, [1, 3, 5, 7, 9])
        self.assertTrue(queue.is_empty())

    def test_custom_comparator(self):
        queue = PriorityQueue(3, lambda a, b: len(a) > len(b))
        for word in ['aa', 'a', 'aaa']:
            queue.add(word)

        self.assertEqual(queue.peek(), 'aaa')
        self.assertEqual(queue.rem(), 'aaa')
        self.assertEqual(queue.rem(), 'aa')

    def test_capacity(self):
        queue = PriorityQueue(2, lambda a, b: a < b)
        queue.add(1)
        self.assertFalse(queue.is_full())
        queue.add(2)
        self.assertTrue(queue.is_full())
        self.assertEqual(len(queue), 2)

        with self.assertRaises(OverflowError):
            queue.add(3)

    def test_rem_from_empty(self):
        queue = PriorityQueue(1, lambda a, b: a < b)
        with self.assertRaises(IndexError):
            queue.rem()

    def test_free_calls_destructor(self):
        freed = []
        queue = PriorityQueue(5, lambda a, b: a < b, freed.append)
        queue.add(4)
        queue.add(2)
        queue.add(8)
        queue.rem()

        queue.free()
        self.assertEqual(sorted(freed), [4, 8])
        self.assertTrue(queue.is_empty())

    def test_context_manager_frees(self):
        freed = []
        with PriorityQueue(5, lambda a, b: a < b, freed.append) as queue:
            queue.add(1)
            queue.add(2)

        self.assertEqual(sorted(freed), [1, 2])


class TestFrequencyTable(unittest.TestCase):
    def test_from_bytes(self):
        table = freqtable_from_bytes(b"abracadabra")
        self.assertTrue(is_freqtable(table))
        self.assertEqual(table[ord('a')], 5)
        self.assertEqual(table[ord('b')], 2)
        self.assertEqual(table[ord('r')], 2)
        self.assertEqual(table[ord('c')], 1)
        self.assertEqual(table[ord('d')], 1)
        self.assertEqual(sum(table), 11)
        self.assertEqual(distinct_symbols(table), 5)

    def test_all_byte_values(self):
        table = freqtable_from_bytes(bytes(range(256)) * 3)
        self.assertEqual(table, [3] * NUM_SYMBOLS)

    def test_from_stream(self):
        table = build_frequency_table(io.BytesIO(b"\x00\xff\x00"))
        self.assertEqual(table[0], 2)
        self.assertEqual(table[255], 1)

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'source.bin')
            with open(path, 'wb') as f:
                f.write(b"hello world")

            table = build_frequency_table(path)
            self.assertEqual(table[ord('l')], 3)
            self.assertEqual(table[ord('o')], 2)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(SourceReadError):
                build_frequency_table(os.path.join(tmpdir, 'missing.txt'))

    def test_text_stream_rejected(self):
        with self.assertRaises(SourceReadError):
            build_frequency_table(io.StringIO("text"))

    def test_is_freqtable(self):
        self.assertFalse(is_freqtable([0] * 10))
        bad = new_freqtable()
        bad[3] = -1
        self.assertFalse(is_freqtable(bad))


class TestHuffmanTree(unittest.TestCase):
    def test_textbook_tree(self):
        tree = build_htree(table_from(TEXTBOOK))

        self.assertTrue(is_htree(tree))
        self.assertTrue(is_htree_interior(tree))
        self.assertEqual(tree.frequency, 100)
        self.assertEqual(count_nodes(tree), 11)
        self.assertEqual(max_depth(tree), 5)
        self.assertTrue(left_not_heavier(tree))

    def test_textbook_code_lengths(self):
        codes = htree_to_codetable(build_htree(table_from(TEXTBOOK)))
        lengths = code_lengths(codes)

        expected = {'f': 1, 'c': 3, 'd': 3, 'e': 3, 'a': 4, 'b': 4}
        self.assertEqual(lengths, {ord(ch): n for ch, n in expected.items()})

    def test_textbook_codes(self):
        codes = htree_to_codetable(build_htree(table_from(TEXTBOOK)))

        self.assertEqual(codes[ord('f')], '0')
        self.assertEqual(codes[ord('c')], '100')
        self.assertEqual(codes[ord('d')], '101')
        self.assertEqual(codes[ord('a')], '1100')
        self.assertEqual(codes[ord('b')], '1101')
        self.assertEqual(codes[ord('e')], '111')
        self.assertIsNone(codes[ord('g')])

    def test_empty_alphabet(self):
        with self.assertRaises(AlphabetTooSmallError):
            build_htree(new_freqtable())

    def test_single_symbol(self):
        with self.assertRaises(AlphabetTooSmallError):
            build_htree(freqtable_from_bytes(b"AAAA"))

    def test_two_symbols(self):
        tree = build_htree(freqtable_from_bytes(b"ab"))
        codes = htree_to_codetable(tree)

        self.assertEqual(sorted(c for c in codes if c is not None), ['0', '1'])

    def test_deterministic(self):
        data = b"the rain in spain stays mainly in the plain"
        first = htree_to_codetable(build_htree(freqtable_from_bytes(data)))
        second = htree_to_codetable(build_htree(freqtable_from_bytes(data)))
        self.assertEqual(first, second)

    def test_well_formed_on_random_tables(self):
        rng = random.Random(42)
        for _ in range(20):
            table = new_freqtable()
            for symbol in rng.sample(range(NUM_SYMBOLS), rng.randint(2, 256)):
                table[symbol] = rng.randint(1, 1000)

            tree = build_htree(table)
            self.assertTrue(is_htree(tree))
            self.assertEqual(tree.frequency, sum(table))
            self.assertTrue(left_not_heavier(tree))

    def test_predicate_rejects_malformed(self):
        leaf_a = HuffmanNode(value=1, frequency=2)
        leaf_b = HuffmanNode(value=2, frequency=3)

        self.assertFalse(is_htree(None))
        self.assertFalse(is_htree(HuffmanNode(value=1, frequency=0)))
        self.assertFalse(is_htree(HuffmanNode(frequency=5, left=leaf_a)))
        self.assertFalse(is_htree(HuffmanNode(frequency=6, left=leaf_a, right=leaf_b)))
        self.assertTrue(is_htree(HuffmanNode(frequency=5, left=leaf_a, right=leaf_b)))

    def test_free_htree(self):
        tree = build_htree(table_from(TEXTBOOK))
        self.assertEqual(free_htree(tree), 11)
        self.assertIsNone(tree.left)
        self.assertIsNone(tree.right)


class TestCodeTable(unittest.TestCase):
    def test_prefix_free(self):
        data = b"Lorem ipsum dolor sit amet, consectetur adipiscing elit"
        codes = htree_to_codetable(build_htree(freqtable_from_bytes(data)))
        self.assertTrue(is_prefix_free(codes))

    def test_prefix_free_all_symbols(self):
        rng = random.Random(7)
        table = [rng.randint(1, 10000) for _ in range(NUM_SYMBOLS)]
        codes = htree_to_codetable(build_htree(table))

        self.assertTrue(all(code for code in codes))
        self.assertTrue(is_prefix_free(codes))

    def test_detects_prefix(self):
        codes = [None] * NUM_SYMBOLS
        codes[0] = '0'
        codes[1] = '01'
        self.assertFalse(is_prefix_free(codes))

    def test_minimal_weighted_length(self):
        rng = random.Random(1234)
        for _ in range(20):
            table = new_freqtable()
            for symbol in rng.sample(range(NUM_SYMBOLS), rng.randint(2, 40)):
                table[symbol] = rng.randint(1, 500)

            codes = htree_to_codetable(build_htree(table))
            self.assertEqual(weighted_length(table, codes), huffman_cost(table))


class TestEncodeDecode(unittest.TestCase):
    def setUp(self):
        self.tree = build_htree(table_from(TEXTBOOK))
        self.codes = htree_to_codetable(self.tree)

    def test_encode_textbook(self):
        bits = encode_src(self.codes, b"abcdef")
        self.assertEqual(bits, '1100' '1101' '100' '101' '111' '0')
        self.assertEqual(encoded_length(self.codes, b"abcdef"), len(bits))

    def test_roundtrip_textbook(self):
        bits = encode_src(self.codes, b"abcdef")
        data, count = decode_src(self.tree, bits)
        self.assertEqual(data, b"abcdef")
        self.assertEqual(count, 6)

    def test_decode_empty(self):
        self.assertEqual(decode_src(self.tree, ''), (b'', 0))

    def test_find_len(self):
        self.assertEqual(find_len(self.tree, '0001100'), 4)

    def test_incomplete_code(self):
        with self.assertRaises(InvalidCodeError):
            decode_src(self.tree, '01')

    def test_non_bit_character(self):
        with self.assertRaises(InvalidCodeError):
            decode_src(self.tree, '0x0')

    def test_symbol_without_code(self):
        with self.assertRaises(AssertionError):
            encode_src(self.codes, b"abz")

    def test_random_roundtrip(self):
        rng = random.Random(99)
        for _ in range(20):
            alphabet = rng.sample(range(NUM_SYMBOLS), rng.randint(2, 30))
            src = bytes(rng.choice(alphabet) for _ in range(rng.randint(2, 500)))
            if len(set(src)) < 2:
                continue

            tree = build_htree(freqtable_from_bytes(src))
            bits = encode_src(htree_to_codetable(tree), src)
            data, count = decode_src(tree, bits)

            self.assertEqual(data, src)
            self.assertEqual(count, len(src))


class TestBitPacking(unittest.TestCase):
    def test_partial_byte(self):
        self.assertEqual(pack('1010101'), b'\xaa')
        self.assertEqual(unpack(b'\xaa', 1), '10101010')

    def test_msb_first(self):
        self.assertEqual(pack('10000000'), b'\x80')
        self.assertEqual(pack('00000001'), b'\x01')
        self.assertEqual(pack('1'), b'\x80')
        self.assertEqual(pack('111111111'), b'\xff\x80')

    def test_empty(self):
        self.assertEqual(pack(''), b'')
        self.assertEqual(unpack(b'', 0), '')

    def test_roundtrip_whole_bytes(self):
        rng = random.Random(5)
        bits = ''.join(rng.choice('01') for _ in range(8 * 37))
        packed = pack(bits)

        self.assertEqual(len(packed), 37)
        self.assertEqual(unpack(packed, len(bits) // 8), bits)

    def test_unpack_prefix(self):
        self.assertEqual(unpack(b'\x0f\xf0', 1), '00001111')

    def test_unpack_past_buffer(self):
        with self.assertRaises(AssertionError):
            unpack(b'\x00', 2)

    def test_packed_length(self):
        self.assertEqual(packed_length(0), 0)
        self.assertEqual(packed_length(1), 1)
        self.assertEqual(packed_length(8), 1)
        self.assertEqual(packed_length(9), 2)


class TestHuffmanFormat(unittest.TestCase):
    def make_entry(self, data=b"mississippi"):
        return HuffmanCompressor(verbose=False).compress_bytes(data)

    def test_write_and_read(self):
        entry = self.make_entry()
        blob = HuffmanFormat.write(entry)
        read_entry = HuffmanFormat.read(blob)

        self.assertTrue(blob.startswith(MAGIC))
        self.assertEqual(read_entry, entry)
        self.assertEqual(read_entry.compressed_size, len(blob))
        self.assertEqual(read_entry.present_symbols(), sorted(set(b"mississippi")))

    def test_read_header_only(self):
        entry = self.make_entry()
        blob = HuffmanFormat.write(entry)
        header = HuffmanFormat.read_header(blob)

        self.assertEqual(header.symbol_count, 11)
        self.assertEqual(header.bit_count, entry.bit_count)
        self.assertEqual(header.payload, b'')

    def test_bad_magic(self):
        blob = b'XXXX' + HuffmanFormat.write(self.make_entry())[4:]
        with self.assertRaises(FormatError):
            HuffmanFormat.read(blob)

    def test_too_small(self):
        with self.assertRaises(FormatError):
            HuffmanFormat.read(MAGIC)

    def test_truncated_payload(self):
        blob = HuffmanFormat.write(self.make_entry())
        with self.assertRaises(FormatError):
            HuffmanFormat.read(blob[:-1])

    def test_trailing_bytes(self):
        blob = HuffmanFormat.write(self.make_entry())
        with self.assertRaises(FormatError):
            HuffmanFormat.read(blob + b'\x00')

    def test_crc32_verification(self):
        data = b"Test data"
        entry = CompressedFile(symbol_count=len(data), bit_count=0,
                               crc32=calculate_crc32(data))

        self.assertTrue(verify_integrity(entry, data))
        self.assertFalse(verify_integrity(entry, b"Wrong data"))
        self.assertFalse(verify_integrity(entry, b"Test dat"))


class TestCompressor(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = self.temp_dir.name
        self.compressor = HuffmanCompressor(verbose=False)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_roundtrip_text(self):
        data = b"The quick brown fox jumps over the lazy dog"
        self.assertEqual(decompress_data(compress_data(data)), data)

    def test_roundtrip_binary(self):
        data = bytes(range(256)) * 10
        self.assertEqual(decompress_data(compress_data(data)), data)

    def test_padding_is_stripped(self):
        # 'f' кодируется одним нулём, поэтому хвостовые нули упаковки
        # декодировались бы как лишние символы
        data = b"a" * 5 + b"b" * 9 + b"c" * 12 + b"d" * 13 + b"e" * 16 + b"f" * 46
        entry = self.compressor.compress_bytes(data)

        self.assertNotEqual(entry.bit_count % 8, 0)
        self.assertEqual(self.compressor.decompress_bytes(entry), data)

    def test_compresses_repetitive_data(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = compress_data(data)
        self.assertLess(len(compressed), len(data))

    def test_single_symbol_fails(self):
        with self.assertRaises(AlphabetTooSmallError):
            compress_data(b"AAAA")

    def test_empty_fails(self):
        with self.assertRaises(AlphabetTooSmallError):
            compress_data(b"")

    def test_crc_mismatch(self):
        entry = self.compressor.compress_bytes(b"hello world")
        entry.crc32 ^= 1
        with self.assertRaises(IntegrityError):
            self.compressor.decompress_bytes(entry)

    def test_corrupted_payload(self):
        entry = self.compressor.compress_bytes(b"abcdefgh" * 20)
        entry.payload = bytes(b ^ 0xff for b in entry.payload)
        with self.assertRaises((IntegrityError, InvalidCodeError)):
            self.compressor.decompress_bytes(entry)

    def test_compress_decompress_file(self):
        source = os.path.join(self.temp_path, 'book.txt')
        with open(source, 'wb') as f:
            f.write(b"Hello World! " * 100)

        compressed_path = self.compressor.compress_file(source)
        self.assertEqual(compressed_path, source + '.huf')
        self.assertLess(os.path.getsize(compressed_path), os.path.getsize(source))

        restored = os.path.join(self.temp_path, 'out', 'book.txt')
        self.assertEqual(self.compressor.decompress_file(compressed_path, restored), restored)

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"Hello World! " * 100)

    def test_default_decompress_path(self):
        source = os.path.join(self.temp_path, 'notes.txt')
        with open(source, 'wb') as f:
            f.write(b"abcabcabd")

        compressed_path = self.compressor.compress_file(source)
        os.remove(source)

        self.assertEqual(self.compressor.decompress_file(compressed_path), source)
        with open(source, 'rb') as f:
            self.assertEqual(f.read(), b"abcabcabd")

    def test_code_table_report(self):
        source = os.path.join(self.temp_path, 'source.txt')
        with open(source, 'wb') as f:
            f.write(b"aaab")

        rows = self.compressor.code_table_report(source)
        self.assertEqual(rows, [(ord('a'), 3, '1'), (ord('b'), 1, '0')])


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = self.temp_dir.name

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = main(argv)
        return status, out.getvalue(), err.getvalue()

    def test_compress_and_decompress(self):
        source = os.path.join(self.temp_path, 'file.txt')
        with open(source, 'wb') as f:
            f.write(b"Content of file\n" * 50)

        status, out, _ = self.run_main(['compress', source])
        self.assertEqual(status, 0)
        self.assertIn('OK', out)

        restored = os.path.join(self.temp_path, 'restored.txt')
        status, _, _ = self.run_main(['-q', 'decompress', source + '.huf', '-o', restored])
        self.assertEqual(status, 0)

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"Content of file\n" * 50)

    def test_codes_and_info(self):
        source = os.path.join(self.temp_path, 'file.txt')
        with open(source, 'wb') as f:
            f.write(b"aabbbc")

        status, out, _ = self.run_main(['codes', source])
        self.assertEqual(status, 0)
        self.assertIn("'b'", out)

        self.run_main(['-q', 'compress', source])
        status, out, _ = self.run_main(['info', source + '.huf'])
        self.assertEqual(status, 0)
        self.assertIn('Original size:  6 bytes', out)

    def test_error_exit_status(self):
        source = os.path.join(self.temp_path, 'same.txt')
        with open(source, 'wb') as f:
            f.write(b"zzzz")

        status, _, err = self.run_main(['compress', source])
        self.assertEqual(status, 1)
        self.assertIn('Only 0 or 1 distinct character', err)

    def test_missing_file(self):
        status, _, err = self.run_main(['-q', 'decompress', os.path.join(self.temp_path, 'none.huf')])
        self.assertEqual(status, 1)
        self.assertTrue(err.startswith('Error:'))


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for case in (TestPriorityQueue, TestFrequencyTable, TestHuffmanTree,
                 TestCodeTable, TestEncodeDecode, TestBitPacking,
                 TestHuffmanFormat, TestCompressor, TestCommandLine):
        suite.addTests(loader.loadTestsFromTestCase(case))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
