import unittest
import tempfile
import io
import os
import sys
import random
from unittest import mock

from bitstream import BitInputStream, BitOutputStream, NO_DATA
from huffman import (HuffmanNode, HuffmanTree, HuffmanEncoder, count_frequencies,
                     FormatError, MalformedStreamError, DecodeAutomatonError,
                     ALPH_SIZE, PSEUDO_EOF)
from format import TreeHeader, HUFF_NUMBER, HUFF_TREE, header_size_bits
from processor import HuffProcessor, compress_bytes, decompress_bytes
from archiver import Archiver
import main


def write_bits(*pairs) -> bytes:
    output = io.BytesIO()
    bits_out = BitOutputStream(output)
    for count, value in pairs:
        bits_out.write_bits(count, value)
    bits_out.flush()
    return output.getvalue()


def counts_of(data: bytes):
    return count_frequencies(BitInputStream.from_bytes(data))


class UnseekableReader(io.RawIOBase):
    def __init__(self, data: bytes):
        self.inner = io.BytesIO(data)

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        chunk = self.inner.read(len(buffer))
        buffer[:len(chunk)] = chunk
        return len(chunk)


class TestBitStream(unittest.TestCase):
    def test_msb_first(self):
        self.assertEqual(write_bits((1, 1), (3, 0), (4, 0xF)), b'\x8f')

    def test_padding_to_byte(self):
        self.assertEqual(write_bits((3, 0b101)), b'\xa0')

    def test_read_across_bytes(self):
        bits_in = BitInputStream.from_bytes(b'\xfa\xce\x82\x00')
        self.assertEqual(bits_in.read_bits(4), 0xF)
        self.assertEqual(bits_in.read_bits(12), 0xACE)
        self.assertEqual(bits_in.read_bits(16), 0x8200)
        self.assertEqual(bits_in.read_bits(1), NO_DATA)

    def test_short_read_returns_no_data(self):
        bits_in = BitInputStream.from_bytes(b'\x01')
        self.assertEqual(bits_in.read_bits(9), NO_DATA)

    def test_empty_input(self):
        bits_in = BitInputStream.from_bytes(b'')
        self.assertEqual(bits_in.read_bits(8), NO_DATA)

    def test_reset(self):
        bits_in = BitInputStream.from_bytes(b'AB')
        self.assertEqual(bits_in.read_bits(8), ord('A'))
        self.assertEqual(bits_in.read_bits(3), 0b010)
        bits_in.reset()
        self.assertEqual(bits_in.read_bits(8), ord('A'))
        self.assertEqual(bits_in.read_bits(8), ord('B'))

    def test_reset_unseekable_source(self):
        bits_in = BitInputStream(UnseekableReader(b'xyz'))
        self.assertEqual(bits_in.read_bits(8), ord('x'))
        bits_in.reset()
        self.assertEqual(bits_in.read_bits(8), ord('x'))

    def test_wide_values(self):
        value = (1 << 39) | 12345
        data = write_bits((40, value), (2, 0b11))
        bits_in = BitInputStream.from_bytes(data)
        self.assertEqual(bits_in.read_bits(40), value)
        self.assertEqual(bits_in.read_bits(2), 0b11)

    def test_bits_written(self):
        bits_out = BitOutputStream(io.BytesIO())
        bits_out.write_bits(9, 256)
        bits_out.write_bits(1, 1)
        self.assertEqual(bits_out.bits_written, 10)

    def test_invalid_count(self):
        with self.assertRaises(ValueError):
            BitInputStream.from_bytes(b'a').read_bits(0)
        with self.assertRaises(ValueError):
            BitOutputStream(io.BytesIO()).write_bits(0, 1)


class TestHuffmanTree(unittest.TestCase):
    def test_count_frequencies(self):
        counts = counts_of(b"abracadabra")
        self.assertEqual(len(counts), ALPH_SIZE)
        self.assertEqual(counts[ord('a')], 5)
        self.assertEqual(counts[ord('b')], 2)
        self.assertEqual(counts[ord('r')], 2)
        self.assertEqual(counts[ord('c')], 1)
        self.assertEqual(counts[ord('d')], 1)
        self.assertEqual(sum(counts), 11)

    def test_empty_tree_is_single_eof_leaf(self):
        tree = HuffmanTree.from_counts([0] * ALPH_SIZE)
        self.assertTrue(tree.root.is_leaf())
        self.assertEqual(tree.root.value, PSEUDO_EOF)
        self.assertEqual(tree.codes, {PSEUDO_EOF: ''})

    def test_single_symbol_has_two_leaves(self):
        tree = HuffmanTree.from_counts(counts_of(b"AAAA"))
        self.assertFalse(tree.root.is_leaf())
        self.assertEqual(tree.root.weight, 5)
        self.assertEqual(tree.codes, {PSEUDO_EOF: '0', ord('A'): '1'})

    def test_root_weight_is_total(self):
        data = b"the quick brown fox"
        tree = HuffmanTree.from_counts(counts_of(data))
        self.assertEqual(tree.root.weight, len(data) + 1)

    def test_every_symbol_has_code(self):
        data = b"mississippi river"
        tree = HuffmanTree.from_counts(counts_of(data))
        self.assertEqual(set(tree.codes), set(data) | {PSEUDO_EOF})

    def test_prefix_free(self):
        random.seed(7)
        data = bytes(random.choice(b"aaaabbbccd efghij") for _ in range(500))
        codes = list(HuffmanTree.from_counts(counts_of(data)).codes.values())

        for i, a in enumerate(codes):
            self.assertTrue(a)
            for j, b in enumerate(codes):
                if i != j:
                    self.assertFalse(b.startswith(a), f"{a} is a prefix of {b}")

    def test_frequent_symbols_get_shorter_codes(self):
        counts = [0] * ALPH_SIZE
        counts[ord('e')] = 100
        counts[ord('z')] = 2
        codes = HuffmanTree.from_counts(counts).codes
        self.assertLess(len(codes[ord('e')]), len(codes[ord('z')]))

    def test_ties_broken_by_insertion_order(self):
        counts = [0] * ALPH_SIZE
        counts[ord('a')] = 1
        counts[ord('b')] = 1
        codes = HuffmanTree.from_counts(counts).codes
        # a, b и EOF с весом 1: первыми объединяются a и b
        self.assertEqual(codes, {PSEUDO_EOF: '0', ord('a'): '10', ord('b'): '11'})

    def test_build_is_deterministic(self):
        counts = [3] * ALPH_SIZE
        first = HuffmanTree.from_counts(counts).codes
        second = HuffmanTree.from_counts(counts).codes
        self.assertEqual(first, second)

    def test_codes_longer_than_32_bits(self):
        counts = [0] * ALPH_SIZE
        a, b = 1, 2
        for value in range(40):
            counts[value] = a
            a, b = b, a + b

        codes = HuffmanTree.from_counts(counts).codes
        self.assertGreater(max(len(code) for code in codes.values()), 32)

    def test_one_child_node_is_skipped(self):
        root = HuffmanNode(left=HuffmanNode(value=65))
        tree = HuffmanTree(root)
        self.assertEqual(tree.codes, {})


class TestTreeHeader(unittest.TestCase):
    def test_single_leaf_header(self):
        output = io.BytesIO()
        bits_out = BitOutputStream(output)
        TreeHeader.write(HuffmanNode(value=PSEUDO_EOF), bits_out)
        bits_out.flush()
        self.assertEqual(output.getvalue(), b'\xfa\xce\x82\x00\xc0\x00')

    def test_null_tree_writes_magic_only(self):
        output = io.BytesIO()
        bits_out = BitOutputStream(output)
        TreeHeader.write(None, bits_out)
        bits_out.flush()
        self.assertEqual(output.getvalue(), b'\xfa\xce\x82\x00')

    def test_header_round_trip(self):
        tree = HuffmanTree.from_counts(counts_of(b"header round trip"))
        output = io.BytesIO()
        bits_out = BitOutputStream(output)
        TreeHeader.write(tree.root, bits_out)
        self.assertEqual(bits_out.bits_written, header_size_bits(len(tree.codes)))
        bits_out.flush()

        root = TreeHeader.read(BitInputStream.from_bytes(output.getvalue()))
        self.assertEqual(HuffmanTree(root).codes, tree.codes)

    def test_lineage_magic_accepted(self):
        data = write_bits((32, HUFF_TREE), (1, 1), (9, PSEUDO_EOF))
        root = TreeHeader.read(BitInputStream.from_bytes(data))
        self.assertEqual(root.value, PSEUDO_EOF)

    def test_bad_magic(self):
        data = write_bits((32, 0xdeadbeef), (1, 1), (9, PSEUDO_EOF))
        with self.assertRaises(FormatError) as ctx:
            TreeHeader.read(BitInputStream.from_bytes(data))
        self.assertIn("0xdeadbeef", str(ctx.exception))

    def test_too_short_for_magic(self):
        with self.assertRaises(FormatError):
            TreeHeader.read(BitInputStream.from_bytes(b'\xfa\xce'))

    def test_truncated_tree(self):
        data = write_bits((32, HUFF_NUMBER), (1, 0), (1, 1), (9, 65))
        with self.assertRaises(MalformedStreamError):
            TreeHeader.read(BitInputStream.from_bytes(data))

    def test_invalid_leaf_value(self):
        data = write_bits((32, HUFF_NUMBER), (1, 1), (9, 300))
        with self.assertRaises(FormatError):
            TreeHeader.read(BitInputStream.from_bytes(data))

    def test_too_deep_tree(self):
        data = write_bits((32, HUFF_NUMBER), *([(1, 0)] * 400))
        with self.assertRaises(FormatError):
            TreeHeader.read(BitInputStream.from_bytes(data))


class TestHuffmanEncoder(unittest.TestCase):
    def test_encode_decode_stream(self):
        data = b"aaabbc"
        tree = HuffmanTree.from_counts(counts_of(data))

        encoded = io.BytesIO()
        bits_out = BitOutputStream(encoded)
        HuffmanEncoder.encode(BitInputStream.from_bytes(data), tree.codes, bits_out)
        bits_out.flush()

        decoded = io.BytesIO()
        bits_out = BitOutputStream(decoded)
        written = HuffmanEncoder.decode(tree.root, BitInputStream.from_bytes(encoded.getvalue()), bits_out)
        bits_out.flush()

        self.assertEqual(written, len(data))
        self.assertEqual(decoded.getvalue(), data)

    def test_stops_at_eof_despite_trailing_bits(self):
        tree = HuffmanTree.from_counts(counts_of(b"AAAA"))
        # A A EOF, затем мусор
        data = write_bits((1, 1), (1, 1), (1, 0), (5, 0b11111), (8, 0xFF))

        decoded = io.BytesIO()
        bits_out = BitOutputStream(decoded)
        HuffmanEncoder.decode(tree.root, BitInputStream.from_bytes(data), bits_out)
        bits_out.flush()
        self.assertEqual(decoded.getvalue(), b"AA")

    def test_missing_eof(self):
        tree = HuffmanTree.from_counts(counts_of(b"AAAA"))
        data = write_bits((8, 0xFF))
        with self.assertRaises(MalformedStreamError):
            HuffmanEncoder.decode(tree.root, BitInputStream.from_bytes(data),
                                  BitOutputStream(io.BytesIO()))

    def test_missing_child(self):
        root = HuffmanNode(left=HuffmanNode(value=65))
        data = write_bits((1, 1))
        with self.assertRaises(DecodeAutomatonError):
            HuffmanEncoder.decode(root, BitInputStream.from_bytes(data),
                                  BitOutputStream(io.BytesIO()))

    def test_single_non_eof_leaf(self):
        with self.assertRaises(DecodeAutomatonError):
            HuffmanEncoder.decode(HuffmanNode(value=65), BitInputStream.from_bytes(b'\x00'),
                                  BitOutputStream(io.BytesIO()))

    def test_automaton_error_is_malformed_stream(self):
        self.assertTrue(issubclass(DecodeAutomatonError, MalformedStreamError))


class TestHuffProcessor(unittest.TestCase):
    def test_round_trip(self):
        data = b"The quick brown fox jumps over the lazy dog"
        self.assertEqual(decompress_bytes(compress_bytes(data)), data)

    def test_empty_input(self):
        compressed = compress_bytes(b"")
        self.assertEqual(compressed, b'\xfa\xce\x82\x00\xc0\x00')
        self.assertEqual(decompress_bytes(compressed), b"")

    def test_single_symbol(self):
        compressed = compress_bytes(b"AAAA")
        self.assertEqual(compressed, b'\xfa\xce\x82\x00\x60\x12\x0f\x80')
        self.assertEqual(decompress_bytes(compressed), b"AAAA")

    def test_single_byte(self):
        self.assertEqual(decompress_bytes(compress_bytes(b"\x00")), b"\x00")

    def test_all_byte_values(self):
        data = bytes(range(256)) * 3
        self.assertEqual(decompress_bytes(compress_bytes(data)), data)

    def test_random_data(self):
        random.seed(42)
        data = bytes(random.randint(0, 255) for _ in range(5000))
        self.assertEqual(decompress_bytes(compress_bytes(data)), data)

    def test_compresses_text(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = compress_bytes(data)
        self.assertLess(len(compressed), len(data))
        self.assertEqual(decompress_bytes(compressed), data)

    def test_deterministic_output(self):
        data = b"abcdefabcdefaabbccddeeff" * 10
        self.assertEqual(compress_bytes(data), compress_bytes(data))

    def test_stats(self):
        data = b"aaabbc"
        output = io.BytesIO()
        bits_out = BitOutputStream(output)
        stats = HuffProcessor().compress(BitInputStream.from_bytes(data), bits_out)
        bits_out.flush()

        self.assertEqual(stats.original_size, 6)
        self.assertEqual(stats.symbol_count, 4)
        self.assertEqual(stats.header_bits + stats.payload_bits, bits_out.bits_written)
        self.assertEqual(stats.compressed_size, len(output.getvalue()))

    def test_unseekable_input(self):
        data = b"streamed input " * 20
        output = io.BytesIO()
        bits_out = BitOutputStream(output)
        HuffProcessor().compress(BitInputStream(UnseekableReader(data)), bits_out)
        bits_out.flush()
        self.assertEqual(output.getvalue(), compress_bytes(data))

    def test_lineage_magic(self):
        compressed = compress_bytes(b"lineage")
        patched = HUFF_TREE.to_bytes(4, 'big') + compressed[4:]
        self.assertEqual(decompress_bytes(patched), b"lineage")

    def test_corrupted_magic_writes_nothing(self):
        compressed = compress_bytes(b"some data")
        output = io.BytesIO()
        bits_out = BitOutputStream(output)

        with self.assertRaises(FormatError):
            HuffProcessor().decompress(BitInputStream.from_bytes(b'\x00' + compressed[1:]), bits_out)

        bits_out.flush()
        self.assertEqual(output.getvalue(), b"")

    def test_truncated_payload(self):
        compressed = compress_bytes(b"abc" * 100)
        with self.assertRaises(MalformedStreamError):
            decompress_bytes(compressed[:len(compressed) // 2])

    def test_truncated_header(self):
        compressed = compress_bytes(b"abc" * 100)
        with self.assertRaises(MalformedStreamError):
            decompress_bytes(compressed[:6])


class TestArchiver(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archiver = Archiver(verbose=False)

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, name: str, data: bytes) -> str:
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        test_file = self._write("test.txt", data)

        stats = self.archiver.compress_file(test_file)
        compressed_path = test_file + ".hf"
        self.assertTrue(os.path.isfile(compressed_path))
        self.assertEqual(os.path.getsize(compressed_path), stats.compressed_size)
        self.assertLess(stats.compressed_size, stats.original_size)

        os.remove(test_file)
        self.assertTrue(self.archiver.decompress_file(compressed_path))

        with open(test_file, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_explicit_output_paths(self):
        test_file = self._write("data.bin", bytes(range(256)))
        packed = os.path.join(self.temp_dir, "packed")
        restored = os.path.join(self.temp_dir, "restored.bin")

        Archiver(verbose=True).compress_file(test_file, packed)
        self.assertTrue(self.archiver.decompress_file(packed, restored))

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), bytes(range(256)))

    def test_default_name_without_suffix(self):
        packed = os.path.join(self.temp_dir, "packed")
        with open(packed, 'wb') as f:
            f.write(compress_bytes(b"xyz"))

        self.assertTrue(self.archiver.decompress_file(packed))
        self.assertTrue(os.path.isfile(packed + ".unhf"))

    def test_empty_file(self):
        test_file = self._write("empty.txt", b"")
        self.archiver.compress_file(test_file)

        restored = os.path.join(self.temp_dir, "restored.txt")
        self.assertTrue(self.archiver.decompress_file(test_file + ".hf", restored))
        self.assertEqual(os.path.getsize(restored), 0)

    def test_bad_file_removes_output(self):
        bad_file = self._write("bad.hf", b"not a huffman file")
        restored = os.path.join(self.temp_dir, "restored.txt")

        self.assertFalse(self.archiver.decompress_file(bad_file, restored))
        self.assertFalse(os.path.exists(restored))

    def test_compress_onto_itself_keeps_input(self):
        data = b"keep me intact " * 20
        test_file = self._write("same.txt", data)

        with self.assertRaises(ValueError):
            self.archiver.compress_file(test_file, test_file)

        with open(test_file, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_decompress_onto_itself_keeps_input(self):
        compressed = compress_bytes(b"packed data " * 20)
        packed = self._write("same.hf", compressed)

        with self.assertRaises(ValueError):
            self.archiver.decompress_file(packed, packed)

        self.assertTrue(os.path.exists(packed))
        with open(packed, 'rb') as f:
            self.assertEqual(f.read(), compressed)

    def test_relative_output_to_same_file(self):
        data = b"relative path"
        test_file = self._write("rel.txt", data)
        alias = os.path.join(self.temp_dir, ".", "rel.txt")

        with self.assertRaises(ValueError):
            self.archiver.compress_file(test_file, alias)

        with open(test_file, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_truncated_file_removes_output(self):
        truncated = self._write("short.hf", compress_bytes(b"truncated " * 50)[:20])
        restored = os.path.join(self.temp_dir, "restored.txt")

        self.assertFalse(self.archiver.decompress_file(truncated, restored))
        self.assertFalse(os.path.exists(restored))

    def test_show_codes(self):
        test_file = self._write("codes.txt", b"aaab")
        self.archiver.compress_file(test_file)

        captured = io.StringIO()
        stdout = sys.stdout
        sys.stdout = captured
        try:
            self.archiver.show_codes(test_file + ".hf")
        finally:
            sys.stdout = stdout

        output = captured.getvalue()
        self.assertIn("EOF", output)
        self.assertIn("'a'", output)
        self.assertIn("3 symbols", output)


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _run(self, *args):
        captured = io.StringIO()
        with mock.patch.object(sys, 'argv', ['main.py', *args]), \
                mock.patch.object(sys, 'stderr', captured):
            with self.assertRaises(SystemExit) as ctx:
                main.main()
        return ctx.exception.code, captured.getvalue()

    def test_missing_file(self):
        missing = os.path.join(self.temp_dir, "missing.txt")
        code, errors = self._run('compress', missing)

        self.assertEqual(code, 1)
        self.assertIn(f"Error: {missing} not found", errors)

    def test_same_output_path(self):
        test_file = os.path.join(self.temp_dir, "data.txt")
        with open(test_file, 'wb') as f:
            f.write(b"command line data")

        code, errors = self._run('-q', 'compress', test_file, '-o', test_file)

        self.assertEqual(code, 1)
        self.assertIn("Error:", errors)
        with open(test_file, 'rb') as f:
            self.assertEqual(f.read(), b"command line data")


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeHeader))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanEncoder))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffProcessor))
    suite.addTests(loader.loadTestsFromTestCase(TestArchiver))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
