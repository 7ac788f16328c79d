"""
Сжатие и разжатие потока целиком: подсчёт частот, дерево, заголовок,
второй проход по входу с кодированием.
"""

import io
from typing import List

from bitstream import BitInputStream, BitOutputStream
from huffman import HuffmanTree, HuffmanEncoder, count_frequencies, PSEUDO_EOF
from format import TreeHeader, header_size_bits


class CompressionStats:
    def __init__(self, counts: List[int], tree: HuffmanTree):
        self.original_size = sum(counts)
        self.symbol_count = len(tree.codes)

        self.header_bits = header_size_bits(self.symbol_count)
        self.payload_bits = sum(
            count * len(tree.codes[value])
            for value, count in enumerate(counts) if count > 0
        ) + len(tree.codes[PSEUDO_EOF])

        self.compressed_size = (self.header_bits + self.payload_bits + 7) // 8

        self.compression_ratio = (
            self.compressed_size / self.original_size * 100
            if self.original_size > 0 else 0
        )

    def print_stats(self):
        print(f"Huffman Compression Statistics:")
        print(f"  Original size:       {self.original_size} bytes")
        print(f"  Symbols (with EOF):  {self.symbol_count}")
        print(f"  Header:              {self.header_bits} bits")
        print(f"  Payload:             {self.payload_bits} bits")
        if self.original_size > 0:
            print(f"  Avg code length:     {self.payload_bits / self.original_size:.2f} bits")
        print(f"  Compressed size:     {self.compressed_size} bytes")
        print(f"  Compression ratio:   {self.compression_ratio:.1f}%")


class HuffProcessor:
    def compress(self, bits_in: BitInputStream,
                 bits_out: BitOutputStream) -> CompressionStats:
        counts = count_frequencies(bits_in)
        tree = HuffmanTree.from_counts(counts)

        TreeHeader.write(tree.root, bits_out)

        bits_in.reset()
        HuffmanEncoder.encode(bits_in, tree.codes, bits_out)

        return CompressionStats(counts, tree)

    def decompress(self, bits_in: BitInputStream,
                   bits_out: BitOutputStream) -> int:
        root = TreeHeader.read(bits_in)
        return HuffmanEncoder.decode(root, bits_in, bits_out)


def compress_bytes(data: bytes) -> bytes:
    output = io.BytesIO()
    bits_out = BitOutputStream(output)

    HuffProcessor().compress(BitInputStream.from_bytes(data), bits_out)
    bits_out.flush()

    return output.getvalue()


def decompress_bytes(data: bytes) -> bytes:
    output = io.BytesIO()
    bits_out = BitOutputStream(output)

    HuffProcessor().decompress(BitInputStream.from_bytes(data), bits_out)
    bits_out.flush()

    return output.getvalue()
