"""
Определяет заголовок сжатого файла: магическое число и форму дерева
Хаффмана в прямом обходе (0 - внутренний узел, 1 - лист и 9 бит символа).
"""

from typing import Optional

from bitstream import BitInputStream, BitOutputStream, NO_DATA
from huffman import (HuffmanNode, FormatError, MalformedStreamError,
                     ALPH_SIZE, BITS_PER_WORD, PSEUDO_EOF)


BITS_PER_INT = 32
LEAF_VALUE_BITS = BITS_PER_WORD + 1
HUFF_NUMBER = 0xface8200
HUFF_TREE = HUFF_NUMBER | 1
ACCEPTED_MAGIC = (HUFF_NUMBER, HUFF_TREE)
MAX_TREE_DEPTH = ALPH_SIZE


def header_size_bits(leaf_count: int) -> int:
    if leaf_count == 0:
        return BITS_PER_INT
    return BITS_PER_INT + leaf_count * (1 + LEAF_VALUE_BITS) + (leaf_count - 1)


class TreeHeader:
    @staticmethod
    def write(root: Optional[HuffmanNode], bits_out: BitOutputStream):
        bits_out.write_bits(BITS_PER_INT, HUFF_NUMBER)

        if root is not None:
            TreeHeader._write_node(root, bits_out)

    @staticmethod
    def _write_node(node: HuffmanNode, bits_out: BitOutputStream):
        if node.is_leaf():
            bits_out.write_bits(1, 1)
            bits_out.write_bits(LEAF_VALUE_BITS, node.value)
            return

        bits_out.write_bits(1, 0)
        TreeHeader._write_node(node.left, bits_out)
        TreeHeader._write_node(node.right, bits_out)

    @staticmethod
    def read(bits_in: BitInputStream) -> HuffmanNode:
        magic = bits_in.read_bits(BITS_PER_INT)

        if magic == NO_DATA:
            raise FormatError("Stream too short for magic number")

        if magic not in ACCEPTED_MAGIC:
            raise FormatError(f"Invalid magic number: 0x{magic:08x}")

        return TreeHeader._read_node(bits_in, 0)

    @staticmethod
    def _read_node(bits_in: BitInputStream, depth: int) -> HuffmanNode:
        if depth > MAX_TREE_DEPTH:
            raise FormatError(f"Tree header deeper than {MAX_TREE_DEPTH} levels")

        tag = bits_in.read_bits(1)
        if tag == NO_DATA:
            raise MalformedStreamError("Tree header truncated")

        if tag == 1:
            value = bits_in.read_bits(LEAF_VALUE_BITS)
            if value == NO_DATA:
                raise MalformedStreamError("Tree header truncated in leaf value")
            if value > PSEUDO_EOF:
                raise FormatError(f"Invalid leaf value in tree header: {value}")
            return HuffmanNode(value=value)

        left = TreeHeader._read_node(bits_in, depth + 1)
        right = TreeHeader._read_node(bits_in, depth + 1)

        return HuffmanNode(left=left, right=right)
