"""
Реализует кодирование Хаффмана для 8-битных символов.
Частые байты получают короткие коды, конец данных отмечается
отдельным символом PSEUDO_EOF, поэтому выравнивание потока
по границе байта не мешает декодированию.
"""

import heapq
from typing import Dict, List, Optional

from bitstream import BitInputStream, BitOutputStream, NO_DATA


BITS_PER_WORD = 8
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE


class HuffmanError(ValueError):
    pass


class FormatError(HuffmanError):
    pass


class MalformedStreamError(HuffmanError):
    pass


class DecodeAutomatonError(MalformedStreamError):
    pass


class HuffmanNode:
    def __init__(self, value: int = -1, weight: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None,
                 order: int = 0):
        self.value = value
        self.weight = weight
        self.left = left
        self.right = right
        self.order = order

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        # При равных весах раньше выходит узел, созданный раньше
        return (self.weight, self.order) < (other.weight, other.order)

    def __repr__(self):
        if self.is_leaf():
            return f"Leaf({self.value}, w={self.weight})"
        return f"Node(w={self.weight})"


def count_frequencies(bits_in: BitInputStream) -> List[int]:
    counts = [0] * ALPH_SIZE

    while True:
        value = bits_in.read_bits(BITS_PER_WORD)
        if value == NO_DATA:
            break
        counts[value] += 1

    return counts


class HuffmanTree:
    def __init__(self, root: Optional[HuffmanNode] = None):
        self.root = root
        self.codes: Dict[int, str] = {}

        if root is not None:
            self._generate_codes()

    def build(self, counts: List[int]):
        order = 0
        heap = []

        for value, weight in enumerate(counts):
            if weight > 0:
                heap.append(HuffmanNode(value=value, weight=weight, order=order))
                order += 1

        heap.append(HuffmanNode(value=PSEUDO_EOF, weight=1, order=order))
        order += 1
        heapq.heapify(heap)

        while len(heap) > 1:
            left = heapq.heappop(heap)
            right = heapq.heappop(heap)

            parent = HuffmanNode(weight=left.weight + right.weight,
                                 left=left, right=right, order=order)
            order += 1
            heapq.heappush(heap, parent)

        self.root = heap[0]
        self._generate_codes()

    @staticmethod
    def from_counts(counts: List[int]) -> 'HuffmanTree':
        tree = HuffmanTree()
        tree.build(counts)
        return tree

    def _generate_codes(self):
        self.codes.clear()

        def traverse(node: HuffmanNode, code: str):
            if node.is_leaf():
                self.codes[node.value] = code
                return

            # Узел с одним потомком деревом не строится, пропускаем его
            if node.left is None or node.right is None:
                return

            traverse(node.left, code + '0')
            traverse(node.right, code + '1')

        traverse(self.root, '')


class HuffmanEncoder:
    @staticmethod
    def encode(bits_in: BitInputStream, codes: Dict[int, str],
               bits_out: BitOutputStream):
        while True:
            value = bits_in.read_bits(BITS_PER_WORD)
            if value == NO_DATA:
                break
            HuffmanEncoder._write_code(codes[value], bits_out)

        HuffmanEncoder._write_code(codes[PSEUDO_EOF], bits_out)

    @staticmethod
    def _write_code(code: str, bits_out: BitOutputStream):
        # Пустой код бывает только у PSEUDO_EOF на пустом входе
        if code:
            bits_out.write_bits(len(code), int(code, 2))

    @staticmethod
    def decode(root: HuffmanNode, bits_in: BitInputStream,
               bits_out: BitOutputStream) -> int:
        """
        Проходит по дереву бит за битом, начиная с корня.
        Возвращает количество записанных байтов.
        """
        if root.is_leaf():
            if root.value == PSEUDO_EOF:
                return 0
            raise DecodeAutomatonError(
                f"Tree has a single leaf {root.value} and no end-of-stream symbol")

        written = 0
        node = root

        while True:
            bit = bits_in.read_bits(1)
            if bit == NO_DATA:
                raise MalformedStreamError(
                    f"Stream ended before end-of-stream symbol ({written} bytes decoded)")

            node = node.right if bit else node.left
            if node is None:
                raise DecodeAutomatonError("Decoder reached a node with a missing child")

            if node.is_leaf():
                if node.value == PSEUDO_EOF:
                    return written

                bits_out.write_bits(BITS_PER_WORD, node.value)
                written += 1
                node = root
