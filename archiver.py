"""
Главный класс для сжатия и разжатия файлов.
"""

import os
from typing import Optional

from bitstream import BitInputStream, BitOutputStream
from huffman import HuffmanTree, HuffmanError, PSEUDO_EOF
from format import TreeHeader
from processor import HuffProcessor, CompressionStats


COMPRESSED_SUFFIX = '.hf'
DECOMPRESSED_SUFFIX = '.unhf'


class Archiver:
    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self.processor = HuffProcessor()

    def _report(self, message: str, end: str = "\n"):
        if self.verbose:
            print(message, end=end)

    def compress_file(self, file_path: str,
                      output_path: Optional[str] = None) -> CompressionStats:
        if output_path is None:
            output_path = file_path + COMPRESSED_SUFFIX

        _check_distinct(file_path, output_path)

        self._report(f"Compressing {file_path}...", end=" ")

        with open(file_path, 'rb') as src, open(output_path, 'wb') as dst:
            bits_out = BitOutputStream(dst)
            stats = self.processor.compress(BitInputStream(src), bits_out)
            bits_out.flush()

        self._report(f"OK ({stats.compression_ratio:.1f}%)")
        if self.verbose:
            stats.print_stats()
        self._report(f"Written: {output_path}")

        return stats

    def decompress_file(self, file_path: str,
                        output_path: Optional[str] = None) -> bool:
        if output_path is None:
            if file_path.endswith(COMPRESSED_SUFFIX):
                output_path = file_path[:-len(COMPRESSED_SUFFIX)]
            else:
                output_path = file_path + DECOMPRESSED_SUFFIX

        _check_distinct(file_path, output_path)

        self._report(f"Decompressing {file_path}...", end=" ")

        try:
            with open(file_path, 'rb') as src, open(output_path, 'wb') as dst:
                bits_out = BitOutputStream(dst)
                written = self.processor.decompress(BitInputStream(src), bits_out)
                bits_out.flush()
        except HuffmanError as e:
            # Частично записанный результат недействителен
            if os.path.exists(output_path):
                os.remove(output_path)
            self._report("FAILED")
            print(f"Error decompressing {file_path}: {e}")
            return False

        self._report("OK")
        self._report(f"{written} bytes: {output_path}")

        return True

    def show_codes(self, file_path: str):
        with open(file_path, 'rb') as f:
            root = TreeHeader.read(BitInputStream(f))

        tree = HuffmanTree(root)

        print(f"{'Symbol':<10} {'Length':>8}  Code")
        print("-" * 60)

        for value in sorted(tree.codes):
            code = tree.codes[value]
            print(f"{_symbol_name(value):<10} {len(code):>8}  {code}")

        print("-" * 60)
        print(f"{len(tree.codes)} symbols")


def _check_distinct(file_path: str, output_path: str):
    # Открытие на запись обнулило бы входной файл до его чтения
    same = os.path.abspath(file_path) == os.path.abspath(output_path)
    if not same and os.path.exists(file_path) and os.path.exists(output_path):
        same = os.path.samefile(file_path, output_path)

    if same:
        raise ValueError(f"Output path is the input file: {output_path}")


def _symbol_name(value: int) -> str:
    if value == PSEUDO_EOF:
        return 'EOF'
    if 0x21 <= value < 0x7f:
        return repr(chr(value))
    return f"0x{value:02x}"
