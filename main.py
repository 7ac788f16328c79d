"""
Командная строка для сжатия файлов кодом Хаффмана.
"""

import argparse
import os
import sys
from archiver import Archiver


def main():
    parser = argparse.ArgumentParser(
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress file.txt
  python main.py compress file.txt -o packed.hf
  python main.py decompress file.txt.hf -o restored.txt
  python main.py codes file.txt.hf
        """
    )
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.hf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a file')
    decompress_parser.add_argument('file', help='Compressed file')
    decompress_parser.add_argument('-o', '--output', help='Output path')

    codes_parser = subparsers.add_parser('codes', help='Show the code table of a compressed file')
    codes_parser.add_argument('file', help='Compressed file')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if not os.path.isfile(args.file):
        print(f"Error: {args.file} not found", file=sys.stderr)
        sys.exit(1)

    archiver = Archiver(verbose=not args.quiet)

    try:
        if args.command == 'compress':
            archiver.compress_file(args.file, args.output)

        elif args.command == 'decompress':
            if not archiver.decompress_file(args.file, args.output):
                sys.exit(1)

        elif args.command == 'codes':
            archiver.show_codes(args.file)

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
