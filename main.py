"""
Командная строка для компрессора Хаффмана.
"""

import argparse
import sys
from compressor import HuffmanCompressor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='huffzip',
        description='Huffman file compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  huffzip compress book.txt
  huffzip decompress book.txt.huf -o restored.txt
  huffzip codes book.txt
  huffzip info book.txt.huf
        """
    )
    parser.add_argument('-q', '--quiet', action='store_true', help='Do not print progress')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress a file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.huf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress a .huf file')
    decompress_parser.add_argument('file', help='File to decompress')
    decompress_parser.add_argument('-o', '--output', help='Output path')

    codes_parser = subparsers.add_parser('codes', help='Print the code table of a file')
    codes_parser.add_argument('file', help='Source file')

    info_parser = subparsers.add_parser('info', help='Print the header of a .huf file')
    info_parser.add_argument('file', help='Compressed file')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    compressor = HuffmanCompressor(verbose=not args.quiet)

    try:
        if args.command == 'compress':
            compressor.compress_file(args.file, args.output)

        elif args.command == 'decompress':
            compressor.decompress_file(args.file, args.output)

        elif args.command == 'codes':
            compressor.print_code_table(args.file)

        elif args.command == 'info':
            compressor.print_info(args.file)

    except Exception as e:
        if compressor.verbose and args.command in ('compress', 'decompress'):
            # строка прогресса могла остаться незавершённой
            print("FAILED")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
