import argparse
from cli.batch import setup_batch_parser
from cli.status import setup_status_parser
from cli.tools import setup_tools_parsers


def create_parser():
    parser = argparse.ArgumentParser(
        prog='bookbinder',
        description='Bookbinder - Turn e-reader page archives into searchable PDFs',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Batch (run from the working root, archives in ./input)
  bookbinder batch
  bookbinder batch --llm
  bookbinder batch --workers 4
  bookbinder status

  # Single stages
  bookbinder pdf ./extracted-pages -o book.pdf
  bookbinder pdf ./extracted-pages --split
  bookbinder ocr book.pdf --pages 10
  bookbinder compress ./output
"""
    )
    parser.add_argument('--root', default=None, help='Working root (default: $BOOKBINDER_ROOT or current directory)')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')
    subparsers.required = True

    setup_batch_parser(subparsers)
    setup_status_parser(subparsers)
    setup_tools_parsers(subparsers)

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)
    args.func(args)
