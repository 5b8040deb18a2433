import argparse
import asyncio
import json
import logging
import sys

from .config import settings
from .diagnostics import DiagnosticChannel
from .errors import RenderError
from .image_receipt import render_image
from .models import ReceiptInput
from .text_receipt import render_text

logger = logging.getLogger(__name__)

SAMPLE_RECEIPT = {
    'storeName': 'The Corner Coffee Shop',
    'companyAddress': '123 Main St, Anytown',
    'items': [
        {'name': 'Large Latte', 'quantity': 2, 'price': 4.50},
        {'name': 'Blueberry Muffin - Freshly Baked', 'quantity': 1, 'price': 3.00},
        {'name': 'Loyalty Discount Item', 'quantity': 1, 'price': 0.00},
    ],
    'taxRate': 0.05,
    'discount': {'type': 'percentage', 'value': 10},
    'qrCode': {'data': 'https://example.com/receipt/12345', 'size': 150},
    'currency': '€',
}


def load_receipt(path):
    if path == '-':
        return json.load(sys.stdin)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def build_parser():
    parser = argparse.ArgumentParser(description='Render a receipt as text and/or a PNG image')
    parser.add_argument('input', nargs='?', help='Receipt JSON file ("-" for stdin)')
    parser.add_argument('--sample', action='store_true', help='Render the built-in sample receipt')
    parser.add_argument('--text', action='store_true', help='Print the text receipt')
    parser.add_argument('--image', nargs='?', const=settings.OUTPUT_PATH, metavar='PATH',
                        help=f'Write the receipt image (default: {settings.OUTPUT_PATH})')
    return parser


def main(argv=None):
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.sample and not args.input:
        parser.error('an input file or --sample is required')

    try:
        receipt = ReceiptInput.from_dict(SAMPLE_RECEIPT if args.sample else load_receipt(args.input))
    except (OSError, ValueError) as e:
        print(f"❌ Invalid receipt data: {e}", file=sys.stderr)
        return 1

    diagnostics = DiagnosticChannel()

    # Text is the default output when nothing else was asked for
    if args.text or not args.image:
        print(render_text(receipt, diagnostics))

    if args.image:
        try:
            asyncio.run(render_image(receipt, args.image, diagnostics=diagnostics))
        except RenderError as e:
            print(f"❌ Failed to generate receipt image ({e.stage}): {e.message}", file=sys.stderr)
            return 1
        print(f"✅ Receipt image generated at: {args.image}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
