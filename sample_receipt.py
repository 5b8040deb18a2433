#!/usr/bin/env python3
"""
Render the sample receipts to the console and to receipt.png
"""

import asyncio

from receipt_renderer import RenderError, render_image, render_text

receipt_data = {
    'storeName': 'Awesome Store',
    'items': [
        {'name': 'Milk', 'quantity': 2, 'price': 3.50},
        {'name': 'Bread', 'quantity': 1, 'price': 2.75},
        {'name': 'Eggs', 'quantity': 1, 'price': 4.99},
    ],
    'discount': {'type': 'percentage', 'value': 10},
    'taxRate': 0.0825,  # 8.25%
    'qrCode': {
        'data': '1173-3978-4877',
        'size': 100
    }
}


def main():
    print("--- Text Receipt ---")
    print(render_text(receipt_data))

    output_path = 'receipt.png'
    try:
        asyncio.run(render_image(receipt_data, output_path))
        print("\n--- Image Receipt ---")
        print(f"Receipt image successfully generated at: {output_path}")
    except RenderError as e:
        print(f"Failed to generate image receipt: {e}")


if __name__ == '__main__':
    main()
