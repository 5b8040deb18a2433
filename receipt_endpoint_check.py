#!/usr/bin/env python3
"""
Manual check of a running receipt server
"""

import os

import requests

RECEIPT_SERVER = os.getenv('RECEIPT_SERVER_URL', 'http://localhost:5001')

SAMPLE_RECEIPT = {
    'storeName': 'Awesome Store',
    'items': [
        {'name': 'Milk', 'quantity': 2, 'price': 3.50},
        {'name': 'Bread', 'quantity': 1, 'price': 2.75},
    ],
    'taxRate': 0.08,
    'qrCode': {'data': 'ORD-TEST-123', 'size': 100}
}


def check_text_receipt():
    """Render the text receipt"""
    print("Checking text receipt...")

    try:
        response = requests.post(f'{RECEIPT_SERVER}/receipt/text', json=SAMPLE_RECEIPT, timeout=10)

        if response.status_code == 200:
            print("✅ Text receipt rendered!")
            print(response.json()['receipt'])
            return True
        else:
            print(f"❌ Failed with status {response.status_code}: {response.text}")
            return False

    except requests.RequestException as e:
        print(f"❌ Error: {e}")
        return False


def check_embedded_image():
    """Render the image as a data URL and store the input"""
    print("\nChecking embeddable receipt image...")

    try:
        response = requests.post(f'{RECEIPT_SERVER}/receipt/image?embed=true&persist=true',
                                 json=SAMPLE_RECEIPT, timeout=30)

        if response.status_code == 200:
            data_url = response.json().get('dataUrl', '')
            print("✅ Embeddable image rendered!")
            print(f"   Data URL length: {len(data_url)}")
            return data_url.startswith('data:image/png;base64,')
        else:
            print(f"❌ Failed with status {response.status_code}: {response.text}")
            return False

    except requests.RequestException as e:
        print(f"❌ Error: {e}")
        return False


def check_download():
    """Download the receipt PNG"""
    print("\nChecking receipt download...")

    try:
        response = requests.post(f'{RECEIPT_SERVER}/receipt/image', json=SAMPLE_RECEIPT, timeout=30)

        if response.status_code == 200:
            with open('downloaded_receipt.png', 'wb') as f:
                f.write(response.content)
            print("✅ Receipt downloaded to downloaded_receipt.png")
            print(f"   Content-Disposition: {response.headers.get('Content-Disposition')}")
            return True
        else:
            print(f"❌ Failed with status {response.status_code}: {response.text}")
            return False

    except requests.RequestException as e:
        print(f"❌ Error: {e}")
        return False


def check_last_receipt():
    """Fetch the stored receipt input"""
    print("\nChecking stored receipt data...")

    try:
        response = requests.get(f'{RECEIPT_SERVER}/receipt/last', timeout=10)

        if response.status_code == 200:
            stored = response.json().get('receiptData', {})
            print(f"✅ Stored receipt for: {stored.get('storeName')}")
            return True
        else:
            print(f"❌ Failed with status {response.status_code}: {response.text}")
            return False

    except requests.RequestException as e:
        print(f"❌ Error: {e}")
        return False


def main():
    print("🧾 Checking Receipt Server")
    print("=" * 50)

    checks = [
        check_text_receipt,
        check_embedded_image,
        check_download,
        check_last_receipt
    ]

    results = [check() for check in checks]

    print("\n" + "=" * 50)
    print("📋 Results Summary:")
    print(f"   Passed: {sum(results)}/{len(results)}")

    if all(results):
        print("🎉 All checks passed!")
    else:
        print("⚠️  Some checks failed. Check the server logs for more details.")


if __name__ == '__main__':
    main()
