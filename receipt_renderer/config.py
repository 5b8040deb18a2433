import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class ReceiptDefaults:
    """Defaults applied to any receipt field the caller leaves out"""
    store_name: str = "YOUR STORE NAME"
    currency: str = "$"
    tax_rate: float = 0.0
    vat_rate: float = 0.0
    qr_size: int = 120


DEFAULTS = ReceiptDefaults()


class Settings:
    """Runtime settings loaded from environment variables"""

    # Fonts (Raspberry Pi OS / Debian DejaVu locations)
    FONT_PATH = os.getenv('RECEIPT_FONT_PATH', '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf')
    BOLD_FONT_PATH = os.getenv('RECEIPT_BOLD_FONT_PATH', '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf')

    # Output and storage
    OUTPUT_PATH = os.getenv('RECEIPT_OUTPUT_PATH', 'receipt.png')
    DB_PATH = os.getenv('RECEIPT_DB_PATH', 'receipts.db')

    # Server
    SERVER_HOST = os.getenv('SERVER_HOST', '0.0.0.0')
    SERVER_PORT = int(os.getenv('SERVER_PORT', '5001'))
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'server.log')


settings = Settings()
