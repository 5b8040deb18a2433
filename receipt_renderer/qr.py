import asyncio
import base64
import io
import logging

import qrcode
from PIL import Image

from .canvas import DATA_URL_PREFIX
from .errors import EncodeError

logger = logging.getLogger(__name__)


def create_qr_image(data, size):
    """Create a size x size QR code image for the given payload"""
    if not data:
        raise EncodeError("QR code payload is empty")

    qr = qrcode.QRCode(version=1, box_size=10, border=1)
    qr.add_data(str(data))
    qr.make(fit=True)
    qr_img = qr.make_image(fill_color="black", back_color="white").convert('RGB')

    # Nearest-neighbour keeps module edges crisp
    return qr_img.resize((size, size), Image.Resampling.NEAREST)


class QRCodeEncoder:
    """Encodes QR payloads into PNG data URLs"""

    async def encode(self, data, size):
        return await asyncio.to_thread(self._encode, data, size)

    def _encode(self, data, size):
        qr_img = create_qr_image(data, size)
        buffer = io.BytesIO()
        qr_img.save(buffer, format='PNG')
        logger.info(f"QR code created ({size}px, {len(str(data))} chars)")
        return DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode('ascii')
