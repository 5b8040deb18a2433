class ReceiptError(Exception):
    """Base class for receipt rendering failures"""


class DecodeError(ReceiptError):
    """An image could not be decoded (missing file or invalid data)"""


class EncodeError(ReceiptError):
    """A QR code or image could not be encoded"""


class RenderError(ReceiptError):
    """A collaborator failed while rendering a receipt image.

    ``stage`` names the step that failed: storage, surface, qr_encode,
    qr_decode, encode or file_write. The original exception is chained.
    """

    def __init__(self, stage, message):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.message = message
