"""Output environments for the image renderer.

A receipt image ends up either as a PNG file written by a server process
(``FileEnvironment``) or as a data URL handed to a web page
(``WebEnvironment``). The renderer calls ``prepare`` before layout and
``deliver`` once the final surface exists, and never asks which one it has.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from .config import settings
from .errors import RenderError

logger = logging.getLogger(__name__)

STORAGE_KEY = 'receiptData'
DEFAULT_FILENAME = 'receipt.png'


class RenderEnvironment(ABC):
    async def prepare(self, receipt):
        """Hook run before layout starts"""

    @abstractmethod
    async def deliver(self, surface, output_path=None, return_embeddable=False):
        """Hand the finished surface to the caller"""


def _write_atomic(path, data):
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class FileEnvironment(RenderEnvironment):
    """Writes the receipt as a PNG file and returns its bytes"""

    async def write_file(self, path, data):
        await asyncio.to_thread(_write_atomic, path, data)

    async def deliver(self, surface, output_path=None, return_embeddable=False):
        output_path = output_path or settings.OUTPUT_PATH
        try:
            data = surface.to_png_bytes()
        except Exception as e:
            raise RenderError('encode', str(e)) from e
        try:
            await self.write_file(output_path, data)
        except OSError as e:
            raise RenderError('file_write', f"Could not write {output_path}: {e}") from e
        logger.info(f"Receipt image saved to {output_path} ({len(data)} bytes)")
        return data


@dataclass(frozen=True)
class Download:
    filename: str
    data_url: str


class WebEnvironment(RenderEnvironment):
    """Interactive page context: data URLs, save-as downloads and stored input.

    ``persist_input`` stores the original receipt under ``receiptData`` before
    layout begins, whether or not rendering then succeeds.
    """

    def __init__(self, storage=None, persist_input=False):
        self.storage = storage
        self.persist_input = persist_input
        self.downloads: List[Download] = []

    async def prepare(self, receipt):
        if not self.persist_input:
            return
        if self.storage is None:
            raise RenderError('storage', "persist_input requires a storage backend")
        try:
            await asyncio.to_thread(self.storage.set, STORAGE_KEY, receipt.to_dict())
        except Exception as e:
            raise RenderError('storage', f"Could not persist receipt data: {e}") from e

    def save_as(self, data_url, filename=DEFAULT_FILENAME):
        self.downloads.append(Download(filename=filename, data_url=data_url))
        logger.info(f"Download prepared: {filename}")

    async def deliver(self, surface, output_path=None, return_embeddable=False):
        try:
            data_url = surface.to_data_url()
        except Exception as e:
            raise RenderError('encode', str(e)) from e
        if return_embeddable:
            return data_url
        self.save_as(data_url, os.path.basename(output_path) if output_path else DEFAULT_FILENAME)
        return None
