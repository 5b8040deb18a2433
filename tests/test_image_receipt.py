"""
Tests for the two-pass receipt image renderer.

Rendering runs against the real Pillow backend; failing collaborators are
small stand-ins injected through the renderer's constructor arguments.
"""

import asyncio
import base64
import io

import pytest
from PIL import Image

from receipt_renderer.canvas import DATA_URL_PREFIX, PillowBackend
from receipt_renderer.diagnostics import LOGO_UNAVAILABLE
from receipt_renderer.environment import STORAGE_KEY, FileEnvironment, WebEnvironment
from receipt_renderer.errors import EncodeError, RenderError
from receipt_renderer.image_receipt import (
    CANVAS_WIDTH,
    LINE_HEIGHT,
    QR_MARGIN,
    ReceiptImageRenderer,
    estimate_height,
    render_image,
)
from receipt_renderer.models import ReceiptInput


class FailingQRCodeEncoder:
    async def encode(self, data, size):
        raise EncodeError("encoder offline")


class GarbageQRCodeEncoder:
    async def encode(self, data, size):
        return DATA_URL_PREFIX + base64.b64encode(b'not an image').decode('ascii')


class FailingFileEnvironment(FileEnvironment):
    async def write_file(self, path, data):
        raise PermissionError(f"read-only: {path}")


def open_png(data):
    return Image.open(io.BytesIO(data))


async def render_height(receipt, tmp_path, name='receipt.png', **kwargs):
    data = await render_image(receipt, str(tmp_path / name), **kwargs)
    return open_png(data).height


class TestFileOutput:
    """Rendering in the file-producing context."""

    @pytest.mark.asyncio
    async def test_writes_png_and_returns_bytes(self, grocery_receipt, tmp_path):
        output_path = tmp_path / 'receipt.png'

        data = await render_image(grocery_receipt, str(output_path))

        assert data.startswith(b'\x89PNG')
        assert output_path.read_bytes() == data
        assert open_png(data).width == CANVAS_WIDTH
        assert not (tmp_path / 'receipt.png.tmp').exists()

    @pytest.mark.asyncio
    async def test_final_height_is_trimmed_below_estimate(self, coffee_receipt, tmp_path):
        height = await render_height(coffee_receipt, tmp_path)

        assert height < estimate_height(ReceiptInput.from_dict(coffee_receipt))

    @pytest.mark.asyncio
    async def test_qr_code_adds_exact_footprint(self, grocery_receipt, tmp_path):
        without_qr = await render_height(grocery_receipt, tmp_path, 'plain.png')
        grocery_receipt['qrCode'] = {'data': 'ORD-001', 'size': 120}
        with_qr = await render_height(grocery_receipt, tmp_path, 'qr.png')

        assert with_qr - without_qr == 120 + QR_MARGIN // 2

    @pytest.mark.asyncio
    async def test_qr_code_is_drawn_centered(self, grocery_receipt, tmp_path):
        grocery_receipt['qrCode'] = {'data': 'ORD-001', 'size': 120}
        image = open_png(await render_image(grocery_receipt, str(tmp_path / 'r.png'))).convert('L')

        # Halfway up the QR code, above the 20px bottom padding
        qr_row = image.height - 20 - 60
        dark = [x for x in range(image.width) if image.getpixel((x, qr_row)) < 128]
        assert dark
        assert min(dark) >= (CANVAS_WIDTH - 120) // 2
        assert max(dark) < (CANVAS_WIDTH + 120) // 2

    @pytest.mark.asyncio
    async def test_wrapped_names_grow_by_whole_lines(self, tmp_path):
        short = {'items': [{'name': 'Tea', 'quantity': 1, 'price': 2}]}
        long = {'items': [{'name': ' '.join(['Extraordinarily long item name'] * 4),
                           'quantity': 1, 'price': 2}]}

        delta = await render_height(long, tmp_path, 'long.png') - await render_height(short, tmp_path, 'short.png')

        assert delta > 0
        assert delta % LINE_HEIGHT == 0

    @pytest.mark.asyncio
    async def test_many_items_fit_inside_estimate(self, tmp_path):
        receipt = {'items': [
            {'name': f'Item number {i} with a fairly descriptive name', 'quantity': i, 'price': 1.25}
            for i in range(40)
        ]}

        height = await render_height(receipt, tmp_path)

        assert height < estimate_height(ReceiptInput.from_dict(receipt))

    @pytest.mark.asyncio
    async def test_logo_is_drawn_above_store_name(self, grocery_receipt, tmp_path):
        logo_path = tmp_path / 'logo.png'
        Image.new('RGB', (50, 50), 'red').save(logo_path)

        without_logo = await render_height(grocery_receipt, tmp_path, 'plain.png')
        grocery_receipt['logoPath'] = str(logo_path)
        with_logo = await render_height(grocery_receipt, tmp_path, 'logo_receipt.png')

        assert with_logo - without_logo == 50 + 10

    @pytest.mark.asyncio
    async def test_missing_logo_is_skipped_with_diagnostic(self, grocery_receipt, tmp_path, diagnostics):
        without_logo = await render_height(grocery_receipt, tmp_path, 'plain.png')
        grocery_receipt['logoPath'] = str(tmp_path / 'nope.png')

        with_missing = await render_height(grocery_receipt, tmp_path, 'missing.png', diagnostics=diagnostics)

        assert with_missing == without_logo
        assert diagnostics.codes() == [LOGO_UNAVAILABLE]

    @pytest.mark.asyncio
    async def test_malformed_items_still_render(self, tmp_path, diagnostics):
        receipt = {'items': [{'name': 'Broken', 'quantity': None, 'price': 'free'}]}

        data = await render_image(receipt, str(tmp_path / 'r.png'), diagnostics=diagnostics)

        assert data.startswith(b'\x89PNG')
        assert len(diagnostics.events) == 1

    @pytest.mark.asyncio
    async def test_concurrent_renders_are_independent(self, coffee_receipt, tmp_path):
        first, second = await asyncio.gather(
            render_image(coffee_receipt, str(tmp_path / 'a.png')),
            render_image(coffee_receipt, str(tmp_path / 'b.png')),
        )

        assert first == second


class TestCollaboratorFailures:
    """Collaborator failures surface as RenderError with the failing stage."""

    @pytest.mark.asyncio
    async def test_qr_encode_failure(self, coffee_receipt, tmp_path):
        output_path = tmp_path / 'receipt.png'

        with pytest.raises(RenderError) as exc_info:
            await render_image(coffee_receipt, str(output_path), qr_encoder=FailingQRCodeEncoder())

        assert exc_info.value.stage == 'qr_encode'
        assert isinstance(exc_info.value.__cause__, EncodeError)
        assert not output_path.exists()

    @pytest.mark.asyncio
    async def test_qr_decode_failure(self, coffee_receipt, tmp_path):
        with pytest.raises(RenderError) as exc_info:
            await render_image(coffee_receipt, str(tmp_path / 'r.png'), qr_encoder=GarbageQRCodeEncoder())

        assert exc_info.value.stage == 'qr_decode'

    @pytest.mark.asyncio
    async def test_unwritable_path(self, grocery_receipt, tmp_path):
        output_path = tmp_path / 'missing-dir' / 'receipt.png'

        with pytest.raises(RenderError) as exc_info:
            await render_image(grocery_receipt, str(output_path))

        assert exc_info.value.stage == 'file_write'
        assert not output_path.parent.exists()

    @pytest.mark.asyncio
    async def test_write_failure_from_environment(self, grocery_receipt, tmp_path):
        renderer = ReceiptImageRenderer(environment=FailingFileEnvironment())

        with pytest.raises(RenderError) as exc_info:
            await renderer.render(grocery_receipt, str(tmp_path / 'r.png'))

        assert exc_info.value.stage == 'file_write'
        assert isinstance(exc_info.value.__cause__, PermissionError)

    @pytest.mark.asyncio
    async def test_malformed_receipt_raises_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            await render_image({'storeName': 'No items'}, str(tmp_path / 'r.png'))


class TestWebOutput:
    """Rendering in the interactive page context."""

    @pytest.mark.asyncio
    async def test_returns_embeddable_data_url(self, grocery_receipt):
        environment = WebEnvironment()

        data_url = await render_image(grocery_receipt, environment=environment, return_embeddable=True)

        assert data_url.startswith(DATA_URL_PREFIX)
        image = await PillowBackend().decode_image(data_url)
        assert image.width == CANVAS_WIDTH
        assert environment.downloads == []

    @pytest.mark.asyncio
    async def test_triggers_download_otherwise(self, grocery_receipt):
        environment = WebEnvironment()

        result = await render_image(grocery_receipt, environment=environment)

        assert result is None
        assert len(environment.downloads) == 1
        assert environment.downloads[0].filename == 'receipt.png'
        assert environment.downloads[0].data_url.startswith(DATA_URL_PREFIX)

    @pytest.mark.asyncio
    async def test_input_not_stored_without_opt_in(self, grocery_receipt, storage):
        await render_image(grocery_receipt, environment=WebEnvironment(storage), return_embeddable=True)

        assert storage.get(STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_input_stored_when_opted_in(self, grocery_receipt, storage):
        environment = WebEnvironment(storage, persist_input=True)

        await render_image(grocery_receipt, environment=environment, return_embeddable=True)

        assert storage.get(STORAGE_KEY) == ReceiptInput.from_dict(grocery_receipt).to_dict()

    @pytest.mark.asyncio
    async def test_input_stored_even_when_render_fails(self, coffee_receipt, storage):
        environment = WebEnvironment(storage, persist_input=True)

        with pytest.raises(RenderError):
            await render_image(coffee_receipt, environment=environment,
                               qr_encoder=FailingQRCodeEncoder(), return_embeddable=True)

        assert storage.get(STORAGE_KEY)['storeName'] == 'The Corner Coffee Shop'

    @pytest.mark.asyncio
    async def test_persist_without_storage_fails_at_storage_stage(self, grocery_receipt):
        with pytest.raises(RenderError) as exc_info:
            await render_image(grocery_receipt, environment=WebEnvironment(persist_input=True))

        assert exc_info.value.stage == 'storage'
