import asyncio
import io
import logging
from datetime import datetime

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from .canvas import decode_data_url
from .config import settings
from .diagnostics import DiagnosticChannel
from .environment import STORAGE_KEY, WebEnvironment
from .errors import RenderError
from .image_receipt import render_image
from .models import ReceiptInput
from .storage import KeyValueStore
from .text_receipt import render_text

logger = logging.getLogger(__name__)


def _flag(name):
    return request.args.get(name, '').lower() in ('1', 'true', 'yes')


def _diagnostics_payload(diagnostics):
    return [
        {'code': event.code, 'message': event.message}
        for event in diagnostics.events
    ]


def create_app(storage=None, backend=None, qr_encoder=None):
    """Build the receipt web app.

    ``backend`` and ``qr_encoder`` default to the Pillow/qrcode collaborators.
    """
    app = Flask(__name__)
    CORS(app,
         origins=settings.CORS_ORIGINS,
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization"])

    storage = storage or KeyValueStore()

    def parse_receipt():
        data = request.get_json(silent=True)
        if not data:
            raise ValueError("No receipt data provided")
        return ReceiptInput.from_dict(data)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now().isoformat()
        })

    @app.route('/receipt/text', methods=['POST'])
    def receipt_text():
        try:
            receipt = parse_receipt()
        except ValueError as e:
            logger.warning(f"Rejected text receipt request: {e}")
            return jsonify({'error': 'Invalid receipt data', 'details': str(e)}), 400

        diagnostics = DiagnosticChannel()
        text = render_text(receipt, diagnostics)
        logger.info(f"Text receipt rendered for '{receipt.store_name}' ({len(receipt.items)} items)")
        return jsonify({
            'receipt': text,
            'diagnostics': _diagnostics_payload(diagnostics)
        })

    @app.route('/receipt/image', methods=['POST'])
    def receipt_image():
        try:
            receipt = parse_receipt()
        except ValueError as e:
            logger.warning(f"Rejected image receipt request: {e}")
            return jsonify({'error': 'Invalid receipt data', 'details': str(e)}), 400

        embed = _flag('embed')
        environment = WebEnvironment(storage=storage, persist_input=_flag('persist'))
        diagnostics = DiagnosticChannel()

        try:
            data_url = asyncio.run(render_image(
                receipt,
                backend=backend,
                qr_encoder=qr_encoder,
                environment=environment,
                return_embeddable=embed,
                diagnostics=diagnostics,
            ))
        except RenderError as e:
            logger.error(f"Receipt image failed at stage '{e.stage}': {e.message}", exc_info=True)
            return jsonify({
                'error': 'Failed to render receipt image',
                'stage': e.stage,
                'details': e.message,
                'timestamp': datetime.now().isoformat()
            }), 500

        if embed:
            logger.info(f"Embeddable receipt image rendered for '{receipt.store_name}'")
            return jsonify({
                'dataUrl': data_url,
                'diagnostics': _diagnostics_payload(diagnostics)
            })

        download = environment.downloads[-1]
        logger.info(f"Receipt image download sent: {download.filename}")
        return send_file(
            io.BytesIO(decode_data_url(download.data_url)),
            mimetype='image/png',
            as_attachment=True,
            download_name=download.filename,
        )

    @app.route('/receipt/last', methods=['GET'])
    def last_receipt():
        data = storage.get(STORAGE_KEY)
        if data is None:
            return jsonify({'error': 'No stored receipt data'}), 404
        return jsonify({'receiptData': data})

    return app


def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(settings.LOG_FILE),
            logging.StreamHandler()
        ]
    )
    # Reduce Flask verbosity
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    app = create_app()
    logger.info(f"Receipt server starting on {settings.SERVER_HOST}:{settings.SERVER_PORT}")
    app.run(host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == '__main__':
    main()
