# routes/contracts/generate.py
"""
Contract drafting endpoint.
"""

from flask import Response, current_app, jsonify, request, stream_with_context

from services.contracts import ContractFormData, ValidationError, open_contract_stream, relay_text_deltas
from . import contracts_bp
from .helpers import get_openai_client

STREAM_HEADERS = {
    'Cache-Control': 'no-cache',
    'X-Accel-Buffering': 'no',
}


@contracts_bp.route('/generate', methods=['POST'])
def generate_contract():
    """
    Stream a drafted purchase agreement as plain text.

    The body is the contract form (camelCase JSON). Text is relayed
    chunk by chunk as the model produces it.
    """
    try:
        form_data = ContractFormData.from_dict(request.get_json(silent=True))
    except ValidationError as e:
        current_app.logger.warning(f"[/api/generate] Invalid form data: {e}")
        return jsonify({'error': str(e)}), 400

    try:
        events = open_contract_stream(
            form_data,
            api_key=current_app.config.get('OPENAI_API_KEY'),
            model=current_app.config.get('CONTRACT_MODEL'),
            max_tokens=current_app.config.get('CONTRACT_MAX_TOKENS'),
            client=get_openai_client(),
        )
    except Exception as e:
        current_app.logger.error(f"[/api/generate] Error: {e}", exc_info=True)
        return jsonify({'error': 'Failed to generate contract'}), 500

    return Response(
        stream_with_context(relay_text_deltas(events)),
        content_type='text/plain; charset=utf-8',
        headers=STREAM_HEADERS
    )
