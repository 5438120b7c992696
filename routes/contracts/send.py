# routes/contracts/send.py
"""
Contract send endpoint: PDF assembly, PandaDoc create/poll/send, and
the agent's "sent to broker" ping.
"""

from flask import current_app, jsonify, request

from services.contracts import ContractFormData, ValidationError
from . import contracts_bp
from .helpers import get_notifier, get_pandadoc_client, signer_emails_enabled


def _parse_send_body(body):
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    form_data = ContractFormData.from_dict(body.get('formData'))
    contract_text = body.get('contractText')
    if not isinstance(contract_text, str) or not contract_text.strip():
        raise ValidationError("contractText is required", field='contractText')
    return form_data, contract_text


@contracts_bp.route('/send-contract', methods=['POST'])
def send_contract():
    """
    Create the PandaDoc document and start the signing chain.

    PandaDoc emails the broker itself (non-silent send); we only ping
    the agent, plus the broker when our own signer emails are enabled.
    """
    try:
        form_data, contract_text = _parse_send_body(request.get_json(silent=True))
    except ValidationError as e:
        current_app.logger.warning(f"[/api/send-contract] Invalid request: {e}")
        return jsonify({'error': str(e)}), 400

    try:
        result = get_pandadoc_client().create_and_send_contract(form_data, contract_text)

        notifier = get_notifier()
        if signer_emails_enabled():
            notifier.send_broker_sign_request(
                to_email=form_data.broker_email,
                broker_name=form_data.broker_name,
                agent_name=form_data.agent_name,
                buyer_name=form_data.buyer_name,
                property_address=form_data.property_address,
                offer_price=form_data.offer_price,
                signing_link=result.broker_link,
            )

        notifier.send_agent_status(
            to_email=form_data.agent_email,
            headline="Sent to Broker",
            agent_name=form_data.agent_name,
            property_address=form_data.property_address,
            status_message="Contract sent to broker for signature",
            signer_name=form_data.broker_name,
            signer_role="Broker",
            next_step_message=(
                f"{form_data.broker_name} has received the contract and will be notified to sign. "
                f"Once they sign, it will automatically be sent to {form_data.buyer_name} for their signature."
            ),
        )
    except Exception as e:
        current_app.logger.error(f"[/api/send-contract] Error: {e}", exc_info=True)
        return jsonify({'error': 'Failed to send contract'}), 500

    current_app.logger.info(
        f"Contract for {form_data.property_address} sent as {result.document_id}"
        + (" (sandbox: not delivered)" if result.sandbox_skipped else "")
    )
    return jsonify({
        'success': True,
        'pandaDocId': result.document_id,
        'sandboxSkipped': result.sandbox_skipped,
    })
