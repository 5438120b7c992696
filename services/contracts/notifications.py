"""
Contract notification emails, sent through SendGrid.

Bodies are rendered from the contracts blueprint templates
(routes/contracts/templates/emails/), so sends must happen inside a
Flask app context with that blueprint registered.
"""
import os
from datetime import datetime

from flask import current_app, render_template
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail, To

from .exceptions import NotificationError
from .formatting import format_percent, format_usd, to_decimal

DEFAULT_SENDER = 'contracts@deed.app'

SUBJECT_SUFFIX = 'Purchase Agreement'


def _percent_of(amount, percent):
    return (to_decimal(amount) or 0) * (to_decimal(percent) or 0) / 100


class NotificationService:
    """Sends the signing-chain emails. Every failed send raises NotificationError."""

    def __init__(self, api_key=None, from_email=None, app_url=None, client=None):
        self.api_key = api_key or os.getenv('SENDGRID_API_KEY')
        self.from_email = from_email or os.getenv('MAIL_FROM_EMAIL') or DEFAULT_SENDER
        self.app_url = app_url or os.getenv('APP_URL') or '#'
        self._client = client

    @classmethod
    def from_config(cls, config):
        """Build from a Flask config mapping."""
        return cls(
            api_key=config.get('SENDGRID_API_KEY'),
            from_email=config.get('MAIL_FROM_EMAIL'),
            app_url=config.get('APP_URL'),
        )

    @property
    def client(self):
        """Lazy-load SendGrid client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("SENDGRID_API_KEY not configured")
            self._client = SendGridAPIClient(self.api_key)
        return self._client

    def _render(self, template_name: str, **context) -> str:
        context.setdefault('app_url', self.app_url)
        context.setdefault('current_year', str(datetime.now().year))
        return render_template(f'emails/{template_name}.html', **context)

    def send(self, to_email: str, subject: str, html_content: str) -> str:
        """
        Send one HTML email.

        Returns:
            The SendGrid message id (may be empty if SendGrid omits it)

        Raises:
            ValueError: If to_email is empty
            NotificationError: If SendGrid rejects the message or the call fails
        """
        if not to_email:
            raise ValueError("Recipient email is required")

        message = Mail(
            from_email=Email(self.from_email),
            to_emails=To(to_email),
            subject=subject,
            html_content=html_content
        )

        client = self.client

        try:
            response = client.send(message)
        except Exception as e:
            current_app.logger.error(f"SendGrid error: to={to_email}, subject={subject!r}, error={e}")
            raise NotificationError(
                f"Failed to send email to {to_email}: {e}",
                status_code=getattr(e, 'status_code', None),
                response_body=getattr(e, 'body', None)
            ) from e

        if response.status_code not in (200, 201, 202):
            current_app.logger.error(
                f"SendGrid failed: to={to_email}, subject={subject!r}, status={response.status_code}"
            )
            current_app.logger.error(f"Response body: {response.body}")
            raise NotificationError(
                f"SendGrid rejected email to {to_email}: {response.status_code}",
                status_code=response.status_code,
                response_body=response.body
            )

        message_id = (response.headers or {}).get('X-Message-Id', '')
        current_app.logger.info(f"✓ Email sent: to={to_email}, subject={subject!r}, id={message_id}")
        return message_id

    # =========================================================================
    # Signing chain emails
    # =========================================================================

    def send_broker_sign_request(self, to_email, broker_name, agent_name, buyer_name,
                                 property_address, offer_price, signing_link) -> str:
        """Ask the broker to sign. Only used when our own signer emails are enabled."""
        return self.send(
            to_email,
            f"Signature Required: {SUBJECT_SUFFIX} — {property_address}",
            self._render(
                'broker_sign',
                broker_name=broker_name,
                agent_name=agent_name,
                buyer_name=buyer_name,
                property_address=property_address,
                offer_price=format_usd(offer_price),
                signing_link=signing_link,
            )
        )

    def send_buyer_sign_request(self, to_email, buyer_name, agent_name, property_address,
                                offer_price, loan_type, down_payment_percent, signing_link) -> str:
        """Tell the buyer the broker has signed and it is their turn."""
        return self.send(
            to_email,
            f"Your Purchase Agreement is Ready to Sign — {property_address}",
            self._render(
                'buyer_sign',
                buyer_name=buyer_name,
                agent_name=agent_name,
                property_address=property_address,
                offer_price=format_usd(offer_price),
                loan_type=loan_type,
                down_payment=format_percent(down_payment_percent),
                down_payment_amount=format_usd(_percent_of(offer_price, down_payment_percent)),
                signing_link=signing_link,
            )
        )

    def send_seller_sign_request(self, to_email, seller_name, buyer_name, agent_name, property_address,
                                 offer_price, loan_type, down_payment_percent, signing_link) -> str:
        """Tell the seller an offer has arrived and is waiting for their signature."""
        return self.send(
            to_email,
            f"Offer Received for {property_address} — Review & Sign",
            self._render(
                'seller_sign',
                seller_name=seller_name,
                buyer_name=buyer_name,
                agent_name=agent_name,
                property_address=property_address,
                offer_price=format_usd(offer_price),
                loan_type=loan_type,
                down_payment=format_percent(down_payment_percent),
                down_payment_amount=format_usd(_percent_of(offer_price, down_payment_percent)),
                signing_link=signing_link,
            )
        )

    def send_fully_executed(self, to_email, recipient_name, buyer_name, seller_name, agent_name,
                            broker_name, property_address, offer_price, closing_date) -> str:
        """Confirm to a signing party that every signature is in."""
        return self.send(
            to_email,
            f"Fully Executed: {SUBJECT_SUFFIX} for {property_address}",
            self._render(
                'fully_executed',
                recipient_name=recipient_name,
                buyer_name=buyer_name,
                seller_name=seller_name,
                agent_name=agent_name,
                broker_name=broker_name,
                property_address=property_address,
                offer_price=format_usd(offer_price),
                closing_date=closing_date,
            )
        )

    def send_agent_status(self, to_email, headline, agent_name, property_address, status_message,
                          signer_name, signer_role, next_step_message) -> str:
        """
        Status ping to the submitting agent.

        The subject reads "{headline} — Purchase Agreement — {address}",
        e.g. "Broker Signed — Purchase Agreement — 123 Main St".
        """
        return self.send(
            to_email,
            f"{headline} — {SUBJECT_SUFFIX} — {property_address}",
            self._render(
                'agent_status',
                agent_name=agent_name,
                property_address=property_address,
                status_message=status_message,
                signer_name=signer_name,
                signer_role=signer_role,
                next_step_message=next_step_message,
            )
        )
