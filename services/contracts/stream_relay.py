"""
Contract Text Stream Relay

Starts an OpenAI chat-completions stream for the contract prompt and
relays the text deltas to the HTTP response as UTF-8 bytes.

Starting the stream and consuming it are separate steps so a request
that OpenAI rejects outright fails before any response bytes go out:

    events = open_contract_stream(form_data)        # may raise ContractGenerationError
    return Response(relay_text_deltas(events), ...)  # may raise StreamRelayError mid-body
"""

import logging
from typing import Any, Iterable, Iterator, Optional

import openai

from config import Config
from .exceptions import ContractGenerationError, StreamRelayError
from .prompt_builder import CONTRACT_SYSTEM_PROMPT, build_contract_prompt
from .types import ContractFormData

logger = logging.getLogger(__name__)


def _mask_key(key: str) -> str:
    return f"{key[:8]}...{key[-4:]}" if len(key) > 12 else "***"


def open_contract_stream(
    form_data: ContractFormData,
    api_key: str = None,
    model: str = None,
    max_tokens: int = None,
    client: Optional[Any] = None
) -> Iterable[Any]:
    """
    Start streaming a contract draft from OpenAI.

    Args:
        form_data: Validated form snapshot
        api_key: Optional API key override (uses Config.OPENAI_API_KEY if not provided)
        model: Optional model override (uses Config.CONTRACT_MODEL)
        max_tokens: Optional token budget override (uses Config.CONTRACT_MAX_TOKENS)
        client: Optional pre-built OpenAI client

    Returns:
        The chunk iterator returned by the SDK

    Raises:
        ValueError: If the API key is not configured
        ContractGenerationError: If OpenAI rejects the request
    """
    if client is None:
        key = api_key or Config.OPENAI_API_KEY
        if not key:
            logger.error("OpenAI API key is not configured!")
            raise ValueError("OpenAI API key is not configured")
        logger.info(f"Contract stream using API key: {_mask_key(key)}")
        client = openai.OpenAI(api_key=key)

    model = model or Config.CONTRACT_MODEL
    try:
        stream = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": CONTRACT_SYSTEM_PROMPT},
                {"role": "user", "content": build_contract_prompt(form_data)}
            ],
            max_tokens=max_tokens or Config.CONTRACT_MAX_TOKENS,
            stream=True
        )
    except openai.OpenAIError as e:
        logger.error(f"Failed to start contract stream with {model}: {e}")
        raise ContractGenerationError(f"Failed to start contract stream: {e}") from e

    logger.info(f"Contract stream started with {model} for {form_data.property_address}")
    return stream


def delta_text(chunk: Any) -> Optional[str]:
    """
    Extract the text payload of a stream chunk.

    Returns None for chunks that carry no text (role announcements,
    finish markers, usage reports).
    """
    choices = getattr(chunk, 'choices', None)
    if not choices:
        return None
    delta = getattr(choices[0], 'delta', None)
    return getattr(delta, 'content', None) or None


def relay_text_deltas(events: Iterable[Any]) -> Iterator[bytes]:
    """
    Yield each text delta as UTF-8 bytes, in arrival order.

    Raises:
        StreamRelayError: If the upstream stream fails part-way. The
            response is then cut off instead of ending cleanly, so the
            caller can tell partial output from a finished contract.
    """
    sent = 0
    try:
        for chunk in events:
            text = delta_text(chunk)
            if text:
                sent += len(text)
                yield text.encode('utf-8')
    except Exception as e:
        logger.error(f"Contract stream failed after {sent} characters: {e}", exc_info=True)
        raise StreamRelayError(f"Contract stream interrupted: {e}") from e

    logger.info(f"Contract stream finished ({sent} characters)")
