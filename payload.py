# payload.py

import json
import logging
from urllib.parse import parse_qs

from pydantic import ValidationError

from exceptions import MalformedPayloadError
from models.deploy_request import DeployRequest
from models.webhook_payload import WebhookPayload

logger = logging.getLogger(__name__)


def decode_body(body: bytes, content_type: str) -> dict:
    """
    Turn the raw request body into the payload dictionary.

    JSON bodies are used as-is. Form-encoded bodies carry the JSON document
    in their "payload" field.
    """
    content_type = (content_type or "").lower()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayloadError(f"Body is not valid UTF-8: {e}") from e

    if "application/json" in content_type:
        raw = text
    elif "application/x-www-form-urlencoded" in content_type:
        form_data = parse_qs(text)
        if "payload" not in form_data:
            raise MalformedPayloadError("No payload parameter in form data")
        raw = form_data["payload"][0]
    else:
        raise MalformedPayloadError(f"Unsupported Content-Type: {content_type or 'none'}")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(f"Could not decode JSON payload: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Payload must be a JSON object")
    return payload


def extract_deploy_request(payload: dict) -> DeployRequest:
    try:
        webhook = WebhookPayload.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(f"Payload has no usable repository.name: {e}") from e
    return DeployRequest(repository_name=webhook.repository.name)


def parse_deploy_request(body: bytes, content_type: str) -> DeployRequest:
    deploy_request = extract_deploy_request(decode_body(body, content_type))
    logger.debug(f"Parsed deploy request for '{deploy_request.repository_name}'")
    return deploy_request
