"""
smswallet/api/sms.py

Purpose: Inbound SMS webhook endpoint

- Accepts Twilio-style form posts (From, Body) and JSON ({from, body})
- Normalizes the sender to E.164
- Passes control to the dispatcher
- Returns a format-compatible response (empty TwiML for Twilio)
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from smswallet.core.config import settings
from smswallet.core.dependencies import get_executor
from smswallet.core.exceptions import InvalidPhoneNumberError, ValidationError
from smswallet.core.logging import get_logger
from smswallet.flow.dispatcher import dispatch_message
from smswallet.flow.executor import CommandExecutor
from smswallet.schemas.webhook import parse_gateway_message, parse_twilio_message

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


@router.post("/webhook")
async def sms_webhook(request: Request, executor: CommandExecutor = Depends(get_executor)):
    """
    Inbound SMS webhook.

    Replies are never returned inline; they go through the outbound queue.
    """
    content_type = request.headers.get("content-type", "")
    is_json = content_type.startswith("application/json")

    try:
        if is_json:
            payload = await request.json()
            if not isinstance(payload, dict):
                raise ValidationError("Expected a JSON object with 'from' and 'body'")
            message = parse_gateway_message(payload, settings.DEFAULT_COUNTRY)
        else:
            form = await request.form()
            if not form.get("From"):
                raise ValidationError("Missing 'From' field")
            message = parse_twilio_message(
                from_number=str(form.get("From")),
                body=str(form.get("Body") or ""),
                message_sid=form.get("MessageSid"),
                default_region=settings.DEFAULT_COUNTRY,
            )
    except InvalidPhoneNumberError as e:
        logger.warning(f"Rejected inbound SMS: invalid sender ({e.reason})")
        raise ValidationError("Invalid sender phone number", details={"reason": e.reason}) from e
    except PydanticValidationError as e:
        raise ValidationError("Invalid webhook payload", details=e.errors(include_url=False, include_context=False)) from e
    except ValueError as e:
        # Malformed JSON body
        raise ValidationError("Invalid webhook payload") from e

    logger.info(f"Inbound SMS via {message.source}", extra={"phone": message.phone})

    result = await dispatch_message(message.phone, message.text, executor)

    if message.source == "twilio":
        return Response(content=EMPTY_TWIML, media_type="application/xml")

    return {"status": "processed", "result": result["status"]}
