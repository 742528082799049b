"""Contact routes for relaying portfolio contact form messages by email."""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from src.shared.contact.captcha import verify_captcha
from src.shared.contact.email_utils import (
    ContactSubmission,
    build_contact_message,
    send_contact_email,
)
from src.shared.contact.input_validation import (
    ERROR_SPAM,
    get_validation_error,
    normalize_email,
    sanitize_input,
)
from src.shared.contact.rate_limit import (
    daily_limiter,
    email_limit_key,
    email_limiter,
    get_client_ip,
)
from src.shared.contact.schemas import ContactRequest, ContactResponse, ErrorResponse

router = APIRouter(prefix="/api", tags=["contact"])

CAPTCHA_FAILED_MESSAGE = "Security verification failed. Please try again."
SEND_FAILED_MESSAGE = "Failed to send email. Please try again later."


def _reject(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"success": False, "error": message},
    )


@router.post(
    "/send-email",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def send_email(contact_data: ContactRequest, request: Request):
    """
    Relay a contact form submission to the site owner's mailbox.

    Checks run in a fixed order and the first failure ends the request:
    - Daily limit per IP address, then a one-per-minute limit per IP + email
    - reCAPTCHA score verification
    - Required fields, name/email format, message length, spam words, caps lock
    Only sanitized values are rendered into the outgoing email.
    """
    client_ip = get_client_ip(request)
    daily_limiter.enforce(client_ip)
    email_limiter.enforce(email_limit_key(client_ip, contact_data.email))

    is_captcha_valid = await run_in_threadpool(verify_captcha, contact_data.captcha_token, client_ip)
    if not is_captcha_valid:
        logging.warning("reCAPTCHA verification failed")
        raise _reject(CAPTCHA_FAILED_MESSAGE)
    logging.info("reCAPTCHA verified")

    validation_error = get_validation_error(contact_data)
    if validation_error:
        if validation_error == ERROR_SPAM:
            logging.warning(f"Spam detected from: {contact_data.email}")
        raise _reject(validation_error)

    submission = ContactSubmission(
        first_name=sanitize_input(contact_data.first_name),
        last_name=sanitize_input(contact_data.last_name),
        email=normalize_email(contact_data.email),
        message=sanitize_input(contact_data.message),
    )

    email_sent = await run_in_threadpool(send_contact_email, build_contact_message(submission))
    if not email_sent:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": SEND_FAILED_MESSAGE},
        )

    return ContactResponse(success=True, message="Email sent successfully")
