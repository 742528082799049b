"""
Google reCAPTCHA v3 verification.

Verifies the token produced by the contact form against the siteverify API
and accepts the submission when the returned score reaches the configured
threshold. Any failure talking to the service is treated as a rejection.

Documentation: https://developers.google.com/recaptcha/docs/v3
"""

import logging
from typing import Optional

import requests

from src.shared.config.settings import (
    get_recaptcha_min_score,
    get_recaptcha_secret,
    get_recaptcha_timeout,
)

VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


def is_score_acceptable(result: dict, min_score: float) -> bool:
    """True when the siteverify result reports success and a high enough score."""
    if not result.get("success"):
        return False
    score = result.get("score")
    # bool is an int subclass, so exclude it explicitly
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return score >= min_score


def verify_captcha(token: Optional[str], remote_ip: Optional[str] = None) -> bool:
    """
    Verify a reCAPTCHA token.

    Args:
        token: The reCAPTCHA response token from the frontend
        remote_ip: Optional client IP address forwarded to Google

    Returns:
        True if the token is valid and the score is at least the threshold,
        False otherwise (including every network or service failure)
    """
    if not token:
        logging.warning("No reCAPTCHA token provided")
        return False

    secret_key = get_recaptcha_secret()
    if not secret_key:
        logging.error("RECAPTCHA_SECRET_KEY not configured")
        return False

    payload = {"secret": secret_key, "response": token}
    if remote_ip and remote_ip != "unknown":
        payload["remoteip"] = remote_ip

    try:
        response = requests.post(VERIFY_URL, data=payload, timeout=get_recaptcha_timeout())
    except requests.exceptions.Timeout:
        logging.error("reCAPTCHA verification timeout")
        return False
    except requests.exceptions.RequestException as e:
        logging.error(f"reCAPTCHA verification network error: {str(e)}")
        return False

    if response.status_code != 200:
        logging.error(f"reCAPTCHA API returned status {response.status_code}")
        return False

    try:
        result = response.json()
    except ValueError:
        logging.error("reCAPTCHA API returned a malformed body")
        return False

    if not isinstance(result, dict):
        logging.error("reCAPTCHA API returned an unexpected body")
        return False

    logging.info(f"reCAPTCHA score: {result.get('score')}")
    if is_score_acceptable(result, get_recaptcha_min_score()):
        return True

    error_codes = result.get("error-codes", [])
    if error_codes:
        logging.warning(f"reCAPTCHA verification failed: {error_codes}")
    return False
