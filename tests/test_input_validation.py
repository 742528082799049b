"""Tests for contact form field validation and sanitization."""

import pytest

from src.shared.contact.input_validation import (
    ERROR_CAPS,
    ERROR_EMAIL,
    ERROR_FIRST_NAME,
    ERROR_LAST_NAME,
    ERROR_MESSAGE_LENGTH,
    ERROR_REQUIRED_FIELDS,
    ERROR_SPAM,
    contains_spam,
    get_validation_error,
    has_excessive_caps,
    normalize_email,
    sanitize_input,
    validate_email,
    validate_message_length,
    validate_name,
)
from src.shared.contact.schemas import ContactRequest


def make_request(**overrides) -> ContactRequest:
    data = {
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane@example.com",
        "message": "Hello there, nice portfolio!",
    }
    data.update(overrides)
    return ContactRequest(**data)


class TestValidateName:
    @pytest.mark.parametrize("name", ["Jane Doe", "O'Brien", "Anne-Marie", "Al"])
    def test_accepts_letters_spaces_hyphens_apostrophes(self, name):
        assert validate_name(name) is True

    @pytest.mark.parametrize("name", ["J4ne", "Jane!", "Jane_Doe", "Jöhn", "<script>", "Jane.Doe"])
    def test_rejects_digits_and_symbols(self, name):
        assert validate_name(name) is False

    def test_length_bounds(self):
        assert validate_name("J") is False
        assert validate_name("a" * 50) is True
        assert validate_name("a" * 51) is False

    def test_rejects_empty(self):
        assert validate_name("") is False


class TestValidateEmail:
    def test_accepts_conventional_address(self):
        assert validate_email("jane.doe-smith_1@mail.example.com") is True

    @pytest.mark.parametrize("email", [
        "jane@example.com\r\nBcc: victim@example.com",
        "jane@example.com\n",
        "jane\r@example.com",
        "jane@exa\0mple.com",
        "jane%40@example.com",
    ])
    def test_rejects_header_injection_characters(self, email):
        assert validate_email(email) is False

    @pytest.mark.parametrize("email", ["jane", "jane@", "@example.com", "jane@example", "jane+tag@example.com"])
    def test_rejects_malformed(self, email):
        assert validate_email(email) is False

    def test_rejects_over_100_characters(self):
        local = "a" * 89
        assert len(f"{local}@example.com") == 101
        assert validate_email(f"{local}@example.com") is False
        assert validate_email(f"{local[:-1]}@example.com") is True


class TestMessageChecks:
    def test_length_boundaries_are_inclusive(self):
        assert validate_message_length("a" * 9) is False
        assert validate_message_length("a" * 10) is True
        assert validate_message_length("a" * 1000) is True
        assert validate_message_length("a" * 1001) is False

    @pytest.mark.parametrize("message", ["Buy VIAGRA now please", "win the Lottery today", "I am a prince"])
    def test_spam_words_any_case(self, message):
        assert contains_spam(message) is True

    def test_clean_message_is_not_spam(self):
        assert contains_spam("Let's build something together") is False

    def test_caps_ratio_exactly_seventy_percent_is_accepted(self):
        message = "ABCDEFGHIJKLMNOPQRSTU" + "abcdefghi"
        assert len(message) == 30
        assert has_excessive_caps(message) is False

    def test_caps_ratio_above_seventy_percent_is_rejected(self):
        message = "ABCDEFGHIJKLMNOPQRSTUV" + "abcdefgh"
        assert has_excessive_caps(message) is True

    def test_short_messages_skip_caps_check(self):
        assert has_excessive_caps("HELLO THERE FRIEND!!") is False


class TestGetValidationError:
    def test_valid_submission(self):
        assert get_validation_error(make_request()) is None

    @pytest.mark.parametrize("field", ["firstName", "lastName", "email", "message"])
    def test_missing_field(self, field):
        assert get_validation_error(make_request(**{field: None})) == ERROR_REQUIRED_FIELDS

    def test_blank_field_counts_as_missing(self):
        assert get_validation_error(make_request(lastName="   ")) == ERROR_REQUIRED_FIELDS

    def test_required_check_runs_before_format_checks(self):
        request = make_request(firstName="J4ne", message=None)
        assert get_validation_error(request) == ERROR_REQUIRED_FIELDS

    def test_first_failure_wins(self):
        assert get_validation_error(make_request(firstName="J4ne", lastName="D0e")) == ERROR_FIRST_NAME
        assert get_validation_error(make_request(lastName="D0e", email="bad")) == ERROR_LAST_NAME
        assert get_validation_error(make_request(email="bad", message="short")) == ERROR_EMAIL
        assert get_validation_error(make_request(message="short")) == ERROR_MESSAGE_LENGTH
        assert get_validation_error(make_request(message="Cheap casino chips here")) == ERROR_SPAM
        assert get_validation_error(make_request(message="PLEASE CALL ME BACK TODAY")) == ERROR_CAPS


class TestSanitizeInput:
    def test_strips_markup_and_collapses_newlines(self):
        assert sanitize_input("  <b>Hi</b>\n\n\n\nthere  ") == "bHi/b\n\nthere"

    def test_strips_quotes(self):
        assert sanitize_input("""It's "quoted" """) == "Its quoted"

    def test_keeps_double_newline(self):
        assert sanitize_input("one\n\ntwo") == "one\n\ntwo"

    def test_collapses_crlf_runs(self):
        assert sanitize_input("one\r\n\r\ntwo") == "one\n\ntwo"

    def test_truncates_to_ten_thousand_characters(self):
        assert len(sanitize_input("a" * 12000)) == 10000

    def test_empty(self):
        assert sanitize_input("") == ""

    def test_normalize_email(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"
