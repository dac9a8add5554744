"""
Email address generator

Generates plausible email addresses whose username is built from a
synthetic name.
"""

import re
import unicodedata
from dataclasses import dataclass

from anonyflow.core.synthetic.base import BaseSyntheticGenerator
from anonyflow.core.synthetic.name_generator import GIVEN_NAMES, SURNAMES

EMAIL_DOMAINS = [
    "example.com",
    "example.org",
    "example.net",
    "mail.example",
    "correo.example",
]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class EmailGenerationResult:
    """Result of an email generation."""

    original: str
    synthetic: str
    username: str
    domain: str


def _ascii_slug(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(c for c in normalized if c.isascii() and c.isalnum()).lower()


class EmailGenerator(BaseSyntheticGenerator):
    """Email address generator.

    Usernames follow a "given.surname" pattern with an optional numeric
    suffix; domains come from reserved example domains so generated
    addresses can never reach a real mailbox.

    Example:
        >>> gen = EmailGenerator()
        >>> gen.is_valid_email(gen.generate("juan.perez@email.com").synthetic)
        True
    """

    def generate(self, original: str) -> EmailGenerationResult:
        given = _ascii_slug(self._pick(GIVEN_NAMES, original, "email-given"))
        surname = _ascii_slug(self._pick(SURNAMES, original, "email-surname"))
        suffix = self._hash_string(f"email-suffix:{original}") % 100
        username = f"{given}.{surname}{suffix:02d}"
        domain = self._pick(EMAIL_DOMAINS, original, "email-domain")

        return EmailGenerationResult(
            original=original,
            synthetic=f"{username}@{domain}",
            username=username,
            domain=domain,
        )

    def is_valid_email(self, email: str) -> bool:
        return bool(EMAIL_PATTERN.match(email))
