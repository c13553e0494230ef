"""Parsed message model and MIME parsing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from email import message_from_bytes, policy
from email.message import EmailMessage
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: Optional[str] = None
    content: Optional[bytes] = None
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        if not self.filename or "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].strip().lower()


@dataclass(frozen=True)
class Message:
    """A parsed email. Treated as immutable for the duration of one scan."""

    text: Optional[str] = None
    html: Optional[str] = None
    subject: Optional[str] = None
    header_lines: tuple[str, ...] = ()
    headers: dict = field(default_factory=dict)
    attachments: tuple[Attachment, ...] = ()

    @property
    def header_text(self) -> str:
        return "\n".join(self.header_lines)

    def searchable_text(self) -> str:
        """Text, html and header lines joined for pattern scans."""
        return "\n".join(part for part in (self.text, self.html, self.header_text) if part)


_ASCII_CHARSETS = ("us-ascii", "ascii")


def _decode_raw(value: str) -> str:
    """Decode 8-bit header bytes, kept as surrogates by the parser, as UTF-8."""
    try:
        return value.encode("ascii", "surrogateescape").decode("utf-8", errors="replace")
    except UnicodeEncodeError:
        return value


def _part_text(part: EmailMessage) -> str:
    # Undeclared 8-bit text is read as UTF-8 rather than us-ascii
    if (part.get_content_charset() or "us-ascii") in _ASCII_CHARSETS:
        payload = part.get_payload(decode=True)
        if payload and not payload.isascii():
            return payload.decode("utf-8", errors="replace")
    try:
        content = part.get_content()
    except (LookupError, KeyError, ValueError) as exc:
        # Unknown charset or broken transfer encoding
        logger.debug("Falling back to raw payload for %s part: %s", part.get_content_type(), exc)
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return str(content)


def _part_bytes(part: EmailMessage) -> Optional[bytes]:
    payload = part.get_payload(decode=True)
    if payload is None and not part.is_multipart():
        raw = part.get_payload()
        if isinstance(raw, str):
            return raw.encode("utf-8", errors="replace")
    return payload


def parse_message(raw: Union[str, bytes]) -> Message:
    """Parse an RFC 5322 message into a `Message`."""
    if isinstance(raw, str):
        raw = raw.encode("utf-8", errors="replace")
    msg = message_from_bytes(bytes(raw), policy=policy.default)

    raw_headers = [(name, _decode_raw(str(value))) for name, value in msg.raw_items()]
    header_lines = tuple(f"{name}: {value}" for name, value in raw_headers)
    headers: dict[str, str] = {}
    for name, value in raw_headers:
        headers.setdefault(name.lower(), value)

    text_parts: list[str] = []
    html_parts: list[str] = []
    attachments: list[Attachment] = []

    for part in msg.walk():
        if part.is_multipart():
            continue
        content_type = part.get_content_type()
        filename = part.get_filename()
        disposition = part.get_content_disposition()

        if disposition == "attachment" or (filename and content_type not in ("text/plain", "text/html")):
            attachments.append(Attachment(filename, _part_bytes(part), content_type))
        elif content_type == "text/plain":
            text_parts.append(_part_text(part))
        elif content_type == "text/html":
            html_parts.append(_part_text(part))
        elif part.get_content_maintype() != "text":
            attachments.append(Attachment(filename, _part_bytes(part), content_type))

    subject = msg.get("subject")
    if subject is not None:
        raw_subject = next(str(value) for name, value in msg.raw_items() if name.lower() == "subject")
        # Raw 8-bit subjects bypass RFC 2047 decoding
        subject = headers["subject"] if _decode_raw(raw_subject) != raw_subject else str(subject)
    return Message(
        text="\n".join(text_parts) or None,
        html="\n".join(html_parts) or None,
        subject=subject,
        header_lines=header_lines,
        headers=headers,
        attachments=tuple(attachments),
    )
