"""Secondary e-mail notification sent after a submission is dispatched."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Mapping, Protocol

from schemas.submission import OTHER_BANK

logger = logging.getLogger(__name__)

NOTIFICATION_SUBJECT = "New investment application received"
_UNSET = "Not specified"


class Notifier(Protocol):
    def send(self, subject: str, body: str) -> None: ...


class EmailNotifier:
    def __init__(
        self,
        recipient: str,
        *,
        smtp_server: str,
        smtp_port: int,
        sender_email: str,
        sender_password: str = "",
    ):
        self.recipient = recipient
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.sender_email = sender_email
        self.sender_password = sender_password

    def send(self, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender_email
        msg["To"] = self.recipient
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=30) as smtp:
            smtp.starttls()
            if self.sender_password:
                smtp.login(self.sender_email, self.sender_password)
            smtp.send_message(msg)
        logger.info("Notification sent to %s", self.recipient)


def _v(values: Mapping[str, Any], key: str, default: str = _UNSET) -> str:
    value = values.get(key)
    return str(value) if value not in (None, "") else default


def build_notification_body(values: Mapping[str, Any]) -> str:
    bank = values.get("customBank") if values.get("bankName") == OTHER_BANK else values.get("bankName")
    lines = [
        "Investor details:",
        "",
        "Personal information:",
        f"- Name: {_v(values, 'fullName')}",
        f"- National ID: {_v(values, 'nationalId')}",
        f"- Phone: {_v(values, 'phone')}",
        f"- Email: {_v(values, 'email')}",
        "",
        "Bank details:",
        f"- Bank: {bank or _UNSET}",
        f"- Account number: {_v(values, 'accountNumber')}",
        f"- Account type: {_v(values, 'accountType')}",
        "",
        "Beneficiaries:",
    ]
    if values.get("hasBeneficiaries"):
        for i in (1, 2):
            lines += [
                f"- Beneficiary {i}: {_v(values, f'beneficiary{i}Name')}",
                f"  Phone: {_v(values, f'beneficiary{i}Phone')}",
                f"  Instagram: {_v(values, f'beneficiary{i}Instagram')}",
            ]
    else:
        lines.append("- None")
    lines += [
        "",
        "Investment:",
        f"- Amount: ${_v(values, 'investmentAmount')}",
        f"- Comments: {_v(values, 'comments', 'None')}",
        f"- Politically exposed: {'Yes' if values.get('isPoliticallyExposed') else 'No'}",
    ]
    if values.get("isPoliticallyExposed"):
        lines.append(f"  Position: {_v(values, 'exposedPosition')}")
    return "\n".join(lines)
