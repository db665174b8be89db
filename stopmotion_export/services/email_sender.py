"""Send the "your video is ready" e-mail over SMTP."""

from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from stopmotion_export.errors import NotifyFailure

LOG = logging.getLogger("stopmotion")


@dataclass(frozen=True)
class SmtpNotifier:
    host: str = "smtp.gmail.com"
    port: int = 587
    user: str | None = None
    password: str | None = None
    sender_name: str = "Audiovisual lab"
    subject: str = "Your animation is ready"
    timeout: int = 30

    def _credentials(self) -> tuple[str, str]:
        user = self.user or os.environ.get("SMTP_USER", "")
        password = self.password or os.environ.get("SMTP_PASS", "")
        return user, password

    def build_message(self, to: str, link: str) -> MIMEMultipart:
        user, _ = self._credentials()
        msg = MIMEMultipart("alternative")
        msg["From"] = f'"{self.sender_name}" <{user}>'
        msg["To"] = to
        msg["Subject"] = self.subject
        plain = f"Your animation is ready. Download it here:\n{link}\n"
        html = f'<p>Your animation is ready. Download it here:</p><p><a href="{link}">{link}</a></p>'
        msg.attach(MIMEText(plain, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def notify(self, to: str, link: str) -> bool:
        """Return True when the message was handed to the SMTP server.

        Missing credentials mean notifications are not configured and give
        False. Delivery errors raise NotifyFailure.
        """
        user, password = self._credentials()
        if not user or not password:
            LOG.error("SMTP_USER/SMTP_PASS are not set; cannot e-mail %s", to)
            return False

        msg = self.build_message(to, link)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(user, password)
                server.sendmail(user, [to], msg.as_string())
        except smtplib.SMTPAuthenticationError as exc:
            raise NotifyFailure(f"SMTP authentication failed: {exc}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifyFailure(f"Failed to send e-mail to {to}: {exc}") from exc

        LOG.info("E-mail sent to %s", to)
        return True
