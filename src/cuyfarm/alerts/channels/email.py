"""Email (SMTP) notification channel."""

from __future__ import annotations

from cuyfarm.alerts.base import BaseChannel
from cuyfarm.alerts.protocol import Alert, ChannelType, DeliveryResult
from cuyfarm.core.errors import TransientError, ValidationError


class EmailChannel(BaseChannel):
    """
    Email channel using SMTP.

    Config keys::

        {
            "smtp": {"host": ..., "port": 587, "user": ..., "password": ..., "use_tls": true},
            "from": "noreply@example.com",
            "to": ["owner@example.com"]
        }
    """

    channel_type = ChannelType.EMAIL

    def _build_message(self, alert: Alert, subject: str, body: str) -> str:
        """Build email message."""
        from email.mime.multipart import MIMEMultipart
        from email.mime.text import MIMEText

        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"[{alert.severity.value.upper()}] {subject}"
        msg["From"] = self._config["from"]
        msg["To"] = ", ".join(self._recipients())
        msg.attach(MIMEText(body, "plain", "utf-8"))
        return msg.as_string()

    def _recipients(self) -> list[str]:
        to = self._config.get("to") or []
        return [to] if isinstance(to, str) else list(to)

    def send(self, alert: Alert, subject: str, body: str) -> DeliveryResult:
        """Send alert via email."""
        import smtplib

        smtp = self._config.get("smtp") or {}
        if not smtp.get("host") or not self._config.get("from"):
            return DeliveryResult.fail(self._name, ValidationError("SMTP configuration incomplete"))
        recipients = self._recipients()
        if not recipients:
            return DeliveryResult.fail(self._name, ValidationError("No e-mail recipients configured"))

        try:
            server = smtplib.SMTP(smtp["host"], int(smtp.get("port", 587)), timeout=10)
            if smtp.get("use_tls", True):
                server.starttls()
            if smtp.get("user") and smtp.get("password"):
                server.login(smtp["user"], smtp["password"])
            server.sendmail(self._config["from"], recipients, self._build_message(alert, subject, body))
            server.quit()
            return DeliveryResult.ok(self._name)
        except (smtplib.SMTPException, OSError) as e:
            return DeliveryResult.fail(self._name, TransientError(str(e), cause=e))
        except Exception as e:
            return DeliveryResult.fail(self._name, e)
