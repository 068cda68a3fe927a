# utils/email.py
import base64
from typing import Iterable, Optional, Tuple

import requests

import config
from exceptions import DependencyFailure

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


def send_email(
     to_email: str,
     subject: str,
     html_content: str,
     attachments: Optional[Iterable[Tuple[str, bytes]]] = None,
     to_name: Optional[str] = None,
) -> None:
     """
     Send a transactional email through Brevo.

     ``attachments`` is a list of (filename, raw bytes) pairs.
     Raises DependencyFailure when the key is missing or Brevo rejects the call.
     """
     if not config.BREVO_API_KEY:
          raise DependencyFailure("BREVO_API_KEY is not set")

     recipient = {"email": to_email}
     if to_name:
          recipient["name"] = to_name

     payload = {
          "sender": {"name": config.MAIL_SENDER_NAME, "email": config.MAIL_SENDER_EMAIL},
          "to": [recipient],
          "subject": subject,
          "htmlContent": html_content,
     }
     if attachments:
          payload["attachment"] = [
               {"name": name, "content": base64.b64encode(content).decode("ascii")}
               for name, content in attachments
          ]

     try:
          response = requests.post(
               BREVO_SEND_URL,
               headers={
                    "api-key": config.BREVO_API_KEY,
                    "Content-Type": "application/json",
               },
               json=payload,
               timeout=config.EMAIL_TIMEOUT_SECONDS,
          )
     except requests.RequestException as e:
          raise DependencyFailure(f"Brevo request failed: {e}") from e

     if response.status_code not in (200, 201, 202):
          raise DependencyFailure(f"Brevo error: {response.text}")
