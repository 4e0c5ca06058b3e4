from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import Protocol, Sequence


class Mailer(Protocol):
    def send(self, to: Sequence[str], subject: str, body: str) -> None:
        raise NotImplementedError


class SmtpMailer(Mailer):
    def __init__(self, *, host: str, port: int, sender: str, username: str = "", password: str = "", use_tls: bool = True):
        self._host = host
        self._port = int(port)
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls

    def send(self, to: Sequence[str], subject: str, body: str) -> None:
        if not to:
            return
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = ", ".join(to)
        msg.set_content(body)

        with smtplib.SMTP(self._host, self._port) as s:
            if self._use_tls:
                s.starttls()
            if self._username and self._password:
                s.login(self._username, self._password)
            s.send_message(msg)
