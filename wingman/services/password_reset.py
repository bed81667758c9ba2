from __future__ import annotations

import logging
from typing import Callable

from flask import Flask, current_app

logger = logging.getLogger(__name__)

EXTENSION_KEY = "reset_link_sender"

ResetLinkSender = Callable[[str, str], None]


def log_reset_link(email: str, link: str) -> None:
    # No outbound mail is configured; operators relay the link by hand.
    logger.info("Password reset link for %s: %s", email, link)


def init_reset_sender(app: Flask, sender: ResetLinkSender | None = None) -> ResetLinkSender:
    app.extensions[EXTENSION_KEY] = sender or log_reset_link
    return app.extensions[EXTENSION_KEY]


def send_reset_link(email: str, token: str) -> None:
    link = current_app.config.get("RESET_URL", "{token}").format(token=token)
    current_app.extensions[EXTENSION_KEY](email, link)
