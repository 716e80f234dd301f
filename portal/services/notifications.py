"""Delivery of password-reset links.

When ``RESET_WEBHOOK_URL`` is configured the link is POSTed there (a mail
relay or chat bridge does the actual sending); otherwise it is written to the
audit log so local development still works. Delivery problems are logged and
never change the forgot-password response.
"""
from __future__ import annotations

import asyncio

import aiohttp

from portal import config
from portal.models.db import User
from portal.utils import get_logger, log_business_event

logger = get_logger(__name__)


def build_reset_url(raw_token: str) -> str:
    return f"{config.FRONTEND_URL.rstrip('/')}/reset?token={raw_token}"


async def _post_webhook(url: str, payload: dict) -> bool:
    timeout = aiohttp.ClientTimeout(total=config.RESET_WEBHOOK_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.post(url, json=payload) as resp:
            if 200 <= resp.status < 300:
                return True
            text = await resp.text()
            logger.warning("Reset webhook rejected delivery", status=resp.status, body=text[:200])
            return False


async def send_password_reset(user: User, reset_url: str) -> bool:
    """Hand the reset link to the configured channel. Returns delivery success."""
    webhook = config.RESET_WEBHOOK_URL
    if not webhook:
        log_business_event(
            event_type="password_reset_link",
            details={"email": user.email, "reset_url": reset_url, "channel": "log"},
            user_id=user.id,
        )
        return True

    payload = {"email": user.email, "name": user.name, "reset_url": reset_url}
    try:
        delivered = await _post_webhook(webhook, payload)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error("Reset webhook delivery failed", user_id=user.id, error=str(e))
        return False
    if delivered:
        logger.info("Reset link delivered via webhook", user_id=user.id)
    return delivered
