#!/usr/bin/env python3
"""
Send an email and wait for a terminal delivery status.

Demonstration harness, not part of the library API. Configuration comes from
environment variables (a .env file in the working directory is loaded first):

    ACS_CONNECTION_STRING            shared key auth, or
    ACS_ENDPOINT + AZURE_TENANT_ID + AZURE_CLIENT_ID + AZURE_CLIENT_SECRET, or
    ACS_ENDPOINT + ACS_USE_MANAGED_IDENTITY=true

Usage:
    python examples/send_email.py --sender DoNotReply@contoso.com \\
        --to jane@example.com --subject "Hello" --text "Hi there" \\
        --attach report.pdf
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from ecs_email import (
    ClientConfig,
    EmailAddress,
    EmailAttachment,
    EmailClient,
    EmailClientError,
    EmailContent,
    EmailMessage,
    EmailSendStatus,
    Recipients,
)
from ecs_email.errors import is_retryable_error
from ecs_email.logging import get_logger, set_log_context, setup_logging

logger = get_logger("send_email")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send an email via Azure Communication Services")
    parser.add_argument("--sender", required=True, help="Verified sender address")
    parser.add_argument("--to", required=True, action="append", help="Recipient (repeatable)")
    parser.add_argument("--display-name", default=None, help="Display name for recipients")
    parser.add_argument("--subject", required=True)
    parser.add_argument("--text", default=None, help="Plain-text body")
    parser.add_argument("--html", default=None, help="HTML body")
    parser.add_argument("--attach", action="append", default=[], help="File to attach (repeatable)")
    parser.add_argument("--disable-tracking", action="store_true")
    parser.add_argument("--poll-interval", type=float, default=5.0, help="Seconds between status checks")
    parser.add_argument("--max-wait", type=float, default=120.0, help="Give up after this many seconds")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)


async def wait_for_terminal_status(
    client: EmailClient,
    message_id: str,
    poll_interval: float,
    max_wait: float,
) -> EmailSendStatus:
    """Caller-side polling: the client itself never sleeps or retries."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_wait
    status = await client.get_email_status(message_id)
    while not status.is_terminal and loop.time() < deadline:
        logger.info("Email status: %s", status)
        await asyncio.sleep(poll_interval)
        status = await client.get_email_status(message_id)
    return status


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_dotenv()
    setup_logging(
        log_file=args.log_file,
        console_level=logging.DEBUG if args.debug else logging.INFO,
    )

    try:
        message = EmailMessage(
            sender_address=args.sender,
            content=EmailContent(subject=args.subject, plain_text=args.text, html=args.html),
            recipients=Recipients(
                to=[EmailAddress(address=addr, display_name=args.display_name) for addr in args.to]
            ),
            attachments=[EmailAttachment.from_file(path) for path in args.attach] or None,
            user_engagement_tracking_disabled=args.disable_tracking,
        )
        config = ClientConfig.from_env()
        async with EmailClient.from_config(config) as client:
            message_id = await client.send_email(message)
            set_log_context(message_id=message_id)
            logger.info("Email accepted")
            status = await wait_for_terminal_status(
                client, message_id, args.poll_interval, args.max_wait
            )
    except EmailClientError as e:
        logger.error(
            "Failed to send email: %s (retryable: %s)", e, is_retryable_error(e)
        )
        return 1

    logger.info("Final email status: %s", status)
    return 0 if status is EmailSendStatus.SUCCEEDED else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
