#!/usr/bin/env python
"""CLI utility to run one sync cycle or submit a command, for cron-style schedulers."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from idpsync.codec import COMMANDS, UnknownCommandError
from idpsync.core.config import get_settings
from idpsync.core.errors import DataIntegrityError
from idpsync.core.logging import configure_logging
from idpsync.gateway.client import close_gateway_client
from idpsync.services.polling import SyncCycleResult
from idpsync.services.sync import run_originated_cycle, run_terminated_cycle, submit_forward_message


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronize with the satellite messaging gateway.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    subparsers = parser.add_subparsers(dest="action", required=True)

    for name, help_text in (
        ("return-messages", "Pull new mobile-originated messages."),
        ("forward-statuses", "Pull delivery statuses of forward messages."),
    ):
        cycle = subparsers.add_parser(name, help=help_text)
        cycle.add_argument("--past-due", action="store_true", help="Flag that the scheduler fired late.")

    submit = subparsers.add_parser("submit", help="Submit a catalog command to a terminal.")
    submit.add_argument("destination_id", help="Mobile ID of the terminal.")
    submit.add_argument("command", choices=sorted(COMMANDS), help="Command name.")
    submit.add_argument("--user-message-id", type=int, default=None)
    return parser.parse_args(argv)


def _report_cycle(result: SyncCycleResult) -> int:
    for mailbox in result.mailboxes:
        if mailbox.success:
            logging.info(
                "%s %s: %s pages, %s received, %s written%s",
                result.operation.value,
                mailbox.access_id,
                mailbox.pages,
                mailbox.received,
                mailbox.written,
                " (page limit reached)" if mailbox.truncated else "",
            )
        else:
            logging.warning(
                "%s %s failed (%s): %s",
                result.operation.value,
                mailbox.access_id,
                mailbox.error_kind.value if mailbox.error_kind else "unknown",
                mailbox.error,
            )
    return 0 if all(mailbox.success for mailbox in result.mailboxes) else 2


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.action == "return-messages":
            return _report_cycle(run_originated_cycle(past_due=args.past_due))
        if args.action == "forward-statuses":
            return _report_cycle(run_terminated_cycle(past_due=args.past_due))

        try:
            result = submit_forward_message(
                args.destination_id,
                command=args.command,
                user_message_id=args.user_message_id,
            )
        except (DataIntegrityError, UnknownCommandError) as exc:
            logging.error("Submission failed: %s", exc)
            return 1
        if not result.accepted:
            logging.error("Gateway did not accept the message: %s", result.error_desc)
            return 2
        logging.info("Submitted forward message %s to %s", result.forward_message_id, result.destination_id)
        return 0
    finally:
        close_gateway_client()


if __name__ == "__main__":
    sys.exit(main())
