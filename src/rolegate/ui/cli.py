# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from rolegate.app import Application, build_application, load_ledger_config, run_service
from rolegate.config import ConfigurationError, configure_logging, get_webhook_config
from rolegate.domain import InputInvalidError, VerificationError
from rolegate.domain.addresses import validate_transfer_id
from rolegate.domain.amounts import format_amount

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Payment-verified role gate")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the reconciliation loop until interrupted")

    eligible = subparsers.add_parser("eligible", help="Manage the eligibility list")
    eligible_sub = eligible.add_subparsers(dest="eligible_command", required=True)
    eligible_add = eligible_sub.add_parser("add", help="Add an address")
    eligible_add.add_argument("address", type=str)
    eligible_remove = eligible_sub.add_parser("remove", help="Remove an address")
    eligible_remove.add_argument("address", type=str)
    eligible_sub.add_parser("list", help="List eligible addresses")
    eligible_upload = eligible_sub.add_parser(
        "upload",
        help="Replace the list with a newline-delimited file",
    )
    eligible_upload.add_argument("path", type=Path)

    status = subparsers.add_parser("status", help="Show the verification status of an address")
    status.add_argument("address", type=str)

    owner = subparsers.add_parser("owner", help="Show who claimed an address")
    owner.add_argument("address", type=str)

    inspect_tx = subparsers.add_parser(
        "inspect-tx",
        help="Fetch a transaction from the ledger and show how it would be judged",
    )
    inspect_tx.add_argument("transfer_id", type=str)

    return parser.parse_args(list(argv))


async def _open(*, with_ledger: bool) -> Application:
    ledger = load_ledger_config() if with_ledger else None
    return await build_application(ledger=ledger)


async def _eligible(args: argparse.Namespace) -> None:
    app = await _open(with_ledger=False)
    service = app.service
    try:
        match args.eligible_command:
            case "add":
                changed = service.add_address(args.address)
                print("added" if changed else "already eligible")
            case "remove":
                changed = service.remove_address(args.address)
                print("removed" if changed else "not on the list")
            case "list":
                addresses = service.list_addresses()
                for address in addresses:
                    print(address)
                print(f"{len(addresses)} eligible addresses", file=sys.stderr)
            case "upload":
                content = args.path.read_text(encoding="utf-8")
                count = service.upload_addresses(content)
                print(f"eligibility list replaced with {count} addresses")
            case _:
                raise ValueError(f"Unsupported eligible command: {args.eligible_command}")
    finally:
        await app.aclose()


async def _status(args: argparse.Namespace) -> None:
    app = await _open(with_ledger=False)
    try:
        status = app.service.check_status(args.address)
    finally:
        await app.aclose()
    line = f"{status.address}: {status.kind}"
    if status.owner is not None:
        line += f" by {status.owner.claimant_label} at {status.owner.claimed_at.isoformat()}"
    print(line)


async def _owner(args: argparse.Namespace) -> None:
    app = await _open(with_ledger=False)
    try:
        claim = app.service.lookup_claimant(args.address)
    finally:
        await app.aclose()
    if claim is None:
        print("unclaimed")
        return
    print(f"{claim.claimant_label} ({claim.claimant_id}) at {claim.claimed_at.isoformat()}")


async def _inspect_tx(args: argparse.Namespace) -> None:
    transfer_id = validate_transfer_id(args.transfer_id)
    app = await _open(with_ledger=True)
    try:
        if app.ledger is None:
            raise ConfigurationError("Ledger access is not configured")
        transfer = await app.ledger.reader.get_transfer(transfer_id)
        if transfer is None:
            print(f"{transfer_id}: not found")
            return
        policy = app.loop.context.policy
        result = app.loop.engine.evaluate(transfer, app.loop.context.pending)
        print(f"hash:    {transfer.transfer_id}")
        print(f"from:    {transfer.from_address}")
        print(f"to:      {transfer.to_address}")
        print(f"amount:  {format_amount(transfer.amount)}")
        print(f"block:   {transfer.block_height}")
        print(f"expects: {format_amount(policy.verification_amount)}")
        print(f"outcome: {type(result).__name__}")
    finally:
        await app.aclose()


def _run() -> None:
    async def _serve() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (SIGINT, SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(signum, stop.set)
        app = await build_application(ledger=load_ledger_config(), webhook=get_webhook_config())
        await run_service(stop, app=app)

    asyncio.run(_serve())


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        match parsed_args.command:
            case "run":
                _run()
            case "eligible":
                asyncio.run(_eligible(parsed_args))
            case "status":
                asyncio.run(_status(parsed_args))
            case "owner":
                asyncio.run(_owner(parsed_args))
            case "inspect-tx":
                asyncio.run(_inspect_tx(parsed_args))
            case _:
                raise ValueError(f"Unsupported command: {parsed_args.command}")
    except (InputInvalidError, ConfigurationError) as exc:
        log.error(f"Invalid input: {exc}")
        sys.exit(2)
    except VerificationError as exc:
        log.error(str(exc))
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
