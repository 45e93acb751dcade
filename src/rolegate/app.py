"""Application wiring: build the engine from configuration and run it."""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from rolegate.adapters.audit import JsonLinesAuditLog
from rolegate.adapters.files import FileAddressListStore, JsonClaimStore
from rolegate.adapters.http_resilience import default_client_factory
from rolegate.adapters.jsonrpc import JsonRpcLedgerClient, LocalKeySubmitter
from rolegate.adapters.sqlalchemy import (
    SqlAlchemyAddressListStore,
    SqlAlchemyClaimStore,
    startup,
)
from rolegate.adapters.webhook import (
    LoggingCredentialGranter,
    LoggingNotifier,
    WebhookClient,
    WebhookCredentialGranter,
    WebhookNotifier,
)
from rolegate.config import (
    NO_RETRY,
    ConfigurationError,
    LedgerConfig,
    MissingConfigurationError,
    StorageConfig,
    VerificationConfig,
    WebhookConfig,
    get_ledger_config,
    get_storage_config,
    get_verification_config,
    get_webhook_config,
)
from rolegate.domain import (
    EngineContext,
    LedgerScanner,
    MatchEngine,
    ReconciliationLoop,
    RefundIssuer,
    SideEffects,
    UpstreamUnavailableError,
    VerificationPolicy,
    VerificationService,
    build_strategy,
)
from rolegate.domain.amounts import format_amount, to_base_units
from rolegate.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from rolegate.adapters.http_resilience import ResilientClient
    from rolegate.config.http_resilience import ResilienceConfig
    from rolegate.domain.model import Clock
    from rolegate.domain.ports import AddressListStore, ClaimStore

    ClientFactory = Callable[[ResilienceConfig], ResilientClient]

log = getLogger(__name__)


@dataclass(slots=True)
class LedgerWiring:
    reader: JsonRpcLedgerClient
    submitter: LocalKeySubmitter
    receiving_address: str


@dataclass(slots=True)
class Application:
    service: VerificationService
    loop: ReconciliationLoop
    ledger: LedgerWiring | None = None
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        closers, self.closers = self.closers, []
        for close in closers:
            await close()


def build_stores(storage: StorageConfig) -> tuple[AddressListStore, ClaimStore]:
    if storage.database_uri is not None:
        log.info("Using database storage")
        engine = startup(storage.database_uri)
        return SqlAlchemyAddressListStore(engine), SqlAlchemyClaimStore(engine)
    log.info(f"Using file storage in {storage.resolve_data_dir()}")
    return FileAddressListStore(storage.eligible_path()), JsonClaimStore(storage.claims_path())


def build_policy(config: VerificationConfig) -> VerificationPolicy:
    return VerificationPolicy(
        verification_amount=to_base_units(config.verification_amount),
        refund_amount=to_base_units(config.refund_amount),
        request_timeout=timedelta(seconds=config.request_timeout_seconds),
        scan_window_blocks=config.scan_window_blocks,
        block_delay_seconds=config.block_delay_seconds,
    )


def load_ledger_config() -> LedgerConfig | None:
    """Return the ledger configuration, or ``None`` when it is not provided."""

    try:
        return get_ledger_config()
    except MissingConfigurationError as exc:
        log.warning(f"Ledger access disabled: {exc}")
        return None


async def bootstrap_ledger(
    config: LedgerConfig,
    *,
    client_factory: ClientFactory = default_client_factory,
) -> LedgerWiring | None:
    """Open the ledger clients and check that the key controls the receiving address.

    Returns ``None`` when the wallet is misconfigured or the node cannot be
    reached; the caller then runs in manual-verification-only mode.
    """

    resilience = config.resolved_resilience()
    reader = JsonRpcLedgerClient(resilience=resilience, client_factory=client_factory)
    submit_rpc = JsonRpcLedgerClient(
        resilience=dataclasses.replace(resilience, name="ledger-submit", retry=NO_RETRY),
        client_factory=client_factory,
    )
    try:
        submitter = LocalKeySubmitter(config.signing_key, submit_rpc, chain_id=config.chain_id)
        submitter.ensure_controls(config.receiving_address)
    except ConfigurationError as exc:
        log.error(f"Ledger scanning disabled: {exc}")
        await reader.aclose()
        await submit_rpc.aclose()
        return None

    try:
        balance = await reader.balance(submitter.address)
    except UpstreamUnavailableError as exc:
        log.error(f"Ledger scanning disabled: node unreachable: {exc}")
        await reader.aclose()
        await submit_rpc.aclose()
        return None

    log.info(f"Service wallet {submitter.address} balance: {format_amount(balance)}")
    if balance < to_base_units(config.low_balance_warning):
        log.warning(
            f"Service wallet balance is below {config.low_balance_warning}; refunds may fail"
        )

    return LedgerWiring(reader=reader, submitter=submitter, receiving_address=submitter.address)


def build_side_effects(
    storage: StorageConfig,
    webhook: WebhookConfig | None,
    *,
    client_factory: ClientFactory = default_client_factory,
) -> tuple[SideEffects, WebhookClient | None]:
    audit = JsonLinesAuditLog(storage.audit_path())
    if webhook is None:
        log.info("No webhook configured; credential grants are logged only")
        return SideEffects(LoggingCredentialGranter(), LoggingNotifier(), audit), None
    client = WebhookClient(webhook, client_factory=client_factory)
    effects = SideEffects(WebhookCredentialGranter(client), WebhookNotifier(client), audit)
    return effects, client


async def build_application(  # noqa: PLR0913
    *,
    storage: StorageConfig | None = None,
    verification: VerificationConfig | None = None,
    ledger: LedgerConfig | None = None,
    webhook: WebhookConfig | None = None,
    clock: Clock = utcnow,
    client_factory: ClientFactory = default_client_factory,
) -> Application:
    storage = storage or get_storage_config()
    verification = verification or get_verification_config()

    addresses, claims = build_stores(storage)
    policy = build_policy(verification)
    context = EngineContext.from_stores(
        addresses=addresses, claims=claims, policy=policy, clock=clock
    )
    log.info(
        f"Loaded {len(context.registry)} eligible addresses and "
        f"{len(context.claims.snapshot())} claims"
    )

    engine = MatchEngine(
        strategy=build_strategy(verification.match_strategy),
        registry=context.registry,
        claims=context.claims,
        policy=policy,
    )
    effects, webhook_client = build_side_effects(
        storage, webhook, client_factory=client_factory
    )

    wiring = await bootstrap_ledger(ledger, client_factory=client_factory) if ledger else None
    loop = ReconciliationLoop(
        context,
        engine,
        effects,
        scanner=(
            LedgerScanner(wiring.reader, block_delay_seconds=policy.block_delay_seconds)
            if wiring
            else None
        ),
        refunds=RefundIssuer(wiring.submitter) if wiring else None,
        receiving_address=wiring.receiving_address if wiring else None,
        scan_interval=verification.scan_interval_seconds,
        sweep_interval=verification.sweep_interval_seconds,
    )
    service = VerificationService(loop, reader=wiring.reader if wiring else None)

    closers: list[Callable[[], Awaitable[None]]] = []
    if wiring is not None:
        closers.extend([wiring.reader.aclose, wiring.submitter.aclose])
    if webhook_client is not None:
        closers.append(webhook_client.aclose)
    return Application(service=service, loop=loop, ledger=wiring, closers=closers)


async def run_service(stop: asyncio.Event, *, app: Application | None = None) -> None:
    """Run the reconciliation loop until ``stop`` is set."""

    if app is None:
        app = await build_application(ledger=load_ledger_config(), webhook=get_webhook_config())
    if app.loop.scanning_enabled:
        log.info(
            f"Watching {app.loop.receiving_address} for verification payments of "
            f"{format_amount(app.loop.context.policy.verification_amount)}"
        )
    try:
        await app.loop.run_until(stop)
    finally:
        await app.aclose()
        log.info("Reconciliation stopped")
