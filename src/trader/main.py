"""Entry point for the perpetual futures decision trader.

Wires all components together and runs the decision loop and the trigger
monitor as two asyncio tasks. When the admin API is enabled (default), the
engine and the API share a single event loop via uvicorn's programmatic API
and FastAPI's lifespan context manager.

SIGINT/SIGTERM stop both loops gracefully. Open positions are left OPEN;
the persisted ledger is the recovery point on the next start.

Component wiring order (in _build_components):
1. Venue clients (primary and secondary, ccxt)
2. Ledger database and TradeStore
3. PositionSizer, PnLCalculator, TelegramNotifier
4. PositionManager (single owner of position mutations)
5. CandleSource and MarketAggregator
6. DecisionOracle (Gemini client)
7. Orchestrator (decision loop) and TriggerMonitor
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from trader.config import AppSettings
from trader.data.database import LedgerDatabase
from trader.data.store import TradeStore
from trader.exchange.ccxt_client import CcxtVenueClient
from trader.logging import get_logger, setup_logging
from trader.market_data.candles import CandleSource
from trader.market_data.snapshot import MarketAggregator, VenueSnapshotProvider
from trader.memory import DecisionMemory
from trader.monitor import TriggerMonitor
from trader.notifications.telegram import TelegramNotifier
from trader.oracle.adapter import DecisionOracle
from trader.oracle.client import GeminiOracleClient
from trader.orchestrator import Orchestrator
from trader.pnl.calculator import PnLCalculator
from trader.position.manager import PositionManager
from trader.position.sizing import PositionSizer


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all engine components from settings.

    Note: Does NOT connect venues or the database -- that happens in
    _start_engine, called from the lifespan (API mode) or run().
    """
    logger = get_logger("trader.main")
    market = settings.market
    trading = settings.trading

    primary_client = CcxtVenueClient(market.primary_venue, market.request_timeout_seconds)
    secondary_client = CcxtVenueClient(market.secondary_venue, market.request_timeout_seconds)

    database = LedgerDatabase(settings.database.path, initial_balance=trading.initial_balance)
    store = TradeStore(database)

    notifier = TelegramNotifier(settings.notifications)
    if not notifier.enabled:
        logger.info("notifications_disabled", note="TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID unset")

    position_manager = PositionManager(
        store=store,
        sizer=PositionSizer(trading),
        pnl_calculator=PnLCalculator(trading.fee_rate),
        settings=trading,
        symbol=market.symbol,
        notifier=notifier,
    )

    candle_source = CandleSource(primary_client, market.symbol, page_limit=market.candle_page_limit)
    aggregator = MarketAggregator(
        VenueSnapshotProvider(primary_client, market.symbol),
        VenueSnapshotProvider(secondary_client, market.symbol),
        primary_weight=market.primary_weight,
        secondary_weight=market.secondary_weight,
    )

    if not settings.oracle.api_key.get_secret_value():
        logger.warning(
            "no_oracle_api_key",
            note="Every decision will fall back to STAY until ORACLE_API_KEY is set.",
        )
    oracle = DecisionOracle(GeminiOracleClient(settings.oracle))

    orchestrator = Orchestrator(
        settings=settings,
        candle_source=candle_source,
        aggregator=aggregator,
        oracle=oracle,
        position_manager=position_manager,
        store=store,
        memory=DecisionMemory(trading.history_depth),
    )
    monitor = TriggerMonitor(
        aggregator=aggregator,
        position_manager=position_manager,
        store=store,
        interval=trading.monitor_interval,
    )

    return {
        "primary_client": primary_client,
        "secondary_client": secondary_client,
        "database": database,
        "store": store,
        "notifier": notifier,
        "position_manager": position_manager,
        "aggregator": aggregator,
        "orchestrator": orchestrator,
        "monitor": monitor,
    }


async def _connect_venue(name: str, client: Any) -> None:
    """Preload a venue's markets. ccxt loads them lazily on first use anyway."""
    logger = get_logger("trader.main")
    try:
        await client.connect()
    except Exception as e:
        logger.warning("venue_connect_failed", venue=name, error=str(e))


async def _start_engine(components: dict[str, Any]) -> None:
    """Connect the ledger and venues, seed memory, start both loops.

    A venue that cannot be reached at startup does not stop the engine; the
    loops degrade to the other venue or skip ticks until it comes back.
    """
    await components["database"].connect()
    await asyncio.gather(
        _connect_venue("primary_client", components["primary_client"]),
        _connect_venue("secondary_client", components["secondary_client"]),
    )
    await components["orchestrator"].seed_memory()
    await components["monitor"].start()
    await components["orchestrator"].start()


async def _stop_engine(components: dict[str, Any]) -> None:
    """Stop both loops and release every connection."""
    logger = get_logger("trader.main")
    await components["orchestrator"].stop()
    await components["monitor"].stop()
    await components["notifier"].close()
    for name in ("primary_client", "secondary_client"):
        try:
            await components[name].close()
        except Exception:
            logger.warning("venue_close_failed", venue=name, exc_info=True)
    await components["database"].close()
    logger.info("trader_stopped")


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``stop_event``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("trader.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the engine inside the API application's lifetime.

    On startup: stores route collaborators on app.state and starts both
    loops. On shutdown (uvicorn handles the signals): stops them.
    """
    logger = get_logger("trader.main")
    components = app.state.components

    app.state.store = components["store"]
    app.state.position_manager = components["position_manager"]

    await _start_engine(components)
    logger.info("lifespan_started", symbol=app.state.settings.market.symbol)

    yield

    await _stop_engine(components)


async def run() -> None:
    """Run the trader.

    With the API enabled (API_ENABLED=true, the default) uvicorn serves the
    admin API and the lifespan runs the engine. Otherwise the engine runs
    until SIGINT/SIGTERM.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("trader.main")

    components = _build_components(settings)

    if settings.api.enabled:
        from trader.api.app import create_api_app

        app = create_api_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info("starting_with_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        _setup_signal_handlers(stop_event)

        logger.info(
            "starting_without_api",
            symbol=settings.market.symbol,
            decision_interval=settings.trading.decision_interval,
            monitor_interval=settings.trading.monitor_interval,
        )

        try:
            await _start_engine(components)
            await stop_event.wait()
        finally:
            await _stop_engine(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
