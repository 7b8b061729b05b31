"""
Submit a Uniswap V3 implied-volatility proof every day.

Start the prover service (`make start` in prover/) before running:
    python -m iv_prover [partner_key] [callback_address] [--once]
"""

import argparse
import dataclasses
import logging
import sys

from web3 import Web3

from .brevis_client import GatewayClient, ProverClient
from .config import ConfigError, Settings, load_settings
from .pool_data import PoolReader
from .runner import run_cycle, run_forever

logger = logging.getLogger("iv_prover")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Prove and submit Uniswap V3 implied volatility inputs.")
    p.add_argument("partner_key", nargs="?", default=None, help="Brevis partner key (partner flow only).")
    p.add_argument("callback_address", nargs="?", default=None, help="Contract receiving the callback.")
    p.add_argument("--once", action="store_true", help="Run a single cycle and exit.")
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return p.parse_args(argv)


def run_once(reader: PoolReader, prover: ProverClient, gateway: GatewayClient, settings: Settings) -> int:
    """Run a single cycle; exit code 0 once settled, 1 if the cycle failed."""
    try:
        result = run_cycle(reader, prover, gateway, settings)
    except Exception:
        logger.exception("Proof cycle failed")
        return 1
    logger.info("Query %s settled", result.submission.query_key)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    overrides = {}
    if args.partner_key is not None:
        overrides["partner_key"] = args.partner_key
    if args.callback_address is not None:
        overrides["callback_address"] = args.callback_address
    settings = dataclasses.replace(settings, **overrides)

    w3 = Web3(Web3.HTTPProvider(settings.rpc_url, request_kwargs={"timeout": 60}))
    reader = PoolReader(w3, settings.pool_address, chunk_size=settings.log_chunk_size)
    prover = ProverClient(settings.prover_url)
    gateway = GatewayClient(settings.gateway_url)

    logger.info("Starting... make sure the prover is running at %s", settings.prover_url)
    if args.once:
        return run_once(reader, prover, gateway, settings)

    run_forever(reader, prover, gateway, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
