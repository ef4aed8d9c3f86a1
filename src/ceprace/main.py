import sys
import asyncio
import argparse
import logging
import aiohttp
from typing import List, Optional, Sequence

from . import config
from .coordinator import RaceCoordinator, RacePolicy
from .engines import AddressSource, BrasilApiEngine, ViaCepEngine
from .errors import InvalidInputError, ScopeCancelledError
from .mocks import MockAddressEngine
from .models import Outcome, normalize_cep
from .reporter import ConsoleReporter, RED, RESET

EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

logger = logging.getLogger(__name__)


def build_sources(session: aiohttp.ClientSession, use_mock: bool = False) -> List[AddressSource]:
    """Returns the providers to race: the public APIs, or offline mocks."""
    if use_mock:
        logger.info("SAFE MODE: Racing mock providers")
        return [MockAddressEngine("BrasilAPI"), MockAddressEngine("ViaCEP")]
    return [BrasilApiEngine(session), ViaCepEngine(session)]


async def run_race(query: str, timeout: float, policy: str, use_mock: bool = False) -> Outcome:
    """Races one CEP with every provider sharing a single HTTP session."""
    async with aiohttp.ClientSession() as session:
        coordinator = RaceCoordinator(build_sources(session, use_mock), timeout, policy)
        return await coordinator.race(query)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="ceprace",
        description="Look up a CEP on BrasilAPI and ViaCEP at once and keep the fastest answer.",
    )
    p.add_argument("cep", nargs="?", default=config.CEP_QUERY, help=f"CEP to look up (default: {config.CEP_QUERY}).")
    p.add_argument("--timeout", type=float, default=config.RACE_TIMEOUT,
                   help=f"Race deadline in seconds (default: {config.RACE_TIMEOUT}).")
    p.add_argument("--policy", choices=[policy.value for policy in RacePolicy], default=config.RACE_POLICY,
                   help="fail_fast ends the race on the first answer of any kind; "
                        "await_all_or_success keeps waiting for a success after failures.")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--mock", dest="mock", action="store_true",
                      help="Race offline mock providers instead of the public APIs.")
    mode.add_argument("--live", dest="mock", action="store_false",
                      help="Race the public APIs even when USE_MOCK_DATA is set.")
    p.set_defaults(mock=config.USE_MOCK_DATA)
    p.add_argument("--no-color", action="store_true", help="Disable ANSI colors.")
    return p.parse_args(argv)


def _usage_error(message: str, color: bool) -> int:
    text = f"Invalid input: {message}"
    print(f"{RED}{text}{RESET}" if color else text, file=sys.stderr)
    return EXIT_USAGE


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    color = not args.no_color

    logging.basicConfig(
        level=config.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        query = normalize_cep(args.cep)
        outcome = asyncio.run(run_race(query, args.timeout, args.policy, args.mock))
    except InvalidInputError as e:
        return _usage_error(str(e), color)
    except (KeyboardInterrupt, ScopeCancelledError):
        print("\n[!] Lookup cancelled.", file=sys.stderr)
        return EXIT_INTERRUPTED

    ConsoleReporter(color=color).report(outcome)
    return outcome.exit_code


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
