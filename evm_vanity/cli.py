"""
Command-line interface for evm-vanity.

Usage:
    python -m evm_vanity --prefix cafe
    python -m evm_vanity --suffix 888 --threads 8
    python -m evm_vanity -p abc -s 999 --case-sensitive
"""

import argparse
import logging
import sys

from evm_vanity import __version__
from evm_vanity.generator import SearchError, SearchExhausted, SearchReporter, VanityGenerator
from evm_vanity.matcher import build_pattern
from evm_vanity.verify import verify_match


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evm-vanity",
        description="Multi-process vanity address generator for EVM chains",
        epilog=(
            "Examples:\n"
            "  evm-vanity -p cafe\n"
            "  evm-vanity -s 888\n"
            "  evm-vanity -p abc -s 999\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"evm-vanity {__version__}"
    )
    parser.add_argument(
        "--prefix", "-p", metavar="HEX", default="",
        help="Address prefix (hex, 0x optional)",
    )
    parser.add_argument(
        "--suffix", "-s", metavar="HEX", default="",
        help="Address suffix (hex)",
    )
    parser.add_argument(
        "--case-sensitive", "-c", action="store_true",
        help="Match the EIP-55 checksum case exactly (slower)",
    )
    parser.add_argument(
        "--threads", "-t", type=int, default=0,
        help="Number of worker processes (default: auto)",
    )
    parser.add_argument(
        "--timeout", type=float, metavar="SECONDS",
        help="Give up after this many seconds (default: never)",
    )
    parser.add_argument(
        "--max-attempts", type=int, metavar="N",
        help="Give up after this many keys (default: never)",
    )
    parser.add_argument(
        "--no-verify", action="store_true",
        help="Skip re-deriving the address from the found key",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Show difficulty estimate without searching",
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Minimal output (address and private key only)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Debug logging on stderr",
    )

    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(processName)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def format_num(num: float) -> str:
    if num > 1_000_000_000:
        return f"{num / 1_000_000_000:.2f}B"
    elif num > 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    elif num > 1_000:
        return f"{num / 1_000:.1f}k"
    return f"{num:.0f}"


def format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"


def format_probability(prob: float) -> str:
    if prob > 0.999:
        return ">99.99%"
    return f"{prob * 100:.2f}%"


class ConsoleReporter(SearchReporter):
    """Live progress line on stderr, result block on stdout."""

    def __init__(self, quiet: bool = False, out=None, err=None):
        self.quiet = quiet
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def on_progress(self, speed: float, scanned: int, probability: float) -> None:
        if self.quiet:
            return
        self.err.write(
            f"\r  Speed: {format_num(speed) + '/s':<9}  |  "
            f"Scanned: {format_num(scanned):<7}  |  "
            f"Probability: {format_probability(probability)}  "
        )
        self.err.flush()

    def on_found(self, address: str, private_key: bytes, elapsed: float, total_scanned: int) -> None:
        if self.quiet:
            print(address, file=self.out)
            print("0x" + private_key.hex(), file=self.out)
            return
        self.err.write("\n")
        print(f"\n{'=' * 60}", file=self.out)
        print(f"  SUCCESS! Found in {format_time(elapsed)}", file=self.out)
        print(f"  Scanned:      {format_num(total_scanned)} keys", file=self.out)
        print(f"  Address:      {address}", file=self.out)
        print(f"  Private Key:  0x{private_key.hex()}", file=self.out)
        print(f"{'=' * 60}", file=self.out)


def main(argv: list[str] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        pattern = build_pattern(args.prefix, args.suffix, args.case_sensitive)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    reporter = ConsoleReporter(quiet=args.quiet)
    gen = VanityGenerator(
        pattern,
        num_workers=args.threads,
        reporter=reporter,
        timeout=args.timeout,
        max_attempts=args.max_attempts,
    )
    difficulty = gen.get_difficulty()

    if not args.quiet:
        print(f"evm-vanity v{__version__}")
        print(f"  Target:      {pattern.target}")
        print(f"  Difficulty:  1 in {format_num(difficulty['expected_attempts'])}"
              f" ({difficulty['difficulty_description']})")
        print(f"  50% chance:  ~{difficulty['attempts_for_50']:,} attempts")
        print(f"  Est. time:   ~{format_time(difficulty['estimated_seconds'])}")
        print(f"  Case Match:  {'YES' if pattern.case_sensitive else 'NO'}")
        print(f"  Workers:     {gen.num_workers}{' (auto)' if args.threads <= 0 else ''}")
        print()

    if args.dry_run:
        return 0

    if not args.quiet:
        print("Searching...")

    try:
        result = gen.run()
    except KeyboardInterrupt:
        print("\nNo results found (search was interrupted).", file=sys.stderr)
        return 1
    except SearchExhausted as e:
        print(f"\nNo results found: {e}", file=sys.stderr)
        return 1
    except SearchError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    if not args.no_verify:
        v = verify_match(result.private_key, result.address, pattern)
        ok = v["address_match"] and v["pattern_match"]
        if not ok:
            print(f"Verification FAILED: {v['error'] or v['derived_address']}", file=sys.stderr)
            return 1
        if not args.quiet:
            print("  Verification: PASS")

    return 0
