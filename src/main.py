"""
powledger - Main Entry Point
Builds a small proof-of-work chain, checks it and prints it.

Usage:
    python -m src.main
    python -m src.main "Alice pays Bob" "Bob pays Carol" --difficulty 3 --json
"""

import argparse
import logging
import sys
from typing import List, Optional

from .blockchain.block import DEFAULT_DIFFICULTY, MAX_DIFFICULTY
from .blockchain.encoding import HashEncoding
from .blockchain.ledger import Blockchain


DEFAULT_BLOCK_DATA = ["First block data", "Second block data"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="powledger",
        description="Mine a proof-of-work chain and verify its integrity"
    )
    parser.add_argument("data", nargs="*", default=DEFAULT_BLOCK_DATA,
                        help="Payload for each block appended after genesis")
    parser.add_argument("-d", "--difficulty", type=int, default=DEFAULT_DIFFICULTY,
                        help="Leading zero hex characters required per block")
    parser.add_argument("--encoding", default=HashEncoding.CONCAT.value,
                        choices=[member.value for member in HashEncoding],
                        help="Digest input encoding")
    parser.add_argument("--json", action="store_true",
                        help="Print the chain as JSON instead of text")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log mining progress")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for powledger."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not 0 <= args.difficulty <= MAX_DIFFICULTY:
        parser.error(f"difficulty must be between 0 and {MAX_DIFFICULTY}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    blockchain = Blockchain(
        difficulty=args.difficulty,
        encoding=HashEncoding.from_name(args.encoding)
    )

    for number, data in enumerate(args.data, start=1):
        print(f"Mining block {number}...")
        blockchain.append(data)

    valid = blockchain.is_valid()
    if valid:
        print("The blockchain is valid.")
    else:
        print("The blockchain is INVALID!")

    if args.json:
        print(blockchain.to_json())
    else:
        blockchain.print_chain()

    return 0 if valid else 1


if __name__ == "__main__":
    sys.exit(main())
