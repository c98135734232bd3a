"""
designgate CLI

Initializes and inspects the design memory document.

Usage:
    designgate init                       # Create design_memory.json
    designgate memory [section]           # Print a memory section as JSON
    designgate context                    # Print the generator design context
    designgate add-principle "<text>"     # Append a design principle
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from designgate.config import DesignGateConfig
from designgate.errors import DesignGateError
from designgate.memory import MemoryStore, create_file_store, initialize_memory
from designgate.observability import configure_logging
from designgate.vocabulary import MemorySection


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="designgate",
        description="designgate - design memory for the guarded improvement loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a default memory document
  designgate init --memory design_memory.json

  # Show acceptance statistics
  designgate memory stats

  # Print the constraint bundle handed to the generator
  designgate context
        """
    )
    parser.add_argument(
        "--memory",
        type=Path,
        default=None,
        help="Design memory document (default: $DESIGN_MEMORY_PATH or ./design_memory.json)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Create a default design memory document")
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing document"
    )

    memory = commands.add_parser("memory", help="Print a section of the design memory")
    memory.add_argument(
        "section",
        nargs="?",
        default=MemorySection.ALL.value,
        choices=[s.value for s in MemorySection],
        help="Section to print (default: all)"
    )

    commands.add_parser("context", help="Print the design context bundle")

    principle = commands.add_parser("add-principle", help="Append a design principle")
    principle.add_argument("text", help="Principle text")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = DesignGateConfig.from_env()
    if args.memory is not None:
        config.memory_path = args.memory
    if args.verbose:
        config.log_level = logging.DEBUG
    if args.json_logs:
        config.json_logs = True
    configure_logging(level=config.log_level, json_format=config.json_logs)

    try:
        if args.command == "init":
            store = initialize_memory(config.memory_path, force=args.force)
            print(f"Created design memory at {store.location}")
            return 0

        memory = MemoryStore(create_file_store(config.memory_path))

        if args.command == "memory":
            print(json.dumps(memory.get_section(args.section), indent=2))
        elif args.command == "context":
            print(memory.build_design_context())
        elif args.command == "add-principle":
            added = memory.add_principle(args.text)
            print(json.dumps({
                "added": args.text if added else None,
                "total_principles": len(memory.principles),
            }, indent=2))
        return 0

    except DesignGateError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
