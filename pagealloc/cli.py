#!/usr/bin/env python3
"""
Virtual Memory Allocator Command Line Interface
Interactive shell for allocating, freeing and inspecting a simulated paged address space.
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from pydantic import ValidationError

from pagealloc.conf import AllocatorConfig
from pagealloc.memory import (
    PagedMemoryAllocator,
    PlacementStrategy,
    render_map,
    render_table,
)

HELP_TEXT = """Commands:
  alloc [pid size [strategy]] - allocate memory (first/best/next)
  free [pid]                  - free memory
  show                        - show memory table
  map                         - ASCII memory map
  stats                       - usage summary
  help                        - show this help
  exit                        - quit"""


class CommandShell:
    """Interactive command loop driving one allocator."""

    def __init__(
        self,
        allocator: PagedMemoryAllocator,
        config: AllocatorConfig,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.allocator = allocator
        self.config = config
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.logger = logging.getLogger(__name__)
        self.commands = {
            "alloc": self.cmd_alloc,
            "free": self.cmd_free,
            "show": self.cmd_show,
            "map": self.cmd_map,
            "stats": self.cmd_stats,
            "help": self.cmd_help,
        }

    def write(self, text: str = ""):
        print(text, file=self.stdout)

    def ask(self, prompt: str) -> Optional[str]:
        """Prompt for a single value; returns None at end of input."""
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.strip()

    def _parse_int(self, label: str, raw: Optional[str]) -> Optional[int]:
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            self.write(f"Invalid {label}: {raw!r}")
            return None

    def cmd_alloc(self, args: List[str]):
        """Allocate memory, prompting for any missing parameter."""
        raw_pid = args[0] if len(args) > 0 else self.ask("Enter PID: ")
        pid = self._parse_int("PID", raw_pid)
        if pid is None:
            return
        raw_size = args[1] if len(args) > 1 else self.ask("Enter size: ")
        size = self._parse_int("size", raw_size)
        if size is None:
            return
        if len(args) > 2:
            strategy = args[2]
        elif len(args) > 0:
            strategy = self.config.default_strategy
        else:
            strategy = self.ask("Strategy (first/best/next): ")
            if strategy is None:
                return
            strategy = strategy or self.config.default_strategy

        result = self.allocator.allocate(pid, size, strategy)
        if result.evictions:
            self.write(f"Swapped out {result.evictions} allocation(s) to make room")
        if result.success:
            self.write(
                f"Allocated {result.actual_size} units (in {result.pages} pages) "
                f"to PID {pid} at address {result.address}"
            )
        else:
            self.write(f"Allocation failed: {result.error_message}")

    def cmd_free(self, args: List[str]):
        """Free every block held by a PID."""
        raw_pid = args[0] if args else self.ask("Enter PID: ")
        pid = self._parse_int("PID", raw_pid)
        if pid is None:
            return
        result = self.allocator.deallocate(pid)
        if result.success:
            for address in result.addresses:
                self.write(f"Freed memory of PID {pid} at address {address}")
        else:
            self.write(result.error_message)

    def cmd_show(self, args: List[str]):
        self.write(render_table(self.allocator.list_blocks()))

    def cmd_map(self, args: List[str]):
        self.write(
            render_map(
                self.allocator.list_blocks(),
                self.allocator.total_size,
                self.config.map_buckets,
            )
        )

    def cmd_stats(self, args: List[str]):
        summary = self.allocator.summary()
        self.write(f"Total size: {summary['total_size']} units")
        self.write(f"Page size: {summary['page_size']} units")
        self.write(f"Allocated: {summary['allocated_bytes']} units")
        self.write(f"Free: {summary['free_bytes']} units")
        self.write(f"Blocks: {summary['block_count']}")
        self.write(f"Largest free block: {summary['largest_free_block']} units")
        self.write(f"Utilization: {summary['utilization']:.1%}")
        self.write(f"Fragmentation: {summary['fragmentation']:.1%}")
        self.write(f"Swap-outs: {self.allocator.eviction_count}")

    def cmd_help(self, args: List[str]):
        self.write(HELP_TEXT)

    def dispatch(self, line: str) -> bool:
        """Run one command line. Returns False when the shell should stop."""
        parts = line.split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]
        if command in ("exit", "quit"):
            return False
        handler = self.commands.get(command)
        if handler is None:
            self.write("Unknown command.")
            return True
        handler(args)
        return True

    def run(self) -> int:
        self.write("=== Virtual Memory Allocator ===")
        self.write(HELP_TEXT)
        while True:
            line = self.ask("\n> ")
            if line is None:
                self.write()
                break
            if not self.dispatch(line):
                break
        return 0


def setup_logging(level: str = "WARNING"):
    """Setup logging configuration."""
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagealloc",
        description="Simulate a paged virtual memory allocator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_TEXT,
    )
    parser.add_argument("--size", type=int, help="Address space size in units")
    parser.add_argument("--page-size", type=int, help="Page size in units")
    parser.add_argument("--buckets", type=int, help="Cells in the ASCII memory map")
    parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in PlacementStrategy],
        help="Default placement strategy",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def main(
    argv: Optional[List[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    overrides = {
        "total_size": args.size,
        "page_size": args.page_size,
        "map_buckets": args.buckets,
        "default_strategy": args.strategy,
    }
    try:
        config = AllocatorConfig.from_env()
        values = config.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = AllocatorConfig(**values)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    shell = CommandShell(config.build_allocator(), config, stdin=stdin, stdout=stdout)
    return shell.run()


if __name__ == "__main__":
    sys.exit(main())
