#!/usr/bin/env python3
"""
Parser fuzzer for SCON literals.

Generates random and mutated inputs to find parser bugs like:
- Crashes (exceptions other than ParseError)
- Hangs
- Values whose canonical text does not parse back to the same value

Usage:
    python scripts/fuzz_parser.py [--duration MINUTES] [--iterations N] [--seed SEED]

Findings are saved to scripts/fuzz_findings/
"""

import argparse
import hashlib
import random
import re
import signal
import string
import time
import traceback
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import yaml

from scon import ParseError, parse_value

# Directory for saving findings
FINDINGS_DIR = Path(__file__).parent / "fuzz_findings"

# Seed corpus - known valid inputs
CORPUS_PATH = Path(__file__).parent / "fuzz_corpus.yaml"


class ParseTimeout(Exception):
    pass


class RoundTripMismatch(Exception):
    pass


@contextmanager
def timeout(seconds):
    """Context manager for timeout on Unix systems."""
    def handler(signum, frame):
        raise ParseTimeout(f"Timed out after {seconds} seconds")

    if hasattr(signal, 'SIGALRM'):
        old_handler = signal.signal(signal.SIGALRM, handler)
        signal.alarm(seconds)
        try:
            yield
        finally:
            signal.alarm(0)
            signal.signal(signal.SIGALRM, old_handler)
    else:
        # Windows fallback - no timeout
        yield


def load_corpus(path=CORPUS_PATH):
    """Load the seed inputs from a YAML file with a top-level `seeds` list."""
    with open(path) as f:
        data = yaml.safe_load(f)
    seeds = data.get("seeds") or []
    return [str(s) for s in seeds]


class Fuzzer:
    """SCON literal parser fuzzer."""

    # Token pools for mutation
    KEYWORDS = ["true", "false", "None", "Some", "0x", "()", "( )"]
    SEPARATORS = [",", ":", "-", "'", '"', "\\"]
    BRACKETS = ["(", ")", "[", "]", "{", "}"]

    IDENTIFIERS = ["x", "y", "foo", "Foo", "Bar", "_", "_private", "snake_case", "A1", "None", "Some"]

    def __init__(self, seed=None, findings_dir=FINDINGS_DIR, corpus_path=CORPUS_PATH):
        self.rng = random.Random(seed)
        self.findings_dir = Path(findings_dir)
        self.seed_corpus = load_corpus(corpus_path)
        self.stats = {
            "iterations": 0,
            "parse_ok": 0,
            "parse_error": 0,
            "crashes": 0,
            "timeouts": 0,
            "mismatches": 0,
            "unique_findings": set(),
        }
        self.start_time = None

        # Create findings directory
        self.findings_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Generation
    # =========================================================================

    def random_identifier(self) -> str:
        """Generate a random identifier."""
        if self.rng.random() < 0.7:
            return self.rng.choice(self.IDENTIFIERS)
        length = self.rng.randint(0, 12)
        first = self.rng.choice(string.ascii_letters + "_")
        rest = "".join(self.rng.choices(string.ascii_letters + string.digits, k=length))
        return first + rest

    def random_integer(self) -> str:
        """Generate a random integer, sometimes at the 128-bit limits."""
        if self.rng.random() < 0.2:
            return self.rng.choice([
                "0", "-0", "1", "-1",
                str(2**128 - 1), str(2**128),
                str(-2**127), str(-2**127 - 1),
            ])
        return str(self.rng.randint(-2**130, 2**130))

    def random_string(self) -> str:
        """Generate a random string literal, with occasional escapes."""
        if self.rng.random() < 0.1:
            # Edge case strings
            return self.rng.choice(['""', '" "', '"\\u00e9"', '"\\ud83d\\ude00"', '"\\ud800"', '"\\uzzzz"'])
        safe = string.printable.replace('"', '').replace('\\', '')
        safe = safe.replace('\n', '').replace('\r', '').replace('\t', '')
        parts = []
        for _ in range(self.rng.randint(0, 10)):
            if self.rng.random() < 0.2:
                parts.append(self.rng.choice(['\\"', '\\\\', '\\/', '\\b', '\\f', '\\n', '\\r', '\\t', '\\u0041']))
            else:
                parts.append(self.rng.choice(safe))
        return f'"{"".join(parts)}"'

    def random_bytes(self) -> str:
        """Generate a random 0x-prefixed hex literal, sometimes of odd length."""
        digits = "".join(self.rng.choices(string.hexdigits, k=self.rng.randint(1, 16)))
        return f"0x{digits}"

    def random_char(self) -> str:
        return f"'{self.rng.choice(string.printable)}'"

    def random_key(self) -> str:
        choice = self.rng.randint(0, 2)
        if choice == 0:
            return self.random_identifier()
        elif choice == 1:
            return self.random_string()
        return self.random_integer()

    def random_value(self, depth=0) -> str:
        """Generate random literal text."""
        if depth > 4 or self.rng.random() < 0.4:
            # Leaf values
            choice = self.rng.randint(0, 6)
            if choice == 0:
                return self.rng.choice(["()", "true", "false"])
            elif choice == 1:
                return self.random_integer()
            elif choice == 2:
                return self.random_string()
            elif choice == 3:
                return self.random_bytes()
            elif choice == 4:
                return self.random_char()
            else:
                return self.random_identifier()

        # Nested values
        trailing = "," if self.rng.random() < 0.2 else ""
        choice = self.rng.randint(0, 3)
        if choice == 0:
            items = ", ".join(self.random_value(depth + 1) for _ in range(self.rng.randint(0, 4)))
            return f"[{items}{trailing if items else ''}]"
        elif choice == 1:
            name = self.random_identifier() if self.rng.random() < 0.5 else ""
            items = ", ".join(self.random_value(depth + 1) for _ in range(self.rng.randint(0, 4)))
            return f"{name}({items}{trailing if items else ''})"
        else:
            name = self.random_identifier() if self.rng.random() < 0.5 else ""
            entries = ", ".join(f"{self.random_key()}: {self.random_value(depth + 1)}"
                                for _ in range(self.rng.randint(0, 4)))
            if entries and self.rng.random() < 0.3:
                return f"{name}({entries}{trailing})"
            return f"{name} {{{entries}{trailing if entries else ''}}}"

    # =========================================================================
    # Mutation
    # =========================================================================

    def mutate(self, input_str: str) -> str:
        """Mutate an input string."""
        mutations = [
            self._mutate_insert_random,
            self._mutate_delete_chunk,
            self._mutate_swap_chunks,
            self._mutate_repeat_chunk,
            self._mutate_flip_char,
            self._mutate_insert_special,
            self._mutate_boundary_numbers,
        ]

        mutation = self.rng.choice(mutations)
        return mutation(input_str)

    def _mutate_insert_random(self, s: str) -> str:
        """Insert random tokens."""
        pos = self.rng.randint(0, len(s))
        chars = self.rng.choice([
            self.rng.choice(self.KEYWORDS),
            self.rng.choice(self.SEPARATORS),
            self.rng.choice(self.BRACKETS),
            self.random_identifier(),
            self.random_integer(),
            " " * self.rng.randint(1, 5),
            "\n",
            "\t",
        ])
        return s[:pos] + chars + s[pos:]

    def _mutate_delete_chunk(self, s: str) -> str:
        """Delete a random chunk."""
        if len(s) < 2:
            return s
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 20, len(s)))
        return s[:start] + s[end:]

    def _mutate_swap_chunks(self, s: str) -> str:
        """Swap the two halves."""
        if len(s) < 4:
            return s
        mid = len(s) // 2
        return s[mid:] + s[:mid]

    def _mutate_repeat_chunk(self, s: str) -> str:
        """Repeat a chunk."""
        if len(s) < 2:
            return s * 2
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 10, len(s)))
        chunk = s[start:end]
        return s[:end] + chunk * self.rng.randint(1, 5) + s[end:]

    def _mutate_flip_char(self, s: str) -> str:
        """Flip a random character."""
        if not s:
            return s
        pos = self.rng.randint(0, len(s) - 1)
        new_char = chr(ord(s[pos]) ^ self.rng.randint(1, 127))
        return s[:pos] + new_char + s[pos+1:]

    def _mutate_insert_special(self, s: str) -> str:
        """Insert special/edge case characters."""
        pos = self.rng.randint(0, len(s))
        special = self.rng.choice([
            "\x00",  # Null
            "\x1f",  # Control
            "\r\n",  # CRLF
            "\t\t\t",  # Tabs
            "🎉",  # Emoji
            "α",  # Unicode
            "\\n",  # Escaped newline literal
            "\\u",  # Truncated unicode escape
            "\\",  # Backslash
            '"',  # Quote
            "'" * 3,  # Quotes
            "0x",  # Bare hex prefix
        ])
        return s[:pos] + special + s[pos:]

    def _mutate_boundary_numbers(self, s: str) -> str:
        """Replace numbers with boundary values."""
        def replace(m):
            if self.rng.random() < 0.5:
                return self.rng.choice([
                    "0", "-1", "1", "-0", "00", "01",
                    str(2**128 - 1), str(2**128),  # UINT128 bounds
                    str(-2**127), str(-2**127 - 1),  # INT128 bounds
                ])
            return m.group(0)
        return re.sub(r'-?\d+', replace, s)

    # =========================================================================
    # Execution
    # =========================================================================

    def save_finding(self, input_str: str, error: Exception, category: str):
        """Save an interesting finding to disk."""
        # Create hash for deduplication
        hash_val = hashlib.md5(input_str.encode('utf-8', errors='replace')).hexdigest()[:8]

        if hash_val in self.stats["unique_findings"]:
            return

        self.stats["unique_findings"].add(hash_val)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = self.findings_dir / f"{category}_{timestamp}_{hash_val}.txt"

        with open(filename, 'w', encoding='utf-8', errors='replace') as f:
            f.write(f"Category: {category}\n")
            f.write(f"Error: {type(error).__name__}: {error}\n")
            f.write(f"Timestamp: {timestamp}\n")
            f.write(f"Input length: {len(input_str)}\n")
            f.write("\n--- Input ---\n")
            f.write(input_str)
            f.write("\n\n--- Traceback ---\n")
            f.write(traceback.format_exc())

        print(f"\n[!] Saved finding: {filename}")

    def test_input(self, input_str: str) -> bool:
        """Test a single input. Returns True if interesting (crash/timeout/mismatch)."""
        try:
            with timeout(5):  # 5 second timeout
                value = parse_value(input_str)
                canonical = str(value)
                if parse_value(canonical) != value:
                    raise RoundTripMismatch(f"{input_str!r} re-serialized as {canonical!r}")
            self.stats["parse_ok"] += 1
            return False
        except ParseError:
            # Normal parse rejection
            self.stats["parse_error"] += 1
            return False
        except RoundTripMismatch as e:
            self.stats["mismatches"] += 1
            self.save_finding(input_str, e, "roundtrip")
            return True
        except ParseTimeout as e:
            self.stats["timeouts"] += 1
            self.save_finding(input_str, e, "timeout")
            return True
        except Exception as e:
            # Unexpected crash!
            self.stats["crashes"] += 1
            self.save_finding(input_str, e, "crash")
            return True

    def run(self, duration_minutes: float = None, iterations: int = None):
        """Run the fuzzer until the time or iteration limit (or forever)."""
        self.start_time = time.time()
        end_time = self.start_time + (duration_minutes * 60) if duration_minutes else None

        print(f"Starting fuzzer (seed corpus: {len(self.seed_corpus)} inputs)")
        print(f"Duration: {'unlimited' if not duration_minutes else f'{duration_minutes} minutes'}")
        print(f"Findings directory: {self.findings_dir}")
        print("-" * 60)

        corpus = list(self.seed_corpus)

        try:
            while True:
                # Check limits
                if end_time and time.time() > end_time:
                    break
                if iterations is not None and self.stats["iterations"] >= iterations:
                    break

                self.stats["iterations"] += 1

                # Choose strategy
                strategy = self.rng.random()

                if strategy < 0.3:
                    # Generate a random literal
                    input_str = self.random_value()
                elif strategy < 0.7:
                    # Mutate corpus input
                    base = self.rng.choice(corpus)
                    input_str = self.mutate(base)
                    # Sometimes apply multiple mutations
                    for _ in range(self.rng.randint(0, 3)):
                        input_str = self.mutate(input_str)
                else:
                    # Use corpus directly (for baseline)
                    input_str = self.rng.choice(corpus)

                # Test it
                interesting = self.test_input(input_str)

                # Add interesting inputs to corpus (even parse errors can be interesting for mutation)
                if interesting or (self.rng.random() < 0.01 and len(input_str) < 1000):
                    corpus.append(input_str)
                    if len(corpus) > 1000:
                        corpus.pop(self.rng.randint(len(self.seed_corpus), len(corpus) - 1))

                # Progress report
                if self.stats["iterations"] % 1000 == 0:
                    self.print_stats()

        except KeyboardInterrupt:
            print("\n\nInterrupted by user")

        print("\n" + "=" * 60)
        print("Final Statistics:")
        self.print_stats()

    def print_stats(self):
        """Print current statistics."""
        elapsed = time.time() - self.start_time
        rate = self.stats["iterations"] / elapsed if elapsed > 0 else 0

        print(f"[{elapsed:.1f}s] "
              f"iterations={self.stats['iterations']} "
              f"({rate:.0f}/s) | "
              f"ok={self.stats['parse_ok']} "
              f"reject={self.stats['parse_error']} | "
              f"crashes={self.stats['crashes']} "
              f"timeouts={self.stats['timeouts']} "
              f"mismatches={self.stats['mismatches']} "
              f"unique={len(self.stats['unique_findings'])}")


def main():
    parser = argparse.ArgumentParser(description="Fuzz the SCON literal parser")
    parser.add_argument("--duration", type=float, default=None,
                        help="Duration in minutes (default: run forever)")
    parser.add_argument("--iterations", type=int, default=None,
                        help="Stop after this many inputs")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--findings-dir", type=Path, default=FINDINGS_DIR,
                        help="Where to save crashes, timeouts and round-trip mismatches")
    args = parser.parse_args()

    seed = args.seed if args.seed is not None else int(time.time())
    print(f"Random seed: {seed}")

    fuzzer = Fuzzer(seed=seed, findings_dir=args.findings_dir)
    fuzzer.run(duration_minutes=args.duration, iterations=args.iterations)


if __name__ == "__main__":
    main()
