#!/usr/bin/env python3
"""
Benchmark Script for chunkcache

Measures set/get throughput of small and chunked values through MemcacheApi
against the in-process client, without network overhead.

Usage:
    python scripts/benchmark.py                      # Run all benchmarks
    python scripts/benchmark.py --operations 2000    # Custom operation count
    python scripts/benchmark.py --chunk-size 65536   # Smaller chunks
    python scripts/benchmark.py --profile            # Enable cProfile
"""

import argparse
import logging
import os
import random
import statistics
import string
import sys
import time
from typing import Any, Callable, Dict, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chunkcache.api import MemcacheApi
from chunkcache.backend.memory import MemoryClient
from chunkcache.config.logging_config import setup_logging
from chunkcache.config.settings import Settings

logger = logging.getLogger(__name__)


def random_string(length: int) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choices(string.ascii_letters + string.digits, k=length))


def measure_time(func: Callable, iterations: int = 1) -> Dict[str, float]:
    """Measure execution time statistics."""
    times = []

    for _ in range(iterations):
        start = time.perf_counter()
        func()
        elapsed = (time.perf_counter() - start) * 1000  # Convert to ms
        times.append(elapsed)

    return {
        "min_ms": min(times),
        "max_ms": max(times),
        "mean_ms": statistics.mean(times),
        "median_ms": statistics.median(times),
        "total_ms": sum(times),
    }


class Benchmark:
    """Collection of benchmarks for the chunked API."""

    def __init__(self, operations: int = 1000, value_size: int = 64,
                 chunk_size: int = 1000000, batch_size: int = 50):
        self.operations = operations
        self.value_size = value_size
        self.chunk_size = chunk_size
        self.batch_size = batch_size

        # Pre-generate test data
        self.keys = [random_string(16) for _ in range(operations)]
        self.small_value = random_string(value_size)
        self.large_value = os.urandom(chunk_size * 3)

    def make_api(self) -> MemcacheApi:
        return MemcacheApi(settings=Settings(
            MAX_CHUNK_SIZE=self.chunk_size,
            MEMORY_MAX_KEYS=self.operations * 10,
        ))

    def _result(self, name: str, stats: Dict[str, Any], count: int) -> Dict[str, Any]:
        stats["ops_per_second"] = count / (stats["total_ms"] / 1000)
        stats["operation"] = name
        stats["count"] = count
        return stats

    def benchmark_set_small(self) -> Dict[str, Any]:
        """Benchmark SET of single-chunk values."""
        api = self.make_api()

        def run():
            for key in self.keys:
                api.set(key, self.small_value)

        return self._result("SET (1 chunk)", measure_time(run), self.operations)

    def benchmark_get_small(self) -> Dict[str, Any]:
        """Benchmark GET of single-chunk values."""
        api = self.make_api()
        for key in self.keys:
            api.set(key, self.small_value)

        def run():
            for key in self.keys:
                api.get(key)

        return self._result("GET (1 chunk)", measure_time(run), self.operations)

    def benchmark_set_large(self) -> Dict[str, Any]:
        """Benchmark SET of values spanning several chunks."""
        api = self.make_api()
        count = max(self.operations // 100, 1)

        def run():
            for key in self.keys[:count]:
                api.set(key, self.large_value)

        return self._result("SET (4 chunks)", measure_time(run), count)

    def benchmark_get_large(self) -> Dict[str, Any]:
        """Benchmark GET of values spanning several chunks."""
        api = self.make_api()
        count = max(self.operations // 100, 1)
        for key in self.keys[:count]:
            api.set(key, self.large_value)

        def run():
            for key in self.keys[:count]:
                api.get(key)

        return self._result("GET (4 chunks)", measure_time(run), count)

    def benchmark_get_many(self) -> Dict[str, Any]:
        """Benchmark batched GET with one oversized value per batch."""
        api = self.make_api()
        for i, key in enumerate(self.keys):
            api.set(key, self.large_value if i % self.batch_size == 0 else self.small_value)
        batches = [self.keys[i:i + self.batch_size]
                   for i in range(0, self.operations, self.batch_size)]

        def run():
            for batch in batches:
                api.get_many(batch)

        return self._result(f"GET_MANY (batch {self.batch_size})",
                            measure_time(run), self.operations)

    def benchmark_lock_cycle(self) -> Dict[str, Any]:
        """Benchmark uncontended lock/unlock pairs."""
        api = self.make_api()

        def run():
            for key in self.keys:
                api.lock(key)
                api.unlock(key)

        return self._result("LOCK/UNLOCK", measure_time(run), self.operations)

    def run_all(self) -> List[Dict[str, Any]]:
        """Run all benchmarks."""
        benchmarks = [
            self.benchmark_set_small,
            self.benchmark_get_small,
            self.benchmark_set_large,
            self.benchmark_get_large,
            self.benchmark_get_many,
            self.benchmark_lock_cycle,
        ]

        results = []
        for func in benchmarks:
            result = func()
            logger.info(f"{result['operation']}: {result['ops_per_second']:,.0f} ops/sec")
            results.append(result)

        return results


def print_results(results: List[Dict[str, Any]]):
    """Print benchmark results in a table."""
    print()
    print("=" * 70)
    print("                        BENCHMARK RESULTS")
    print("=" * 70)
    print(f"{'Operation':<30} {'Ops/sec':>12} {'Mean (ms)':>12} {'Total (ms)':>12}")
    print("-" * 70)

    for r in results:
        print(f"{r['operation']:<30} {r['ops_per_second']:>12,.0f} "
              f"{r['mean_ms']:>12.3f} {r['total_ms']:>12.1f}")

    print("=" * 70)


def main():
    parser = argparse.ArgumentParser(
        description="Benchmark chunkcache operations",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--operations", "-n",
        type=int,
        default=1000,
        help="Number of operations per benchmark"
    )
    parser.add_argument(
        "--value-size",
        type=int,
        default=64,
        help="Size of single-chunk values"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=100000,
        help="Maximum chunk size in bytes"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=50,
        help="Keys per GET_MANY call"
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile profiling"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()
    setup_logging("DEBUG" if args.debug else None)

    benchmark = Benchmark(
        operations=args.operations,
        value_size=args.value_size,
        chunk_size=args.chunk_size,
        batch_size=args.batch_size,
    )

    if args.profile:
        import cProfile
        import pstats

        profiler = cProfile.Profile()
        profiler.enable()
        results = benchmark.run_all()
        profiler.disable()

        print_results(results)

        print()
        print("Profiling Results (top 20):")
        print("-" * 70)
        stats = pstats.Stats(profiler)
        stats.sort_stats('cumulative')
        stats.print_stats(20)
    else:
        results = benchmark.run_all()
        print_results(results)


if __name__ == "__main__":
    main()
