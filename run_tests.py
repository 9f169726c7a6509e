#!/usr/bin/env python3
"""
Test Runner
===========
Unified test runner for all Docucast tests.
Run with: python run_tests.py
"""

import sys
import subprocess
import time
from pathlib import Path

# Script-style modules, run directly (in order)
SCRIPT_MODULES = [
    "tests/test_cli.py",
    "tests/test_main_launcher.py",
]

# pytest modules
PYTEST_MODULES = [
    "tests/test_progress.py",
    "tests/test_concurrency.py",
    "tests/test_events.py",
    "tests/test_config.py",
    "tests/test_source.py",
    "tests/test_controller.py",
    "tests/test_playback.py",
    "tests/test_playnote.py",
    "tests/test_sounddevice_engine.py",
]


def run_test(command: list[str], label: str) -> tuple[bool, float]:
    """
    Run a single test command.

    Returns:
        Tuple of (passed, duration_seconds)
    """
    start = time.time()
    result = subprocess.run(
        command,
        capture_output=True,
        text=True,
        cwd=Path(__file__).parent
    )
    duration = time.time() - start

    passed = result.returncode == 0

    if not passed:
        print(f"\n{'='*50}")
        print(f"FAILED: {label}")
        print(f"{'='*50}")
        print(result.stdout)
        print(result.stderr)

    return passed, duration


def main():
    """Run all tests and report results."""
    print("\n" + "="*60)
    print("   DOCUCAST - TEST SUITE")
    print("="*60 + "\n")

    commands = [([sys.executable, path], path) for path in SCRIPT_MODULES]
    commands += [([sys.executable, "-m", "pytest", "-q", path], path) for path in PYTEST_MODULES]

    results = []
    total_start = time.time()

    for command, test_path in commands:
        if not Path(test_path).exists():
            print(f"⚠ SKIP: {test_path} (not found)")
            continue

        print(f"▸ Running {test_path}...", end=" ", flush=True)
        passed, duration = run_test(command, test_path)

        status = "✓ PASS" if passed else "✗ FAIL"
        print(f"{status} ({duration:.1f}s)")

        results.append((test_path, passed, duration))

    total_duration = time.time() - total_start

    # Summary
    print("\n" + "="*60)
    print("   RESULTS SUMMARY")
    print("="*60)

    passed_count = sum(1 for _, p, _ in results if p)
    failed_count = len(results) - passed_count

    for test_path, passed, duration in results:
        status = "✓" if passed else "✗"
        name = Path(test_path).stem
        print(f"  {status} {name}: {duration:.1f}s")

    print(f"\n  Total: {passed_count} passed, {failed_count} failed")
    print(f"  Duration: {total_duration:.1f}s")
    print("="*60 + "\n")

    return 1 if failed_count > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
