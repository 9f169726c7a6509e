"""
Test the project-level CLI launcher.
"""

import subprocess
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import docucast_cli as launcher
from docucast.cli import main as cli_module


def test_main_launcher() -> bool:
    print("\n" + "=" * 50)
    print("LAUNCHER TEST SUITE")
    print("=" * 50 + "\n")

    assert launcher.main is cli_module.main
    print("✓ docucast_cli.py delegates to docucast.cli.main.main")

    result = subprocess.run(
        [sys.executable, "docucast_cli.py", "--help"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "PDF to two-voice narration" in result.stdout
    assert "convert" in result.stdout
    print("✓ docucast_cli.py --help works")

    print("\n" + "=" * 50)
    print("ALL LAUNCHER TESTS PASSED ✓")
    print("=" * 50 + "\n")
    return True


if __name__ == "__main__":
    success = test_main_launcher()
    sys.exit(0 if success else 1)
