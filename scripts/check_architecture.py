#!/usr/bin/env python3
"""Architecture enforcement checks for graphdeploy.

This script runs as part of CI/pre-commit to catch architectural violations.
Exit code 0 = all checks passed, non-zero = violations found.

Violations:
1. Ending the process below the CLI (only cli/app.py decides exit statuses)
2. Printing instead of logging in library code
3. Retrying deploy calls
"""

import subprocess
import sys
from pathlib import Path

# Where to check
PACKAGE = "src/graphdeploy"

# Patterns that violate architecture
VIOLATIONS = [
    {
        "name": "Process exit outside the CLI",
        "pattern": r"(sys\.exit|os\._exit|raise SystemExit)\(",
        "message": "Raise a GraphDeployError subclass; cli/app.py owns the exit status.",
        "exclude": ["cli/app.py"],
    },
    {
        "name": "print() in library code",
        "pattern": r"^\s*print\(",
        "message": "Use the module logger (`logger = logging.getLogger(__name__)`).",
        "exclude": ["cli/app.py"],
    },
    {
        "name": "Retry logic around deploys",
        "pattern": r"(tenacity|backoff|max_retries|retries=)",
        "message": "Deploy outcomes are terminal; do not retry.",
        "exclude": [],
    },
]


def run_grep(pattern: str, path: str, exclude: list[str]) -> list[str]:
    """Run ripgrep and return matching files with line numbers."""
    cmd = ["rg", "--no-heading", "--line-number", "--color=never", pattern, path]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        # ripgrep not available, try grep
        cmd = ["grep", "-rn", "-E", pattern, path]
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)

    if result.returncode != 0:
        return []
    lines = result.stdout.strip().split("\n")
    return [line for line in lines if not any(exc in line for exc in exclude)]


def main() -> int:
    """Run all architecture checks."""
    project_root = Path(__file__).parent.parent
    check_path = project_root / PACKAGE

    if not check_path.exists():
        print(f"Path not found: {check_path}")
        return 1

    violations_found = 0

    print("Running architecture enforcement checks...")
    print(f"   Checking: {check_path}\n")

    for check in VIOLATIONS:
        matches = run_grep(check["pattern"], str(check_path), check.get("exclude", []))

        if matches:
            violations_found += len(matches)
            print(f"FAIL {check['name']}")
            print(f"   -> {check['message']}")
            print()
            for match in matches:
                print(f"   {match}")
            print()

    if violations_found == 0:
        print("All architecture checks passed!")
        return 0

    print(f"\nFound {violations_found} violation(s). Please fix before committing.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
