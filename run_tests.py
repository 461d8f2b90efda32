#!/usr/bin/env python3
"""
Test runner script for the Saferpay payment service.
Runs all tests in the tests/ directory with proper configuration.
"""

import os
import sys
import subprocess
from pathlib import Path

TEST_GROUPS = {
    'client': ['tests/test_saferpay_client.py'],
    'adapter': [
        'tests/test_saferpay_config.py',
        'tests/test_saferpay_requests.py',
        'tests/test_saferpay_lifecycle.py',
    ],
    'api': ['tests/test_api.py', 'tests/test_models.py'],
}


def main():
    """Run all tests with pytest."""
    project_root = Path(__file__).parent

    # Add app directory to Python path
    app_dir = project_root / "app"
    sys.path.insert(0, str(app_dir))
    sys.path.insert(0, str(project_root))

    test_env = os.environ.copy()
    test_env.setdefault('LOG_LEVEL', 'WARNING')

    pytest_args = [
        sys.executable, '-m', 'pytest',
        '-v',
        '--tb=short',
        '--asyncio-mode=auto',
        '--durations=10',
    ]

    # Add coverage if available
    try:
        import pytest_cov  # noqa: F401
        pytest_args.extend([
            '--cov=app',
            '--cov-report=term-missing',
        ])
        print("Running tests with coverage analysis...")
    except ImportError:
        print("Running tests without coverage (install pytest-cov for coverage)")

    if len(sys.argv) > 1:
        test_type = sys.argv[1].lower()
        if test_type not in TEST_GROUPS:
            print(f"Unknown test type: {test_type}")
            print(f"Available types: {', '.join(TEST_GROUPS)}")
            return 1
        pytest_args.extend(TEST_GROUPS[test_type])
        print(f"Running {test_type} tests only...")
    else:
        pytest_args.append('tests/')
        print("Running all tests...")

    try:
        import pytest  # noqa: F401
        import pytest_asyncio  # noqa: F401
    except ImportError as e:
        print(f"Missing required test dependency: {e}")
        print("Install with: pip install -e '.[test]'")
        return 1

    try:
        result = subprocess.run(
            pytest_args,
            env=test_env,
            cwd=project_root,
            timeout=300
        )
    except subprocess.TimeoutExpired:
        print("\nTests timed out after 5 minutes")
        return 1
    except KeyboardInterrupt:
        print("\nTests interrupted by user")
        return 1

    if result.returncode == 0:
        print("\nAll tests passed!")
    else:
        print(f"\nTests failed with exit code: {result.returncode}")

    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
