"""
Pytest configuration shared by all tests.

This module provides:
1. Import path setup for the package
2. Automatic loading of .env.test configuration
3. Safe defaults so that no test talks to a real Karakeep, Qdrant or OpenAI
4. Custom markers
"""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

# Load test environment configuration
# Priority: environment variables > .env.test
_project_root = Path(__file__).parent.parent.parent
_env_test_path = _project_root / ".env.test"

if _env_test_path.exists():
    load_dotenv(_env_test_path, override=False)

# Required settings; tests that need other values patch the environment
os.environ.setdefault("KARAKEEP_URL", "http://karakeep.test")
os.environ.setdefault("KARAKEEP_API_KEY", "test-karakeep-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("QDRANT_URL", ":memory:")
os.environ.setdefault("ENABLE_BACKGROUND_SYNC", "false")


def pytest_configure(config):
    """
    Pytest hook called after command line options have been parsed.

    This runs before test collection and setup.
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests that require real external services (Karakeep, Qdrant, OpenAI)"
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow running"
    )
