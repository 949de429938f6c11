"""
Centralized environment variable loader.

This module loads .env files from both the root and backend directories,
ensuring all environment variables are available throughout the project.

Should be imported at the start of any main entry point.
"""

import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env() -> List[Path]:
    """
    Load environment variables from .env files.

    Loads root/.env first, then backend/.env, so backend-specific settings
    (API keys, store credentials) override general settings.

    Returns:
        The .env files that were found and loaded
    """
    backend_dir = Path(__file__).parent.parent
    root_dir = backend_dir.parent

    env_files = [
        root_dir / ".env",
        backend_dir / ".env",
    ]

    loaded = []
    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file, override=True)
            logger.info(f"Loaded environment variables from {env_file}")
            loaded.append(env_file)
    return loaded
