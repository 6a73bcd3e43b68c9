"""
Environment variable loader for the marketplace core.
Loads and validates the variables needed to reach the document store.
"""

import os
from pathlib import Path
from typing import Dict, Optional
from dotenv import load_dotenv

from marketplace.util.logger import get_logger

logger = get_logger(__name__)


class EnvironmentError(Exception):
    """Raised when required environment variables are missing or invalid."""
    pass


def load_environment(env_file: Optional[str] = None) -> None:
    """
    Load environment variables from .env file.
    
    Args:
        env_file: Optional path to .env file. If None, looks for .env in the repository root.
    """
    if env_file is None:
        env_path = Path(__file__).parent.parent.parent / ".env"
    else:
        env_path = Path(env_file)
    
    if env_path.exists():
        load_dotenv(env_path)
    else:
        # In production, environment variables are set by the runtime
        logger.info(f".env file not found at {env_path}, using process environment")


def get_required_env_var(name: str, description: str = "") -> str:
    """
    Get a required environment variable.
    
    Args:
        name: Environment variable name
        description: Optional description for error messages
        
    Returns:
        Environment variable value
        
    Raises:
        EnvironmentError: If the environment variable is not set or empty
    """
    value = os.getenv(name)
    if not value:
        desc_part = f" ({description})" if description else ""
        
        guidance = ""
        if "PROJECT_ID" in name:
            guidance = "\n  Hint: Set this to your Google Cloud Project ID (e.g., my-project-123)"
        elif "CREDENTIALS" in name:
            guidance = "\n  Hint: Set this to the path of your Google service account JSON file"
        
        raise EnvironmentError(f"Required environment variable {name}{desc_part} is not set{guidance}")
    return value


def get_optional_env_var(name: str, default: str = "", description: str = "") -> str:
    """
    Get an optional environment variable with a default value.
    
    Args:
        name: Environment variable name
        default: Default value if not set
        description: Optional description, kept for symmetry with get_required_env_var
        
    Returns:
        Environment variable value or default
    """
    return os.getenv(name, default)


def get_store_settings() -> Dict[str, str]:
    """
    Collect the settings needed to construct the Firestore client.
    
    Returns:
        Dictionary with project_id, credentials_path and emulator_host
        
    Raises:
        EnvironmentError: If the project id is missing or the credentials file does not exist
    """
    emulator_host = get_optional_env_var("FIRESTORE_EMULATOR_HOST", "", "Firestore emulator host:port")
    
    # The emulator accepts any project id
    if emulator_host:
        project_id = get_optional_env_var("GCP_PROJECT_ID", "test-project")
    else:
        project_id = get_required_env_var("GCP_PROJECT_ID", "Google Cloud Project ID for Firestore access")
    
    credentials_path = get_optional_env_var(
        "GOOGLE_APPLICATION_CREDENTIALS",
        "",
        "Path to Google service account JSON file"
    )
    if credentials_path and not Path(credentials_path).exists():
        raise EnvironmentError(
            f"GOOGLE_APPLICATION_CREDENTIALS path does not exist: {credentials_path}\n"
            f"  Hint: Download your service account key from Google Cloud Console and update the path"
        )
    
    return {
        "project_id": project_id,
        "credentials_path": credentials_path,
        "emulator_host": emulator_host,
    }
