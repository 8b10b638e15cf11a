"""
Configuration loader for map profiles and environment variables.
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_PROFILE = "turku"


class ConfigLoader:
    """Load and manage configuration from YAML files and environment."""
    
    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
    
    @classmethod
    def load_map_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a map profile configuration.
        
        Args:
            profile_name: Name of the profile file in ``configs/`` without extension
            
        Returns:
            Dictionary with configuration values
            
        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"
        
        if not profile_path.exists():
            available = [f.stem for f in cls.CONFIG_DIR.glob("*.yaml")]
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )
        
        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}
    
    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get map profile name from MAP_PROFILE environment variable."""
        return os.getenv("MAP_PROFILE")
    
    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """
        Load map profile from environment variable or use the turku default.
        
        Returns:
            Configuration dictionary
        """
        profile = cls.get_profile_from_env() or DEFAULT_PROFILE
        return cls.load_map_profile(profile)

    @classmethod
    def filter_state_path(cls, profile: Dict[str, Any]) -> Path:
        """Where the selected filter mode is persisted; FILTER_STATE_PATH wins."""
        override = os.getenv("FILTER_STATE_PATH")
        if override:
            return Path(override)
        configured = (profile.get("persistence", {}) or {}).get("path", ".state/filter.yaml")
        return Path(configured).expanduser()


def load_environment() -> None:
    """Load secrets from a ``.env`` file without overriding the real environment."""
    load_dotenv(override=False)


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()
