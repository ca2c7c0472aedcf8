"""
Configuration for the Owner Statement Generator
Defaults, optional JSON config file and environment overrides
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from statement_sources import ConfigurationError

DEFAULT_CONFIG: Dict[str, Any] = {
    "default_settings": {
        "portal_commission_percentage": 15,
        "cleaning_fee_per_invoice": 75,
        "management_fee_percentage": 25
    },
    "property_overrides": {},
    "properties": [
        {
            "id": 101,
            "name": "Casa do Mar",
            "is_admin_owned": False,
            "owner": {"name": "Property Owner", "email": "owner@example.com"}
        },
        {
            "id": 102,
            "name": "Alfama Loft",
            "is_admin_owned": True,
            "owner": None
        }
    ],
    "billing": {
        "base_url": None,
        "api_key": None,
        "timeout": 20
    },
    "log_level": "INFO"
}


def get_default_config() -> Dict[str, Any]:
    """Get a fresh copy of the default configuration"""
    return copy.deepcopy(DEFAULT_CONFIG)


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Load configuration.

    Order of precedence: environment variables, then the JSON file named by
    ``path`` or ``STATEMENT_CONFIG``, then the built-in defaults.
    """
    environ = os.environ if environ is None else environ
    config = get_default_config()

    path = path or environ.get("STATEMENT_CONFIG")
    if path:
        config_path = Path(path)
        try:
            with config_path.open("r", encoding="utf-8") as f:
                file_config = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {config_path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {config_path} is not valid JSON: {e}")
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        _merge(config, file_config)

    billing = config["billing"]
    if environ.get("BILLING_API_URL"):
        billing["base_url"] = environ["BILLING_API_URL"]
    if environ.get("BILLING_API_KEY"):
        billing["api_key"] = environ["BILLING_API_KEY"]
    if environ.get("BILLING_TIMEOUT"):
        billing["timeout"] = environ["BILLING_TIMEOUT"]
    try:
        billing["timeout"] = float(billing["timeout"])
    except (TypeError, ValueError):
        raise ConfigurationError(f"Billing timeout must be a number, got {billing['timeout']!r}")

    if environ.get("LOG_LEVEL"):
        config["log_level"] = environ["LOG_LEVEL"]

    return config
