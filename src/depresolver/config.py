"""Service configuration.

Precedence, lowest to highest: dataclass defaults, YAML config file,
environment variables, CLI flags.
"""

from __future__ import annotations

import ipaddress
import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml

from depresolver.constants import Constants
from depresolver.errors import BindAddressError

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for the resolver service."""

    host: str = Constants.DEFAULT_HOST
    port: int = Constants.DEFAULT_PORT
    allow_external: bool = False
    registry_url: str = Constants.REGISTRY_URL_PYPI
    request_timeout: int = Constants.REQUEST_TIMEOUT
    cache_ttl: int = Constants.PACKAGE_CACHE_TTL_SEC
    cache_max_entries: int = Constants.PACKAGE_CACHE_MAX_ENTRIES
    store_dir: Optional[str] = None
    pipeline_timeout: Optional[float] = Constants.PIPELINE_TIMEOUT_SEC
    search_api_key: Optional[str] = None
    search_engine_id: Optional[str] = None
    deprecations_file: Optional[str] = None

    @property
    def search_enabled(self) -> bool:
        return bool(self.search_api_key and self.search_engine_id)

    @property
    def binds_locally(self) -> bool:
        """True when ``host`` is ``localhost`` or a loopback address."""
        host = (self.host or "").strip().strip("[]").lower()
        if host == "localhost" or host.endswith(".localhost"):
            return True
        try:
            return ipaddress.ip_address(host).is_loopback
        except ValueError:
            return False

    def check_binding(self) -> None:
        """Refuse a non-local ``host`` unless ``allow_external`` is set.

        Raises:
            BindAddressError: if the host is not local and external binding
                was not requested.
        """
        if self.binds_locally:
            return
        if not self.allow_external:
            raise BindAddressError(
                f"Refusing to listen on {self.host!r}: non-local bindings require "
                "--allow-external or allow_external: true in the config file"
            )
        logger.warning(
            "Resolver service listening on non-local address %s; the API has no authentication",
            self.host,
        )

    def apply(self, values: Dict[str, Any]) -> None:
        """Overlay known keys from ``values``; None values are skipped."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown configuration key: %s", key)
                continue
            if value is not None:
                setattr(self, key, value)

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> None:
        env = os.environ if environ is None else environ
        self.apply({
            "search_api_key": env.get(Constants.ENV_SEARCH_API_KEY) or None,
            "search_engine_id": env.get(Constants.ENV_SEARCH_ENGINE_ID) or None,
            "store_dir": env.get(Constants.ENV_STORE_DIR) or None,
        })

    @classmethod
    def from_args(cls, args: Any, environ: Optional[Dict[str, str]] = None) -> "ServiceConfig":
        """Create config from CLI arguments.

        Args:
            args: Parsed CLI arguments namespace.
            environ: Environment mapping, defaults to ``os.environ``.

        Returns:
            ServiceConfig instance.
        """
        config = cls()
        config_path = getattr(args, "CONFIG", None)
        if config_path:
            config.apply(load_config_file(config_path))
        config.apply_env(environ)
        config.apply({
            "host": getattr(args, "HOST", None),
            "port": getattr(args, "PORT", None),
            "registry_url": getattr(args, "REGISTRY_URL", None),
            "cache_ttl": getattr(args, "CACHE_TTL", None),
            "store_dir": getattr(args, "STORE_DIR", None),
            "pipeline_timeout": getattr(args, "PIPELINE_TIMEOUT", None),
            "deprecations_file": getattr(args, "DEPRECATIONS_FILE", None),
        })
        if getattr(args, "ALLOW_EXTERNAL", False):
            config.allow_external = True
        return config


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load the ``service`` section (or the whole document) of a YAML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the document is not a mapping.
    """
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    section = data.get("service", data)
    if not isinstance(section, dict):
        raise ValueError(f"'service' section in {config_path} must be a mapping")
    logger.info("Loaded configuration from %s", config_path)
    return section
