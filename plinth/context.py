"""
Plugin context - the runtime environment handed to every plugin.

Built once by the driver and passed by reference through every lifecycle
call; nothing in Plinth reaches for module-level singletons.
"""

import logging
from typing import Any, Dict, Optional

from .config import ConfigLoader
from .di.core import Container


class PluginContext:
    """
    Runtime environment for plugins.

    Attributes:
        container: Shared DI container (buses, repositories, services)
        logger: Application logger
        config: Loaded configuration
    """

    def __init__(
        self,
        container: Container,
        logger: Optional[logging.Logger] = None,
        config: Optional[ConfigLoader] = None,
    ):
        self.container = container
        self.logger = logger or logging.getLogger("plinth")
        self.config = config or ConfigLoader()
        self._current_plugin_name: Optional[str] = None

    def set_current_plugin_name(self, name: str) -> None:
        """Called by the lifecycle manager before each ``initialize`` hook."""
        self._current_plugin_name = name

    @property
    def current_plugin_name(self) -> Optional[str]:
        return self._current_plugin_name

    def get_config(self) -> Dict[str, Any]:
        """Config section of the plugin currently being initialized."""
        if self._current_plugin_name is None:
            return {}
        return self.config.plugin_config(self._current_plugin_name)

    def get_logger(self) -> logging.Logger:
        """Child logger named after the current plugin."""
        if self._current_plugin_name is None:
            return self.logger
        return logging.getLogger(f"plinth.plugins.{self._current_plugin_name}")

    def resolve(self, token: Any) -> Any:
        """Shortcut for ``container.resolve``."""
        return self.container.resolve(token)

    def __repr__(self) -> str:
        return f"PluginContext(current={self._current_plugin_name!r})"
