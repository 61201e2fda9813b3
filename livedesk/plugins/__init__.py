"""Plugin discovery: routers from ``endpoint.py``, remote methods from ``methods.py``."""

import importlib
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog
from fastapi import APIRouter, FastAPI

logger = structlog.get_logger(__name__)

ENDPOINT_MODULE = "endpoint"
METHODS_MODULE = "methods"


class PluginManager:
    """
    Walks the plugins package, imports each plugin's endpoint and methods
    modules and mounts every discovered router at ``/<plugin path>``.
    """

    def __init__(self, excluded_plugins: list[str] | None = None):
        self.plugins_dir = Path(__file__).parent
        self.excluded_plugins = set(excluded_plugins or [])
        self.discovered_routers: dict[str, APIRouter] = {}
        self.method_modules: dict[str, ModuleType] = {}
        self.metadata: dict[str, dict[str, Any]] = {}
        self._discovery_has_run = False

    def discover(self) -> None:
        if self._discovery_has_run:
            logger.debug("Plugin discovery has already run. Skipping.")
            return

        logger.info("Starting plugin discovery...")
        plugin_paths = {
            module_file.parent
            for pattern in (f"{ENDPOINT_MODULE}.py", f"{METHODS_MODULE}.py")
            for module_file in self.plugins_dir.rglob(pattern)
        }
        for plugin_path in sorted(plugin_paths):
            relative_path = plugin_path.relative_to(self.plugins_dir)
            if any(part.startswith(("_", ".")) for part in relative_path.parts):
                continue

            plugin_name = relative_path.as_posix()
            if plugin_name in self.excluded_plugins:
                logger.info(f"Skipping excluded plugin: {plugin_name}")
                continue

            self._load_plugin(plugin_path, plugin_name)

        self._discovery_has_run = True

    def _module_path(self, plugin_name: str, module: str | None = None) -> str:
        parts = [__name__, *plugin_name.split("/")]
        if module:
            parts.append(module)
        return ".".join(parts)

    def _load_plugin(self, plugin_path: Path, plugin_name: str) -> None:
        package = importlib.import_module(self._module_path(plugin_name))
        self.metadata[plugin_name] = getattr(package, "PLUGIN_METADATA", {"name": plugin_name})

        if (plugin_path / f"{ENDPOINT_MODULE}.py").exists():
            module = importlib.import_module(self._module_path(plugin_name, ENDPOINT_MODULE))
            router = getattr(module, "router", None)
            if isinstance(router, APIRouter):
                self.discovered_routers[plugin_name] = router
                logger.debug(f"Discovered router for plugin: {plugin_name}")
            else:
                logger.warning(f"No valid router found in {plugin_name}/endpoint.py")

        if (plugin_path / f"{METHODS_MODULE}.py").exists():
            self.method_modules[plugin_name] = importlib.import_module(
                self._module_path(plugin_name, METHODS_MODULE)
            )
            logger.debug(f"Loaded remote methods for plugin: {plugin_name}")

    def register_routers(self, app: FastAPI) -> None:
        if not self.discovered_routers:
            logger.warning("No plugin routers were discovered to register.")
            return

        for plugin_name, router in sorted(self.discovered_routers.items()):
            prefix = f"/{plugin_name}"
            tags = [plugin_name.replace("/", " ").title()]
            app.include_router(router, prefix=prefix, tags=tags)
            logger.info(f"Registered plugin routes for '{plugin_name}' at prefix '{prefix}'")


def init_plugins(app: FastAPI, excluded_plugins: list[str] | None = None) -> PluginManager:
    """Discovers plugins, mounts their routers and keeps the manager on app.state."""
    plugin_manager = PluginManager(excluded_plugins=excluded_plugins)
    plugin_manager.discover()
    plugin_manager.register_routers(app)
    app.state.plugin_manager = plugin_manager

    logger.info(
        "Plugin system initialized.",
        plugins=sorted(plugin_manager.metadata),
        routers=len(plugin_manager.discovered_routers),
    )
    return plugin_manager
