"""Repository of SLI and SLO plugins discovered on the filesystem."""

from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional

from slothstore.model import NotFoundError, SLIPlugin, SLOPlugin

_PLUGIN_NAME_RE = re.compile("plugin.go$")


class PluginLoadError(Exception):
    """Raised when the plugins cannot be discovered or loaded."""


def _walk_files(directory: Path) -> Iterator[Path]:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            yield from _walk_files(entry)
        else:
            yield entry


class FilePluginRepo:
    """Loads SLI and SLO plugins from plugin source files under root directories.

    Each file whose path ends in ``plugin.go`` is offered first to the SLI
    loader and, if that fails, to the SLO loader. Files neither loader accepts
    are logged and skipped. Loaders are callables that take the source text
    and return a plugin or raise.
    """

    def __init__(
        self,
        sli_plugin_loader: Callable[[str], SLIPlugin],
        slo_plugin_loader: Callable[[str], SLOPlugin],
        *args: "str | os.PathLike[str]",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._roots = [Path(root) for root in args]
        self._sli_loader = sli_plugin_loader
        self._slo_loader = slo_plugin_loader
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._slo_plugins: dict[str, SLOPlugin] = {}
        self._sli_plugins: dict[str, SLIPlugin] = {}
        try:
            self.reload()
        except PluginLoadError as err:
            raise PluginLoadError(f"could not load plugins: {err}") from err

    def reload(self) -> None:
        """Discover all plugins again and replace the loaded ones."""
        slo_plugins, sli_plugins = self._load_plugins()
        with self._lock:
            self._slo_plugins = slo_plugins
            self._sli_plugins = sli_plugins
        self._logger.info(
            "Plugins loaded (slo-plugins=%d, sli-plugins=%d)",
            len(slo_plugins),
            len(sli_plugins),
        )

    def get_slo_plugin(self, plugin_id: str) -> SLOPlugin:
        with self._lock:
            try:
                return self._slo_plugins[plugin_id]
            except KeyError:
                raise NotFoundError(f"plugin {plugin_id!r} not found") from None

    def list_slo_plugins(self) -> dict[str, SLOPlugin]:
        with self._lock:
            return dict(self._slo_plugins)

    def get_sli_plugin(self, plugin_id: str) -> SLIPlugin:
        with self._lock:
            try:
                return self._sli_plugins[plugin_id]
            except KeyError:
                raise NotFoundError(f"plugin {plugin_id!r} not found") from None

    def list_sli_plugins(self) -> dict[str, SLIPlugin]:
        with self._lock:
            return dict(self._sli_plugins)

    def _load_plugins(self) -> tuple[dict[str, SLOPlugin], dict[str, SLIPlugin]]:
        slo_plugins: dict[str, SLOPlugin] = {}
        sli_plugins: dict[str, SLIPlugin] = {}

        for root in self._roots:
            try:
                files = list(_walk_files(root))
            except OSError as err:
                raise PluginLoadError(f"could not walk dir: {err}") from err

            for file_path in files:
                rel = file_path.relative_to(root).as_posix()
                if not _PLUGIN_NAME_RE.search(rel):
                    continue
                try:
                    source = file_path.read_text(encoding="utf-8")
                except OSError as err:
                    raise PluginLoadError(f"could not read {rel!r} plugin data: {err}") from err
                self._load_one(rel, source, slo_plugins, sli_plugins)

        return slo_plugins, sli_plugins

    def _load_one(
        self,
        rel: str,
        source: str,
        slo_plugins: dict[str, SLOPlugin],
        sli_plugins: dict[str, SLIPlugin],
    ) -> None:
        try:
            sli_plugin = self._sli_loader(source)
        except Exception as sli_err:  # noqa: BLE001 - any loader failure means "not an SLI plugin"
            try:
                slo_plugin = self._slo_loader(source)
            except Exception as slo_err:  # noqa: BLE001
                self._logger.error(
                    "could not load %r as SLI or SLO plugin: (SLI plugin error: %s | SLO plugin error: %s)",
                    rel,
                    sli_err,
                    slo_err,
                )
                return
            if slo_plugin.id in slo_plugins:
                raise PluginLoadError(f"plugin {slo_plugin.id!r} already loaded")
            slo_plugins[slo_plugin.id] = slo_plugin
            self._logger.debug("SLO plugin discovered and loaded (slo-plugin-id=%s)", slo_plugin.id)
            return

        if sli_plugin.id in sli_plugins:
            raise PluginLoadError(f"plugin {sli_plugin.id!r} already loaded")
        sli_plugins[sli_plugin.id] = sli_plugin
        self._logger.debug("SLI plugin discovered and loaded (sli-plugin-id=%s)", sli_plugin.id)