"""Cache of compiled page modules."""

from __future__ import annotations

import json
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..models import CompiledModule, Heading, Metadata

_CACHE_VERSION = 1


class CompileCache:
    """Stores compiled modules keyed by document identity and content fingerprint.

    Entries are keyed by ``(path, locale, mode)`` and validated against the
    source fingerprint and the compiler signature. Failed compilations are never
    stored, so a broken document cannot poison the cache.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._live: Dict[str, CompiledModule] = {}
        self._lock = threading.Lock()
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @staticmethod
    def key(path: str, *, locale: str = "", mode: str) -> str:
        return f"{locale}::{mode}::{path}"

    def get(
        self, path: str, *, fingerprint: str, signature: str, locale: str = "", mode: str
    ) -> Optional[CompiledModule]:
        key = self.key(path, locale=locale, mode=mode)
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            if entry.get("signature") != signature or entry.get("fingerprint") != fingerprint:
                return None
            live = self._live.get(key)
            if live is not None:
                return live
            module = _module_from_dict(entry.get("module"))
            if module is not None:
                self._live[key] = module
            return module

    def store(
        self,
        path: str,
        module: CompiledModule,
        *,
        fingerprint: str,
        signature: str,
        locale: str = "",
    ) -> None:
        key = self.key(path, locale=locale, mode=module.mode)
        with self._lock:
            self._entries[key] = {
                "path": path,
                "locale": locale,
                "signature": signature,
                "fingerprint": fingerprint,
                "module": _module_to_dict(module),
                "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            }
            self._live[key] = module
            self._dirty = True

    def invalidate(self, path: str, locale: str | None = None) -> int:
        """Drop every mode of one document; other entries are untouched."""
        with self._lock:
            removed = [
                key
                for key, entry in self._entries.items()
                if entry.get("path") == path and (locale is None or entry.get("locale") == locale)
            ]
            for key in removed:
                self._entries.pop(key, None)
                self._live.pop(key, None)
            if removed:
                self._dirty = True
            return len(removed)

    def prune(self, keys_to_keep: Iterable[str]) -> None:
        keep = set(keys_to_keep)
        with self._lock:
            removed = [key for key in self._entries if key not in keep]
            for key in removed:
                self._entries.pop(key, None)
                self._live.pop(key, None)
            if removed:
                self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        with self._lock:
            payload = {"version": _CACHE_VERSION, "entries": self._entries}
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            self._dirty = False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._live.clear()
            self._dirty = True

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid_entries: Dict[str, Dict[str, object]] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict):
                continue
            if "signature" not in raw or "fingerprint" not in raw or "module" not in raw:
                continue
            valid_entries[key] = raw
        self._entries = valid_entries
        self._dirty = False


def _module_to_dict(module: CompiledModule) -> Dict[str, object]:
    return {
        "mode": module.mode,
        "code": module.code,
        "metadata": module.metadata.to_dict(),
        "toc": [heading.to_dict() for heading in module.toc],
    }


def _module_from_dict(payload: object) -> Optional[CompiledModule]:
    if not isinstance(payload, dict):
        return None
    mode = payload.get("mode")
    code = payload.get("code")
    metadata = payload.get("metadata")
    toc = payload.get("toc", [])
    if not isinstance(mode, str) or not isinstance(code, str) or not isinstance(metadata, dict):
        return None
    if not isinstance(toc, list):
        toc = []
    headings = tuple(
        Heading(depth=int(item["depth"]), value=str(item["value"]), id=str(item["id"]))
        for item in toc
        if isinstance(item, dict) and {"depth", "value", "id"} <= item.keys()
    )
    return CompiledModule(mode=mode, code=code, metadata=Metadata.from_dict(metadata), toc=headings)


__all__ = ["CompileCache"]
