"""File-based persistence for planned routes."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings
from ..errors import PersistenceError
from ..schemas.routing import PlannedRouteResponse
from ..services.outputs.routing_formatter import planned_route_to_csv, planned_route_to_json

logger = logging.getLogger(__name__)


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "route") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)


def _slug(label: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", label).strip("-") or "route"


def save_route(route: PlannedRouteResponse, storage: FileStorage | None = None, label: str | None = None) -> str:
    """Write ``route.json`` and ``stops.csv`` to a new run directory and return its name."""
    try:
        storage = storage or FileStorage()
        run_dir = storage.make_run_directory(prefix=_slug(label or "route"))
        route_id = run_dir.name
        payload = planned_route_to_json(route.model_copy(update={"route_id": route_id}))
        storage.write_json(run_dir / "route.json", payload)
        storage.write_csv(run_dir / "stops.csv", planned_route_to_csv(route))
    except OSError as exc:
        logger.error(f"Failed to save planned route: {exc}")
        raise PersistenceError(f"Failed to save planned route: {exc}") from exc
    logger.info(f"Saved planned route to {run_dir}")
    return route_id
