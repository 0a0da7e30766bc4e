"""
Shell profile adapter — idempotent additions to rc files.

A block is appended under a marker comment. If the marker is already in
the file nothing is written; individual lines already present are
skipped too, so hand-edited profiles are not duplicated.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from provisioner.adapters.base import Adapter
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class ShellProfileAdapter(Adapter):
    @property
    def name(self) -> str:
        return "profile"

    def is_available(self) -> bool:
        return True

    def append_once(self, path: Path | str, lines: list[str], marker: str) -> Receipt:
        """Append ``lines`` under ``marker`` unless the marker is present.

        Returns:
            Success receipt with ``metadata["lines_added"]``, plus
            ``metadata["backup"]`` when an existing file was copied aside
            first; failure receipt if the file cannot be written.
        """
        target = Path(path)
        command = ["append", str(target)]

        existing = ""
        if target.is_file():
            try:
                existing = target.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                return Receipt.failure(command, error=f"Cannot read {target}: {e}")

        if marker in existing:
            return Receipt.success(
                command, output="marker already present", metadata={"lines_added": 0},
            )

        present = {ln.strip() for ln in existing.splitlines()}
        new_lines = [ln for ln in lines if ln.strip() and ln.strip() not in present]

        if self.runner.simulated:
            logger.info("[simulated] append %d lines to %s", len(new_lines), target)
            return Receipt.success(
                command,
                output=f"[simulated] {len(new_lines)} lines",
                metadata={"lines_added": len(new_lines), "simulated": True},
            )

        metadata: dict = {"lines_added": len(new_lines), "file": str(target)}
        if target.is_file():
            backup = target.with_name(f"{target.name}.backup.{int(time.time())}")
            try:
                shutil.copy2(target, backup)
                metadata["backup"] = str(backup)
            except OSError as e:
                logger.warning("Could not back up %s: %s", target, e)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding="utf-8") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(f"\n{marker}\n")
                for ln in new_lines:
                    f.write(f"{ln}\n")
        except OSError as e:
            return Receipt.failure(command, error=f"Failed to write {target}: {e}")

        logger.info("Appended %d lines to %s", len(new_lines), target)
        return Receipt.success(
            command,
            output=f"{len(new_lines)} lines added",
            metadata=metadata,
        )
