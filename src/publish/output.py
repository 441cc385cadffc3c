"""Write the registry artifact (package.json, index.json, README.md) to disk."""

from __future__ import annotations

import json
import logging
import os
import shutil
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
MANIFEST_FILE = "package.json"
README_FILE = "README.md"


class OutputSink:
    """Owns one artifact directory; every ``write_artifact`` starts it from empty."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def path(self, filename: str) -> str:
        return os.path.join(self.output_dir, filename)

    def write_artifact(self, registry_json: str, manifest: Mapping[str, Any], readme: str) -> None:
        shutil.rmtree(self.output_dir, ignore_errors=True)
        os.makedirs(self.output_dir)
        with open(self.path(MANIFEST_FILE), "w", encoding="utf-8") as fh:
            json.dump(manifest, fh, indent=4)
        with open(self.path(INDEX_FILE), "w", encoding="utf-8") as fh:
            fh.write(registry_json)
        with open(self.path(README_FILE), "w", encoding="utf-8") as fh:
            fh.write(readme)
        logger.info("Wrote registry artifact to %s", self.output_dir)

    def read_index(self) -> Dict[str, Any]:
        with open(self.path(INDEX_FILE), encoding="utf-8") as fh:
            return json.load(fh)
