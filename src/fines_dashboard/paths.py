from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

TABLE_EXTENSIONS = {"parquet": "parquet", "csv": "csv"}


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    tables: Path
    summary: Path

    def table_path(self, name: str, fmt: str) -> Path:
        try:
            extension = TABLE_EXTENSIONS[fmt]
        except KeyError:
            raise ValueError(f"Unsupported table format: {fmt}") from None
        return self.tables / f"{name}.{extension}"

    def summary_path(self, name: str) -> Path:
        return self.summary / f"{name}.json"


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        tables=out_dir / "tables",
        summary=out_dir / "summary",
    )
    for path in (paths.root, paths.tables, paths.summary):
        path.mkdir(parents=True, exist_ok=True)
    return paths
