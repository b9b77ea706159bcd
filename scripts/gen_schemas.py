# scripts/gen_schemas.py
"""
Write JSON Schemas for the allocprep contracts.

Upload tables (Client, Worker, Task), validation output (Finding), rule
entries of rules_config.json (Rule) and config.yaml (Config) each get
"<name>.schema.json"; index.json lists them with their titles so a front end
can discover the set.

Output directory: schemas/ (or the directory passed to main()).
"""

import json
import sys
from pathlib import Path

from pydantic import BaseModel

from allocprep import __version__
from allocprep.schemas.models import Client, Config, Finding, Rule, Task, Worker

MODELS: tuple[tuple[str, type[BaseModel]], ...] = (
    ("client", Client),
    ("worker", Worker),
    ("task", Task),
    ("finding", Finding),
    ("rule", Rule),
    ("config", Config),
)


def export_schema(model_cls: type[BaseModel], name: str, out_dir: Path) -> Path:
    """
    @brief
    Write one model schema as "<name>.schema.json".

    @details
    The schema gets a stable "$id" of the form "allocprep/<name>" and is
    written UTF-8 with a final newline.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema = {"$id": f"allocprep/{name}", **model_cls.model_json_schema()}

    path = out_dir / f"{name}.schema.json"
    path.write_text(json.dumps(schema, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def main(out_dir: Path | None = None) -> int:
    target = Path(out_dir or "schemas").resolve()

    index = []
    for name, model_cls in MODELS:
        path = export_schema(model_cls, name, target)
        index.append({"name": name, "title": model_cls.__name__, "file": path.name})
        print(f"Generated {path.name}")

    (target / "index.json").write_text(
        json.dumps({"version": __version__, "schemas": index}, indent=2) + "\n",
        encoding="utf-8",
    )
    print(f"Wrote {len(index)} schema(s) to {target.as_posix()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
