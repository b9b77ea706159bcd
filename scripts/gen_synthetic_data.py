# scripts/gen_synthetic_data.py
from __future__ import annotations

import csv
import json
import random
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

"""
Synthetic upload generator (single run -> clients.csv, workers.csv, tasks.csv).

Design:
- Parameters are hard-coded as constants below (no CLI args).
- Workers offer skills drawn from SKILLS; tasks require skills drawn from
  SKILLS plus RARE_SKILLS, so some required skills are never offered.
- A share of rows is deliberately damaged (blank ids, out-of-range priorities,
  broken JSON, dangling task references, tight worker loads) to exercise the
  validator and auto-fixer.
- Output CSV columns use the canonical field names; list cells are
  comma-separated inside a quoted field.

Edit the constants in the "CONFIG" section to produce different datasets.
"""

# =========================
# CONFIG - EDIT THESE
# =========================
N_CLIENTS: int = 20
N_WORKERS: int = 12
N_TASKS: int = 15
PHASES: int = 6  # slots / phases are numbered 1..PHASES
OUTPUT_DIR: str = "data/input"

SKILLS: tuple[str, ...] = ("python", "sql", "design", "testing", "devops", "analytics")
RARE_SKILLS: tuple[str, ...] = ("rust", "ml")
CATEGORIES: tuple[str, ...] = ("ETL", "Analysis", "Frontend", "Infra")
GROUPS: tuple[str, ...] = ("GroupA", "GroupB", "GroupC")

DAMAGE_RATE: float = 0.15  # probability that a generated row carries one defect

# Deterministic generation
RANDOM_SEED: int = 42
# =========================


@dataclass(frozen=True, slots=True)
class ClientRow:
    ClientID: str
    ClientName: str
    PriorityLevel: int
    RequestedTaskIDs: str
    GroupTag: str
    AttributesJSON: str


@dataclass(frozen=True, slots=True)
class WorkerRow:
    WorkerID: str
    WorkerName: str
    Skills: str
    AvailableSlots: str
    MaxLoadPerPhase: int
    WorkerGroup: str
    QualificationLevel: int


@dataclass(frozen=True, slots=True)
class TaskRow:
    TaskID: str
    TaskName: str
    Category: str
    Duration: int
    RequiredSkills: str
    PreferredPhases: str
    MaxConcurrent: int


def _damaged(rng: random.Random) -> bool:
    return rng.random() < DAMAGE_RATE


def _gen_tasks(rng: random.Random) -> list[TaskRow]:
    rows: list[TaskRow] = []
    for i in range(N_TASKS):
        pool = SKILLS + RARE_SKILLS if i % 5 == 4 else SKILLS
        skills = rng.sample(pool, k=rng.randint(1, 2))
        start = rng.randint(1, PHASES - 1)
        rows.append(
            TaskRow(
                TaskID="" if _damaged(rng) else f"T{i + 1:03d}",
                TaskName=f"Task {i + 1}",
                Category=rng.choice(CATEGORIES),
                Duration=rng.randint(1, 7),
                RequiredSkills=",".join(skills),
                PreferredPhases=f"{start}-{min(PHASES, start + 2)}",
                MaxConcurrent=rng.randint(1, 3),
            )
        )
    return rows


def _gen_workers(rng: random.Random) -> list[WorkerRow]:
    rows: list[WorkerRow] = []
    for i in range(N_WORKERS):
        slots = sorted(rng.sample(range(1, PHASES + 1), k=rng.randint(1, PHASES)))
        max_load = len(slots) if _damaged(rng) else max(1, len(slots) // 2)
        rows.append(
            WorkerRow(
                WorkerID="" if _damaged(rng) else f"W{i + 1:03d}",
                WorkerName=f"Worker {i + 1}",
                Skills=",".join(rng.sample(SKILLS, k=rng.randint(1, 3))),
                AvailableSlots=",".join(str(s) for s in slots),
                MaxLoadPerPhase=max_load,
                WorkerGroup=rng.choice(GROUPS),
                QualificationLevel=rng.randint(1, 5),
            )
        )
    return rows


def _gen_clients(rng: random.Random) -> list[ClientRow]:
    rows: list[ClientRow] = []
    for i in range(N_CLIENTS):
        requested = [f"T{rng.randint(1, N_TASKS):03d}" for _ in range(rng.randint(1, 3))]
        if _damaged(rng):
            requested.append(f"T{N_TASKS + 50:03d}")
        attributes = json.dumps({"location": rng.choice(("NY", "SF", "LDN")), "budget": 1000 * i})
        rows.append(
            ClientRow(
                ClientID="" if _damaged(rng) else f"C{i + 1:03d}",
                ClientName=f"Client {i + 1}",
                PriorityLevel=rng.choice((0, 7)) if _damaged(rng) else rng.randint(1, 5),
                RequestedTaskIDs=",".join(dict.fromkeys(requested)),
                GroupTag=rng.choice(GROUPS),
                AttributesJSON="{broken" if _damaged(rng) else attributes,
            )
        )
    return rows


def _write_csv(path: Path, rows: list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(asdict(rows[0]).keys()))
        writer.writeheader()
        for row in rows:
            writer.writerow(asdict(row))


def main(out_dir: Path | None = None) -> int:
    if min(N_CLIENTS, N_WORKERS, N_TASKS) < 1 or PHASES < 2:
        print("Invalid CONFIG: counts must be >= 1 and PHASES >= 2", file=sys.stderr)
        return 2

    rng = random.Random(RANDOM_SEED)
    target = Path(out_dir or OUTPUT_DIR)

    tasks = _gen_tasks(rng)
    workers = _gen_workers(rng)
    clients = _gen_clients(rng)

    for name, rows in (("clients", clients), ("workers", workers), ("tasks", tasks)):
        path = target / f"{name}.csv"
        _write_csv(path, rows)
        print(f"Wrote {len(rows)} {name} -> {path.as_posix()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
