import sys
from pathlib import Path

import pytest

# (1) Add repository root and src/ to sys.path to enable absolute imports
#     The root directory contains scripts/, src/ and config/.
ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from allocprep.schemas.models import Client, Task, Worker  # noqa: E402


@pytest.fixture
def clean_dataset() -> tuple[list[Client], list[Worker], list[Task]]:
    """
    @brief
    Small dataset that produces no findings at all.

    @details
    Two tasks whose skills are each offered by two workers, two workers with
    two skills and a comfortable load, and two clients with valid priorities
    and resolvable task requests.
    """
    clients = [
        Client(
            ClientID="C001",
            ClientName="Acme",
            PriorityLevel=3,
            RequestedTaskIDs=["T001"],
            GroupTag="GroupA",
            AttributesJSON='{"budget": 100}',
        ),
        Client(
            ClientID="C002",
            ClientName="Globex",
            PriorityLevel=2,
            RequestedTaskIDs=["T002"],
            GroupTag="GroupB",
        ),
    ]
    workers = [
        Worker(
            WorkerID="W001",
            WorkerName="Ann",
            Skills=["python", "sql"],
            AvailableSlots=[1, 2, 3, 4],
            MaxLoadPerPhase=2,
            WorkerGroup="GroupA",
            QualificationLevel=4,
        ),
        Worker(
            WorkerID="W002",
            WorkerName="Bob",
            Skills=["sql", "python"],
            AvailableSlots=[1, 2, 3, 4, 5],
            MaxLoadPerPhase=2,
            WorkerGroup="GroupB",
            QualificationLevel=3,
        ),
    ]
    tasks = [
        Task(
            TaskID="T001",
            TaskName="Load data",
            Category="ETL",
            Duration=2,
            RequiredSkills=["python"],
            PreferredPhases=[1, 2],
            MaxConcurrent=1,
        ),
        Task(
            TaskID="T002",
            TaskName="Report",
            Category="Analysis",
            Duration=1,
            RequiredSkills=["sql"],
            PreferredPhases=[3],
            MaxConcurrent=2,
        ),
    ]
    return clients, workers, tasks
