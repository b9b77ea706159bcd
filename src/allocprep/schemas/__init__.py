from allocprep.schemas.models import Client, Config, Finding, Insight, Priority, Rule, Task, Worker

__all__ = ["Client", "Worker", "Task", "Finding", "Insight", "Rule", "Priority", "Config"]
