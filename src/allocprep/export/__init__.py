from allocprep.export.exporter import (
    build_rules_config,
    build_validation_report,
    write_entities,
    write_json,
)

__all__ = ["write_entities", "build_rules_config", "build_validation_report", "write_json"]
