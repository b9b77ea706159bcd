from allocprep.validator.validator import Validator, validate_entities

__all__ = ["Validator", "validate_entities"]
