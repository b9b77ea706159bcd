from allocprep.autofix.fixer import AutoFixer, FixResult, auto_fix

__all__ = ["AutoFixer", "FixResult", "auto_fix"]
