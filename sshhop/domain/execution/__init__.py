"""
Command execution domain
"""
from .models import ExecutionResult
from .executor import CommandExecutor, OutputSink

__all__ = ["CommandExecutor", "ExecutionResult", "OutputSink"]
