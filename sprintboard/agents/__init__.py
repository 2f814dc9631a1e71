from .claude import ClaudeExecutor, ExecutorResult

__all__ = ["ClaudeExecutor", "ExecutorResult"]
