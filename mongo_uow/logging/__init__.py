from .logger import LogConfig, get_logger, reset_trace_id, set_trace_id

__all__ = ["LogConfig", "get_logger", "reset_trace_id", "set_trace_id"]
