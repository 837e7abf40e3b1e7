from .logging import LOGGER_NAME, build_log_context, log_event

__all__ = ["LOGGER_NAME", "build_log_context", "log_event"]
