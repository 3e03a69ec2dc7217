from .netlog import dump_debug_log, reset_debug_log, setup_logging

__all__ = ["dump_debug_log", "reset_debug_log", "setup_logging"]
