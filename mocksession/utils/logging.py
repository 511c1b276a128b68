"""
Logging utilities for the session runner.
"""
import os
import logging


def setup_logging(log_file_path: str, level: str = "DEBUG") -> str:
    """
    Set up logging to file with minimal console output.

    The console handler only lets CRITICAL records through so the
    runner's own prompts are not interleaved with log lines.

    Args:
        log_file_path: Full path to the log file
        level: Minimum level written to the file

    Returns:
        Path to the log file
    """
    workdir = os.path.dirname(log_file_path)
    if workdir:
        os.makedirs(workdir, exist_ok=True)

    logging.getLogger().handlers.clear()

    file_handler = logging.FileHandler(log_file_path, mode='w')
    file_handler.setLevel(getattr(logging, level.upper(), logging.DEBUG))
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s'))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    return log_file_path
