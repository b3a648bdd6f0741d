"""
Centralized logging for the copy-number calling pipeline.
"""

import logging
import os
from typing import Optional

LOGGER_NAME = "sccnv"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Logger:
    """Centralized logging for the copy-number calling pipeline"""

    def __init__(self, log_file: Optional[str] = None, level: Optional[int] = None):
        """Initialize logger with optional file output.

        Handlers and level are shared by every service. The level defaults to
        INFO when the shared logger is first configured; later instances only
        change it when ``level`` is given.
        """
        self.logger = logging.getLogger(LOGGER_NAME)

        if not self.logger.handlers:
            self.logger.setLevel(logging.INFO if level is None else level)
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            self.logger.addHandler(console_handler)
        elif level is not None:
            self.logger.setLevel(level)

        if log_file:
            self.add_file_handler(log_file)

    def add_file_handler(self, log_file: str) -> None:
        """Also write log records to ``log_file``"""
        log_file = os.path.abspath(log_file)
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_file:
                return
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(file_handler)

    def log_step(self, step: str, details: str) -> None:
        """Log a processing step with details"""
        self.logger.info(f"🔍 {step}: {details}")

    def log_debug(self, message: str) -> None:
        self.logger.debug(message)

    def log_error(self, error: Exception, context: str) -> None:
        """Log an error with context"""
        self.logger.error(f"❌ Error in {context}: {str(error)}", exc_info=True)

    def log_warning(self, warning: str) -> None:
        """Log a warning message"""
        self.logger.warning(f"⚠️ {warning}")

    def log_success(self, message: str) -> None:
        """Log a success message"""
        self.logger.info(f"✅ {message}")

    def log_save(self, file_path: str) -> None:
        """Log a file save operation"""
        self.logger.info(f"💾 Saved to: {file_path}")

    def log_cache(self, artifact: str, key: int, hit: bool, path: str) -> None:
        """Log a keyed artifact lookup"""
        state = "hit" if hit else "miss"
        self.logger.info(f"🗄️ {artifact} cache {state} for bin size {key}: {path}")

    def log_table_shape(self, table_name: str, shape: tuple) -> None:
        """Log table shape information"""
        self.logger.info(f"📊 {table_name} shape: {shape}")

    def log_threshold(self, threshold_name: str, value: Optional[float]) -> None:
        """Log threshold information"""
        if value is None:
            self.logger.info(f"🎯 {threshold_name}: undefined")
        else:
            self.logger.info(f"🎯 {threshold_name}: {value:.4f}")

    def log_statistics(self, stat_name: str, value: float) -> None:
        """Log statistical values"""
        self.logger.info(f"📈 {stat_name}: {value:.6f}")
