import json
import logging

from lingoshield.core.database import APP_HOME, DB_FILE, KeyValueStore

LOG_DIR = APP_HOME / "logs"
LOG_FILE = LOG_DIR / "app.log"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MODES = ('off', 'info', 'debug')

# Cache for log mode to avoid repeated database reads
_log_mode_cache = None


def _get_log_mode() -> str:
    """Get log mode from the persisted configuration."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    # Never create the database just to find out the log mode
    if not DB_FILE.exists():
        _log_mode_cache = 'off'
        return _log_mode_cache

    try:
        stored = json.loads(KeyValueStore(DB_FILE).get('config') or '{}')
        log_mode = stored.get('log_mode', 'off')
    except Exception:
        # If config loading fails, default to 'off'
        log_mode = 'off'

    _log_mode_cache = log_mode if log_mode in LOG_MODES else 'off'
    return _log_mode_cache


def _levels_for(log_mode: str):
    """Return (logger_level, console_level) for a log mode."""
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _file_handler() -> logging.FileHandler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    f_handler.setLevel(logging.DEBUG)
    f_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return f_handler


def _apply_mode(logger: logging.Logger, log_mode: str) -> None:
    """Set levels and add or remove the file handler for one logger."""
    logger_level, console_level = _levels_for(log_mode)
    logger.setLevel(logger_level)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    if log_mode != 'off' and not has_file_handler:
        logger.addHandler(_file_handler())
    elif log_mode == 'off' and has_file_handler:
        for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
            handler.close()
            logger.removeHandler(handler)

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)


def set_log_mode(log_mode: str) -> None:
    """Change the log mode and update all loggers created by get_logger."""
    global _log_mode_cache
    _log_mode_cache = log_mode if log_mode in LOG_MODES else 'off'

    # Only loggers with handlers were created by get_logger
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        if logger.handlers and logger_name.startswith('lingoshield'):
            _apply_mode(logger, _log_mode_cache)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    log_mode = _get_log_mode()

    if not logger.handlers:
        c_handler = logging.StreamHandler()
        c_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(c_handler)

    _apply_mode(logger, log_mode)
    return logger
