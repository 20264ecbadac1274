import logging
import platform
import sys
import traceback

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
ROOT_LOGGER = 'zone2_monitor'

logger = logging.getLogger(ROOT_LOGGER)


def configure_logging(level="INFO", log_file=""):
    """
    Attach console (and optionally file) handlers to the package logger.

    Safe to call more than once; existing handlers are replaced.
    """
    level = getattr(logging, str(level).upper(), logging.INFO)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning("Could not create log file %s: %s", log_file, e)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)
    return logger


def get_platform_info():
    """Get information about the current platform"""
    info = {
        "system": platform.system(),
        "release": platform.release(),
        "machine": platform.machine(),
        "python_version": platform.python_version(),
    }
    try:
        import kivy
        info["kivy_version"] = kivy.__version__
    except ImportError:
        info["kivy_version"] = "Not available"
    try:
        from importlib.metadata import PackageNotFoundError, version
        info["bleak_version"] = version("bleak")
    except PackageNotFoundError:
        info["bleak_version"] = "Not available"
    return info


def log_startup_info():
    """Log platform and environment information at startup"""
    info = get_platform_info()
    logger.info("=" * 50)
    logger.info("Zone 2 Monitor starting")
    logger.info("Platform: %s %s (%s)", info["system"], info["release"], info["machine"])
    logger.info("Python: %s", info["python_version"])
    logger.info("Kivy: %s", info["kivy_version"])
    logger.info("Bleak: %s", info["bleak_version"])
    logger.info("=" * 50)


def inject_exception_handler():
    """Log unhandled exceptions before the default hook runs"""
    original_hook = sys.excepthook

    def exception_hook(exc_type, exc_value, traceback_obj):
        logger.error("Unhandled %s: %s", exc_type.__name__, exc_value)
        logger.error("".join(traceback.format_exception(exc_type, exc_value, traceback_obj)))
        return original_hook(exc_type, exc_value, traceback_obj)

    sys.excepthook = exception_hook
