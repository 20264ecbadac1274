#!/usr/bin/env python3
"""
Zone 2 Monitor launcher

Sets up the environment, logging and asyncio event loop before Kivy is
imported, then runs the app.
"""

import asyncio
import os
import platform
import sys

from .app_config import AppConfig
from .debug_helper import configure_logging, inject_exception_handler, log_startup_info
from .zone_models import InvalidConfig


def setup_environment():
    """Set up environment variables needed by Kivy"""
    if platform.system() == 'Darwin':
        os.environ.setdefault('KIVY_GL_BACKEND', 'angle_sdl2')
    os.environ.setdefault('KIVY_NO_CONSOLELOG', '1')
    os.environ.setdefault('KIVY_NO_ARGS', '1')


def main():
    setup_environment()
    try:
        config = AppConfig.from_env()
    except InvalidConfig as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    logger = configure_logging(config.log_level, config.log_file)
    inject_exception_handler()
    log_startup_info()

    if platform.system() == 'Windows':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    logger.debug("Created asyncio event loop: %s", loop)

    # Kivy must only be imported after the environment is prepared
    from .main import Zone2MonitorApp

    try:
        Zone2MonitorApp(config=config).run()
    except Exception:
        logger.exception("Failed to run the application")
        return 1
    finally:
        loop.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
