import asyncio
import logging

from kivy.clock import Clock

logger = logging.getLogger(__name__)

_service_event = None


def get_loop():
    """Return the current thread's event loop, creating one if needed."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            logger.debug("Existing event loop is closed. Creating a new one.")
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
    except RuntimeError:
        logger.debug("No existing event loop found. Creating a new one.")
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


def install_asyncio_loop(rate=1 / 30):
    """
    Service asyncio from Kivy's clock so bleak coroutines run alongside the UI.
    Call this once at the start of the application.

    Returns:
        asyncio.AbstractEventLoop: The event loop
    """
    global _service_event
    loop = get_loop()
    if _service_event is not None:
        return loop

    def _async_service(_):
        try:
            # Run whatever is ready, then hand control back to Kivy
            loop.call_soon(loop.stop)
            loop.run_forever()
        except Exception:
            logger.exception("Asyncio error while servicing the event loop")

    _service_event = Clock.schedule_interval(_async_service, rate)
    logger.info("Asyncio loop %s serviced by Kivy Clock", loop)
    return loop


def safe_create_task(coro):
    """
    Schedule a coroutine on the current loop.

    Returns:
        asyncio.Task or None: The created task, or None if it could not be scheduled
    """
    try:
        return get_loop().create_task(coro)
    except Exception:
        logger.exception("Error creating asyncio task")
        coro.close()
        return None
