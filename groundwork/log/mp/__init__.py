"""
Multiprocessing support for groundwork logging.

Workers send their records to the master through a ``multiprocessing.Queue``:

    # master, before forking
    queue = multiprocessing.get_context("fork").Queue()
    listener = LogQueueListener(queue)
    listener.start()

    # worker
    factory.attach_queue(queue)
"""

from .queue_handler import MPQueueHandler
from .queue_listener import LogQueueListener

__all__ = ["LogQueueListener", "MPQueueHandler"]
