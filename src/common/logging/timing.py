from loguru import logger
import time

class timeit:
    def __init__(
        self, 
        message: str,
        min_duration: float = 0.0,
        **extra
    ):
        self.message = message
        self.min_duration = min_duration
        self.extra = extra

    def __enter__(self):
        logger.bind(**self.extra).debug(f'{self.message}')
        self.start = time.time()
        return self

    def __exit__(self, *args):
        self.end = time.time()
        self.interval = self.end - self.start
        if self.interval >= self.min_duration:
            logger.bind(**self.extra).debug(f'Finished {self.message}... Elapsed time: {self.interval:.4f} seconds')
