# 1x1 transparent PNG
PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="


class FakeStream:
    """Async iterator standing in for an SDK stream; records whether it was closed."""

    def __init__(self, events, error=None, error_after=None):
        self.events = list(events)
        self.error = error
        self.error_after = len(self.events) if error_after is None else error_after
        self.closed = False
        self._position = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.error is not None and self._position >= self.error_after:
            raise self.error
        if self._position >= len(self.events):
            raise StopAsyncIteration
        event = self.events[self._position]
        self._position += 1
        return event

    async def close(self):
        self.closed = True


async def collect(stream):
    return [chunk async for chunk in stream]
