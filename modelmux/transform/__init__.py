from .stream import collect_stream, single_response_stream

__all__ = ["collect_stream", "single_response_stream"]
