from .stream_cmds import register as register_stream

__all__ = [
    "register_stream",
]
