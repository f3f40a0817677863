from .replace import ReplaceStream, replace_stream

__all__ = ["ReplaceStream", "replace_stream"]
