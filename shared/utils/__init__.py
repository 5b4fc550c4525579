from .common import hex_preview, visible_text

__all__ = ["hex_preview", "visible_text"]
