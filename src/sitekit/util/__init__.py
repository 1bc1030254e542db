__all__ = ["deserialise", "misc"]
