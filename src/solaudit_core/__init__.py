__all__ = ["redact"]

from .redaction import redact
